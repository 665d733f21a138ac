"""Voice learning from a project's example posts.

A project can point at a voice guide (markdown with ``## `` sections and
example posts in fenced blocks) and list example posts inline. The LLM
turns the examples into a voice fingerprint that goes into every draft
prompt for that project.
"""

import asyncio
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import structlog

from shippost.core.entities import Project
from shippost.core.interfaces import LLMClient

logger = structlog.get_logger(__name__)

SECTION_PREFIX = "## "
# Shorter fenced blocks are usually commands or placeholders
MIN_EXAMPLE_CHARS = 20

_FENCED = re.compile(r"```(.*?)```", re.DOTALL)


@dataclass
class VoiceGuide:
    """Parsed voice guide: named sections plus example posts."""

    sections: dict[str, str] = field(default_factory=dict)
    examples: list[str] = field(default_factory=list)


@dataclass
class VoiceContext:
    """What the generator needs to write in a project's voice."""

    fingerprint: Optional[str] = None
    sections: dict[str, str] = field(default_factory=dict)
    example_count: int = 0


def section_key(title: str) -> str:
    return title.strip().lower().replace(" ", "_")


def parse_voice_guide(text: str) -> VoiceGuide:
    """Split a voice guide into sections and pull out its example posts."""
    sections: dict[str, str] = {}
    current: Optional[str] = None
    lines: list[str] = []

    for line in text.splitlines():
        if line.startswith(SECTION_PREFIX):
            if current:
                sections[current] = "\n".join(lines).strip()
            current = section_key(line[len(SECTION_PREFIX):])
            lines = []
        elif current:
            lines.append(line)
    if current:
        sections[current] = "\n".join(lines).strip()

    examples = [m.strip() for m in _FENCED.findall(text)]
    return VoiceGuide(sections=sections, examples=[e for e in examples if len(e) > MIN_EXAMPLE_CHARS])


def format_examples(examples: list[str]) -> str:
    return "\n\n".join(f"--- Post {i} ---\n{post}" for i, post in enumerate(examples, 1))


class VoiceAnalyzer:
    """Learn and cache a voice fingerprint per project."""

    def __init__(
        self,
        llm_client: LLMClient,
        prompt: dict[str, str],
        base_dir: Path = Path("."),
        max_examples: int = 12,
        timeout: float = 90.0,
    ) -> None:
        """Initialize analyzer.

        Args:
            llm_client: Client used to extract the fingerprint
            prompt: System and user templates; the user template takes {posts}
            base_dir: Directory relative voice guide paths resolve against
            max_examples: Cap on example posts sent to the LLM
            timeout: Fingerprint request timeout in seconds
        """
        self.llm_client = llm_client
        self.prompt = prompt
        self.base_dir = Path(base_dir)
        self.max_examples = max_examples
        self.timeout = timeout
        self._cache: dict[tuple, str] = {}

    def load_guide(self, project: Project) -> VoiceGuide:
        """Voice guide file sections plus inline and file example posts."""
        guide = VoiceGuide(examples=list(project.brand.examples))
        if not project.brand.voice_file:
            return guide

        path = Path(project.brand.voice_file)
        if not path.is_absolute():
            path = self.base_dir / path
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Voice guide unreadable", project=project.id, path=str(path), error=str(e))
            return guide

        parsed = parse_voice_guide(text)
        guide.sections = parsed.sections
        guide.examples.extend(parsed.examples)
        return guide

    async def context(self, project: Project, refresh: bool = False) -> VoiceContext:
        guide = self.load_guide(project)
        examples = guide.examples[:self.max_examples]
        fingerprint = await self.fingerprint(project.id, examples, refresh=refresh)
        return VoiceContext(fingerprint=fingerprint, sections=guide.sections, example_count=len(examples))

    async def fingerprint(self, project_id: str, examples: list[str], refresh: bool = False) -> Optional[str]:
        """Fingerprint for a set of examples; None when there are none or the LLM fails."""
        if not examples:
            return None

        key = (project_id, len(examples), hash(tuple(examples)))
        if not refresh and key in self._cache:
            return self._cache[key]

        prompt = self.prompt.get("user", "").format(posts=format_examples(examples))
        try:
            response = await asyncio.wait_for(
                self.llm_client.complete(prompt=prompt, system=self.prompt.get("system", "")),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Voice analysis timed out", project=project_id)
            return None
        except Exception as e:
            logger.warning("Voice analysis failed", project=project_id, error=str(e))
            return None

        fingerprint = (response or "").strip()
        if not fingerprint:
            return None
        self._cache[key] = fingerprint
        logger.info("Voice fingerprint learned", project=project_id, examples=len(examples))
        return fingerprint
