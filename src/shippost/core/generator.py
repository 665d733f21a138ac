"""Post generation from commits: selection stage, then one draft per target."""

import asyncio
from typing import Optional, Union

import structlog

from shippost.core.classifier import format_commit_list
from shippost.core.entities import (
    Commit,
    Destination,
    Draft,
    ParseError,
    PlatformFormat,
    Project,
    Selection,
    new_draft_id,
    normalize_platform,
    platform_format,
)
from shippost.core.errors import GenerationFailure, ValidationError
from shippost.core.interfaces import LLMClient
from shippost.core.parsing import decode_selection
from shippost.core.voice import VoiceAnalyzer, VoiceContext

logger = structlog.get_logger(__name__)

ELLIPSIS = "..."


def fit_to_length(content: str, max_length: int) -> str:
    """Strip and truncate content, reserving room for a trailing ellipsis."""
    content = content.strip()
    if len(content) <= max_length:
        return content
    return content[:max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


class ContentGenerator:
    """Turn a set of commits into one polished draft per target platform."""

    def __init__(
        self,
        llm_client: LLMClient,
        prompts: dict[str, dict[str, str]],
        voices: Optional[dict[str, str]] = None,
        platform_formats: Optional[dict[str, PlatformFormat]] = None,
        timeout: float = 90.0,
        voice_analyzer: Optional[VoiceAnalyzer] = None,
    ) -> None:
        self.llm_client = llm_client
        self.prompts = prompts
        self.voices = voices or {}
        self.platform_formats = platform_formats
        self.timeout = timeout
        self.voice_analyzer = voice_analyzer

    async def voice_context(self, project: Project) -> VoiceContext:
        if self.voice_analyzer is None:
            return VoiceContext()
        return await self.voice_analyzer.context(project)

    async def select(self, commits: list[Commit], project: Project) -> Optional[Selection]:
        """Pick the 1-3 most postable commits; None when nothing usable comes back."""
        prompt_config = self.prompts["selection"]
        prompt = prompt_config.get("user", "").format(
            product=project.product or project.brand.name,
            goal=project.goal or "Build audience and share progress",
            commits=format_commit_list(commits),
        )

        try:
            response = await asyncio.wait_for(
                self.llm_client.complete(prompt=prompt, system=prompt_config.get("system", "")),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Commit selection timed out", project=project.id)
            return None
        except Exception as e:
            logger.warning("Commit selection failed", project=project.id, error=str(e))
            return None

        selection = decode_selection(response, commits)
        if isinstance(selection, ParseError):
            logger.info("No postable selection", project=project.id, reason=selection.reason)
            return None
        return selection

    async def draft(
        self,
        selection: Selection,
        project: Project,
        target: Union[str, Destination],
        voice: Optional[VoiceContext] = None,
    ) -> Draft:
        """Generate one draft for one target. Raises GenerationFailure on bad output."""
        voice = voice or VoiceContext()
        sections = voice.sections
        destination = target if isinstance(target, Destination) else None
        platform = destination.platform if destination else normalize_platform(target)
        fmt = platform_format(platform, self.platform_formats)

        mentions = project.tagging.suggestions(selection.topics)
        mention_line = f"- Suggested mentions (use only if natural): {' '.join(mentions)}\n" if mentions else ""

        prompt_config = self.prompts["draft"]
        system = prompt_config.get("system", "").format(
            brand=project.brand.name,
            handle=project.brand.account_handle or project.brand.name,
            voice=self._voice_text(project, sections),
            product=project.product or sections.get("product") or project.brand.name,
            goal=project.goal or sections.get("goal") or "Build audience",
            target_audience=project.target_audience or sections.get("target_audience") or "developers and founders",
        )
        if voice.fingerprint:
            system += f"\n\nPROJECT VOICE FINGERPRINT:\n{voice.fingerprint}"
        prompt = prompt_config.get("user", "").format(
            platform_name=fmt.display_name,
            selected="\n".join(f"- {c.message}" for c in selection.commits),
            theme=selection.theme,
            angle=selection.angle,
            hook_type=selection.hook_type or "shipped",
            max_length=fmt.max_length,
            hashtag_style=fmt.hashtag_style,
            mentions=mention_line,
        )

        try:
            response = await asyncio.wait_for(
                self.llm_client.complete(prompt=prompt, system=system),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            raise GenerationFailure(f"{platform} draft timed out after {self.timeout}s")

        content = fit_to_length(response or "", fmt.max_length)
        if not content:
            raise GenerationFailure(f"{platform} draft came back empty")

        return Draft(
            id=new_draft_id(project.id),
            project_id=project.id,
            platform=platform,
            content=content,
            source_commit_ids=[c.id for c in selection.commits],
            selection=selection,
            destination=destination,
            channel=project.slack_channel,
        )

    def _voice_text(self, project: Project, sections: dict[str, str]) -> str:
        text = self.voices.get(project.brand.voice) or project.brand.voice
        if sections.get("voice"):
            text += f"\n{sections['voice']}"
        return text

    async def generate_all(
        self,
        commits: list[Commit],
        project: Project,
        platforms: list[Union[str, Destination]],
    ) -> list[Draft]:
        """Generate drafts for every target; failed targets are logged and left out."""
        foreign = [c.id for c in commits if c.project_id != project.id]
        if foreign:
            raise ValidationError(f"Commits {foreign} do not belong to project {project.id}")
        if not commits or not platforms:
            return []

        commits = sorted(commits, key=lambda c: c.timestamp)
        logger.info(
            "Generating drafts",
            project=project.id,
            commits=len(commits),
            targets=[t.name if isinstance(t, Destination) else t for t in platforms],
        )

        selection = await self.select(commits, project)
        if selection is None:
            return []
        return await self.draft_all(selection, project, platforms)

    async def draft_all(
        self,
        selection: Selection,
        project: Project,
        platforms: list[Union[str, Destination]],
    ) -> list[Draft]:
        """One draft per target, concurrently; failed targets are logged and left out."""
        voice = await self.voice_context(project)
        results = await asyncio.gather(
            *(self.draft(selection, project, target, voice) for target in platforms),
            return_exceptions=True,
        )

        drafts: list[Draft] = []
        for target, result in zip(platforms, results):
            name = target.name if isinstance(target, Destination) else target
            if isinstance(result, BaseException):
                logger.error("Draft generation failed", project=project.id, target=name, error=str(result))
                continue
            drafts.append(result)

        logger.info("Drafts generated", project=project.id, drafts=len(drafts), failed=len(platforms) - len(drafts))
        return drafts
