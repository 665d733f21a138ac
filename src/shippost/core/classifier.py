"""Urgency classification of freshly pushed commits."""

import asyncio
from typing import Optional

import structlog

from shippost.core.entities import ClassificationResult, Commit, ParseError, Project
from shippost.core.interfaces import LLMClient
from shippost.core.parsing import decode_classification

logger = structlog.get_logger(__name__)


def format_commit_list(commits: list[Commit]) -> str:
    return "\n".join(f"- {c.message} ({c.files_changed} files)" for c in commits)


class UrgencyClassifier:
    """Split commits into those worth an immediate post and those for the digest.

    Batching is the safe outcome: any failure to get a usable answer from the
    LLM puts every commit into batch.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        prompt: dict[str, str],
        timeout: float = 90.0,
    ) -> None:
        self.llm_client = llm_client
        self.prompt = prompt
        self.timeout = timeout

    async def classify(self, commits: list[Commit], project: Project) -> ClassificationResult:
        """Partition commits into immediate and batch, preserving input order."""
        if not commits:
            return ClassificationResult(immediate=[], batch=[], reasoning=None)

        prompt = self.prompt.get("user", "").format(
            product=project.product or project.brand.name,
            goal=project.goal or "Build audience and share progress",
            commits=format_commit_list(commits),
        )

        try:
            response = await asyncio.wait_for(
                self.llm_client.complete(prompt=prompt, system=self.prompt.get("system", "")),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Urgency classification timed out", project=project.id, timeout=self.timeout)
            return self._all_batch(commits, "Classification timed out, defaulting to batch")
        except Exception as e:
            logger.warning("Urgency classification failed", project=project.id, error=str(e))
            return self._all_batch(commits, "Classification failed, defaulting to batch")

        result = decode_classification(response, commits)
        if isinstance(result, ParseError):
            logger.warning(
                "Unparseable classification output",
                project=project.id,
                reason=result.reason,
                response=response[:250],
            )
            return self._all_batch(commits, "Parse failed, defaulting to batch")

        logger.info(
            "Commits classified",
            project=project.id,
            immediate=len(result.immediate),
            batch=len(result.batch),
            reasoning=result.reasoning,
        )
        return result

    async def is_immediate_worthy(self, commit: Commit, project: Project) -> bool:
        """Quick check for a single commit."""
        result = await self.classify([commit], project)
        return bool(result.immediate)

    @staticmethod
    def _all_batch(commits: list[Commit], reasoning: Optional[str]) -> ClassificationResult:
        return ClassificationResult(immediate=[], batch=list(commits), reasoning=reasoning)
