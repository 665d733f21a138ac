"""Business logic use cases."""

import asyncio
import re
import uuid
from typing import Any, Optional, Union

import structlog

from shippost.adapters.webhooks import PushedCommit, PushEvent
from shippost.core import (
    ApprovalAction,
    ApprovalGateway,
    ApprovalState,
    Commit,
    CommitStore,
    ContentGenerator,
    Destination,
    Draft,
    DraftStore,
    InvalidTransitionError,
    NotFoundError,
    PostFrequency,
    Project,
    ProjectRegistry,
    PublicationRouter,
    Selection,
    UrgencyClassifier,
    ValidationError,
)
from shippost.core.entities import new_draft_id, platform_format, utcnow
from shippost.core.filters import is_postable_commit
from shippost.core.generator import fit_to_length

logger = structlog.get_logger(__name__)


class PostingPipeline:
    """Generate drafts from commits and hand them to the approval gateway.

    Order per run: generate, route, submit (drafts durable as pending),
    mark the source commits processed, present on the approval channel.
    A channel failure after the hand-off leaves commits processed and
    drafts pending.
    """

    def __init__(
        self,
        commit_store: CommitStore,
        registry: ProjectRegistry,
        generator: ContentGenerator,
        router: PublicationRouter,
        gateway: ApprovalGateway,
    ) -> None:
        self.commit_store = commit_store
        self.registry = registry
        self.generator = generator
        self.router = router
        self.gateway = gateway
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, project_id: str) -> asyncio.Lock:
        return self._locks.setdefault(project_id, asyncio.Lock())

    async def _still_unprocessed(self, project: Project, commits: list[Commit]) -> list[Commit]:
        if not commits:
            return []
        cutoff = min(c.timestamp for c in commits)
        pending_ids = {c.id for c in await self.commit_store.unprocessed_since(project.id, cutoff)}
        return [c for c in commits if c.id in pending_ids]

    async def process(self, project: Project, commits: list[Commit]) -> list[Draft]:
        """Run the pipeline for one project; returns the drafts handed to the gateway."""
        async with self._lock(project.id):
            fresh = await self._still_unprocessed(project, commits)
            if not fresh:
                logger.info("Nothing left to process", project=project.id, requested=len(commits))
                return []

            targets = self.router.destinations_for(project)
            drafts = await self.generator.generate_all(fresh, project, targets)
            if not drafts:
                logger.info("No drafts generated, commits stay unprocessed", project=project.id)
                return []

            for draft in drafts:
                self.router.route(draft, project)

            await self.gateway.submit(drafts)
            flipped = await self.commit_store.mark_processed([c.id for c in fresh], project.id)
            logger.info("Commits processed", project=project.id, commits=len(flipped), drafts=len(drafts))

        await self.gateway.present(drafts, project.slack_channel)
        return drafts

    async def generate_for_project(self, project_id: str) -> dict[str, Any]:
        """On-demand generation over today's unprocessed commits."""
        project = await self.registry.get(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")

        commits = await self.commit_store.unprocessed_since(project.id)
        if not commits:
            return {"success": False, "project": project.name, "message": "No unprocessed commits"}

        drafts = await self.process(project, commits)
        return {
            "success": True,
            "project": project.name,
            "commitsProcessed": len(commits) if drafts else 0,
            "postsGenerated": len(drafts),
            "drafts": drafts,
        }


class IngestionService:
    """Turn push events into stored commits and, by project cadence, drafts."""

    def __init__(
        self,
        registry: ProjectRegistry,
        commit_store: CommitStore,
        classifier: UrgencyClassifier,
        pipeline: PostingPipeline,
    ) -> None:
        self.registry = registry
        self.commit_store = commit_store
        self.classifier = classifier
        self.pipeline = pipeline

    async def _store(self, project: Project, commits: list[PushedCommit]) -> list[Commit]:
        stored = []
        for commit in commits:
            stored.append(await self.commit_store.record(project.id, commit.to_commit(project.id)))
        return stored

    async def handle_push(self, event: PushEvent) -> dict[str, Any]:
        """Store a push's postable commits and apply the project's posting mode."""
        logger.info("Push received", provider=event.provider, repository=event.repository, commits=len(event.commits))

        project = await self.registry.find_by_repository(event.repository)
        if project is None:
            logger.info("No project configured for repository", repository=event.repository)
            return {
                "success": False,
                "message": "Repository not configured",
                "hint": "Create a project with this repository to enable auto-posting",
            }
        if not project.active:
            return {"success": False, "project": project.name, "message": "Project is paused"}

        postable = [c for c in event.commits if is_postable_commit(c.message, c.author)]
        if not postable:
            return {
                "success": True,
                "project": project.name,
                "message": "No postable commits",
                "filtered": len(event.commits),
            }

        stored = await self._store(project, postable)
        fresh = [c for c in stored if not c.processed]
        logger.info("Commits stored", project=project.id, stored=len(stored), fresh=len(fresh))

        summary: dict[str, Any] = {
            "success": True,
            "project": project.name,
            "mode": project.post_frequency.value,
            "commitsStored": len(stored),
        }

        if project.post_frequency.posts_on_push:
            drafts = await self.pipeline.process(project, fresh)
            summary.update({
                "mode": PostFrequency.PER_COMMIT.value,
                "postsGenerated": len(drafts),
                "approvalNotified": any(d.message_ref for d in drafts),
            })
            return summary

        if project.post_frequency == PostFrequency.SMART:
            classification = await self.classifier.classify(fresh, project)
            drafts = []
            if classification.immediate:
                drafts = await self.pipeline.process(project, classification.immediate)
            summary.update({
                "immediateCommits": len(classification.immediate),
                "batchedCommits": len(classification.batch),
                "postsGenerated": len(drafts),
                "reasoning": classification.reasoning,
            })
            return summary

        summary["message"] = "Commits queued for daily digest"
        return summary

    async def ingest_manual(
        self,
        project_id: str,
        commits: list[PushedCommit],
        immediate: bool = False,
    ) -> dict[str, Any]:
        """Insert commits for a project by hand, optionally processing them right away."""
        project = await self.registry.get(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")

        stored = await self._store(project, commits)
        result: dict[str, Any] = {"success": True, "commitsStored": len(stored)}
        if immediate:
            drafts = await self.pipeline.process(project, stored)
            result.update({"postsGenerated": len(drafts), "drafts": drafts})
        return result


class DigestService:
    """Scheduled job processing the day's batched commits."""

    DIGEST_MODES = (PostFrequency.DAILY_DIGEST, PostFrequency.SMART)

    def __init__(
        self,
        registry: ProjectRegistry,
        commit_store: CommitStore,
        pipeline: PostingPipeline,
    ) -> None:
        self.registry = registry
        self.commit_store = commit_store
        self.pipeline = pipeline

    async def run(self) -> dict[str, Any]:
        projects = await self.registry.list_active()
        results: dict[str, Any] = {}
        total = 0

        for project in projects:
            if project.post_frequency not in self.DIGEST_MODES:
                results[project.id] = {"skipped": f"post frequency is {project.post_frequency.value}"}
                continue

            commits = await self.commit_store.unprocessed_since(project.id)
            if not commits:
                results[project.id] = {"commits": 0, "postsGenerated": 0}
                continue

            try:
                drafts = await self.pipeline.process(project, commits)
            except Exception as e:
                logger.exception("Digest failed for project", project=project.id)
                results[project.id] = {"commits": len(commits), "error": str(e)}
                continue

            total += len(drafts)
            results[project.id] = {"commits": len(commits), "postsGenerated": len(drafts)}

        logger.info("Daily digest complete", projects=len(projects), posts=total)
        return {"projects": len(projects), "postsGenerated": total, "results": results}


class ApprovalService:
    """Apply reviewer decisions and publish what gets approved."""

    def __init__(
        self,
        gateway: ApprovalGateway,
        router: PublicationRouter,
        registry: ProjectRegistry,
        draft_store: DraftStore,
    ) -> None:
        self.gateway = gateway
        self.router = router
        self.registry = registry
        self.draft_store = draft_store

    async def list_drafts(
        self,
        project_id: Optional[str] = None,
        state: Optional[ApprovalState] = None,
    ) -> list[Draft]:
        drafts = await self.draft_store.list(project_id)
        if state is not None:
            drafts = [d for d in drafts if d.approval_state == state]
        return drafts

    async def get(self, draft_id: str) -> Draft:
        return await self.gateway.get(draft_id)

    async def handle(
        self,
        draft_id: str,
        action: Union[ApprovalAction, str],
        content: Optional[str] = None,
    ) -> Draft:
        """Resolve a draft; approved drafts are dispatched to their destination."""
        draft = await self.gateway.resolve(draft_id, action, content)

        if draft.approval_state != ApprovalState.APPROVED:
            await self.gateway.refresh(draft)
            return draft

        if draft.destination is None:
            project = await self.registry.get(draft.project_id)
            if project is None:
                await self.gateway.mark_failed(draft, f"Project {draft.project_id} no longer exists")
                await self.gateway.refresh(draft)
                return draft
            self.router.route(draft, project)

        return await self.router.dispatch(draft)

    async def approve_all(self, draft_ids: list[str]) -> list[Draft]:
        """Approve drafts one by one; already decided or unknown drafts are skipped."""
        handled = []
        for draft_id in draft_ids:
            try:
                handled.append(await self.handle(draft_id, ApprovalAction.APPROVE))
            except (InvalidTransitionError, NotFoundError) as e:
                logger.info("Draft skipped in approve all", draft=draft_id, reason=str(e))
        return handled


HASHTAG = re.compile(r"#\w+")


def strip_hashtags(content: str) -> str:
    """Remove hashtags and the double spaces they leave behind."""
    return re.sub(r"[ \t]{2,}", " ", HASHTAG.sub("", content)).strip()


class AnnouncementService:
    """Announce a feature or a ready-made message outside the commit flow.

    Announcement drafts go through the same routing and approval as commit
    drafts. Drafts for manual groups lose their hashtags and come first.
    """

    def __init__(
        self,
        registry: ProjectRegistry,
        generator: ContentGenerator,
        router: PublicationRouter,
        gateway: ApprovalGateway,
    ) -> None:
        self.registry = registry
        self.generator = generator
        self.router = router
        self.gateway = gateway

    async def _project(self, project_id: str) -> Project:
        project = await self.registry.get(project_id.strip().lower())
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        return project

    def _targets(self, project: Project, platforms: Optional[list[str]]) -> list[Destination]:
        if platforms:
            return [self.router.resolve_target(project, target) for target in platforms]
        return self.router.destinations_for(project)

    async def _hand_off(self, project: Project, drafts: list[Draft]) -> list[Draft]:
        for draft in drafts:
            self.router.route(draft, project)
        drafts.sort(key=lambda d: not d.destination.is_manual)
        await self.gateway.submit(drafts)
        await self.gateway.present(drafts, project.slack_channel)
        return drafts

    async def announce_feature(
        self,
        project_id: str,
        feature: str,
        description: Optional[str] = None,
        platforms: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        """Write posts about one feature through the regular draft prompt."""
        feature = (feature or "").strip()
        if not feature:
            raise ValidationError("feature is required")
        project = await self._project(project_id)
        targets = self._targets(project, platforms)
        logger.info("Feature announcement", project=project.id, feature=feature, targets=[t.name for t in targets])

        message = f"feat: {feature}"
        if description:
            message += f"\n\n{description}"
        commit = Commit(
            id=f"announce-{uuid.uuid4().hex[:12]}",
            project_id=project.id,
            message=message,
            author="announcement",
            timestamp=utcnow(),
        )
        selection = Selection(commits=[commit], theme=feature, angle=description or feature, hook_type="shipped")

        drafts = await self.generator.draft_all(selection, project, targets)
        kept = []
        for draft in drafts:
            # The announcement commit is never stored
            draft.source_commit_ids = []
            if draft.destination is not None and draft.destination.is_manual:
                draft.content = strip_hashtags(draft.content)
            if draft.content:
                kept.append(draft)
        if not kept:
            return {
                "success": False,
                "project": project.name,
                "feature": feature,
                "message": "Could not generate post",
                "postsGenerated": 0,
                "drafts": [],
            }

        await self._hand_off(project, kept)
        return {
            "success": True,
            "project": project.name,
            "feature": feature,
            "message": f"Posts sent to #{project.slack_channel or self.gateway.default_channel} for approval",
            "postsGenerated": len(kept),
            "drafts": kept,
        }

    async def announce_quick(
        self,
        project_id: str,
        message: str,
        platforms: Optional[list[str]] = None,
    ) -> dict[str, Any]:
        """Post a ready-made message to every target, no generation involved."""
        message = (message or "").strip()
        if not message:
            raise ValidationError("message is required")
        project = await self._project(project_id)

        drafts = []
        for destination in self._targets(project, platforms):
            max_length = platform_format(destination.platform, self.gateway.platform_formats).max_length
            content = strip_hashtags(message) if destination.is_manual else message
            content = fit_to_length(content, max_length)
            if not content:
                raise ValidationError(f"Nothing left to post to {destination.display_name} without hashtags")
            drafts.append(Draft(
                id=new_draft_id(project.id),
                project_id=project.id,
                platform=destination.platform,
                content=content,
                source_commit_ids=[],
                selection=Selection(commits=[], theme="Quick announcement"),
                destination=destination,
            ))

        await self._hand_off(project, drafts)
        logger.info("Quick announcement", project=project.id, drafts=len(drafts))
        return {
            "success": True,
            "project": project.name,
            "message": f"Posts sent to #{project.slack_channel or self.gateway.default_channel} for approval",
            "postsGenerated": len(drafts),
            "drafts": drafts,
        }

    async def list_targets(self) -> list[dict[str, Any]]:
        """Active projects with the targets an announcement would go to."""
        projects = await self.registry.list_active()
        return [
            {
                "id": project.id,
                "name": project.name,
                "targets": [
                    {
                        "name": d.name,
                        "label": d.display_name,
                        "kind": d.kind.value,
                        "platform": d.platform,
                        "url": d.url,
                    }
                    for d in self.router.destinations_for(project)
                ],
            }
            for project in projects
        ]
