"""In-memory storage backends."""

from datetime import datetime
from typing import Any, Optional

from shippost.core.entities import Commit, Draft, Project, start_of_day
from shippost.core.errors import ConflictError, NotFoundError, ValidationError
from shippost.core.interfaces import CommitStore, DraftStore, ProjectRegistry
from shippost.core.projects import apply_patch, project_from_dict


class InMemoryCommitStore(CommitStore):
    """Commit log kept in process memory.

    When a registry is given, recording a commit for an unknown project
    raises ValidationError.
    """

    def __init__(self, timezone: str = "UTC", registry: Optional[ProjectRegistry] = None) -> None:
        self.timezone = timezone
        self.registry = registry
        # project_id -> commit id -> commit, insertion ordered
        self._commits: dict[str, dict[str, Commit]] = {}

    async def record(self, project_id: str, commit: Commit) -> Commit:
        if self.registry is not None and await self.registry.get(project_id) is None:
            raise ValidationError(f"Unknown project: {project_id}")

        commits = self._commits.setdefault(project_id, {})
        existing = commits.get(commit.id)
        if existing is not None:
            return existing

        stored = Commit(
            id=commit.id,
            project_id=project_id,
            message=commit.message,
            author=commit.author,
            timestamp=commit.timestamp,
            files_changed=commit.files_changed,
            processed=commit.processed,
        )
        commits[stored.id] = stored
        self._persist(project_id)
        return stored

    async def unprocessed_since(
        self, project_id: str, cutoff: Optional[datetime] = None
    ) -> list[Commit]:
        if cutoff is None:
            cutoff = start_of_day(self.timezone)
        commits = [
            c for c in self._commits.get(project_id, {}).values()
            if not c.processed and c.timestamp >= cutoff
        ]
        # sorted() is stable, ties keep insertion order
        return sorted(commits, key=lambda c: c.timestamp)

    async def mark_processed(self, ids: list[str], project_id: Optional[str] = None) -> list[str]:
        wanted = set(ids)
        flipped: list[str] = []
        touched: set[str] = set()

        projects = [project_id] if project_id is not None else list(self._commits)
        for pid in projects:
            for commit in self._commits.get(pid, {}).values():
                if commit.id in wanted and not commit.processed:
                    commit.processed = True
                    flipped.append(commit.id)
                    touched.add(pid)

        for pid in touched:
            self._persist(pid)
        return flipped

    async def get(self, project_id: str, commit_id: str) -> Optional[Commit]:
        return self._commits.get(project_id, {}).get(commit_id)

    def _persist(self, project_id: str) -> None:
        """Hook for durable subclasses."""


class InMemoryProjectRegistry(ProjectRegistry):
    """Project registry with a secondary index by repository."""

    def __init__(self, default_channel: Optional[str] = None) -> None:
        self.default_channel = default_channel
        self._projects: dict[str, Project] = {}

    async def create(self, data: dict[str, Any]) -> Project:
        project = project_from_dict(data, default_channel=self.default_channel)

        if project.id in self._projects:
            raise ConflictError(f"Project already exists: {project.id}")
        if project.repository:
            existing = await self.find_by_repository(project.repository)
            if existing is not None and existing.active:
                raise ConflictError(
                    f"Repository {project.repository} already configured for project {existing.id}"
                )

        self._projects[project.id] = project
        self._persist()
        return project

    async def get(self, project_id: str) -> Optional[Project]:
        return self._projects.get(project_id)

    async def find_by_repository(self, repository: str) -> Optional[Project]:
        matches = [p for p in self._projects.values() if p.repository == repository]
        # An active binding wins over paused ones
        matches.sort(key=lambda p: not p.active)
        return matches[0] if matches else None

    async def list_active(self) -> list[Project]:
        return [p for p in self._projects.values() if p.active]

    async def list_all(self) -> list[Project]:
        return list(self._projects.values())

    async def update(self, project_id: str, patch: dict[str, Any]) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")

        updated = apply_patch(project, patch)
        if updated.repository and updated.active:
            for other in self._projects.values():
                if other.id != project_id and other.active and other.repository == updated.repository:
                    raise ConflictError(
                        f"Repository {updated.repository} already configured for project {other.id}"
                    )

        self._projects[project_id] = updated
        self._persist()
        return updated

    async def delete(self, project_id: str) -> None:
        if self._projects.pop(project_id, None) is None:
            raise NotFoundError(f"Project not found: {project_id}")
        self._persist()

    async def seed(self, projects: list[dict[str, Any]]) -> list[Project]:
        """Load config-declared projects, skipping ids already present."""
        created = []
        for data in projects:
            project = project_from_dict(data, default_channel=self.default_channel)
            if project.id in self._projects:
                continue
            created.append(await self.create(data))
        return created

    def _persist(self) -> None:
        """Hook for durable subclasses."""


class InMemoryDraftStore(DraftStore):
    """Drafts awaiting approval, kept in process memory."""

    def __init__(self) -> None:
        self._drafts: dict[str, Draft] = {}

    async def save(self, draft: Draft) -> None:
        self._drafts[draft.id] = draft

    async def get(self, draft_id: str) -> Optional[Draft]:
        return self._drafts.get(draft_id)

    async def list(self, project_id: Optional[str] = None) -> list[Draft]:
        drafts = list(self._drafts.values())
        if project_id is not None:
            drafts = [d for d in drafts if d.project_id == project_id]
        return sorted(drafts, key=lambda d: d.generated_at)
