"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from shippost.core.entities import Commit, Destination, Draft, Project, PublishResult


class CommitStore(ABC):
    """Interface for persisting commits per project."""

    @abstractmethod
    async def record(self, project_id: str, commit: Commit) -> Commit:
        """Insert a commit; an existing (project_id, id) record is returned unchanged."""
        pass

    @abstractmethod
    async def unprocessed_since(
        self, project_id: str, cutoff: Optional[datetime] = None
    ) -> list[Commit]:
        """Unprocessed commits with timestamp >= cutoff, oldest first."""
        pass

    @abstractmethod
    async def mark_processed(self, ids: list[str], project_id: Optional[str] = None) -> list[str]:
        """Flip processed for the given ids and return the ids actually flipped.

        Unknown ids are ignored. When project_id is given only that project's
        commits are touched.
        """
        pass


class ProjectRegistry(ABC):
    """Interface for project configuration storage."""

    @abstractmethod
    async def create(self, data: dict[str, Any]) -> Project:
        """Create a project from a plain mapping."""
        pass

    @abstractmethod
    async def get(self, project_id: str) -> Optional[Project]:
        """Get a project by id."""
        pass

    @abstractmethod
    async def find_by_repository(self, repository: str) -> Optional[Project]:
        """Get the project bound to a repository identifier."""
        pass

    @abstractmethod
    async def list_active(self) -> list[Project]:
        """List projects with active=True."""
        pass

    @abstractmethod
    async def list_all(self) -> list[Project]:
        """List every project, paused ones included."""
        pass

    @abstractmethod
    async def update(self, project_id: str, patch: dict[str, Any]) -> Project:
        """Apply a partial update."""
        pass

    @abstractmethod
    async def delete(self, project_id: str) -> None:
        """Hard-delete a project."""
        pass


class DraftStore(ABC):
    """Interface for persisting drafts awaiting approval."""

    @abstractmethod
    async def save(self, draft: Draft) -> None:
        pass

    @abstractmethod
    async def get(self, draft_id: str) -> Optional[Draft]:
        pass

    @abstractmethod
    async def list(self, project_id: Optional[str] = None) -> list[Draft]:
        pass


class LLMClient(ABC):
    """Interface for the text generation capability."""

    @abstractmethod
    async def complete(self, prompt: str, system: str = "", max_tokens: Optional[int] = None) -> str:
        """Return generated text for the prompt."""
        pass


class ApprovalChannel(ABC):
    """Interface for presenting drafts to a human reviewer."""

    @abstractmethod
    async def present(self, drafts: list[Draft], channel: str) -> str:
        """Render drafts with actions and return a message reference."""
        pass

    @abstractmethod
    async def update(self, draft: Draft) -> None:
        """Update the rendered message with the draft's current state."""
        pass


class Publisher(ABC):
    """Interface for publishing content to a destination."""

    @abstractmethod
    async def publish(self, content: str, destination: Destination) -> PublishResult:
        """Publish content and report the outcome."""
        pass
