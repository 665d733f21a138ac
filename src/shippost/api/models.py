"""
Pydantic models for API request/response validation.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from shippost.core.entities import Draft


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "shippost"
    version: str
    storage: str
    approval_channel: bool
    publisher_configured: bool


class CommitIn(BaseModel):
    """Commit inserted by hand through the test webhook."""

    id: str = Field(..., min_length=1, description="Commit SHA or other provider id")
    message: str = Field(..., min_length=1)
    author: str = ""
    timestamp: Optional[datetime] = None
    files_changed: int = Field(default=0, ge=0)


class ManualCommitsRequest(BaseModel):
    """Body of POST /webhooks/test."""

    project_id: str = Field(..., alias="projectId", min_length=1)
    commits: list[CommitIn] = Field(..., min_length=1)
    immediate: bool = False

    model_config = {"populate_by_name": True}


class GenerateRequest(BaseModel):
    """Body of POST /webhooks/generate."""

    project_id: str = Field(..., alias="projectId", min_length=1)

    model_config = {"populate_by_name": True}


class DestinationOut(BaseModel):
    name: str
    kind: str
    platform: str
    url: Optional[str] = None
    label: Optional[str] = None


class DraftOut(BaseModel):
    """Draft as exposed by the API."""

    id: str
    project_id: str
    platform: str
    content: str
    char_count: int
    source_commit_ids: list[str]
    theme: str
    destination: Optional[DestinationOut] = None
    approval_state: str
    generated_at: datetime
    channel: Optional[str] = None
    message_ref: Optional[str] = None
    external_post_id: Optional[str] = None
    error: Optional[str] = None
    history: list[str]

    @classmethod
    def from_draft(cls, draft: Draft) -> "DraftOut":
        destination = None
        if draft.destination is not None:
            destination = DestinationOut(
                name=draft.destination.name,
                kind=draft.destination.kind.value,
                platform=draft.destination.platform,
                url=draft.destination.url,
                label=draft.destination.label,
            )
        return cls(
            id=draft.id,
            project_id=draft.project_id,
            platform=draft.platform,
            content=draft.content,
            char_count=len(draft.content),
            source_commit_ids=list(draft.source_commit_ids),
            theme=draft.theme,
            destination=destination,
            approval_state=draft.approval_state.value,
            generated_at=draft.generated_at,
            channel=draft.channel,
            message_ref=draft.message_ref,
            external_post_id=draft.external_post_id,
            error=draft.error,
            history=[state.value for state in draft.history],
        )


class DraftActionRequest(BaseModel):
    """Body of POST /api/drafts/{id}/{action}; content is required for edit."""

    content: Optional[str] = None


class ApproveAllRequest(BaseModel):
    draft_ids: list[str] = Field(..., alias="draftIds", min_length=1)

    model_config = {"populate_by_name": True}


class ApproveAllResponse(BaseModel):
    success: bool = True
    handled: int
    drafts: list[DraftOut]


class GenerationResponse(BaseModel):
    """Outcome of an on-demand generation or a manual commit insert."""

    success: bool
    project: Optional[str] = None
    message: Optional[str] = None
    commits_stored: Optional[int] = Field(default=None, serialization_alias="commitsStored")
    commits_processed: Optional[int] = Field(default=None, serialization_alias="commitsProcessed")
    posts_generated: int = Field(default=0, serialization_alias="postsGenerated")
    drafts: list[DraftOut] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: dict[str, Any]) -> "GenerationResponse":
        return cls(
            success=result["success"],
            project=result.get("project"),
            message=result.get("message"),
            commits_stored=result.get("commitsStored"),
            commits_processed=result.get("commitsProcessed"),
            posts_generated=result.get("postsGenerated", 0),
            drafts=[DraftOut.from_draft(d) for d in result.get("drafts", [])],
        )


class GroupIn(BaseModel):
    """Body of POST /api/groups; id, name and url are checked by the catalog."""

    id: str = ""
    name: str = ""
    url: str = ""
    category: Optional[str] = None
    platform: Optional[str] = None
    description: Optional[str] = None


class GroupQueueRequest(BaseModel):
    """Body of POST /api/groups/queue; no groups means every known group."""

    content: str = ""
    groups: Optional[list[str]] = None


class FeatureAnnouncementRequest(BaseModel):
    """Body of POST /announce/feature."""

    project: str = Field(..., min_length=1)
    feature: str = Field(..., min_length=1)
    description: Optional[str] = None
    platforms: Optional[list[str]] = None


class QuickAnnouncementRequest(BaseModel):
    """Body of POST /announce/quick."""

    project: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    platforms: Optional[list[str]] = None


class AnnouncementResponse(BaseModel):
    success: bool
    project: str
    feature: Optional[str] = None
    message: Optional[str] = None
    posts_generated: int = Field(default=0, serialization_alias="postsGenerated")
    platforms: list[str] = Field(default_factory=list)
    drafts: list[DraftOut] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: dict[str, Any]) -> "AnnouncementResponse":
        drafts = result.get("drafts", [])
        return cls(
            success=result["success"],
            project=result["project"],
            feature=result.get("feature"),
            message=result.get("message"),
            posts_generated=result.get("postsGenerated", 0),
            platforms=[d.platform for d in drafts],
            drafts=[DraftOut.from_draft(d) for d in drafts],
        )
