"""Core domain layer."""

from shippost.core.approval import ApprovalGateway
from shippost.core.classifier import UrgencyClassifier
from shippost.core.entities import (
    PLATFORM_FORMATS,
    ApprovalAction,
    ApprovalState,
    Brand,
    ClassificationResult,
    Commit,
    Destination,
    DestinationKind,
    Draft,
    ParseError,
    PastePackage,
    PlatformFormat,
    PostFrequency,
    Project,
    PublishResult,
    Selection,
    Tagging,
)
from shippost.core.errors import (
    ChannelDeliveryFailure,
    ConflictError,
    GenerationFailure,
    InvalidTransitionError,
    NotFoundError,
    PublishFailure,
    ShipPostError,
    ValidationError,
)
from shippost.core.generator import ContentGenerator
from shippost.core.groups import GroupCatalog, ManualGroup, QueuedGroupPost
from shippost.core.interfaces import (
    ApprovalChannel,
    CommitStore,
    DraftStore,
    LLMClient,
    ProjectRegistry,
    Publisher,
)
from shippost.core.router import PublicationRouter

__all__ = [
    "PLATFORM_FORMATS",
    "ApprovalAction",
    "ApprovalChannel",
    "ApprovalGateway",
    "ApprovalState",
    "Brand",
    "ChannelDeliveryFailure",
    "ClassificationResult",
    "Commit",
    "CommitStore",
    "ConflictError",
    "ContentGenerator",
    "Destination",
    "DestinationKind",
    "Draft",
    "DraftStore",
    "GenerationFailure",
    "GroupCatalog",
    "InvalidTransitionError",
    "LLMClient",
    "ManualGroup",
    "NotFoundError",
    "ParseError",
    "PastePackage",
    "PlatformFormat",
    "PostFrequency",
    "Project",
    "ProjectRegistry",
    "PublicationRouter",
    "PublishFailure",
    "PublishResult",
    "Publisher",
    "QueuedGroupPost",
    "Selection",
    "ShipPostError",
    "Tagging",
    "UrgencyClassifier",
    "ValidationError",
]
