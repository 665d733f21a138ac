"""
Dependency injection for FastAPI endpoints.

The container is built once per application and kept on app.state; the
functions below hand out its parts so tests can override any of them
through app.dependency_overrides.
"""

from fastapi import Request

from shippost.config import Settings
from shippost.container import Container
from shippost.core import GroupCatalog, ProjectRegistry
from shippost.core.voice import VoiceAnalyzer
from shippost.use_cases import (
    AnnouncementService,
    ApprovalService,
    DigestService,
    IngestionService,
    PostingPipeline,
)


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_settings_dep(request: Request) -> Settings:
    return get_container(request).settings


def get_registry(request: Request) -> ProjectRegistry:
    return get_container(request).registry


def get_ingestion(request: Request) -> IngestionService:
    return get_container(request).ingestion


def get_pipeline(request: Request) -> PostingPipeline:
    return get_container(request).pipeline


def get_approvals(request: Request) -> ApprovalService:
    return get_container(request).approvals


def get_digest(request: Request) -> DigestService:
    return get_container(request).digest


def get_groups(request: Request) -> GroupCatalog:
    return get_container(request).groups


def get_announcements(request: Request) -> AnnouncementService:
    return get_container(request).announcements


def get_voice(request: Request) -> VoiceAnalyzer:
    return get_container(request).voice
