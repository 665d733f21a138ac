"""Wiring of stores, adapters and use cases from settings."""

from dataclasses import dataclass
from typing import Optional

import structlog

from shippost.adapters.llm import ClaudeClient
from shippost.adapters.notifications import SlackApprovalChannel
from shippost.adapters.publishing import PostBridgePublisher
from shippost.adapters.storage import (
    InMemoryCommitStore,
    InMemoryDraftStore,
    InMemoryProjectRegistry,
    YamlCommitStore,
    YamlDraftStore,
    YamlGroupCatalog,
    YamlProjectRegistry,
)
from shippost.config import Settings
from shippost.core import (
    ApprovalGateway,
    CommitStore,
    ContentGenerator,
    DraftStore,
    GroupCatalog,
    LLMClient,
    PublicationRouter,
    Publisher,
    UrgencyClassifier,
)
from shippost.core.voice import VoiceAnalyzer
from shippost.use_cases import (
    AnnouncementService,
    ApprovalService,
    DigestService,
    IngestionService,
    PostingPipeline,
)

logger = structlog.get_logger(__name__)


@dataclass
class Container:
    """Everything the HTTP API and CLI need, built once per process."""

    settings: Settings
    registry: InMemoryProjectRegistry
    commit_store: CommitStore
    draft_store: DraftStore
    llm_client: LLMClient
    publisher: Publisher
    slack: Optional[SlackApprovalChannel]
    gateway: ApprovalGateway
    groups: GroupCatalog
    router: PublicationRouter
    voice: VoiceAnalyzer
    generator: ContentGenerator
    pipeline: PostingPipeline
    ingestion: IngestionService
    digest: DigestService
    approvals: ApprovalService
    announcements: AnnouncementService

    async def startup(self) -> None:
        """Seed config-declared projects into the registry."""
        created = await self.registry.seed(self.settings.projects)
        if created:
            logger.info("Projects seeded from config", projects=[p.id for p in created])


def build_container(
    settings: Settings,
    llm_client: Optional[LLMClient] = None,
    publisher: Optional[Publisher] = None,
    slack: Optional[SlackApprovalChannel] = None,
) -> Container:
    """Build the object graph; collaborators can be injected for tests."""
    backend = settings.storage.backend
    if backend == "yaml":
        registry = YamlProjectRegistry(settings.storage.path, default_channel=settings.default_channel)
        commit_store = YamlCommitStore(settings.storage.path, timezone=settings.timezone, registry=registry)
        draft_store = YamlDraftStore(settings.storage.path)
        groups = YamlGroupCatalog(settings.storage.path, settings.manual_groups)
    elif backend == "memory":
        registry = InMemoryProjectRegistry(default_channel=settings.default_channel)
        commit_store = InMemoryCommitStore(timezone=settings.timezone, registry=registry)
        draft_store = InMemoryDraftStore()
        groups = GroupCatalog(settings.manual_groups)
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    llm_client = llm_client or ClaudeClient(settings)
    publisher = publisher or PostBridgePublisher(
        api_key=settings.post_bridge_api_key,
        api_url=settings.post_bridge.api_url,
        account_ids=settings.post_bridge.account_ids,
        timeout=settings.post_bridge.timeout,
    )
    if slack is None and settings.slack_bot_token:
        slack = SlackApprovalChannel(
            bot_token=settings.slack_bot_token,
            api_url=settings.slack.api_url,
            timeout=settings.slack.timeout,
        )

    platform_formats = settings.platform_formats
    gateway = ApprovalGateway(
        draft_store,
        channel=slack,
        platform_formats=platform_formats,
        default_channel=settings.default_channel,
    )
    router = PublicationRouter(
        publisher,
        gateway,
        account_ids=settings.post_bridge.account_ids,
        groups=groups,
        publish_timeout=settings.pipeline.publish_timeout,
    )
    classifier = UrgencyClassifier(
        llm_client,
        prompt=settings.prompts.urgency,
        timeout=settings.pipeline.generation_timeout,
    )
    voice = VoiceAnalyzer(
        llm_client,
        prompt=settings.prompts.voice,
        base_dir=settings.voice.base_dir,
        max_examples=settings.voice.max_examples,
        timeout=settings.pipeline.generation_timeout,
    )
    generator = ContentGenerator(
        llm_client,
        prompts={"selection": settings.prompts.selection, "draft": settings.prompts.draft},
        voices=settings.voices,
        platform_formats=platform_formats,
        timeout=settings.pipeline.generation_timeout,
        voice_analyzer=voice,
    )
    pipeline = PostingPipeline(commit_store, registry, generator, router, gateway)

    return Container(
        settings=settings,
        registry=registry,
        commit_store=commit_store,
        draft_store=draft_store,
        llm_client=llm_client,
        publisher=publisher,
        slack=slack,
        gateway=gateway,
        groups=groups,
        router=router,
        voice=voice,
        generator=generator,
        pipeline=pipeline,
        ingestion=IngestionService(registry, commit_store, classifier, pipeline),
        digest=DigestService(registry, commit_store, pipeline),
        approvals=ApprovalService(gateway, router, registry, draft_store),
        announcements=AnnouncementService(registry, generator, router, gateway),
    )
