"""Publication routing: where a draft goes and how it gets there."""

import asyncio
from typing import Optional

import structlog

from shippost.core.approval import ApprovalGateway
from shippost.core.entities import (
    ApprovalState,
    Destination,
    DestinationKind,
    Draft,
    PastePackage,
    Project,
    normalize_platform,
)
from shippost.core.errors import InvalidTransitionError, ValidationError
from shippost.core.groups import GroupCatalog
from shippost.core.interfaces import Publisher

logger = structlog.get_logger(__name__)


class PublicationRouter:
    """Resolve destinations for drafts and dispatch approved drafts.

    Direct destinations go through the publisher. Manual-group destinations
    (no API access) get a paste package: content plus a link to the group,
    left for a human to post.
    """

    def __init__(
        self,
        publisher: Publisher,
        gateway: ApprovalGateway,
        account_ids: Optional[dict[str, object]] = None,
        groups: Optional[GroupCatalog] = None,
        publish_timeout: float = 45.0,
    ) -> None:
        self.publisher = publisher
        self.gateway = gateway
        self.account_ids = account_ids or {}
        self.groups = groups or GroupCatalog()
        self.publish_timeout = publish_timeout

    def resolve_target(self, project: Project, target: str) -> Destination:
        """Destination for a target name; project declarations win over the group catalog."""
        if target in project.destinations:
            return project.destinations[target]

        group = self.groups.get(target)
        if group is not None:
            return group.to_destination()

        platform = normalize_platform(target)
        account_id = self.account_ids.get(platform)
        return Destination(
            name=target,
            kind=DestinationKind.DIRECT,
            platform=platform,
            account_id=str(account_id) if account_id is not None else None,
        )

    def destinations_for(self, project: Project) -> list[Destination]:
        """One destination per target in the project's brand platforms."""
        return [self.resolve_target(project, target) for target in project.brand.platforms]

    def route(self, draft: Draft, project: Project) -> Draft:
        """Fill in the draft's destination and approval channel when missing."""
        if draft.destination is None:
            draft.destination = self.resolve_target(project, draft.platform)
        if draft.channel is None:
            draft.channel = project.slack_channel
        return draft

    def paste_package(self, draft: Draft) -> PastePackage:
        if draft.destination is None or not draft.destination.is_manual:
            raise ValidationError(f"Draft {draft.id} is not routed to a manual group")
        return PastePackage(
            content=draft.content,
            destination_name=draft.destination.display_name,
            url=draft.destination.url,
        )

    async def dispatch(self, draft: Draft) -> Draft:
        """Publish an approved draft to its single destination. Never retries."""
        if draft.approval_state != ApprovalState.APPROVED:
            raise InvalidTransitionError(
                f"Draft {draft.id} must be approved before dispatch, is {draft.approval_state.value}"
            )
        if draft.destination is None:
            raise ValidationError(f"Draft {draft.id} has no destination")

        destination = draft.destination
        if destination.is_manual:
            package = self.paste_package(draft)
            logger.info("Paste package ready", draft=draft.id, group=package.destination_name, url=package.url)
            await self.gateway.mark_published(draft)
            await self.gateway.refresh(draft)
            return draft

        try:
            result = await asyncio.wait_for(
                self.publisher.publish(draft.content, destination),
                timeout=self.publish_timeout,
            )
        except asyncio.TimeoutError:
            return await self._fail(draft, f"Publish timed out after {self.publish_timeout}s")
        except Exception as e:
            return await self._fail(draft, str(e))

        if result.success or result.duplicate:
            if result.duplicate:
                logger.info("Post already exists at destination, treating as published", draft=draft.id)
            await self.gateway.mark_published(draft, result.external_post_id)
            logger.info("Draft published", draft=draft.id, destination=destination.name, post_id=result.external_post_id)
        else:
            return await self._fail(draft, result.error or "Publish failed")

        await self.gateway.refresh(draft)
        return draft

    async def _fail(self, draft: Draft, error: str) -> Draft:
        logger.error("Publish failed", draft=draft.id, destination=draft.destination.name, error=error)
        await self.gateway.mark_failed(draft, error)
        await self.gateway.refresh(draft)
        return draft
