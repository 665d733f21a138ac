"""Approval gateway: draft state machine plus presentation on the approval channel.

    pending  -> approved | edited | skipped
    edited   -> pending (content replaced, length re-validated)
    approved -> published | failed

published, failed and skipped are terminal.
"""

from typing import Optional, Union

import structlog

from shippost.core.entities import (
    ApprovalAction,
    ApprovalState,
    Draft,
    PlatformFormat,
    platform_format,
)
from shippost.core.errors import (
    ChannelDeliveryFailure,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from shippost.core.interfaces import ApprovalChannel, DraftStore

logger = structlog.get_logger(__name__)


class ApprovalGateway:
    """Hold drafts for human review and apply reviewer decisions."""

    def __init__(
        self,
        draft_store: DraftStore,
        channel: Optional[ApprovalChannel] = None,
        platform_formats: Optional[dict[str, PlatformFormat]] = None,
        default_channel: str = "social",
    ) -> None:
        self.draft_store = draft_store
        self.channel = channel
        self.platform_formats = platform_formats
        self.default_channel = default_channel

    def validate_content(self, platform: str, content: Optional[str]) -> str:
        """Return stripped content or raise ValidationError."""
        content = (content or "").strip()
        if not content:
            raise ValidationError("Content cannot be empty")
        max_length = platform_format(platform, self.platform_formats).max_length
        if len(content) > max_length:
            raise ValidationError(
                f"Content is {len(content)} chars, {platform} allows {max_length}"
            )
        return content

    async def submit(self, drafts: list[Draft]) -> None:
        """Persist drafts as pending. Once this returns the drafts are durable."""
        for draft in drafts:
            if draft.approval_state != ApprovalState.PENDING:
                raise InvalidTransitionError(
                    f"Draft {draft.id} submitted in state {draft.approval_state.value}"
                )
            self.validate_content(draft.platform, draft.content)
        for draft in drafts:
            await self.draft_store.save(draft)

    async def present(self, drafts: list[Draft], channel: Optional[str] = None) -> Optional[str]:
        """Render drafts on the approval channel.

        Returns the message reference, or None when nothing was delivered.
        Delivery failures are logged and never raised: the drafts are already
        pending and can be listed and resolved through the API.
        """
        if not drafts:
            return None

        channel_ref = channel or drafts[0].channel or self.default_channel
        if self.channel is None:
            logger.warning("No approval channel configured", drafts=[d.id for d in drafts])
            return None

        try:
            message_ref = await self.channel.present(drafts, channel_ref)
        except ChannelDeliveryFailure as e:
            logger.error(
                "Approval message not delivered, drafts pending without notification",
                channel=channel_ref,
                drafts=[d.id for d in drafts],
                error=str(e),
            )
            return None

        for draft in drafts:
            draft.channel = channel_ref
            draft.message_ref = message_ref
            await self.draft_store.save(draft)

        logger.info("Drafts presented", channel=channel_ref, drafts=len(drafts), message_ref=message_ref)
        return message_ref

    async def get(self, draft_id: str) -> Draft:
        draft = await self.draft_store.get(draft_id)
        if draft is None:
            raise NotFoundError(f"Draft not found: {draft_id}")
        return draft

    async def resolve(
        self,
        draft_id: str,
        action: Union[ApprovalAction, str],
        edited_content: Optional[str] = None,
    ) -> Draft:
        """Apply a reviewer decision to a pending draft."""
        try:
            action = ApprovalAction(action)
        except ValueError:
            raise ValidationError(f"Unknown approval action: {action!r}")

        draft = await self.get(draft_id)
        if draft.is_terminal:
            raise InvalidTransitionError(
                f"Draft {draft.id} is already {draft.approval_state.value}"
            )
        if draft.approval_state != ApprovalState.PENDING:
            raise InvalidTransitionError(
                f"Cannot {action.value} draft {draft.id} in state {draft.approval_state.value}"
            )

        if action == ApprovalAction.APPROVE:
            draft.transition(ApprovalState.APPROVED)
        elif action == ApprovalAction.SKIP:
            draft.transition(ApprovalState.SKIPPED)
        else:
            content = self.validate_content(draft.platform, edited_content)
            draft.content = content
            draft.transition(ApprovalState.EDITED)
            draft.transition(ApprovalState.PENDING)

        await self.draft_store.save(draft)
        logger.info("Draft resolved", draft=draft.id, action=action.value, state=draft.approval_state.value)
        return draft

    async def mark_published(self, draft: Draft, external_post_id: Optional[str] = None) -> Draft:
        self._require_approved(draft)
        draft.external_post_id = external_post_id
        draft.transition(ApprovalState.PUBLISHED)
        await self.draft_store.save(draft)
        return draft

    async def mark_failed(self, draft: Draft, error: str) -> Draft:
        self._require_approved(draft)
        draft.error = error
        draft.transition(ApprovalState.FAILED)
        await self.draft_store.save(draft)
        return draft

    async def refresh(self, draft: Draft) -> None:
        """Best-effort update of the channel message with the draft's state."""
        if self.channel is None or draft.message_ref is None:
            return
        try:
            await self.channel.update(draft)
        except ChannelDeliveryFailure as e:
            logger.error("Approval message not updated", draft=draft.id, error=str(e))

    @staticmethod
    def _require_approved(draft: Draft) -> None:
        if draft.approval_state != ApprovalState.APPROVED:
            raise InvalidTransitionError(
                f"Draft {draft.id} must be approved before publishing, is {draft.approval_state.value}"
            )
