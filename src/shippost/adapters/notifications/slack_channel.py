"""Slack approval channel adapter."""

import json
from typing import Any, Optional

import httpx
import structlog

from shippost.core.entities import ApprovalState, Draft
from shippost.core.errors import ChannelDeliveryFailure
from shippost.core.groups import ManualGroup, QueuedGroupPost
from shippost.core.interfaces import ApprovalChannel

logger = structlog.get_logger(__name__)

PLATFORM_EMOJI = {
    "twitter": ":bird:",
    "linkedin": ":briefcase:",
    "facebook": ":blue_book:",
    "instagram": ":camera:",
}

STATUS_EMOJI = {
    ApprovalState.APPROVED: ":white_check_mark:",
    ApprovalState.PUBLISHED: ":rocket:",
    ApprovalState.SKIPPED: ":fast_forward:",
    ApprovalState.FAILED: ":x:",
    ApprovalState.PENDING: ":pencil2:",
}

EDIT_CALLBACK_ID = "edit_post"
EDIT_BLOCK_ID = "content"
EDIT_ACTION_ID = "content_input"

GROUP_PREVIEW_CHARS = 500
MAX_GROUP_BUTTONS = 5


def make_message_ref(channel: str, ts: str) -> str:
    return f"{channel}:{ts}"


def split_message_ref(message_ref: str) -> tuple[str, str]:
    channel, _, ts = message_ref.partition(":")
    return channel, ts


def _button(text: str, action_id: str, value: dict[str, Any], style: Optional[str] = None) -> dict:
    button: dict[str, Any] = {
        "type": "button",
        "text": {"type": "plain_text", "text": text, "emoji": True},
        "action_id": action_id,
        "value": json.dumps(value),
    }
    if style:
        button["style"] = style
    return button


def _destination_text(draft: Draft) -> str:
    if draft.destination is None:
        return draft.platform
    if draft.destination.is_manual:
        return f"manual: {draft.destination.display_name}"
    return draft.destination.display_name


def _group_link(draft: Draft) -> Optional[dict]:
    if draft.destination is None or not draft.destination.is_manual or not draft.destination.url:
        return None
    return {
        "type": "button",
        "text": {"type": "plain_text", "text": f"Open {draft.destination.display_name}"[:75], "emoji": True},
        "url": draft.destination.url,
        "action_id": f"open_group_{draft.id}",
    }


def preview_blocks(draft: Draft) -> list[dict]:
    """Blocks for a single draft with approve / edit / skip buttons."""
    emoji = PLATFORM_EMOJI.get(draft.platform, ":mega:")
    actions = [
        _button(":white_check_mark: Approve & Post", "approve_post", {"draftId": draft.id}, "primary"),
        _button(":pencil2: Edit First", "edit_post", {"draftId": draft.id}),
        _button(":x: Skip", "skip_post", {"draftId": draft.id}, "danger"),
    ]
    link = _group_link(draft)
    if link:
        actions.insert(1, link)

    return [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": f"{emoji} New {draft.platform} post ready", "emoji": True},
        },
        {
            "type": "context",
            "elements": [{
                "type": "mrkdwn",
                "text": f"*Project:* {draft.project_id} | *Generated:* {draft.generated_at:%Y-%m-%d %H:%M} UTC",
            }],
        },
        {"type": "divider"},
        {"type": "section", "text": {"type": "mrkdwn", "text": f"```{draft.content}```"}},
        {
            "type": "context",
            "elements": [{
                "type": "mrkdwn",
                "text": (
                    f"*Theme:* {draft.theme or 'N/A'} | *Char count:* {len(draft.content)} | "
                    f"*Destination:* {_destination_text(draft)}"
                ),
            }],
        },
        {"type": "actions", "elements": actions},
    ]


def batch_blocks(drafts: list[Draft]) -> list[dict]:
    """Blocks for several drafts in one message, with an approve-all button."""
    blocks: list[dict] = [
        {
            "type": "header",
            "text": {"type": "plain_text", "text": ":rocket: Posts ready for review", "emoji": True},
        },
        {
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": f"*{len(drafts)} posts* generated from recent commits"}],
        },
        {"type": "divider"},
    ]

    for draft in drafts:
        emoji = PLATFORM_EMOJI.get(draft.platform, ":mega:")
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": (
                    f"{emoji} *{draft.platform.upper()}* ({_destination_text(draft)}) "
                    f"| {len(draft.content)} chars\n```{draft.content}```"
                ),
            },
        })
        actions = [
            _button("Approve", "approve_post", {"draftId": draft.id}, "primary"),
            _button("Edit", "edit_post", {"draftId": draft.id}),
            _button("Skip", "skip_post", {"draftId": draft.id}, "danger"),
        ]
        link = _group_link(draft)
        if link:
            actions.append(link)
        blocks.append({"type": "actions", "block_id": f"draft_{draft.id}", "elements": actions})
        blocks.append({"type": "divider"})

    blocks.append({
        "type": "actions",
        "elements": [
            _button(
                ":zap: Approve All & Post Now",
                "approve_all",
                {"draftIds": [d.id for d in drafts]},
                "primary",
            ),
        ],
    })
    return blocks


def group_queue_message(post: QueuedGroupPost, groups: list[ManualGroup]) -> dict:
    """Message with one link button per group for a queued group post."""
    content = post.content[:GROUP_PREVIEW_CHARS] + ("..." if len(post.content) > GROUP_PREVIEW_CHARS else "")
    by_id = {g.id: g for g in groups}
    buttons = []
    for group_id in post.group_ids[:MAX_GROUP_BUTTONS]:
        group = by_id.get(group_id)
        buttons.append({
            "type": "button",
            "text": {"type": "plain_text", "text": group.name[:20] if group else group_id, "emoji": True},
            "url": group.url if group else "#",
            "action_id": f"open_group_{group_id}",
        })

    return {
        "text": f"Group post ready for {len(post.group_ids)} groups",
        "blocks": [
            {"type": "section", "text": {"type": "mrkdwn", "text": f"*:blue_book: Group post ready*\n\n{content}"}},
            {"type": "divider"},
            {"type": "section", "text": {"type": "mrkdwn", "text": "*Click to open each group:*"}},
            {"type": "actions", "elements": buttons},
            {
                "type": "context",
                "elements": [{"type": "mrkdwn", "text": f"Post ID: {post.id} | Paste the post into each group"}],
            },
        ],
    }


def status_text(draft: Draft) -> str:
    """One status line for a draft after a decision or publish outcome."""
    emoji = STATUS_EMOJI.get(draft.approval_state, ":grey_question:")
    state = draft.approval_state.value.upper()
    if draft.approval_state == ApprovalState.PENDING and ApprovalState.EDITED in draft.history:
        state = "EDITED, PENDING APPROVAL"
    text = f"{emoji} *{state}* ({draft.platform})\n```{draft.content}```"
    if draft.approval_state == ApprovalState.FAILED and draft.error:
        text += f"\n*Error:* {draft.error}"
    if draft.approval_state == ApprovalState.PUBLISHED and draft.destination and draft.destination.is_manual:
        text += f"\n:clipboard: Paste into <{draft.destination.url}|{draft.destination.display_name}>"
    return text


def edit_modal(draft: Draft) -> dict:
    """Modal view letting the reviewer rewrite a draft."""
    return {
        "type": "modal",
        "callback_id": EDIT_CALLBACK_ID,
        "private_metadata": draft.id,
        "title": {"type": "plain_text", "text": "Edit post"},
        "submit": {"type": "plain_text", "text": "Save"},
        "close": {"type": "plain_text", "text": "Cancel"},
        "blocks": [{
            "type": "input",
            "block_id": EDIT_BLOCK_ID,
            "label": {"type": "plain_text", "text": f"{draft.platform} post"},
            "element": {
                "type": "plain_text_input",
                "action_id": EDIT_ACTION_ID,
                "multiline": True,
                "initial_value": draft.content,
            },
        }],
    }


class SlackApprovalChannel(ApprovalChannel):
    """Present drafts in Slack with interactive approval buttons."""

    def __init__(self, bot_token: str, api_url: str = "https://slack.com/api", timeout: float = 15.0) -> None:
        """Initialize Slack channel.

        Args:
            bot_token: Slack bot token with chat:write
            api_url: Slack Web API base URL
            timeout: Per-request timeout in seconds
        """
        self.bot_token = bot_token
        self.api_url = api_url
        self.timeout = timeout

    async def present(self, drafts: list[Draft], channel: str) -> str:
        if len(drafts) == 1:
            blocks = preview_blocks(drafts[0])
            text = f"New {drafts[0].platform} post ready for {drafts[0].project_id}"
        else:
            blocks = batch_blocks(drafts)
            text = f"{len(drafts)} posts ready for review"

        data = await self._call("chat.postMessage", {"channel": channel, "text": text, "blocks": blocks})
        ts = data.get("ts")
        if not ts:
            raise ChannelDeliveryFailure("Slack chat.postMessage returned no message ts")
        return make_message_ref(data.get("channel", channel), ts)

    async def update(self, draft: Draft) -> None:
        """Reply in the draft's message thread with its new state."""
        if not draft.message_ref:
            return
        channel, ts = split_message_ref(draft.message_ref)
        await self._call("chat.postMessage", {
            "channel": channel,
            "thread_ts": ts,
            "text": status_text(draft),
            "mrkdwn": True,
        })

    async def open_edit_modal(self, trigger_id: str, draft: Draft) -> None:
        await self._call("views.open", {"trigger_id": trigger_id, "view": edit_modal(draft)})

    async def _call(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self.bot_token:
            raise ChannelDeliveryFailure("SLACK_BOT_TOKEN is not configured")

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.api_url}/{method}",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.bot_token}"},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise ChannelDeliveryFailure(f"Slack {method} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ChannelDeliveryFailure(f"Slack {method} returned a non-JSON response: {e}") from e
        if not isinstance(data, dict):
            raise ChannelDeliveryFailure(f"Slack {method} returned an unexpected response")
        if not data.get("ok"):
            raise ChannelDeliveryFailure(f"Slack {method} rejected: {data.get('error', 'unknown_error')}")
        logger.debug("Slack call ok", method=method)
        return data
