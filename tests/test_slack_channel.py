"""Tests for the Slack approval channel adapter."""

import json
from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from shippost.adapters.notifications import SlackApprovalChannel
from shippost.adapters.notifications.slack_channel import (
    batch_blocks,
    edit_modal,
    preview_blocks,
    split_message_ref,
    status_text,
)
from shippost.core import ApprovalState, ChannelDeliveryFailure, Destination, Draft


def _draft(draft_id: str = "chadix-1", **kwargs) -> Draft:
    return Draft(
        id=draft_id,
        project_id="chadix",
        platform=kwargs.pop("platform", "twitter"),
        content=kwargs.pop("content", "we shipped search"),
        source_commit_ids=["c1"],
        **kwargs,
    )


def _ok(data: dict) -> Mock:
    response = Mock()
    response.raise_for_status = Mock()
    response.json.return_value = {"ok": True, **data}
    return response


def _action_ids(blocks: list[dict]) -> list[str]:
    return [
        element["action_id"]
        for block in blocks if block["type"] == "actions"
        for element in block["elements"]
    ]


def test_preview_blocks_buttons() -> None:
    blocks = preview_blocks(_draft())

    assert _action_ids(blocks) == ["approve_post", "edit_post", "skip_post"]
    approve = blocks[-1]["elements"][0]
    assert json.loads(approve["value"]) == {"draftId": "chadix-1"}
    assert "we shipped search" in blocks[3]["text"]["text"]


def test_preview_blocks_link_manual_group() -> None:
    group = Destination(name="founders", kind="manual-group", platform="facebook",
                        url="https://facebook.com/groups/f", label="Founders")
    blocks = preview_blocks(_draft(platform="facebook", destination=group))

    link = blocks[-1]["elements"][1]
    assert link["url"] == "https://facebook.com/groups/f"
    assert "manual: Founders" in blocks[4]["elements"][0]["text"]


def test_batch_blocks_approve_all() -> None:
    blocks = batch_blocks([_draft("a"), _draft("b", platform="linkedin")])

    approve_all = blocks[-1]["elements"][0]
    assert approve_all["action_id"] == "approve_all"
    assert json.loads(approve_all["value"]) == {"draftIds": ["a", "b"]}
    assert _action_ids(blocks).count("approve_post") == 2


def test_status_text() -> None:
    draft = _draft()
    draft.transition(ApprovalState.APPROVED)
    draft.error = "account disconnected"
    draft.transition(ApprovalState.FAILED)

    text = status_text(draft)

    assert "FAILED" in text
    assert "account disconnected" in text

    edited = _draft()
    edited.transition(ApprovalState.EDITED)
    edited.transition(ApprovalState.PENDING)
    assert "EDITED" in status_text(edited)


def test_edit_modal_prefills_content() -> None:
    view = edit_modal(_draft())

    assert view["callback_id"] == "edit_post"
    assert view["private_metadata"] == "chadix-1"
    assert view["blocks"][0]["element"]["initial_value"] == "we shipped search"


@pytest.mark.asyncio
async def test_present_single_draft() -> None:
    channel = SlackApprovalChannel("xoxb-test")

    with patch("httpx.AsyncClient") as mock_client:
        mock_post = AsyncMock(return_value=_ok({"channel": "C123", "ts": "1700000000.000100"}))
        mock_client.return_value.__aenter__.return_value.post = mock_post

        ref = await channel.present([_draft()], "chadix-social")

        assert ref == "C123:1700000000.000100"
        assert split_message_ref(ref) == ("C123", "1700000000.000100")
        assert mock_post.call_args.args[0] == "https://slack.com/api/chat.postMessage"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["channel"] == "chadix-social"
        assert _action_ids(payload["blocks"]) == ["approve_post", "edit_post", "skip_post"]
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer xoxb-test"


@pytest.mark.asyncio
async def test_update_replies_in_thread() -> None:
    channel = SlackApprovalChannel("xoxb-test")
    draft = _draft(message_ref="C123:1700000000.000100")
    draft.transition(ApprovalState.SKIPPED)

    with patch("httpx.AsyncClient") as mock_client:
        mock_post = AsyncMock(return_value=_ok({"ts": "1700000001.000000"}))
        mock_client.return_value.__aenter__.return_value.post = mock_post

        await channel.update(draft)

        payload = mock_post.call_args.kwargs["json"]
        assert payload["channel"] == "C123"
        assert payload["thread_ts"] == "1700000000.000100"
        assert "SKIPPED" in payload["text"]


@pytest.mark.asyncio
async def test_open_edit_modal() -> None:
    channel = SlackApprovalChannel("xoxb-test")

    with patch("httpx.AsyncClient") as mock_client:
        mock_post = AsyncMock(return_value=_ok({}))
        mock_client.return_value.__aenter__.return_value.post = mock_post

        await channel.open_edit_modal("trigger-1", _draft())

        assert mock_post.call_args.args[0] == "https://slack.com/api/views.open"
        assert mock_post.call_args.kwargs["json"]["trigger_id"] == "trigger-1"


@pytest.mark.asyncio
async def test_slack_error_raises_delivery_failure() -> None:
    channel = SlackApprovalChannel("xoxb-test")

    with patch("httpx.AsyncClient") as mock_client:
        response = Mock()
        response.raise_for_status = Mock()
        response.json.return_value = {"ok": False, "error": "channel_not_found"}
        mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=response)

        with pytest.raises(ChannelDeliveryFailure, match="channel_not_found"):
            await channel.present([_draft()], "nope")


@pytest.mark.asyncio
async def test_http_error_raises_delivery_failure() -> None:
    channel = SlackApprovalChannel("xoxb-test")

    with patch("httpx.AsyncClient") as mock_client:
        response = Mock()
        response.raise_for_status = Mock(side_effect=httpx.HTTPError("API Error"))
        mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=response)

        with pytest.raises(ChannelDeliveryFailure, match="API Error"):
            await channel.present([_draft()], "social")


@pytest.mark.asyncio
async def test_missing_token() -> None:
    with pytest.raises(ChannelDeliveryFailure, match="SLACK_BOT_TOKEN"):
        await SlackApprovalChannel("").present([_draft()], "social")


@pytest.mark.asyncio
async def test_non_json_response_raises_delivery_failure() -> None:
    channel = SlackApprovalChannel("xoxb-test")

    with patch("httpx.AsyncClient") as mock_client:
        response = Mock()
        response.raise_for_status = Mock()
        response.json.side_effect = ValueError("Expecting value")
        mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=response)

        with pytest.raises(ChannelDeliveryFailure, match="non-JSON"):
            await channel.present([_draft()], "social")


@pytest.mark.asyncio
async def test_missing_ts_raises_delivery_failure() -> None:
    channel = SlackApprovalChannel("xoxb-test")

    with patch("httpx.AsyncClient") as mock_client:
        mock_client.return_value.__aenter__.return_value.post = AsyncMock(return_value=_ok({"channel": "C123"}))

        with pytest.raises(ChannelDeliveryFailure, match="no message ts"):
            await channel.present([_draft()], "social")
