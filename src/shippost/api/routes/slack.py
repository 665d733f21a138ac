"""Slack interactivity: button clicks on draft previews and edit modal submissions."""

import json
from typing import Any, Optional
from urllib.parse import parse_qs

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request, status

from shippost.adapters.notifications.slack_channel import EDIT_ACTION_ID, EDIT_BLOCK_ID, EDIT_CALLBACK_ID
from shippost.adapters.webhooks import verify_slack_signature
from shippost.api.dependencies import get_container
from shippost.container import Container
from shippost.core import ApprovalAction, ShipPostError, ValidationError

logger = structlog.get_logger(__name__)
router = APIRouter()

BUTTON_ACTIONS = {
    "approve_post": ApprovalAction.APPROVE,
    "skip_post": ApprovalAction.SKIP,
}


def _parse_payload(body: bytes) -> dict[str, Any]:
    form = parse_qs(body.decode("utf-8"))
    raw = (form.get("payload") or [None])[0]
    if raw is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing payload")
    try:
        return json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")


def _button_value(action: dict[str, Any]) -> dict[str, Any]:
    try:
        value = json.loads(action.get("value") or "{}")
    except ValueError:
        return {}
    return value if isinstance(value, dict) else {}


async def _handle_button(container: Container, action_id: str, value: dict[str, Any], trigger_id: Optional[str]) -> None:
    try:
        if action_id in BUTTON_ACTIONS:
            await container.approvals.handle(value["draftId"], BUTTON_ACTIONS[action_id])
        elif action_id == "approve_all":
            await container.approvals.approve_all(list(value.get("draftIds") or []))
        elif action_id == "edit_post":
            if container.slack is None or not trigger_id:
                logger.warning("Edit requested without a Slack client", draft=value.get("draftId"))
                return
            draft = await container.approvals.get(value["draftId"])
            await container.slack.open_edit_modal(trigger_id, draft)
    except (ShipPostError, KeyError) as e:
        logger.warning("Slack action not applied", action=action_id, value=value, error=str(e))


@router.post("/interactions")
async def slack_interactions(
    request: Request,
    background_tasks: BackgroundTasks,
    x_slack_request_timestamp: Optional[str] = Header(default=None),
    x_slack_signature: Optional[str] = Header(default=None),
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    body = await request.body()

    settings = container.settings
    if settings.slack_signing_secret and not verify_slack_signature(
        settings.slack_signing_secret,
        body,
        x_slack_request_timestamp,
        x_slack_signature,
        max_age=settings.slack.signature_max_age,
    ):
        logger.warning("Invalid Slack signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    payload = _parse_payload(body)
    payload_type = payload.get("type")

    if payload_type == "block_actions":
        # Slack wants an answer within 3 seconds, publishing can take longer
        for action in payload.get("actions") or []:
            action_id = action.get("action_id", "")
            if action_id.startswith("open_group_"):
                continue
            background_tasks.add_task(
                _handle_button, container, action_id, _button_value(action), payload.get("trigger_id")
            )
        return {}

    if payload_type == "view_submission":
        view = payload.get("view") or {}
        if view.get("callback_id") != EDIT_CALLBACK_ID:
            return {}
        draft_id = view.get("private_metadata", "")
        content = (
            view.get("state", {}).get("values", {}).get(EDIT_BLOCK_ID, {}).get(EDIT_ACTION_ID, {}).get("value")
        )
        try:
            await container.approvals.handle(draft_id, ApprovalAction.EDIT, content)
        except ValidationError as e:
            return {"response_action": "errors", "errors": {EDIT_BLOCK_ID: str(e)}}
        except ShipPostError as e:
            logger.warning("Edit not applied", draft=draft_id, error=str(e))
        return {}

    logger.info("Ignored Slack payload", type=payload_type)
    return {}
