"""Push webhooks plus manual triggers for testing and on-demand generation."""

import json
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from shippost.adapters.webhooks import (
    PushedCommit,
    parse_github_push,
    parse_gitlab_push,
    verify_github_signature,
    verify_gitlab_token,
)
from shippost.api.dependencies import get_digest, get_ingestion, get_pipeline, get_settings_dep
from shippost.api.models import GenerateRequest, GenerationResponse, ManualCommitsRequest
from shippost.config import Settings
from shippost.core.entities import utcnow
from shippost.use_cases import DigestService, IngestionService, PostingPipeline

logger = structlog.get_logger(__name__)
router = APIRouter()


def _json_body(body: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(body or b"{}")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="JSON body must be an object")
    return payload


@router.post("/github")
async def github_webhook(
    request: Request,
    x_github_event: Optional[str] = Header(default=None),
    x_hub_signature_256: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings_dep),
    ingestion: IngestionService = Depends(get_ingestion),
) -> dict[str, Any]:
    body = await request.body()

    secret = settings.github_webhook_secret
    if secret and not verify_github_signature(secret, body, x_hub_signature_256):
        logger.warning("Invalid GitHub signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    if x_github_event != "push":
        return {"message": f"Ignored event: {x_github_event}"}

    event = parse_github_push(_json_body(body))
    return await ingestion.handle_push(event)


@router.post("/gitlab")
async def gitlab_webhook(
    request: Request,
    x_gitlab_event: Optional[str] = Header(default=None),
    x_gitlab_token: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings_dep),
    ingestion: IngestionService = Depends(get_ingestion),
) -> dict[str, Any]:
    body = await request.body()

    secret = settings.gitlab_webhook_token
    if secret and not verify_gitlab_token(secret, x_gitlab_token):
        logger.warning("Invalid GitLab token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if x_gitlab_event != "Push Hook":
        return {"message": f"Ignored event: {x_gitlab_event}"}

    event = parse_gitlab_push(_json_body(body))
    return await ingestion.handle_push(event)


@router.post("/test", response_model=GenerationResponse)
async def manual_commits(
    request: ManualCommitsRequest,
    ingestion: IngestionService = Depends(get_ingestion),
) -> GenerationResponse:
    """Insert commits for a project by hand, optionally generating right away."""
    commits = [
        PushedCommit(
            id=c.id,
            message=c.message,
            author=c.author,
            timestamp=c.timestamp or utcnow(),
            files_changed=c.files_changed,
        )
        for c in request.commits
    ]
    result = await ingestion.ingest_manual(request.project_id, commits, immediate=request.immediate)
    return GenerationResponse.from_result(result)


@router.post("/generate", response_model=GenerationResponse)
async def generate(
    request: GenerateRequest,
    pipeline: PostingPipeline = Depends(get_pipeline),
) -> GenerationResponse:
    result = await pipeline.generate_for_project(request.project_id)
    return GenerationResponse.from_result(result)


@router.post("/digest")
async def daily_digest(digest: DigestService = Depends(get_digest)) -> dict[str, Any]:
    """Run the daily digest inside the server process, for schedulers hitting the API."""
    result = await digest.run()
    return {"success": True, **result}
