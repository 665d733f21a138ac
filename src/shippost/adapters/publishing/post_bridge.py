"""Post-Bridge publisher for direct destinations."""

from typing import Any, Optional

import httpx
import structlog

from shippost.core.entities import Destination, PublishResult
from shippost.core.errors import PublishFailure
from shippost.core.interfaces import Publisher

logger = structlog.get_logger(__name__)

DUPLICATE_MARKERS = ("duplicate", "already exists", "already posted")


def _is_duplicate(status_code: int, message: str) -> bool:
    if status_code == 409:
        return True
    lowered = message.lower()
    return any(marker in lowered for marker in DUPLICATE_MARKERS)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        return str(data.get("message") or data.get("error") or data)
    return str(data)


class PostBridgePublisher(Publisher):
    """Create posts through the Post-Bridge API."""

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = "https://api.post-bridge.com",
        account_ids: Optional[dict[str, Any]] = None,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.account_ids = account_ids or {}
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def account_for(self, destination: Destination) -> Optional[str]:
        account_id = destination.account_id or self.account_ids.get(destination.platform)
        return str(account_id) if account_id is not None else None

    async def publish(self, content: str, destination: Destination) -> PublishResult:
        if not self.api_key:
            return PublishResult(success=False, error="Post-Bridge not configured")

        account_id = self.account_for(destination)
        if account_id is None:
            return PublishResult(success=False, error=f"No account configured for {destination.name}")

        payload = {
            "caption": content,
            "social_accounts": [int(account_id) if account_id.isdigit() else account_id],
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(f"{self.api_url}/v1/posts", json=payload, headers=self._headers())
            except httpx.RequestError as e:
                return PublishResult(success=False, error=f"Post-Bridge request failed: {e}")

        if response.status_code < 400:
            # 201 and 204 may come back with an empty body
            try:
                data = response.json()
            except ValueError:
                data = None
            if not isinstance(data, dict):
                data = {}
            post_id = data.get("id")
            logger.info("Post-Bridge post created", destination=destination.name, post_id=post_id, status=data.get("status"))
            return PublishResult(success=True, external_post_id=str(post_id) if post_id is not None else None)

        message = _error_message(response)
        if _is_duplicate(response.status_code, message):
            return PublishResult(success=True, duplicate=True)

        logger.warning("Post-Bridge rejected post", destination=destination.name, status=response.status_code, error=message)
        return PublishResult(success=False, error=message)

    async def get_accounts(self) -> list[dict[str, Any]]:
        """Connected social accounts, for wiring account_ids in config."""
        if not self.api_key:
            raise PublishFailure("POST_BRIDGE_API_KEY is not configured")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(f"{self.api_url}/v1/social-accounts", headers=self._headers())
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise PublishFailure(f"Post-Bridge accounts request failed: {e}") from e
        try:
            data = response.json()
        except ValueError as e:
            raise PublishFailure(f"Post-Bridge accounts response is not JSON: {e}") from e
        return data.get("data", []) if isinstance(data, dict) else []
