"""Push webhook payload parsing and request signature checks."""

import hashlib
import hmac
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from shippost.core.entities import Commit, utcnow
from shippost.core.errors import ValidationError


@dataclass
class PushedCommit:
    """Commit as delivered by a push webhook, before it belongs to a project."""

    id: str
    message: str
    author: str
    timestamp: datetime
    files_changed: int = 0

    def to_commit(self, project_id: str) -> Commit:
        return Commit(
            id=self.id,
            project_id=project_id,
            message=self.message,
            author=self.author,
            timestamp=self.timestamp,
            files_changed=self.files_changed,
        )


@dataclass
class PushEvent:
    """Repository identifier plus the commits of one push."""

    provider: str
    repository: str
    commits: list[PushedCommit] = field(default_factory=list)


def parse_timestamp(value: Optional[str]) -> datetime:
    if not value:
        return utcnow()
    try:
        # fromisoformat only learned "Z" in 3.11
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"Invalid commit timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _files_changed(raw: dict[str, Any]) -> int:
    return sum(len(raw.get(key) or []) for key in ("added", "modified", "removed"))


def _parse_commit(raw: Any) -> PushedCommit:
    if not isinstance(raw, dict):
        raise ValidationError("Commit entries must be objects")
    commit_id = raw.get("id") or raw.get("sha")
    message = raw.get("message")
    if not commit_id or not message:
        raise ValidationError("Each commit needs an id and a message")

    author = raw.get("author") or {}
    if isinstance(author, dict):
        author_name = author.get("name") or author.get("username") or ""
    else:
        author_name = str(author)

    files_changed = raw.get("files_changed")
    return PushedCommit(
        id=str(commit_id),
        message=str(message),
        author=author_name,
        timestamp=parse_timestamp(raw.get("timestamp")),
        files_changed=int(files_changed) if files_changed is not None else _files_changed(raw),
    )


def parse_commits(raw_commits: Any) -> list[PushedCommit]:
    if raw_commits is None:
        return []
    if not isinstance(raw_commits, list):
        raise ValidationError("commits must be a list")
    return [_parse_commit(raw) for raw in raw_commits]


def parse_github_push(payload: dict[str, Any]) -> PushEvent:
    """Parse a GitHub push event payload."""
    repository = (payload.get("repository") or {}).get("full_name")
    if not repository:
        raise ValidationError("Missing repository info")
    return PushEvent(provider="github", repository=repository, commits=parse_commits(payload.get("commits")))


def parse_gitlab_push(payload: dict[str, Any]) -> PushEvent:
    """Parse a GitLab push hook payload."""
    repository = (payload.get("project") or {}).get("path_with_namespace")
    if not repository:
        raise ValidationError("Missing repository info")
    return PushEvent(provider="gitlab", repository=repository, commits=parse_commits(payload.get("commits")))


def verify_github_signature(secret: str, body: bytes, signature: Optional[str]) -> bool:
    """Check X-Hub-Signature-256 (HMAC-SHA256 of the raw body) in constant time."""
    if not signature:
        return False
    digest = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest.encode(), signature.encode())


def verify_gitlab_token(secret: str, token: Optional[str]) -> bool:
    """Check X-Gitlab-Token in constant time."""
    if not token:
        return False
    return hmac.compare_digest(secret.encode(), token.encode())


def verify_slack_signature(
    secret: str,
    body: bytes,
    timestamp: Optional[str],
    signature: Optional[str],
    max_age: int = 300,
    now: Optional[float] = None,
) -> bool:
    """Check a Slack v0 request signature and reject stale timestamps."""
    if not timestamp or not signature:
        return False
    try:
        request_time = int(timestamp)
    except ValueError:
        return False
    if abs((now if now is not None else time.time()) - request_time) > max_age:
        return False

    base = b"v0:" + timestamp.encode() + b":" + body
    digest = "v0=" + hmac.new(secret.encode(), base, hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest.encode(), signature.encode())
