"""Tests for push payload parsing and signature checks."""

import hashlib
import hmac
from datetime import datetime, timezone

import pytest

from shippost.adapters.webhooks import (
    parse_github_push,
    parse_gitlab_push,
    parse_timestamp,
    verify_github_signature,
    verify_gitlab_token,
    verify_slack_signature,
)
from shippost.core import ValidationError

GITHUB_PUSH = {
    "ref": "refs/heads/main",
    "repository": {"full_name": "acme/chadix"},
    "commits": [
        {
            "id": "a1b2c3",
            "message": "feat: semantic search\n\nUses embeddings now",
            "timestamp": "2025-01-15T10:30:00Z",
            "author": {"name": "Dana", "username": "dana"},
            "added": ["search.py"],
            "modified": ["app.py", "README.md"],
            "removed": [],
        },
    ],
}

GITLAB_PUSH = {
    "object_kind": "push",
    "project": {"path_with_namespace": "acme/shop"},
    "commits": [
        {
            "id": "f00d",
            "message": "fix: cart rounding",
            "timestamp": "2025-01-15T12:00:00+02:00",
            "author": {"name": "Sam"},
        },
    ],
}


def test_parse_github_push() -> None:
    event = parse_github_push(GITHUB_PUSH)

    assert event.provider == "github"
    assert event.repository == "acme/chadix"
    commit = event.commits[0]
    assert commit.id == "a1b2c3"
    assert commit.author == "Dana"
    assert commit.files_changed == 3
    assert commit.timestamp == datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)

    stored = commit.to_commit("chadix")
    assert stored.project_id == "chadix"
    assert stored.message == "feat: semantic search\n\nUses embeddings now"
    assert stored.processed is False


def test_parse_gitlab_push() -> None:
    event = parse_gitlab_push(GITLAB_PUSH)

    assert event.provider == "gitlab"
    assert event.repository == "acme/shop"
    assert event.commits[0].timestamp == datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert event.commits[0].files_changed == 0


def test_explicit_files_changed_and_sha() -> None:
    event = parse_github_push({
        "repository": {"full_name": "acme/chadix"},
        "commits": [{"sha": "cafe", "message": "chore: bump", "author": "bot", "files_changed": 7}],
    })

    commit = event.commits[0]
    assert commit.id == "cafe"
    assert commit.author == "bot"
    assert commit.files_changed == 7


def test_push_without_commits() -> None:
    assert parse_github_push({"repository": {"full_name": "acme/chadix"}}).commits == []


@pytest.mark.parametrize("payload", [{}, {"repository": {}}, {"repository": None}])
def test_missing_repository(payload: dict) -> None:
    with pytest.raises(ValidationError, match="Missing repository info"):
        parse_github_push(payload)


def test_gitlab_missing_repository() -> None:
    with pytest.raises(ValidationError, match="Missing repository info"):
        parse_gitlab_push({"commits": []})


def test_malformed_commits() -> None:
    base = {"repository": {"full_name": "acme/chadix"}}

    with pytest.raises(ValidationError):
        parse_github_push({**base, "commits": "nope"})
    with pytest.raises(ValidationError):
        parse_github_push({**base, "commits": [{"id": "x"}]})
    with pytest.raises(ValidationError):
        parse_github_push({**base, "commits": [{"id": "x", "message": "m", "timestamp": "yesterday"}]})


def test_parse_timestamp_defaults_to_now() -> None:
    before = datetime.now(timezone.utc)
    assert parse_timestamp(None) >= before
    assert parse_timestamp("2025-01-15T10:30:00").tzinfo is not None


def test_github_signature() -> None:
    body = b'{"zen": "Keep it logically awesome."}'
    signature = "sha256=" + hmac.new(b"s3cret", body, hashlib.sha256).hexdigest()

    assert verify_github_signature("s3cret", body, signature)
    assert not verify_github_signature("other", body, signature)
    assert not verify_github_signature("s3cret", body + b" ", signature)
    assert not verify_github_signature("s3cret", body, None)


def test_gitlab_token() -> None:
    assert verify_gitlab_token("tok", "tok")
    assert not verify_gitlab_token("tok", "tak")
    assert not verify_gitlab_token("tok", None)


def _slack_signature(secret: str, timestamp: str, body: bytes) -> str:
    base = f"v0:{timestamp}:".encode() + body
    return "v0=" + hmac.new(secret.encode(), base, hashlib.sha256).hexdigest()


def test_slack_signature() -> None:
    body = b"payload=%7B%7D"
    signature = _slack_signature("signing", "1700000000", body)

    assert verify_slack_signature("signing", body, "1700000000", signature, now=1700000010)
    assert not verify_slack_signature("signing", body, "1700000000", signature + "0", now=1700000010)
    assert not verify_slack_signature("signing", body, None, signature, now=1700000010)
    assert not verify_slack_signature("signing", body, "soon", signature, now=1700000010)


def test_slack_signature_rejects_stale_timestamp() -> None:
    body = b"payload=%7B%7D"
    signature = _slack_signature("signing", "1700000000", body)

    assert not verify_slack_signature("signing", body, "1700000000", signature, now=1700000000 + 301)
    assert verify_slack_signature("signing", body, "1700000000", signature, max_age=600, now=1700000000 + 301)


def test_non_ascii_signature_headers_rejected() -> None:
    assert not verify_github_signature("s3cret", b"{}", "sha256=é")
    assert not verify_gitlab_token("tok", "tök")
    assert not verify_slack_signature("signing", b"{}", "1700000000", "v0=é", now=1700000000)
