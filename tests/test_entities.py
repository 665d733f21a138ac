"""Tests for core entities."""

from datetime import datetime, timezone

import pytest

from shippost.core import ApprovalState, Destination, DestinationKind, Draft, PostFrequency
from shippost.core.entities import (
    PLATFORM_FORMATS,
    Tagging,
    new_draft_id,
    normalize_platform,
    platform_format,
    slugify,
    start_of_day,
)

from conftest import make_commit


def test_commit_validation() -> None:
    """Test commit validation."""
    with pytest.raises(ValueError, match="Commit id cannot be empty"):
        make_commit(commit_id="")

    with pytest.raises(ValueError, match="Commit message cannot be empty"):
        make_commit(message="")


def test_commit_naive_timestamp_is_utc() -> None:
    commit = make_commit(timestamp=datetime(2025, 3, 1, 12, 0))
    assert commit.timestamp.tzinfo == timezone.utc


def test_platform_aliases() -> None:
    assert normalize_platform("X") == "twitter"
    assert normalize_platform("fb") == "facebook"
    assert normalize_platform("LinkedIn") == "linkedin"


def test_platform_format_falls_back_to_twitter() -> None:
    assert platform_format("mastodon") == PLATFORM_FORMATS["twitter"]
    assert platform_format("linkedin").max_length == 3000
    assert platform_format("x").max_length == 280


def test_post_frequency_posts_on_push() -> None:
    assert PostFrequency.PER_COMMIT.posts_on_push
    assert PostFrequency.IMMEDIATE.posts_on_push
    assert not PostFrequency.SMART.posts_on_push
    assert not PostFrequency.DAILY_DIGEST.posts_on_push


def test_terminal_states() -> None:
    assert {s for s in ApprovalState if s.is_terminal} == {
        ApprovalState.PUBLISHED,
        ApprovalState.FAILED,
        ApprovalState.SKIPPED,
    }


def test_destination_defaults_platform_from_name() -> None:
    destination = Destination(name="x")
    assert destination.platform == "twitter"
    assert destination.kind == DestinationKind.DIRECT
    assert not destination.is_manual

    group = Destination(name="saas-founders", kind="manual-group", platform="facebook", label="SaaS Founders")
    assert group.is_manual
    assert group.display_name == "SaaS Founders"


def test_tagging_suggestions_dedupes_and_keeps_order() -> None:
    tagging = Tagging(always_tag=["@me"], topic_tags={"AI": ["@AnthropicAI", "@me"], "web": ["@vercel"]})
    assert tagging.suggestions(["ai"]) == ["@me", "@AnthropicAI"]
    assert tagging.suggestions([]) == ["@me"]


def test_draft_history_tracks_transitions() -> None:
    draft = Draft(
        id=new_draft_id("chadix"),
        project_id="chadix",
        platform="twitter",
        content="hello",
        source_commit_ids=["abc"],
    )
    assert draft.id.startswith("chadix-")
    assert draft.history == [ApprovalState.PENDING]

    draft.transition(ApprovalState.APPROVED)
    draft.transition(ApprovalState.PUBLISHED)

    assert draft.is_terminal
    assert draft.history == [ApprovalState.PENDING, ApprovalState.APPROVED, ApprovalState.PUBLISHED]


def test_start_of_day_uses_timezone() -> None:
    now = datetime(2025, 3, 1, 23, 30, tzinfo=timezone.utc)

    assert start_of_day("UTC", now) == datetime(2025, 3, 1, tzinfo=timezone.utc)
    # Already March 2nd in Tokyo
    tokyo = start_of_day("Asia/Tokyo", now)
    assert (tokyo.year, tokyo.month, tokyo.day, tokyo.hour) == (2025, 3, 2, 0)


def test_slugify() -> None:
    assert slugify("My Cool App!") == "my-cool-app"
