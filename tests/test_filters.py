"""Tests for commit filtering."""

import pytest

from shippost.core.filters import is_postable_commit


def test_filters_merge_and_skip_marker():
    """Only the feature commit survives."""
    messages = ["Merge pull request #1", "fix: bug [skip-post]", "feat: add search"]

    assert [m for m in messages if is_postable_commit(m, "Dana")] == ["feat: add search"]


@pytest.mark.parametrize("author", ["dependabot[bot]", "Renovate Bot", "ROBOT"])
def test_filters_bot_authors(author):
    assert not is_postable_commit("chore: bump deps", author)


def test_merge_only_matches_prefix():
    assert is_postable_commit("feat: merge user accounts", "Dana")
    assert not is_postable_commit("Merge branch 'main'", "Dana")


def test_missing_author_is_allowed():
    assert is_postable_commit("feat: add search", "")
    assert is_postable_commit("feat: add search", None)
