"""Tests for decoding structured generation output."""

from shippost.core.entities import ClassificationResult, ParseError, Selection
from shippost.core.parsing import decode_classification, decode_selection, extract_json, fix_json

from conftest import make_commit


def _commits():
    return [
        make_commit("c1", "feat: launch Stripe billing"),
        make_commit("c2", "fix: typo in footer"),
        make_commit("c3", "refactor: split api module"),
    ]


def test_fix_json_trailing_commas() -> None:
    assert fix_json('{"a": [1, 2,], }') == '{"a": [1, 2] }'


def test_extract_json_from_code_block() -> None:
    text = 'Here you go:\n```json\n{"immediate": ["x"]}\n```\nCheers'
    assert extract_json(text) == '{"immediate": ["x"]}'


def test_extract_json_from_prose() -> None:
    text = 'Sure! {"immediate": [], "batch": ["x"]} hope that helps'
    assert extract_json(text) == '{"immediate": [], "batch": ["x"]}'


def test_classification_partitions_in_input_order() -> None:
    commits = _commits()
    text = (
        '{"immediate": ["feat: launch Stripe billing"], '
        '"batch": ["refactor: split api module", "fix: typo in footer"], "reasoning": "billing is big"}'
    )

    result = decode_classification(text, commits)

    assert isinstance(result, ClassificationResult)
    assert [c.id for c in result.immediate] == ["c1"]
    assert [c.id for c in result.batch] == ["c2", "c3"]
    assert result.reasoning == "billing is big"


def test_classification_unmentioned_commits_go_to_batch() -> None:
    commits = _commits()

    result = decode_classification('{"immediate": ["launch Stripe billing"]}', commits)

    assert [c.id for c in result.immediate] == ["c1"]
    assert [c.id for c in result.batch] == ["c2", "c3"]


def test_classification_parse_errors() -> None:
    commits = _commits()

    assert isinstance(decode_classification("not json at all", commits), ParseError)
    assert isinstance(decode_classification('{"verdict": "post it"}', commits), ParseError)
    assert isinstance(decode_classification('{"immediate": "feat"}', commits), ParseError)
    assert isinstance(decode_classification('["feat"]', commits), ParseError)


def test_selection_decodes_narrative() -> None:
    commits = _commits()
    text = (
        '```json\n{"selectedCommits": ["feat: launch Stripe billing"], "mainTheme": "We take money now", '
        '"interestingAngle": "first revenue", "hookType": "mrr", "suggestedTopics": ["stripe"],}\n```'
    )

    selection = decode_selection(text, commits)

    assert isinstance(selection, Selection)
    assert [c.id for c in selection.commits] == ["c1"]
    assert selection.theme == "We take money now"
    assert selection.hook_type == "mrr"
    assert selection.topics == ["stripe"]


def test_selection_capped_at_three_commits() -> None:
    commits = _commits() + [make_commit("c4", "feat: dark mode")]
    text = (
        '{"selectedCommits": ["feat: dark mode", "feat: launch Stripe billing", '
        '"fix: typo in footer", "refactor: split api module"], "mainTheme": "busy day"}'
    )

    selection = decode_selection(text, commits)

    assert len(selection.commits) == 3
    # Input order, not answer order
    assert [c.id for c in selection.commits] == ["c1", "c2", "c3"]


def test_selection_parse_errors() -> None:
    commits = _commits()

    assert isinstance(decode_selection('{"selectedCommits": []}', commits), ParseError)
    assert isinstance(decode_selection('{"selectedCommits": ["something else entirely"]}', commits), ParseError)
    assert isinstance(decode_selection("", commits), ParseError)
