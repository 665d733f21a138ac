"""Decoding of structured text generation output.

Decoders never raise on bad output: they return either the decoded value
or a ParseError, and the caller decides what the error branch means.
"""

import json
import re
from typing import Any, Union

from shippost.core.entities import ClassificationResult, Commit, ParseError, Selection

MAX_SELECTED_COMMITS = 3


def fix_json(text: str) -> str:
    """Try to fix common JSON issues."""
    # Remove trailing commas before } or ]
    return re.sub(r",(\s*[}\]])", r"\1", text)


def extract_json(text: str) -> str:
    """Extract JSON from markdown code block or raw text."""
    # Strategy 1: JSON in a markdown code block
    code_block_match = re.search(r"```(?:json)?\s*\n(.*?)\n```", text, re.DOTALL)
    if code_block_match:
        return fix_json(code_block_match.group(1).strip())

    # Strategy 2: outermost object, models like to wrap it in prose
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidate = fix_json(text[start:end + 1])
        try:
            json.loads(candidate)
            return candidate
        except json.JSONDecodeError:
            pass

    # Strategy 3: any array
    json_array_match = re.search(r"\[[^\[\]]*(?:\[[^\[\]]*\][^\[\]]*)*\]", text, re.DOTALL)
    if json_array_match:
        candidate = fix_json(json_array_match.group(0))
        try:
            json.loads(candidate)
            return candidate
        except json.JSONDecodeError:
            pass

    # Strategy 4: return as is (last resort)
    return fix_json(text.strip())


def _load_object(text: str) -> Union[dict[str, Any], ParseError]:
    json_text = extract_json(text)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        return ParseError(reason=f"invalid JSON: {e}", raw=text)
    if not isinstance(data, dict):
        return ParseError(reason=f"expected object, got {type(data).__name__}", raw=text)
    return data


def _string_list(data: dict[str, Any], key: str) -> Union[list[str], ParseError]:
    value = data.get(key, [])
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        return ParseError(reason=f"'{key}' must be a list of strings")
    return [v.strip() for v in value if v.strip()]


def message_matches(commit: Commit, message: str) -> bool:
    """Exact or substring match in either direction against the commit message."""
    candidate = message.strip()
    if not candidate:
        return False
    text = commit.message.strip()
    return candidate == text or candidate in text or text in candidate


def match_commits(commits: list[Commit], messages: list[str]) -> list[Commit]:
    """Input commits referenced by any of the messages, in input order."""
    return [c for c in commits if any(message_matches(c, m) for m in messages)]


def decode_classification(
    text: str, commits: list[Commit]
) -> Union[ClassificationResult, ParseError]:
    """Decode urgency classifier output.

    Expected shape: {"immediate": [...], "batch": [...], "reasoning": "..."}.
    Commits not referenced by an immediate message end up in batch.
    """
    data = _load_object(text)
    if isinstance(data, ParseError):
        return data

    if "immediate" not in data and "batch" not in data:
        return ParseError(reason="missing 'immediate' and 'batch' keys", raw=text)

    immediate_messages = _string_list(data, "immediate")
    if isinstance(immediate_messages, ParseError):
        return ParseError(reason=immediate_messages.reason, raw=text)

    immediate = match_commits(commits, immediate_messages)
    batch = [c for c in commits if c not in immediate]
    reasoning = data.get("reasoning")

    return ClassificationResult(
        immediate=immediate,
        batch=batch,
        reasoning=str(reasoning) if reasoning is not None else None,
    )


def decode_selection(text: str, commits: list[Commit]) -> Union[Selection, ParseError]:
    """Decode selection stage output.

    Expected shape: {"selectedCommits": [...], "mainTheme": "...",
    "interestingAngle": "...", "hookType": "...", "suggestedTopics": [...]}.
    """
    data = _load_object(text)
    if isinstance(data, ParseError):
        return data

    selected_messages = _string_list(data, "selectedCommits")
    if isinstance(selected_messages, ParseError):
        return ParseError(reason=selected_messages.reason, raw=text)
    if not selected_messages:
        return ParseError(reason="no commits selected", raw=text)

    selected = match_commits(commits, selected_messages)[:MAX_SELECTED_COMMITS]
    if not selected:
        return ParseError(reason="selected messages match no input commit", raw=text)

    topics = _string_list(data, "suggestedTopics")
    if isinstance(topics, ParseError):
        topics = []

    return Selection(
        commits=selected,
        theme=str(data.get("mainTheme") or ""),
        angle=str(data.get("interestingAngle") or ""),
        hook_type=str(data.get("hookType") or ""),
        topics=topics,
    )
