"""Normalization of project data into the Project shape.

Projects arrive from three places (config seeding, the HTTP API and stored
records); all of them go through project_from_dict so the pipeline only
ever sees one shape.
"""

from dataclasses import asdict
from datetime import datetime
from typing import Any, Optional

from shippost.core.entities import (
    Brand,
    Destination,
    DestinationKind,
    PostFrequency,
    Project,
    Tagging,
    slugify,
    utcnow,
)
from shippost.core.errors import ValidationError

# Keys accepted from the original camelCase API
KEY_ALIASES = {
    "githubRepo": "repository",
    "github_repo": "repository",
    "repo": "repository",
    "postFrequency": "post_frequency",
    "slackChannel": "slack_channel",
    "accountHandle": "account_handle",
    "alwaysTag": "always_tag",
    "topicTags": "topic_tags",
    "targetAudience": "target_audience",
    "accountId": "account_id",
    "examplePosts": "examples",
    "voiceFile": "voice_file",
}

# Legacy cadence names
FREQUENCY_ALIASES = {
    "daily": PostFrequency.DAILY_DIGEST,
    "ai": PostFrequency.SMART,
}


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {KEY_ALIASES.get(k, k): v for k, v in data.items()}


def parse_frequency(value: Any) -> PostFrequency:
    if isinstance(value, PostFrequency):
        return value
    if value in FREQUENCY_ALIASES:
        return FREQUENCY_ALIASES[value]
    try:
        return PostFrequency(value)
    except ValueError:
        allowed = ", ".join(f.value for f in PostFrequency)
        raise ValidationError(f"Invalid post_frequency {value!r}. Must be one of: {allowed}")


def parse_destination(name: str, data: Any) -> Destination:
    if isinstance(data, Destination):
        return data
    data = _normalize_keys(dict(data or {}))
    try:
        kind = DestinationKind(data.get("kind", DestinationKind.DIRECT.value))
    except ValueError:
        raise ValidationError(f"Invalid destination kind for {name}: {data.get('kind')!r}")
    if kind == DestinationKind.MANUAL_GROUP and not data.get("url"):
        raise ValidationError(f"Manual group destination {name} requires a url")
    platform = data.get("platform") or ""
    if kind == DestinationKind.MANUAL_GROUP and not platform:
        platform = "facebook"
    account_id = data.get("account_id")
    return Destination(
        name=name,
        kind=kind,
        platform=platform,
        account_id=str(account_id) if account_id is not None else None,
        url=data.get("url"),
        label=data.get("label") or data.get("name"),
    )


def project_from_dict(data: dict[str, Any], default_channel: Optional[str] = None) -> Project:
    """Build a Project from a plain mapping, filling defaults."""
    data = _normalize_keys(data)
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    brand_data = _normalize_keys(dict(data.get("brand") or {}))
    platforms = brand_data.get("platforms") or ["twitter"]
    if not isinstance(platforms, list) or not all(isinstance(p, str) for p in platforms):
        raise ValidationError("brand.platforms must be a list of strings")
    examples = brand_data.get("examples") or []
    if not isinstance(examples, list) or not all(isinstance(e, str) for e in examples):
        raise ValidationError("brand.examples must be a list of strings")

    tagging_data = _normalize_keys(dict(data.get("tagging") or {}))

    destinations = {
        key: parse_destination(key, value)
        for key, value in (data.get("destinations") or {}).items()
    }

    created_at = data.get("created_at")
    updated_at = data.get("updated_at")

    return Project(
        id=data.get("id") or slugify(name),
        name=name,
        repository=data.get("repository"),
        brand=Brand(
            name=brand_data.get("name") or name,
            voice=brand_data.get("voice") or "casual-founder",
            platforms=list(platforms),
            account_handle=brand_data.get("account_handle"),
            examples=list(examples),
            voice_file=brand_data.get("voice_file"),
        ),
        tagging=Tagging(
            always_tag=list(tagging_data.get("always_tag") or []),
            topic_tags={k: list(v) for k, v in (tagging_data.get("topic_tags") or {}).items()},
        ),
        post_frequency=parse_frequency(data.get("post_frequency") or PostFrequency.DAILY_DIGEST),
        slack_channel=data.get("slack_channel") or default_channel,
        active=data.get("active", True) is not False,
        destinations=destinations,
        product=data.get("product"),
        goal=data.get("goal"),
        target_audience=data.get("target_audience"),
        created_at=datetime.fromisoformat(created_at) if isinstance(created_at, str) else created_at or utcnow(),
        updated_at=datetime.fromisoformat(updated_at) if isinstance(updated_at, str) else updated_at or utcnow(),
    )


def project_to_dict(project: Project) -> dict[str, Any]:
    """Serialize a project to plain JSON/YAML friendly data."""
    data = asdict(project)
    data["post_frequency"] = project.post_frequency.value
    data["destinations"] = {
        key: {
            "kind": dest.kind.value,
            "platform": dest.platform,
            "account_id": dest.account_id,
            "url": dest.url,
            "label": dest.label,
        }
        for key, dest in project.destinations.items()
    }
    data["created_at"] = project.created_at.isoformat()
    data["updated_at"] = project.updated_at.isoformat()
    return data


def apply_patch(project: Project, patch: dict[str, Any]) -> Project:
    """Return a new Project with a partial update applied; nested mappings merge."""
    current = project_to_dict(project)
    for key, value in _normalize_keys(patch).items():
        if key in ("id", "created_at"):
            continue
        if key in ("brand", "tagging") and isinstance(value, dict):
            current[key] = {**current[key], **_normalize_keys(value)}
        else:
            current[key] = value
    current["updated_at"] = utcnow().isoformat()
    return project_from_dict(current)
