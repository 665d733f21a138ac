"""YAML file backed storage.

One YAML file per project for commits, plus single projects and drafts files. Files
are rewritten whole through a temp file and os.replace, so a crash never
leaves a half-written log behind.
"""

import os
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml

from shippost.core.entities import ApprovalState, Commit, Destination, Draft, Selection
from shippost.core.groups import GroupCatalog, group_from_dict, group_to_dict
from shippost.core.interfaces import ProjectRegistry
from shippost.core.projects import project_from_dict, project_to_dict
from shippost.adapters.storage.memory import InMemoryCommitStore, InMemoryDraftStore, InMemoryProjectRegistry

logger = structlog.get_logger(__name__)


def _write_yaml(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, allow_unicode=True, default_flow_style=False, sort_keys=False)
    os.replace(tmp_path, path)


def _read_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def _safe_name(project_id: str) -> str:
    return re.sub(r"[^\w.-]", "_", project_id)


class YamlCommitStore(InMemoryCommitStore):
    """Commit log persisted as one YAML file per project."""

    def __init__(
        self,
        storage_dir: Path,
        timezone: str = "UTC",
        registry: Optional[ProjectRegistry] = None,
    ) -> None:
        super().__init__(timezone=timezone, registry=registry)
        self.storage_dir = Path(storage_dir) / "commits"
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._load()

    def _path(self, project_id: str) -> Path:
        return self.storage_dir / f"{_safe_name(project_id)}.yaml"

    def _load(self) -> None:
        for path in sorted(self.storage_dir.glob("*.yaml")):
            data = _read_yaml(path) or {}
            project_id = data.get("project_id")
            if not project_id:
                logger.warning("Commit log without project id skipped", path=str(path))
                continue
            commits = self._commits.setdefault(project_id, {})
            for raw in data.get("commits") or []:
                commit = Commit(
                    id=raw["id"],
                    project_id=project_id,
                    message=raw["message"],
                    author=raw.get("author") or "",
                    timestamp=datetime.fromisoformat(raw["timestamp"]),
                    files_changed=int(raw.get("files_changed") or 0),
                    processed=bool(raw.get("processed")),
                )
                commits[commit.id] = commit

    def _persist(self, project_id: str) -> None:
        commits = self._commits.get(project_id, {})
        _write_yaml(self._path(project_id), {
            "project_id": project_id,
            "commits": [
                {
                    "id": c.id,
                    "message": c.message,
                    "author": c.author,
                    "timestamp": c.timestamp.isoformat(),
                    "files_changed": c.files_changed,
                    "processed": c.processed,
                }
                for c in commits.values()
            ],
        })


class YamlProjectRegistry(InMemoryProjectRegistry):
    """Project registry persisted to a single YAML file."""

    def __init__(self, storage_dir: Path, default_channel: Optional[str] = None) -> None:
        super().__init__(default_channel=default_channel)
        self.path = Path(storage_dir) / "projects.yaml"
        if self.path.exists():
            for raw in _read_yaml(self.path) or []:
                project = project_from_dict(raw, default_channel=default_channel)
                self._projects[project.id] = project

    def _persist(self) -> None:
        _write_yaml(self.path, [project_to_dict(p) for p in self._projects.values()])


def _draft_to_dict(draft: Draft) -> dict[str, Any]:
    selection = draft.selection
    destination = draft.destination
    return {
        "id": draft.id,
        "project_id": draft.project_id,
        "platform": draft.platform,
        "content": draft.content,
        "source_commit_ids": list(draft.source_commit_ids),
        "selection": {
            "theme": selection.theme,
            "angle": selection.angle,
            "hook_type": selection.hook_type,
            "topics": list(selection.topics),
        } if selection else None,
        "destination": {
            "name": destination.name,
            "kind": destination.kind.value,
            "platform": destination.platform,
            "account_id": destination.account_id,
            "url": destination.url,
            "label": destination.label,
        } if destination else None,
        "approval_state": draft.approval_state.value,
        "generated_at": draft.generated_at.isoformat(),
        "channel": draft.channel,
        "message_ref": draft.message_ref,
        "external_post_id": draft.external_post_id,
        "error": draft.error,
        "history": [state.value for state in draft.history],
    }


def _draft_from_dict(raw: dict[str, Any]) -> Draft:
    selection = raw.get("selection")
    destination = raw.get("destination")
    return Draft(
        id=raw["id"],
        project_id=raw["project_id"],
        platform=raw["platform"],
        content=raw["content"],
        source_commit_ids=list(raw.get("source_commit_ids") or []),
        # Selected commits live in the commit log; only the narrative is kept here
        selection=Selection(commits=[], **selection) if selection else None,
        destination=Destination(**destination) if destination else None,
        approval_state=ApprovalState(raw["approval_state"]),
        generated_at=datetime.fromisoformat(raw["generated_at"]),
        channel=raw.get("channel"),
        message_ref=raw.get("message_ref"),
        external_post_id=raw.get("external_post_id"),
        error=raw.get("error"),
        history=[ApprovalState(state) for state in raw.get("history") or []],
    )


class YamlDraftStore(InMemoryDraftStore):
    """Drafts persisted to a single YAML file, rewritten on every save."""

    def __init__(self, storage_dir: Path) -> None:
        super().__init__()
        self.path = Path(storage_dir) / "drafts.yaml"
        if self.path.exists():
            for raw in _read_yaml(self.path) or []:
                draft = _draft_from_dict(raw)
                self._drafts[draft.id] = draft

    async def save(self, draft: Draft) -> None:
        await super().save(draft)
        _write_yaml(self.path, [_draft_to_dict(d) for d in self._drafts.values()])


class YamlGroupCatalog(GroupCatalog):
    """Manual groups persisted to groups.yaml; stored groups win over config ones."""

    def __init__(self, storage_dir: Path, groups: Optional[dict[str, dict[str, Any]]] = None) -> None:
        super().__init__(groups)
        self.path = Path(storage_dir) / "groups.yaml"
        if self.path.exists():
            for group_id, raw in (_read_yaml(self.path) or {}).items():
                self._groups[group_id] = group_from_dict(group_id, raw)

    def _persist(self) -> None:
        _write_yaml(self.path, {g.id: group_to_dict(g) for g in self._groups.values()})
