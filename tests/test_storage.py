"""Tests for storage backends."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from shippost.adapters.storage import (
    InMemoryCommitStore,
    InMemoryDraftStore,
    InMemoryProjectRegistry,
    YamlCommitStore,
    YamlDraftStore,
    YamlProjectRegistry,
)
from shippost.core import ApprovalState, ConflictError, Destination, Draft, NotFoundError, Selection, ValidationError

from conftest import make_commit


@pytest.mark.asyncio
async def test_record_is_idempotent() -> None:
    store = InMemoryCommitStore()
    commit = make_commit("abc")

    first = await store.record("chadix", commit)
    await store.mark_processed(["abc"], "chadix")
    second = await store.record("chadix", make_commit("abc", message="different message"))

    assert second is first
    assert second.processed is True
    assert second.message == "feat: add search"
    assert await store.unprocessed_since("chadix", datetime.min.replace(tzinfo=timezone.utc)) == []


@pytest.mark.asyncio
async def test_unprocessed_since_orders_oldest_first() -> None:
    store = InMemoryCommitStore()
    now = datetime.now(timezone.utc)
    await store.record("chadix", make_commit("late", timestamp=now))
    await store.record("chadix", make_commit("early", timestamp=now - timedelta(minutes=5)))
    await store.record("chadix", make_commit("old", timestamp=now - timedelta(days=3)))

    commits = await store.unprocessed_since("chadix", now - timedelta(hours=1))

    assert [c.id for c in commits] == ["early", "late"]


@pytest.mark.asyncio
async def test_unprocessed_since_defaults_to_start_of_day() -> None:
    store = InMemoryCommitStore(timezone="UTC")
    now = datetime.now(timezone.utc)
    await store.record("chadix", make_commit("today", timestamp=now))
    await store.record("chadix", make_commit("last-week", timestamp=now - timedelta(days=7)))

    assert [c.id for c in await store.unprocessed_since("chadix")] == ["today"]


@pytest.mark.asyncio
async def test_mark_processed_returns_flipped_ids_only() -> None:
    store = InMemoryCommitStore()
    await store.record("chadix", make_commit("a"))
    await store.record("chadix", make_commit("b"))
    await store.record("other", make_commit("a", project_id="other"))

    assert await store.mark_processed(["a", "missing"], "chadix") == ["a"]
    assert await store.mark_processed(["a", "b"], "chadix") == ["b"]
    # Same SHA in another project untouched
    assert (await store.get("other", "a")).processed is False


@pytest.mark.asyncio
async def test_record_rejects_unknown_project_with_registry() -> None:
    registry = InMemoryProjectRegistry()
    store = InMemoryCommitStore(registry=registry)

    with pytest.raises(ValidationError, match="Unknown project"):
        await store.record("ghost", make_commit(project_id="ghost"))


@pytest.mark.asyncio
async def test_registry_repository_conflict() -> None:
    registry = InMemoryProjectRegistry(default_channel="social")
    await registry.create({"name": "Chadix", "repository": "acme/chadix"})

    with pytest.raises(ConflictError, match="already configured"):
        await registry.create({"name": "Chadix Two", "repository": "acme/chadix"})

    with pytest.raises(ConflictError, match="already exists"):
        await registry.create({"name": "Chadix"})


@pytest.mark.asyncio
async def test_registry_prefers_active_binding() -> None:
    registry = InMemoryProjectRegistry()
    await registry.create({"name": "Old", "repository": "acme/app", "active": False})
    await registry.create({"name": "New", "repository": "acme/app"})

    project = await registry.find_by_repository("acme/app")

    assert project.id == "new"
    assert [p.id for p in await registry.list_active()] == ["new"]
    assert len(await registry.list_all()) == 2


@pytest.mark.asyncio
async def test_registry_update_and_delete() -> None:
    registry = InMemoryProjectRegistry()
    await registry.create({"name": "Chadix", "repository": "acme/chadix"})
    await registry.create({"name": "Other", "repository": "acme/other"})

    with pytest.raises(ConflictError):
        await registry.update("other", {"repository": "acme/chadix"})

    updated = await registry.update("chadix", {"post_frequency": "smart"})
    assert updated.post_frequency.value == "smart"

    await registry.delete("chadix")
    assert await registry.get("chadix") is None
    with pytest.raises(NotFoundError):
        await registry.delete("chadix")


@pytest.mark.asyncio
async def test_registry_seed_skips_existing() -> None:
    registry = InMemoryProjectRegistry()
    await registry.create({"name": "Chadix"})

    created = await registry.seed([{"name": "Chadix"}, {"name": "Other"}])

    assert [p.id for p in created] == ["other"]


@pytest.mark.asyncio
async def test_draft_store_filters_by_project() -> None:
    store = InMemoryDraftStore()
    await store.save(Draft(id="a-1", project_id="a", platform="twitter", content="x", source_commit_ids=[]))
    await store.save(Draft(id="b-1", project_id="b", platform="twitter", content="y", source_commit_ids=[]))

    assert [d.id for d in await store.list("a")] == ["a-1"]
    assert len(await store.list()) == 2


@pytest.mark.asyncio
async def test_yaml_stores_survive_restart() -> None:
    """Test YAML backends reload their state from disk."""
    with TemporaryDirectory() as tmpdir:
        storage_dir = Path(tmpdir)

        registry = YamlProjectRegistry(storage_dir, default_channel="social")
        await registry.create({"name": "Chadix", "repository": "acme/chadix", "postFrequency": "smart"})
        commits = YamlCommitStore(storage_dir, registry=registry)
        await commits.record("chadix", make_commit("a"))
        await commits.record("chadix", make_commit("b"))
        await commits.mark_processed(["a"], "chadix")

        assert (storage_dir / "projects.yaml").exists()
        assert (storage_dir / "commits" / "chadix.yaml").exists()

        registry2 = YamlProjectRegistry(storage_dir)
        commits2 = YamlCommitStore(storage_dir, registry=registry2)

        project = await registry2.find_by_repository("acme/chadix")
        assert project.post_frequency.value == "smart"
        assert project.slack_channel == "social"
        assert (await commits2.get("chadix", "a")).processed is True
        assert [c.id for c in await commits2.unprocessed_since("chadix")] == ["b"]


@pytest.mark.asyncio
async def test_yaml_draft_store_survives_restart() -> None:
    with TemporaryDirectory() as tmpdir:
        storage_dir = Path(tmpdir)
        store = YamlDraftStore(storage_dir)
        draft = Draft(
            id="chadix-1",
            project_id="chadix",
            platform="facebook",
            content="we shipped",
            source_commit_ids=["a"],
            selection=Selection(commits=[], theme="Search", topics=["ai"]),
            destination=Destination(
                name="founders", kind="manual-group", platform="facebook", url="https://facebook.com/groups/f"
            ),
        )
        draft.transition(ApprovalState.APPROVED)
        await store.save(draft)

        reloaded = await YamlDraftStore(storage_dir).get("chadix-1")

        assert reloaded.approval_state == ApprovalState.APPROVED
        assert reloaded.history == [ApprovalState.PENDING, ApprovalState.APPROVED]
        assert reloaded.theme == "Search"
        assert reloaded.destination.is_manual
        assert reloaded.destination.url == "https://facebook.com/groups/f"
