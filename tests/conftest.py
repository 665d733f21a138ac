"""Shared fixtures and fakes."""

from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

import pytest

from shippost.config import Settings
from shippost.core import (
    ApprovalChannel,
    Commit,
    Destination,
    Draft,
    GenerationFailure,
    LLMClient,
    Project,
    Publisher,
    PublishResult,
)
from shippost.core.errors import ChannelDeliveryFailure
from shippost.core.projects import project_from_dict


class FakeLLM(LLMClient):
    """Answers each prompt stage with a canned response."""

    def __init__(
        self,
        urgency: str = '{"immediate": [], "batch": []}',
        selection: str = '{"selectedCommits": [], "mainTheme": ""}',
        draft: Union[str, Callable[[str], str]] = "shipped search today #buildinpublic",
        failing_platforms: tuple = (),
    ) -> None:
        self.urgency = urgency
        self.selection = selection
        self.draft = draft
        self.failing_platforms = failing_platforms
        self.calls: list[tuple[str, str]] = []

    async def complete(self, prompt: str, system: str = "", max_tokens: Optional[int] = None) -> str:
        self.calls.append((system, prompt))
        if '"immediate"' in prompt:
            return self.urgency
        if '"selectedCommits"' in prompt:
            return self.selection
        for platform in self.failing_platforms:
            if f"Generate a {platform} post" in prompt:
                raise GenerationFailure(f"{platform} exploded")
        return self.draft(prompt) if callable(self.draft) else self.draft


class FakePublisher(Publisher):
    def __init__(self, result: Optional[PublishResult] = None) -> None:
        self.result = result or PublishResult(success=True, external_post_id="pb-1")
        self.published: list[tuple[str, Destination]] = []

    async def publish(self, content: str, destination: Destination) -> PublishResult:
        self.published.append((content, destination))
        return self.result


class FakeChannel(ApprovalChannel):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.presented: list[tuple[list[Draft], str]] = []
        self.updates: list[Draft] = []
        self.modals: list[tuple[str, Draft]] = []

    async def present(self, drafts: list[Draft], channel: str) -> str:
        if self.fail:
            raise ChannelDeliveryFailure("channel_not_found")
        self.presented.append((list(drafts), channel))
        return f"{channel}:1700000000.{len(self.presented):06d}"

    async def update(self, draft: Draft) -> None:
        if self.fail:
            raise ChannelDeliveryFailure("channel_not_found")
        self.updates.append(draft)

    async def open_edit_modal(self, trigger_id: str, draft: Draft) -> None:
        self.modals.append((trigger_id, draft))


def make_commit(
    commit_id: str = "abc123",
    message: str = "feat: add search",
    project_id: str = "chadix",
    timestamp: Optional[datetime] = None,
    **kwargs: Any,
) -> Commit:
    return Commit(
        id=commit_id,
        project_id=project_id,
        message=message,
        author=kwargs.pop("author", "Dana"),
        timestamp=timestamp or datetime.now(timezone.utc),
        **kwargs,
    )


def make_project(**overrides: Any) -> Project:
    data: dict[str, Any] = {
        "id": "chadix",
        "name": "Chadix",
        "repository": "acme/chadix",
        "post_frequency": "per-commit",
        "slack_channel": "chadix-social",
        "product": "Chadix",
        "goal": "Reach 100 paying stores",
        "brand": {"name": "Chadix", "voice": "casual-founder", "platforms": ["twitter"]},
    }
    data.update(overrides)
    return project_from_dict(data)


def selection_json(*messages: str, theme: str = "Search is live") -> str:
    quoted = ", ".join(f'"{m}"' for m in messages)
    return (
        f'{{"selectedCommits": [{quoted}], "mainTheme": "{theme}", '
        f'"interestingAngle": "users asked for it", "hookType": "shipped", "suggestedTopics": ["ai"]}}'
    )


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def fake_publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def fake_channel() -> FakeChannel:
    return FakeChannel()
