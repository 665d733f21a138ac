"""Tests for the command line entry point."""

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from shippost.cli import app
from shippost.config import Settings
from shippost.container import Container, build_container

from conftest import FakeChannel, FakeLLM, FakePublisher, selection_json

runner = CliRunner()


def _container_factory(**project):
    def build(settings: Settings) -> Container:
        settings.projects = [{
            "id": "chadix",
            "name": "Chadix",
            "repository": "acme/chadix",
            "brand": {"name": "Chadix", "platforms": ["twitter"]},
            **project,
        }]
        return build_container(
            settings,
            llm_client=FakeLLM(selection=selection_json("feat: add search")),
            publisher=FakePublisher(),
            slack=FakeChannel(),
        )
    return build


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        f"logging:\n  level: WARNING\nstorage:\n  backend: yaml\n  path: {tmp_path / 'data'}\n",
        encoding="utf-8",
    )
    return path


def _invoke(args: list[str], **project):
    with patch("shippost.cli.setup_logging"), \
         patch("shippost.cli.build_container", side_effect=_container_factory(**project)):
        return runner.invoke(app, args)


def test_generate_unknown_project(config_path: Path) -> None:
    result = _invoke(["generate", "nope", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Project not found: nope" in result.output


def test_generate_without_commits(config_path: Path) -> None:
    result = _invoke(["generate", "chadix", "--config", str(config_path)])

    assert result.exit_code == 0
    assert "No unprocessed commits" in result.output


def test_digest_reports_each_project(config_path: Path) -> None:
    result = _invoke(["digest", "--config", str(config_path)], post_frequency="daily-digest")

    assert result.exit_code == 0
    assert "Found 1 active projects" in result.output
    assert "chadix" in result.output
    assert "No new commits" in result.output
    assert "No posts to generate today" in result.output


def test_digest_skips_per_commit_projects(config_path: Path) -> None:
    result = _invoke(["digest", "--config", str(config_path)], post_frequency="per-commit")

    assert result.exit_code == 0
    assert "post frequency is per-commit, skipping" in result.output


@pytest.mark.parametrize("args", [["digest"], ["generate", "chadix"]])
def test_memory_backend_refused(tmp_path: Path, args: list[str]) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("storage:\n  backend: memory\n", encoding="utf-8")

    result = _invoke([*args, "--config", str(path)])

    assert result.exit_code == 1
    assert "storage.backend is memory" in result.output
    assert "POST /webhooks/digest" in result.output
