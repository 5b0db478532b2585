"""Unit tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from workflow_session.config import SessionSettings
from workflow_session.graph.model import GraphPolicy

_ENV_VARS = (
    "WORKFLOW_API_BASE_URL",
    "WORKFLOW_SESSION_TOKEN",
    "WORKFLOW_ORGANIZATION_ID",
    "LOG_LEVEL",
    "WORKFLOW_ORPHAN_NODES_BLOCK_SAVE",
    "WORKFLOW_ALLOW_DUPLICATE_EDGES",
    "WORKFLOW_PRESENCE_TIMEOUT_SECONDS",
    "WORKFLOW_REQUEST_TIMEOUT_SECONDS",
    "WORKFLOW_DRAFT_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults() -> None:
    settings = SessionSettings()

    assert settings.api_base_url == "http://localhost:8000"
    assert settings.session_token == ""
    assert settings.draft_path == Path("workflow_drafts")
    assert settings.graph_policy == GraphPolicy()


def test_settings_loads_from_dotenv(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text(
        "\n".join(
            [
                "WORKFLOW_API_BASE_URL=https://api.example.com/",
                "WORKFLOW_SESSION_TOKEN=test-token",
                "WORKFLOW_ORPHAN_NODES_BLOCK_SAVE=false",
                "LOG_LEVEL=DEBUG",
                "",
            ]
        ),
        encoding="utf-8",
    )

    settings = SessionSettings()

    assert settings.api_base_url == "https://api.example.com"
    assert settings.session_token == "test-token"
    assert settings.log_level == "DEBUG"
    assert settings.graph_policy.orphan_nodes_block_save is False


def test_environment_overrides_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("WORKFLOW_ALLOW_DUPLICATE_EDGES=false\n", encoding="utf-8")
    monkeypatch.setenv("WORKFLOW_ALLOW_DUPLICATE_EDGES", "true")

    assert SessionSettings().allow_duplicate_edges is True


def test_rejects_blank_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKFLOW_API_BASE_URL", "  ")
    with pytest.raises(ValidationError):
        SessionSettings()


def test_rejects_non_positive_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORKFLOW_PRESENCE_TIMEOUT_SECONDS", "0")
    with pytest.raises(ValidationError):
        SessionSettings()
