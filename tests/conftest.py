"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tests.helpers import InMemoryVaultAdapter


@pytest.fixture
def adapter() -> InMemoryVaultAdapter:
    return InMemoryVaultAdapter(
        files={
            "/vault/a.md": "old text",
            "/vault/notes/todo.md": "- buy milk\n- call Sam",
        },
        folders=["/vault", "/vault/notes"],
    )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "VAULTPILOT_API_KEY",
        "VAULTPILOT_BASE_URL",
        "VAULTPILOT_MODEL",
        "VAULTPILOT_PROVIDER",
        "VAULTPILOT_TOOL_MODE",
        "VAULTPILOT_DEBUG_LOGGING",
        "VAULTPILOT_REQUEST_TIMEOUT",
        "VAULTPILOT_MAX_TOOL_ITERATIONS",
    ):
        monkeypatch.delenv(name, raising=False)
