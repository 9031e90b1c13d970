"""Tests for the settings persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from vaultpilot.services.settings import (
    ProviderSettings,
    SecretVault,
    Settings,
    SettingsError,
    SettingsStore,
    ToolExecutionMode,
)


def make_store(tmp_path: Path) -> SettingsStore:
    path = tmp_path / "settings.json"
    return SettingsStore(path, vault=SecretVault(key_path=tmp_path / "settings.key"))


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    assert make_store(tmp_path).load() == Settings()


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    original = Settings(
        providers=[
            ProviderSettings(name="OpenAI", api_key="sk-openai"),
            ProviderSettings(name="Anthropic", api_key="sk-ant", base_url="https://api.anthropic.com/v1", model="claude"),
        ],
        selected_provider="Anthropic",
        tool_execution_mode=ToolExecutionMode.ALLOW_ALL,
        max_tool_iterations=12,
        vault_root="/vault",
    )

    store.save(original)

    assert make_store(tmp_path).load() == original


def test_api_keys_are_encrypted_at_rest(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(Settings(providers=[ProviderSettings(api_key="super-secret")]))

    payload = json.loads(store.path.read_text(encoding="utf-8"))

    provider = payload["providers"][0]
    assert "api_key" not in provider
    assert provider["api_key_ciphertext"].startswith("fernet:")
    assert "super-secret" not in store.path.read_text(encoding="utf-8")
    assert payload["tool_execution_mode"] == "ask"


def test_load_legacy_plaintext_api_key(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.path.write_text(
        json.dumps({"providers": [{"name": "OpenAI", "api_key": "plain-key", "model": "gpt-4o-mini"}]}),
        encoding="utf-8",
    )

    loaded = store.load()

    assert loaded.providers == [ProviderSettings(name="OpenAI", api_key="plain-key", model="gpt-4o-mini")]


def test_invalid_json_falls_back_to_defaults(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.path.write_text("{not json", encoding="utf-8")

    assert store.load() == Settings()


def test_unknown_fields_are_ignored(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.path.write_text(json.dumps({"theme": "dark", "max_tokens": 100}), encoding="utf-8")

    assert store.load().max_tokens == 100


def test_cli_overrides_apply(tmp_path: Path) -> None:
    loaded = make_store(tmp_path).load(overrides={"vault_root": "/notes", "unknown": 1, "max_tokens": None})

    assert loaded.vault_root == "/notes"
    assert loaded.max_tokens == Settings().max_tokens


def test_env_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(Settings(providers=[ProviderSettings(name="OpenAI", api_key="abc")]))
    monkeypatch.setenv("VAULTPILOT_API_KEY", "env-key")
    monkeypatch.setenv("VAULTPILOT_MODEL", "gpt-4.1")
    monkeypatch.setenv("VAULTPILOT_TOOL_MODE", "allow-all")
    monkeypatch.setenv("VAULTPILOT_DEBUG_LOGGING", "yes")
    monkeypatch.setenv("VAULTPILOT_MAX_TOOL_ITERATIONS", "3")
    monkeypatch.setenv("VAULTPILOT_REQUEST_TIMEOUT", "12.5")

    loaded = make_store(tmp_path).load()

    assert loaded.active_provider() == ProviderSettings(name="OpenAI", api_key="env-key", model="gpt-4.1")
    assert loaded.tool_execution_mode is ToolExecutionMode.ALLOW_ALL
    assert loaded.debug_logging is True
    assert loaded.max_tool_iterations == 3
    assert loaded.request_timeout == 12.5


def test_env_provider_is_created_when_missing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("VAULTPILOT_PROVIDER", "Anthropic")
    monkeypatch.setenv("VAULTPILOT_API_KEY", "sk-ant")

    loaded = make_store(tmp_path).load()

    assert loaded.selected_provider == "Anthropic"
    assert loaded.active_provider().api_key == "sk-ant"


def test_invalid_numeric_env_override_is_ignored(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("VAULTPILOT_MAX_TOOL_ITERATIONS", "lots")

    assert make_store(tmp_path).load().max_tool_iterations == 8


def test_undecryptable_key_loads_as_empty(tmp_path: Path) -> None:
    store = make_store(tmp_path)
    store.save(Settings(providers=[ProviderSettings(api_key="secret")]))
    (tmp_path / "settings.key").unlink()

    loaded = make_store(tmp_path).load()

    assert loaded.providers[0].api_key == ""


def test_active_provider_selection() -> None:
    first = ProviderSettings(name="OpenAI")
    second = ProviderSettings(name="OpenRouter")
    settings = Settings(providers=[first, second])

    assert settings.active_provider() is first
    settings.selected_provider = "OpenRouter"
    assert settings.active_provider() is second
    settings.selected_provider = "Gone"
    with pytest.raises(SettingsError, match="Gone"):
        settings.active_provider()
    with pytest.raises(SettingsError):
        Settings().active_provider()


def test_unknown_tool_mode_defaults_to_ask() -> None:
    assert ToolExecutionMode.parse("sometimes") is ToolExecutionMode.ASK


def test_secret_vault_rejects_foreign_prefix(tmp_path: Path) -> None:
    vault = SecretVault(key_path=tmp_path / "key")

    assert vault.decrypt(vault.encrypt("abc")) == "abc"
    assert vault.encrypt("") == ""
    with pytest.raises(ValueError):
        vault.decrypt("keyring:abc")

