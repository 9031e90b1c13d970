"""Settings dataclasses and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Mapping

from cryptography.fernet import Fernet, InvalidToken

__all__ = [
    "ProviderSettings",
    "Settings",
    "SettingsError",
    "SettingsStore",
    "SecretVault",
    "ToolExecutionMode",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".vaultpilot"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_PROVIDER_ENV_OVERRIDES: Mapping[str, str] = {
    "VAULTPILOT_API_KEY": "api_key",
    "VAULTPILOT_BASE_URL": "base_url",
    "VAULTPILOT_MODEL": "model",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "VAULTPILOT_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "VAULTPILOT_REQUEST_TIMEOUT": "request_timeout",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "VAULTPILOT_MAX_TOOL_ITERATIONS": "max_tool_iterations",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_API_KEY_FIELD = "api_key_ciphertext"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"


class SettingsError(RuntimeError):
    """Raised when the configured settings cannot be used."""


class ToolExecutionMode(str, Enum):
    """Global policy applied before any per-session permission state."""

    ASK = "ask"
    ALLOW_ALL = "allow_all"

    @classmethod
    def parse(cls, value: Any) -> "ToolExecutionMode":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            LOGGER.warning("Unknown tool execution mode '%s'; defaulting to ask.", value)
            return cls.ASK


@dataclass(slots=True)
class ProviderSettings:
    """A named set of credentials for one model provider."""

    name: str = "OpenAI"
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    providers: list[ProviderSettings] = field(default_factory=list)
    selected_provider: str | None = None
    tool_execution_mode: ToolExecutionMode = ToolExecutionMode.ASK
    max_tool_iterations: int = 8
    max_tokens: int = 4096
    request_timeout: float = 90.0
    max_retries: int = 1
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    permission_timeout: float | None = None
    research_proxy_url: str = "https://r.jina.ai/"
    fetch_char_limit: int = 8000
    debug_logging: bool = False
    vault_root: str | None = None

    def active_provider(self) -> ProviderSettings:
        """Return the selected provider record, or the first configured one."""

        if not self.providers:
            raise SettingsError("No provider configured")
        if self.selected_provider is None:
            return self.providers[0]
        for provider in self.providers:
            if provider.name == self.selected_provider:
                return provider
        raise SettingsError(f"Selected provider '{self.selected_provider}' is not configured")


class FernetSecretProvider:
    """Symmetric Fernet key stored on disk next to the settings file."""

    name = "fernet"

    def __init__(self, key_path: Path | None = None) -> None:
        self._key_path = key_path or (_SETTINGS_DIR / "settings.key")
        self._fernet: Fernet | None = None

    def encrypt(self, secret: str) -> str:
        token = self._get_fernet().encrypt(secret.encode("utf-8"))
        return token.decode("ascii")

    def decrypt(self, token: str) -> str:
        raw = self._get_fernet().decrypt(token.encode("ascii"))
        return raw.decode("utf-8")

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_key())
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        path = self._key_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.exists():
            return path.read_bytes().strip()
        key = Fernet.generate_key()
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_bytes(key)
        if os.name != "nt":  # pragma: no cover - depends on OS
            os.chmod(tmp_path, 0o600)
        tmp_path.replace(path)
        return key


class SecretVault:
    """Encrypts and decrypts provider API keys for settings persistence."""

    def __init__(self, *, key_path: Path | None = None) -> None:
        self._provider = FernetSecretProvider(key_path)

    @property
    def strategy(self) -> str:
        return self._provider.name

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        return f"{self._provider.name}:{self._provider.encrypt(secret)}"

    def decrypt(self, token: str | None) -> str:
        if not token:
            return ""
        prefix, _, payload = token.partition(":")
        if not payload:
            prefix, payload = self._provider.name, token
        if prefix != self._provider.name:
            raise ValueError(f"Unknown secret token prefix '{prefix}'")
        try:
            return self._provider.decrypt(payload)
        except InvalidToken as exc:
            raise ValueError("Invalid Fernet token") from exc


class SettingsStore:
    """Persistence adapter for :class:`Settings`."""

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH
        self._vault = vault or SecretVault(key_path=self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def vault(self) -> SecretVault:
        return self._vault

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        settings = Settings()
        if payload:
            data = _filter_fields(payload)
            data["providers"] = [
                self._load_provider(entry)
                for entry in data.get("providers") or []
                if isinstance(entry, Mapping)
            ]
            if "tool_execution_mode" in data:
                data["tool_execution_mode"] = ToolExecutionMode.parse(data["tool_execution_mode"])
            try:
                settings = Settings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = Settings()
            LOGGER.debug(
                "Settings loaded from %s: %d providers, selected=%s",
                self._path,
                len(settings.providers),
                settings.selected_provider,
            )

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, settings: Settings) -> Path:
        """Persist settings to disk with atomic file writes."""

        body = json.dumps(self._serialize(settings), indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s (%d providers)", self._path, len(settings.providers))
        return self._path

    def _serialize(self, settings: Settings) -> Dict[str, Any]:
        data = asdict(settings)
        data["tool_execution_mode"] = settings.tool_execution_mode.value
        providers = []
        for entry in data["providers"]:
            api_key = entry.pop("api_key", "") or ""
            if api_key:
                entry[_API_KEY_FIELD] = self._vault.encrypt(api_key)
            providers.append(entry)
        data["providers"] = providers
        data["version"] = _SETTINGS_VERSION
        data["secret_backend"] = self._vault.strategy
        return data

    def _load_provider(self, entry: Mapping[str, Any]) -> ProviderSettings:
        record = dict(entry)
        ciphertext = record.pop(_API_KEY_FIELD, None)
        legacy_plaintext = record.pop("api_key", None)
        api_key = ""
        if ciphertext:
            try:
                api_key = self._vault.decrypt(ciphertext)
            except ValueError as exc:
                LOGGER.warning("Unable to decrypt API key for %s: %s", record.get("name"), exc)
        elif legacy_plaintext:
            LOGGER.info("Provider %s has a plaintext API key; it will be encrypted on save.", record.get("name"))
            api_key = str(legacy_plaintext)
        allowed = {item.name for item in fields(ProviderSettings)}
        known = {key: value for key, value in record.items() if key in allowed}
        return ProviderSettings(api_key=api_key, **known)

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}

    def _apply_overrides(
        self,
        settings: Settings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Settings:
        allowed = {item.name for item in fields(Settings)}
        filtered: Dict[str, Any] = {
            key: value for key, value in overrides.items() if key in allowed and value is not None
        }
        if "tool_execution_mode" in filtered:
            filtered["tool_execution_mode"] = ToolExecutionMode.parse(filtered["tool_execution_mode"])
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        mode = os.environ.get("VAULTPILOT_TOOL_MODE")
        if mode is not None:
            overrides["tool_execution_mode"] = mode
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = float(value)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid float", env_name, value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return self._apply_provider_env_overrides(settings)

    def _apply_provider_env_overrides(self, settings: Settings) -> Settings:
        provider_name = os.environ.get("VAULTPILOT_PROVIDER")
        updates = {
            field_name: os.environ[env_name]
            for env_name, field_name in _PROVIDER_ENV_OVERRIDES.items()
            if env_name in os.environ
        }
        if provider_name is None and not updates:
            return settings
        providers = list(settings.providers)
        target_name = provider_name or settings.selected_provider
        if target_name is None and providers:
            target_name = providers[0].name
        target_name = target_name or ProviderSettings().name
        for index, provider in enumerate(providers):
            if provider.name == target_name:
                providers[index] = replace(provider, **updates)
                break
        else:
            providers.append(ProviderSettings(name=target_name, **updates))
        LOGGER.debug("Applying environment overrides to provider %s: %s", target_name, sorted(updates))
        return replace(settings, providers=providers, selected_provider=target_name)


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(Settings)}
    return {key: value for key, value in payload.items() if key in allowed}

