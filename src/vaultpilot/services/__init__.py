"""Services backing the assistant: vault access, document cache and settings."""

from .document_cache import DocumentCache
from .settings import (
    ProviderSettings,
    SecretVault,
    Settings,
    SettingsError,
    SettingsStore,
    ToolExecutionMode,
)
from .vault import FileEntry, LocalVaultAdapter, VaultAdapter, VaultEntry, load_file_structure
from .workspace import WorkspaceState

__all__ = [
    "DocumentCache",
    "FileEntry",
    "LocalVaultAdapter",
    "ProviderSettings",
    "SecretVault",
    "Settings",
    "SettingsError",
    "SettingsStore",
    "ToolExecutionMode",
    "VaultAdapter",
    "VaultEntry",
    "WorkspaceState",
    "load_file_structure",
]
