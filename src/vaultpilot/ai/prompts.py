"""System prompt template for vault conversations."""

from __future__ import annotations

from typing import Iterable, Sequence

VAULT_LISTING_LIMIT = 100
MORE_FILES_MARKER = "... and more files"


def system_prompt(
    *,
    capabilities: Iterable[str],
    vault_listing: Sequence[str],
    observed_path: str | None = None,
    observed_content: str | None = None,
) -> str:
    """Assemble the system prompt sent with every provider request."""

    sections = [_personality_section()]
    if observed_path is not None and observed_content is not None:
        sections.append(_observed_file_section(observed_path, observed_content))
    sections.append(_vault_section(vault_listing))
    sections.append(_capabilities_section(capabilities))
    return "\n\n".join(sections)


def _personality_section() -> str:
    return (
        "You are a helpful AI assistant integrated into a note-taking application. "
        "You help users with their notes, writing, and organization.\n\n"
        "You have access to the user's vault and can read/write files using the available tools."
    )


def _observed_file_section(path: str, content: str) -> str:
    return f"## Currently Active File\nPath: {path}\nContent:\n```\n{content}\n```"


def _vault_section(listing: Sequence[str]) -> str:
    lines = list(listing[:VAULT_LISTING_LIMIT])
    if len(listing) > VAULT_LISTING_LIMIT:
        lines.append(MORE_FILES_MARKER)
    return "## Vault Structure\n" + "\n".join(lines)


def _capabilities_section(capabilities: Iterable[str]) -> str:
    actions = [f"- {capability}" for capability in capabilities]
    actions.extend(
        [
            "- Help with writing, editing, and organizing notes",
            "- Answer questions about the content",
        ]
    )
    return (
        "## Available Actions\n"
        + "\n".join(actions)
        + "\n\nWhen helping with notes, be concise and helpful. "
        "If the user asks about their current file, you can see its content above."
    )


__all__ = ["MORE_FILES_MARKER", "VAULT_LISTING_LIMIT", "system_prompt"]
