"""Tools that read and mutate the vault through the document cache and adapter."""

from __future__ import annotations

import logging

from .base import BaseTool, ToolContext
from .errors import ErrorCode, ToolError
from .tool_registry import ToolName

LOGGER = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 10
SEARCH_PREVIEW_CHARS = 200


class ReadFileTool(BaseTool):
    """Return a document from the cache, falling back to disk."""

    name = ToolName.READ_FILE

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        path = arguments["path"]
        content = context.workspace.cache.get(path)
        if content is None:
            try:
                content = await context.adapter.read_text_file(path)
            except Exception as exc:
                raise ToolError(
                    error_code=ErrorCode.NOT_FOUND,
                    message=f"Error: File not found: {path}",
                    details={"reason": str(exc)},
                ) from exc
        return f"File content of {path}:\n```\n{content}\n```"


class WriteFileTool(BaseTool):
    """Overwrite the cached document; persisting it is left to the save flow."""

    name = ToolName.WRITE_FILE

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        path = arguments["path"]
        cache = context.workspace.cache
        cache.set(path, arguments["content"])
        cache.mark_unsaved(path)
        return f"Successfully updated {path}. The file has been marked as modified and will be saved."


class SearchVaultTool(BaseTool):
    """Case-insensitive substring search over cached paths and contents."""

    name = ToolName.SEARCH_VAULT

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        query = arguments["query"]
        needle = query.lower()
        matches: list[str] = []
        for path, content in context.workspace.cache.items():
            if needle in path.lower() or needle in content.lower():
                preview = content[:SEARCH_PREVIEW_CHARS].replace("\n", " ")
                matches.append(f"- {path}: {preview}...")
        if not matches:
            return f'No files found matching "{query}"'
        shown = "\n".join(matches[:SEARCH_RESULT_LIMIT])
        return f"Found {len(matches)} matches:\n{shown}"


class ReadFolderTool(BaseTool):
    name = ToolName.READ_FOLDER

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        path = arguments["path"]
        try:
            entries = await context.adapter.read_dir(path)
        except Exception as exc:
            raise ToolError(
                error_code=ErrorCode.FILESYSTEM_ERROR,
                message=f"Error reading folder {path}: {_describe(exc)}",
            ) from exc
        context.tool_log(f"read_folder {path}")
        lines = [f"📁 {entry.name}/" if entry.is_directory else f"📄 {entry.name}" for entry in entries]
        return "\n".join([f"Contents of {path}:", *lines])


class CreateFolderTool(BaseTool):
    name = ToolName.CREATE_FOLDER

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        path = arguments["path"]
        try:
            await context.adapter.mkdir(path)
        except Exception as exc:
            raise ToolError(
                error_code=ErrorCode.FILESYSTEM_ERROR,
                message=f"Error creating folder {path}: {_describe(exc)}",
            ) from exc
        context.tool_log(f"create_folder {path}")
        return f"Created folder: {path}"


def _describe(exc: BaseException) -> str:
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc) or exc.__class__.__name__


__all__ = [
    "CreateFolderTool",
    "ReadFileTool",
    "ReadFolderTool",
    "SearchVaultTool",
    "WriteFileTool",
]
