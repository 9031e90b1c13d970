"""Tool handlers the assistant may invoke."""

from .base import BaseTool, MessageSink, ToolContext
from .diff_builder import DiffBuilderTool, build_diff
from .edit_file import EditFileTool
from .errors import ErrorCode, MissingParameterError, PermissionDeniedError, ToolError, UnknownToolError
from .tool_registry import ParameterSchema, ToolName, ToolRegistry, ToolSchema, default_registry
from .vault_tools import CreateFolderTool, ReadFileTool, ReadFolderTool, SearchVaultTool, WriteFileTool
from .web_tools import FetchUrlTool, ResearchTool


def default_tools() -> dict[ToolName, BaseTool]:
    """Return one handler instance per declared tool."""

    handlers: list[BaseTool] = [
        ReadFileTool(),
        WriteFileTool(),
        SearchVaultTool(),
        ReadFolderTool(),
        CreateFolderTool(),
        FetchUrlTool(),
        EditFileTool(),
        ResearchTool(),
    ]
    return {handler.name: handler for handler in handlers}


__all__ = [
    "BaseTool",
    "CreateFolderTool",
    "DiffBuilderTool",
    "EditFileTool",
    "ErrorCode",
    "FetchUrlTool",
    "MessageSink",
    "MissingParameterError",
    "ParameterSchema",
    "PermissionDeniedError",
    "ReadFileTool",
    "ReadFolderTool",
    "ResearchTool",
    "SearchVaultTool",
    "ToolContext",
    "ToolError",
    "ToolName",
    "ToolRegistry",
    "ToolSchema",
    "UnknownToolError",
    "WriteFileTool",
    "build_diff",
    "default_registry",
    "default_tools",
]
