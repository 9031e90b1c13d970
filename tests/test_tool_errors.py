"""Tests for tool error rendering and the base tool wrapper."""

from __future__ import annotations

import pytest

from tests.helpers import make_context
from vaultpilot.ai.tools.base import BaseTool, ToolContext
from vaultpilot.ai.tools.errors import (
    ErrorCode,
    MissingParameterError,
    PermissionDeniedError,
    ToolError,
    UnknownToolError,
)
from vaultpilot.ai.tools.tool_registry import ToolName
from vaultpilot.chat.message_model import DisplayMessage, MessageKind


class ExplodingTool(BaseTool):
    name = ToolName.READ_FILE

    def __init__(self, error: Exception) -> None:
        self._error = error

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        raise self._error


def test_error_texts() -> None:
    assert MissingParameterError("read_file", "path").to_text() == "Error: missing required parameter 'path' for read_file"
    assert UnknownToolError("nope").to_text() == "Unknown tool: nope"
    assert PermissionDeniedError("write_file").to_text() == "[Tool blocked by user: write_file]"


def test_error_dict_and_str() -> None:
    error = ToolError(error_code=ErrorCode.NOT_FOUND, message="gone", details={"path": "/a"})

    assert str(error) == "[not_found] gone"
    assert error.to_dict() == {"error": "not_found", "message": "gone", "details": {"path": "/a"}}


@pytest.mark.asyncio
async def test_tool_errors_are_returned_as_text() -> None:
    tool = ExplodingTool(ToolError(error_code=ErrorCode.FILESYSTEM_ERROR, message="Error: disk full"))

    assert await tool.run(make_context(), {"path": "/a"}) == "Error: disk full"


@pytest.mark.asyncio
async def test_unexpected_exceptions_are_returned_as_text() -> None:
    assert await ExplodingTool(RuntimeError("kaboom")).run(make_context(), {}) == "Error: kaboom"


def test_context_posts_tool_log() -> None:
    messages: list[DisplayMessage] = []
    context = make_context(sink=messages)

    posted = context.tool_log("read_folder /")

    assert messages == [posted]
    assert posted.kind is MessageKind.TOOL_LOG
    assert posted.role == "assistant"
    assert posted.content == "[Tool used: read_folder /]"
