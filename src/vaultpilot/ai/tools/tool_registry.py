"""Declarative registry for the assistant's tools.

The set of tools is closed: :class:`ToolName` enumerates every tool the model
may call and :func:`default_registry` declares one schema per member. Schemas
are reshaped per provider protocol by :meth:`ToolSchema.to_completion_tool`
and :meth:`ToolSchema.to_message_tool`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping, Sequence

from .errors import MissingParameterError

LOGGER = logging.getLogger(__name__)


class ToolName(str, Enum):
    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    SEARCH_VAULT = "search_vault"
    READ_FOLDER = "read_folder"
    CREATE_FOLDER = "create_folder"
    FETCH_URL = "fetch_url"
    EDIT_FILE = "edit_file"
    RESEARCH = "research"

    @classmethod
    def lookup(cls, value: str) -> "ToolName | None":
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(slots=True, frozen=True)
class ParameterSchema:
    """Schema for a single tool parameter.

    Attributes:
        name: Parameter name.
        description: Human-readable description.
        type: JSON Schema type. Every declared parameter is a string.
        required: Whether the parameter is required.
    """

    name: str
    description: str
    type: str = "string"
    required: bool = True

    def to_json_schema(self) -> dict[str, Any]:
        return {"type": self.type, "description": self.description}


@dataclass(slots=True)
class ToolSchema:
    """Complete schema for a tool.

    Attributes:
        name: Tool identifier.
        description: Human-readable description shown to the model.
        parameters: Declared parameters.
        capability: One-line summary listed in the system prompt.
    """

    name: ToolName
    description: str
    parameters: Sequence[ParameterSchema] = field(default_factory=list)
    capability: str = ""

    @property
    def required_fields(self) -> list[str]:
        return [param.name for param in self.parameters if param.required]

    def to_json_schema(self) -> dict[str, Any]:
        """Convert the parameters to a JSON Schema object."""

        properties = {param.name: param.to_json_schema() for param in self.parameters}
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        required = self.required_fields
        if required:
            schema["required"] = required
        return schema

    def to_completion_tool(self) -> dict[str, Any]:
        """Shape used by completion-style providers (``tools[].function``)."""

        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": self.to_json_schema(),
            },
        }

    def to_message_tool(self) -> dict[str, Any]:
        """Shape used by message-style providers (``tools[].input_schema``)."""

        return {
            "name": self.name.value,
            "description": self.description,
            "input_schema": self.to_json_schema(),
        }

    def validate(self, arguments: Mapping[str, Any]) -> dict[str, str]:
        """Return the arguments as strings or raise when a required field is absent."""

        for name in self.required_fields:
            if arguments.get(name) is None:
                raise MissingParameterError(self.name.value, name)
        return {key: str(value) for key, value in arguments.items()}


class ToolRegistry:
    """Registry mapping each :class:`ToolName` to its schema."""

    def __init__(self, schemas: Sequence[ToolSchema] | None = None) -> None:
        self._schemas: dict[ToolName, ToolSchema] = {}
        for schema in schemas or ():
            self.register(schema)

    def register(self, schema: ToolSchema) -> None:
        if schema.name in self._schemas:
            LOGGER.debug("Replacing schema for tool %s", schema.name.value)
        self._schemas[schema.name] = schema

    def get(self, name: str | ToolName) -> ToolSchema | None:
        tool = name if isinstance(name, ToolName) else ToolName.lookup(name)
        if tool is None:
            return None
        return self._schemas.get(tool)

    def __contains__(self, name: object) -> bool:
        if isinstance(name, str):
            return self.get(name) is not None
        return False

    def __iter__(self) -> Iterator[ToolSchema]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)

    def names(self) -> list[ToolName]:
        return list(self._schemas)


def _path(description: str) -> ParameterSchema:
    return ParameterSchema(name="path", description=description)


def default_registry() -> ToolRegistry:
    """Build the registry holding every tool the assistant offers."""

    return ToolRegistry(
        [
            ToolSchema(
                name=ToolName.READ_FILE,
                description="Read the contents of a file in the vault",
                parameters=[_path("The path to the file to read")],
                capability="Read files from the vault",
            ),
            ToolSchema(
                name=ToolName.WRITE_FILE,
                description="Write or update content in a file",
                parameters=[
                    _path("The path to the file to write"),
                    ParameterSchema(name="content", description="The content to write to the file"),
                ],
                capability="Write/update files in the vault",
            ),
            ToolSchema(
                name=ToolName.SEARCH_VAULT,
                description="Search for files or content in the vault",
                parameters=[ParameterSchema(name="query", description="The search query")],
                capability="Search for content across the vault",
            ),
            ToolSchema(
                name=ToolName.READ_FOLDER,
                description="List the contents of a folder in the vault",
                parameters=[_path("The path to the folder to list")],
                capability="Read folders and list directory contents",
            ),
            ToolSchema(
                name=ToolName.CREATE_FOLDER,
                description="Create a new folder in the vault",
                parameters=[_path("The path to create the folder at")],
                capability="Create new folders in the vault",
            ),
            ToolSchema(
                name=ToolName.FETCH_URL,
                description="Fetch a URL and return text content (truncated)",
                parameters=[ParameterSchema(name="url", description="The URL to fetch")],
                capability="Fetch web pages as text",
            ),
            ToolSchema(
                name=ToolName.EDIT_FILE,
                description="Propose an edit to a file; returns a diff and requires user confirmation to apply",
                parameters=[
                    _path("The path to the file to edit"),
                    ParameterSchema(name="content", description="The full new content for the file"),
                ],
                capability="Propose edits to files for the user to apply or reject",
            ),
            ToolSchema(
                name=ToolName.RESEARCH,
                description=(
                    "Perform a web research query (uses Google search) and return the top 5 "
                    "results and their extracted text contents"
                ),
                parameters=[ParameterSchema(name="query", description="Search query")],
                capability="Research topics on the web",
            ),
        ]
    )


__all__ = [
    "ParameterSchema",
    "ToolName",
    "ToolRegistry",
    "ToolSchema",
    "default_registry",
]
