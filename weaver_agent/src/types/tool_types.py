# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os

from typing import Any, Awaitable, Callable
from pydantic import BaseModel, ConfigDict, Field


def empty_object_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


class ToolSpec(BaseModel):
    """The oracle-facing description of a tool.

    Specs are frozen once built: re-registering a name replaces the whole
    (spec, handler) entry rather than mutating it.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=empty_object_schema)

    def to_api(self) -> dict[str, Any]:
        """Shape expected by the Messages API ``tools`` parameter."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def to_rpc(self) -> dict[str, Any]:
        """Shape used by ``tools/list`` on the wire."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolResult(BaseModel):
    """Represents the result of a tool execution."""

    tool_name: str
    success: bool
    duration: float = 0.0  # on tool error paths, duration is often 0
    output: Any = None
    warnings: str | None = None
    errors: str | None = None
    invocation_id: str = Field(default_factory=lambda: os.urandom(4).hex())

    def payload(self) -> Any:
        """The value fed back to the oracle for this result."""
        if not self.success:
            return {"error": self.errors or "Tool execution failed"}
        return self.output


ToolHandler = Callable[[dict[str, Any]], Awaitable[ToolResult | Any]]


class ToolCallRecord(BaseModel):
    """Audit entry for one tool invocation during an agent run."""

    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolError(Exception):
    """Base class for registry-level tool errors."""


class UnknownTool(ToolError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class InvalidToolInput(ToolError):
    def __init__(self, name: str, errors: list[str]):
        self.name = name
        self.errors = errors
        super().__init__(f"Invalid input for tool {name}: {'; '.join(errors)}")
