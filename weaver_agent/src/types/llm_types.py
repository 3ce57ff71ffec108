# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Conversation and completion types shared by the oracle and the agent loops.

The block shapes follow the Messages API so that a conversation can be sent
back to the oracle without translation: an assistant turn may carry text and
``tool_use`` blocks, and the next user turn must answer every ``tool_use`` id
with a ``tool_result`` block.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union
from pydantic import BaseModel, Field


class StopReason(str, Enum):
    COMPLETE = "complete"
    TOOL_USE = "tool_use"
    LENGTH = "length"
    ERROR = "error"


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallContent(BaseModel):
    """A tool invocation requested by the oracle."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultContent(BaseModel):
    """The answer to a ToolCallContent, correlated by ``tool_use_id``."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str


ContentTypes = Annotated[
    Union[TextContent, ToolCallContent, ToolResultContent],
    Field(discriminator="type"),
]


class Message(BaseModel):
    """A message in a conversation with an LLM."""

    role: Literal["user", "assistant"]
    content: str | list[ContentTypes]

    @property
    def blocks(self) -> list[ContentTypes]:
        if isinstance(self.content, str):
            return [TextContent(text=self.content)]
        return list(self.content)

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def __str__(self) -> str:
        parts = [f"Message from role={self.role}"]
        for c in self.blocks:
            if isinstance(c, TextContent):
                parts.append(f"Text {'-'*10}\n{c.text}")
            elif isinstance(c, ToolCallContent):
                parts.append(f"{'-'*10}\nTool call {c.name} (id: {c.id}): {c.input}\n{'-'*10}")
            elif isinstance(c, ToolResultContent):
                parts.append(f"{'-'*10}\nTool result (id: {c.tool_use_id}): {c.content}\n{'-'*10}")
        return "\n".join(parts)


class Completion(BaseModel):
    """A single oracle reply, normalised across providers."""

    id: str = ""
    model: str = ""
    content: list[ContentTypes] = Field(default_factory=list)
    stop_reason: StopReason = StopReason.COMPLETE
    usage: TokenUsage = Field(default_factory=TokenUsage)
    raw_response: Any = None
