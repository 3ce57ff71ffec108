# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from enum import Enum
from pydantic import BaseModel, Field

from .llm_types import Message
from .tool_types import ToolCallRecord


class AgentStatus(str, Enum):
    """Possible terminal states of an agent loop."""

    SUCCESS = "success"
    INCOMPLETE = "incomplete"  # iteration budget ran out before a final answer


class AgentRunResult(BaseModel):
    """Outcome of one bounded agent loop.

    A run that exhausted its budget still returns normally, with whatever
    text the oracle last produced; ``status`` tells the two apart.
    """

    result: str = ""
    messages: list[Message] = Field(default_factory=list)
    tool_calls: list[ToolCallRecord] = Field(default_factory=list)
    iterations: int = 0
    status: AgentStatus = AgentStatus.SUCCESS

    @property
    def exhausted(self) -> bool:
        return self.status == AgentStatus.INCOMPLETE


class Delegation(BaseModel):
    agent: str
    result: str


class OrchestratorResult(BaseModel):
    result: str = ""
    delegations: list[Delegation] = Field(default_factory=list)
    conversation_history: list[Message] = Field(default_factory=list)
    iterations: int = 0
    status: AgentStatus = AgentStatus.SUCCESS
