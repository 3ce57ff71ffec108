# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The orchestrator: a conversational loop whose only tool is delegation.

The oracle sees a single ``delegate_to_agent`` tool. Each call names a
sub-agent from the catalog and a self-contained instruction; the sub-agent
runs its own engine loop and its final text comes back as the tool result.
Several delegations requested in the same turn run concurrently. A
delegation that fails (unknown agent, sub-agent error) is reported to the
oracle inline, never raised.
"""

import asyncio
import logging

from typing import Mapping

from .engine import tool_result_text
from .prompts import ORCHESTRATOR_PROMPT
from .sub_agents import SUB_AGENTS, SubAgentDefinition
from ..llm.oracle import Oracle, extract_text, extract_tool_use
from ..tools.registry import ToolRegistry
from ..types.agent_types import (
    AgentRunResult,
    AgentStatus,
    Delegation,
    OrchestratorResult,
)
from ..types.llm_types import Message, ToolCallContent, ToolResultContent
from ..types.tool_types import ToolSpec

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DELEGATE_TOOL_NAME = "delegate_to_agent"
EMPTY_RESULT = "Sub-agent completed but returned no text."


class UnknownAgent(Exception):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f'Unknown agent "{name}"')


def quick_route(
    message: str, catalog: Mapping[str, SubAgentDefinition] = SUB_AGENTS
) -> str | None:
    """Pick a sub-agent by keyword, without calling the oracle.

    Every trigger phrase found in the lowercased message scores its word
    count, so "unit test" outweighs "test". The first agent in catalog order
    with the strictly highest score wins; no match at all gives None.
    """
    lowered = message.lower()
    best_key, best_score = None, 0
    for key, agent in catalog.items():
        score = sum(len(t.split(" ")) for t in agent.triggers if t in lowered)
        if score > best_score:
            best_key, best_score = key, score
    return best_key


def delegate_tool_spec(catalog: Mapping[str, SubAgentDefinition]) -> ToolSpec:
    return ToolSpec(
        name=DELEGATE_TOOL_NAME,
        description=(
            "Delegate a task to a specialist sub-agent. The sub-agent cannot see "
            "this conversation, so the message must be a complete instruction."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "agent": {
                    "type": "string",
                    "enum": list(catalog),
                    "description": "The sub-agent to delegate to",
                },
                "message": {
                    "type": "string",
                    "description": "The full task description for the sub-agent",
                },
            },
            "required": ["agent", "message"],
        },
    )


class Orchestrator:
    def __init__(
        self,
        oracle: Oracle,
        registry: ToolRegistry,
        catalog: Mapping[str, SubAgentDefinition] = SUB_AGENTS,
        max_iterations: int = 10,
    ):
        self.oracle = oracle
        self.registry = registry
        self.catalog = catalog
        self.max_iterations = max_iterations
        self.tool = delegate_tool_spec(catalog)

    @property
    def system_prompt(self) -> str:
        agent_list = "\n".join(
            f"- {key}: {agent.description}" for key, agent in self.catalog.items()
        )
        return ORCHESTRATOR_PROMPT.format(agent_list=agent_list)

    async def direct(self, agent: str, message: str) -> AgentRunResult:
        """Run one sub-agent on ``message``, bypassing the orchestrator loop."""
        definition = self.catalog.get(agent)
        if definition is None:
            raise UnknownAgent(agent)
        logger.info(f"Direct run of {agent}")
        return await definition.run(self.oracle, self.registry, message)

    async def _delegate(self, call: ToolCallContent) -> tuple[str, Delegation | None]:
        if call.name != DELEGATE_TOOL_NAME:
            return f"Error: Unknown tool: {call.name}", None

        agent = call.input.get("agent")
        message = call.input.get("message") or ""
        definition = self.catalog.get(agent) if isinstance(agent, str) else None
        if definition is None:
            logger.warning(f"Oracle delegated to unknown agent {agent!r}")
            return f'Error: Unknown agent "{agent}"', None

        logger.info(f"Delegating to {agent}")
        try:
            run = await definition.run(self.oracle, self.registry, message)
        except Exception as e:
            logger.error(f"Sub-agent {agent} failed: {e}")
            return f"Error from {agent}: {e}", None

        return run.result or EMPTY_RESULT, Delegation(agent=agent, result=run.result)

    async def run(
        self, user_message: str, prior_messages: list[Message] | None = None
    ) -> OrchestratorResult:
        messages: list[Message] = list(prior_messages or [])
        messages.append(Message(role="user", content=user_message))

        delegations: list[Delegation] = []
        final_text = ""
        iterations = 0
        status = AgentStatus.INCOMPLETE

        while iterations < self.max_iterations:
            iterations += 1
            completion = await self.oracle.call(
                system_prompt=self.system_prompt,
                messages=messages,
                tools=[self.tool],
            )

            text = extract_text(completion)
            if text:
                final_text = text

            requested = extract_tool_use(completion)
            messages.append(Message(role="assistant", content=list(completion.content)))

            if not requested:
                status = AgentStatus.SUCCESS
                break

            outcomes = await asyncio.gather(*(self._delegate(c) for c in requested))

            results: list[ToolResultContent] = []
            for call, (text_out, delegation) in zip(requested, outcomes):
                if delegation is not None:
                    delegations.append(delegation)
                results.append(
                    ToolResultContent(tool_use_id=call.id, content=tool_result_text(text_out))
                )
            messages.append(Message(role="user", content=results))

        if status == AgentStatus.INCOMPLETE:
            logger.warning(
                f"Orchestrator stopped after {iterations} iterations without a final answer"
            )

        return OrchestratorResult(
            result=final_text,
            delegations=delegations,
            conversation_history=messages,
            iterations=iterations,
            status=status,
        )
