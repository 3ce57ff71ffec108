# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The agent engine: one bounded conversational loop against the oracle.

Each iteration calls the oracle with the conversation so far. If the reply
asks for tools, every requested call is executed concurrently, and the
results go back to the oracle as a single user turn before the next call. The
loop ends when the oracle answers without asking for tools, or when the
iteration budget runs out. Running out of budget is not an error: the run
returns the last text it saw and is marked incomplete.

A failing tool never aborts a run; its error is handed back to the oracle as
the tool's result. A failing oracle call does abort the run.
"""

import json
import asyncio
import logging

from typing import Any, Iterable

from ..config import settings
from ..llm.oracle import Oracle, extract_text, extract_tool_use
from ..tools.registry import ToolRegistry
from ..types.agent_types import AgentRunResult, AgentStatus
from ..types.llm_types import Message, ToolCallContent, ToolResultContent
from ..types.tool_types import ToolCallRecord, ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def tool_result_text(payload: Any) -> str:
    """Serialise a tool outcome for a tool_result block."""
    if isinstance(payload, str):
        return payload
    return json.dumps(payload, default=str)


async def execute_tool_call(registry: ToolRegistry, call: ToolCallContent) -> Any:
    """Run one requested tool call and return the payload for the oracle.

    Exceptions are folded into ``{"error": message}`` so that sibling calls in
    the same batch, and the loop itself, carry on.
    """
    try:
        outcome = await registry.execute(call.name, call.input)
    except Exception as e:
        logger.warning(f"Tool {call.name} raised: {e}")
        return {"error": str(e)}

    if isinstance(outcome, ToolResult):
        return outcome.payload()
    return outcome


async def run_agent(
    oracle: Oracle,
    registry: ToolRegistry,
    *,
    name: str,
    system_prompt: str,
    user_message: str,
    tool_names: Iterable[str] | None = None,
    max_iterations: int | None = None,
    prior_messages: list[Message] | None = None,
) -> AgentRunResult:
    """Run the agent loop until the oracle stops requesting tools.

    Args:
        oracle: the LLM client; its errors propagate out of this function.
        registry: where requested tools are looked up and executed.
        name: label used in logs.
        tool_names: restricts the tools offered to the oracle. When None, the
            whole registry is offered.
        max_iterations: upper bound on oracle calls; defaults to
            ``settings.MAX_ITERATIONS``.
        prior_messages: conversation prefix placed before the new user message.
    """
    if max_iterations is None:
        max_iterations = settings.MAX_ITERATIONS

    tools = (
        registry.definitions_for(tool_names)
        if tool_names is not None
        else registry.definitions()
    )

    messages: list[Message] = list(prior_messages or [])
    messages.append(Message(role="user", content=user_message))

    tool_calls: list[ToolCallRecord] = []
    final_text = ""
    iterations = 0
    status = AgentStatus.INCOMPLETE

    logger.info(f"[{name}] starting with {len(tools)} tools, budget {max_iterations}")

    while iterations < max_iterations:
        iterations += 1
        completion = await oracle.call(
            system_prompt=system_prompt,
            messages=messages,
            tools=tools or None,
        )

        text = extract_text(completion)
        if text:
            final_text = text

        requested = extract_tool_use(completion)
        messages.append(Message(role="assistant", content=list(completion.content)))

        if not requested:
            status = AgentStatus.SUCCESS
            break

        logger.info(
            f"[{name}] iteration {iterations}: calling {', '.join(c.name for c in requested)}"
        )
        payloads = await asyncio.gather(
            *(execute_tool_call(registry, call) for call in requested)
        )

        results: list[ToolResultContent] = []
        for call, payload in zip(requested, payloads):
            tool_calls.append(ToolCallRecord(name=call.name, input=call.input))
            results.append(
                ToolResultContent(tool_use_id=call.id, content=tool_result_text(payload))
            )
        messages.append(Message(role="user", content=results))

    if status == AgentStatus.INCOMPLETE:
        logger.warning(
            f"[{name}] stopped after {iterations} iterations without a final answer"
        )

    return AgentRunResult(
        result=final_text,
        messages=messages,
        tool_calls=tool_calls,
        iterations=iterations,
        status=status,
    )
