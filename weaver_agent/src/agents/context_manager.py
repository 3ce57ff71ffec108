# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Fresh-context execution.

A fresh context is an engine run that starts from an empty conversation
(unless prior messages are explicitly requested), so long-running work does
not drag the caller's history along. Researchers, executors and verifiers
are thin presets over the same call.
"""

import asyncio
import logging

from typing import Iterable
from pydantic import BaseModel, Field

from .engine import run_agent
from .prompts import EXECUTOR_PROMPT, RESEARCHER_PROMPT, VERIFIER_PROMPT
from ..llm.oracle import Oracle
from ..tools.registry import ToolRegistry
from ..types.agent_types import AgentRunResult
from ..types.llm_types import Message

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

RESEARCH_TOOLS = (
    "code_analyze_repo",
    "code_project_tree",
    "code_read_file",
    "code_search",
    "code_list_directory",
    "skills_list",
    "skills_get",
)
EXECUTOR_TOOLS = ("code_*", "skills_*")
VERIFIER_TOOLS = (
    "code_read_file",
    "code_search",
    "code_list_directory",
    "code_run_command",
    "code_git_status",
    "code_git_diff",
)


class ContextOptions(BaseModel):
    max_iterations: int = 20
    # Shell-style patterns are allowed, e.g. "code_*"
    tool_names: list[str] | None = None
    include_prior_messages: bool = False
    prior_messages: list[Message] | None = None


class ParallelTask(BaseModel):
    agent_name: str
    system_prompt: str
    user_message: str
    options: ContextOptions = Field(default_factory=ContextOptions)


def _with_context(task: str, context: str | None, heading: str) -> str:
    if not context:
        return task
    return f"{task}\n\n## {heading}\n{context}"


class ContextManager:
    def __init__(self, oracle: Oracle, registry: ToolRegistry):
        self.oracle = oracle
        self.registry = registry

    def _resolve_tools(self, tool_names: list[str] | None) -> list[str] | None:
        if tool_names is None:
            return None
        return self.registry.match(tool_names)

    async def execute_fresh_context(
        self,
        agent_name: str,
        system_prompt: str,
        user_message: str,
        options: ContextOptions | None = None,
    ) -> AgentRunResult:
        options = options or ContextOptions()
        prior = options.prior_messages if options.include_prior_messages else None

        logger.info(f"[{agent_name}] fresh context starting")
        try:
            result = await run_agent(
                self.oracle,
                self.registry,
                name=agent_name,
                system_prompt=system_prompt,
                user_message=user_message,
                tool_names=self._resolve_tools(options.tool_names),
                max_iterations=options.max_iterations,
                prior_messages=prior,
            )
        except Exception as e:
            logger.error(f"[{agent_name}] fresh context failed: {e}")
            raise

        logger.info(
            f"[{agent_name}] fresh context done: {result.iterations} iterations, "
            f"{len(result.tool_calls)} tool calls"
        )
        return result

    async def execute_parallel_contexts(
        self, tasks: Iterable[ParallelTask]
    ) -> list[AgentRunResult]:
        """Run several fresh contexts at once.

        Results come back in task order. The first failure is raised and the
        remaining results are discarded.
        """
        return list(
            await asyncio.gather(
                *(
                    self.execute_fresh_context(
                        t.agent_name, t.system_prompt, t.user_message, t.options
                    )
                    for t in tasks
                )
            )
        )

    async def spawn_researcher(self, topic: str, context: str | None = None) -> AgentRunResult:
        return await self.execute_fresh_context(
            "researcher",
            RESEARCHER_PROMPT,
            _with_context(f"Research the following: {topic}", context, "Context"),
            ContextOptions(max_iterations=20, tool_names=list(RESEARCH_TOOLS)),
        )

    async def spawn_executor(self, plan: str, context: str | None = None) -> AgentRunResult:
        return await self.execute_fresh_context(
            "executor",
            EXECUTOR_PROMPT,
            _with_context(f"Execute this task:\n{plan}", context, "Context"),
            ContextOptions(max_iterations=30, tool_names=list(EXECUTOR_TOOLS)),
        )

    async def spawn_verifier(self, expected: str, context: str | None = None) -> AgentRunResult:
        return await self.execute_fresh_context(
            "verifier",
            VERIFIER_PROMPT,
            _with_context(f"Verify that the following is complete:\n{expected}", context, "What was done"),
            ContextOptions(max_iterations=10, tool_names=list(VERIFIER_TOOLS)),
        )

    async def spawn_parallel_executors(self, plans: list[str]) -> list[AgentRunResult]:
        return await self.execute_parallel_contexts(
            ParallelTask(
                agent_name=f"executor-{i + 1}",
                system_prompt=EXECUTOR_PROMPT,
                user_message=f"Execute this task:\n{plan}",
                options=ContextOptions(max_iterations=30, tool_names=list(EXECUTOR_TOOLS)),
            )
            for i, plan in enumerate(plans)
        )
