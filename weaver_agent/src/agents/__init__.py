# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .engine import run_agent, execute_tool_call
from .sub_agents import SUB_AGENTS, SubAgentDefinition, get_provider_tool_names
from .orchestrator import Orchestrator, UnknownAgent, quick_route
from .context_manager import ContextManager, ContextOptions, ParallelTask

__all__ = [
    "run_agent",
    "execute_tool_call",
    "SUB_AGENTS",
    "SubAgentDefinition",
    "get_provider_tool_names",
    "Orchestrator",
    "UnknownAgent",
    "quick_route",
    "ContextManager",
    "ContextOptions",
    "ParallelTask",
]
