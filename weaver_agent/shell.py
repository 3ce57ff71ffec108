# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Startup wiring and the interactive shell.

``bootstrap`` builds the tool registry (built-in tools plus whatever the
configured providers offer); ``Shell`` puts an orchestrator on top of it and
interprets the slash commands typed at the prompt.
"""

import asyncio
import logging

from pathlib import Path
from collections import defaultdict

from .src.config import settings
from .src.llm import Oracle
from .src.agents import SUB_AGENTS, Orchestrator, UnknownAgent, quick_route
from .src.rpc import ProviderManager, load_config
from .src.tools import ToolRegistry, register_builtin_tools
from .src.tools.skills import list_skills
from .src.types.llm_types import Message

logger = logging.getLogger(__name__)

HELP_TEXT = """Commands:
  /help                       show this message
  /tools                      list registered tools, grouped by prefix
  /agents                     list the sub-agents
  /skills                     list saved skills
  /status                     show configuration and connected providers
  /direct <agent> <message>   run one sub-agent directly
  /route <message>            show which sub-agent keyword routing would pick
  /quit, /exit                leave the shell

Anything else is sent to the orchestrator."""


async def bootstrap(
    connect_providers: bool = True, providers_file: str | Path | None = None
) -> tuple[ToolRegistry, ProviderManager]:
    registry = ToolRegistry()
    builtin = register_builtin_tools(registry)
    logger.info(f"Registered {builtin} built-in tools")

    manager = ProviderManager(registry)
    if connect_providers:
        path = Path(providers_file or settings.repo_root / settings.PROVIDERS_FILE)
        configs = load_config(path)
        if configs:
            discovered = await manager.connect_all(configs)
            logger.info(f"Discovered {discovered} tools from {len(configs)} providers")
    return registry, manager


def tool_group(name: str) -> str:
    parts = name.split("_")
    if parts[0] == "mcp" and len(parts) > 2:
        return "_".join(parts[:2])
    return parts[0]


def format_tools(registry: ToolRegistry) -> str:
    groups: dict[str, list[str]] = defaultdict(list)
    for spec in registry.definitions():
        groups[tool_group(spec.name)].append(spec.name)

    lines = [f"{len(registry)} tools"]
    for group, names in groups.items():
        lines.append(f"\n[{group}] ({len(names)})")
        lines.extend(f"  {n}" for n in names)
    return "\n".join(lines)


def format_agents() -> str:
    lines = []
    for key, agent in SUB_AGENTS.items():
        lines.append(f"{key}: {agent.description}")
        lines.append(f"    triggers: {', '.join(agent.triggers)}")
    return "\n".join(lines)


class Shell:
    def __init__(
        self,
        registry: ToolRegistry,
        manager: ProviderManager,
        orchestrator: Orchestrator,
    ):
        self.registry = registry
        self.manager = manager
        self.orchestrator = orchestrator
        self.history: list[Message] = []

    @classmethod
    async def create(
        cls, connect_providers: bool = True, providers_file: str | Path | None = None
    ) -> "Shell":
        registry, manager = await bootstrap(connect_providers, providers_file)
        orchestrator = Orchestrator(Oracle.from_settings(), registry)
        return cls(registry, manager, orchestrator)

    async def close(self) -> None:
        await self.manager.disconnect_all()

    def status(self) -> str:
        providers = ", ".join(self.manager.clients) or "none"
        return "\n".join(
            [
                f"LLM provider: {settings.LLM_PROVIDER}",
                f"Model:        {settings.LLM_MODEL}",
                f"Repository:   {settings.repo_root}",
                f"Tools:        {len(self.registry)}",
                f"Providers:    {providers}",
            ]
        )

    async def ask(self, message: str) -> str:
        """Send a message to the orchestrator, keeping the conversation."""
        outcome = await self.orchestrator.run(message, prior_messages=self.history)
        self.history = outcome.conversation_history

        text = outcome.result or "(no answer)"
        if outcome.delegations:
            used = ", ".join(d.agent for d in outcome.delegations)
            text += f"\n\n[delegated to: {used}]"
        return text

    async def handle(self, line: str) -> str | None:
        """Interpret one line of input. Returns the text to show, or None to
        leave the shell."""
        line = line.strip()
        if not line:
            return ""
        if not line.startswith("/"):
            return await self.ask(line)

        command, _, rest = line.partition(" ")
        rest = rest.strip()
        if command in ("/quit", "/exit"):
            return None
        elif command == "/help":
            return HELP_TEXT
        elif command == "/tools":
            return format_tools(self.registry)
        elif command == "/agents":
            return format_agents()
        elif command == "/skills":
            skills = list_skills()
            if not skills:
                return f"No skills saved under {settings.skills_root}"
            return "\n".join(f"{s['file']}: {s['title']}" for s in skills)
        elif command == "/status":
            return self.status()
        elif command == "/route":
            if not rest:
                return "Usage: /route <message>"
            agent = quick_route(rest)
            return f"-> {agent}" if agent else "No keyword match; the orchestrator would decide."
        elif command == "/direct":
            agent, _, message = rest.partition(" ")
            if not agent or not message.strip():
                return "Usage: /direct <agent> <message>"
            try:
                outcome = await self.orchestrator.direct(agent, message.strip())
            except UnknownAgent as e:
                return f"{e}. Available: {', '.join(SUB_AGENTS)}"
            return outcome.result or "(no answer)"
        return f"Unknown command {command}; try /help"

    async def repl(self) -> None:
        print(f"weaver-agent ready: {len(self.registry)} tools. Type /help for commands.")
        while True:
            try:
                line = await asyncio.to_thread(input, "\n> ")
            except (EOFError, KeyboardInterrupt):
                print()
                break
            try:
                output = await self.handle(line)
            except Exception as e:
                logger.debug("Command failed", exc_info=True)
                print(f"Error: {e}")
                continue
            if output is None:
                break
            if output:
                print(output)
