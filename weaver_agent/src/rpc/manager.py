# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Discovery of foreign tool providers.

Each configured provider is connected, asked for its tools once, and every
tool is registered as ``mcp_<provider>_<tool>`` with a handler that forwards
the call. To the agent loops these are ordinary tools.

A provider that cannot be reached contributes zero tools and never stops the
others from connecting.
"""

import json
import asyncio
import logging

from pathlib import Path
from typing import Any, Callable, Protocol
from pydantic import ValidationError

from .sse_client import SSEClient
from .stdio_client import StdioClient
from ..tools.registry import ToolRegistry
from ..types.rpc_types import ProviderConfig, Transport
from ..types.tool_types import ToolSpec, empty_object_schema

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

TOOL_PREFIX = "mcp"


class ProviderClient(Protocol):
    async def connect(self) -> None: ...

    async def list_tools(self) -> list[dict[str, Any]]: ...

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any: ...

    async def disconnect(self) -> None: ...


def default_client_factory(config: ProviderConfig) -> ProviderClient:
    if config.transport == Transport.SSE:
        return SSEClient(config)
    return StdioClient(config)


def load_config(path: str | Path) -> list[ProviderConfig]:
    """Read provider entries from a JSON file.

    The entries live under ``mcpServers`` (or ``servers``), either as a list
    of objects with a ``name`` or as an object keyed by name. A missing file
    means no providers. Entries that fail validation are logged and skipped.
    """
    path = Path(path).resolve()
    if not path.exists():
        logger.info(f"No provider config found at {path}, skipping")
        return []

    data = json.loads(path.read_text(encoding="utf-8"))
    entries = data.get("mcpServers") or data.get("servers") or []
    if isinstance(entries, dict):
        entries = [{"name": name, **entry} for name, entry in entries.items()]

    configs: list[ProviderConfig] = []
    for entry in entries:
        try:
            configs.append(ProviderConfig.model_validate(entry))
        except ValidationError as e:
            logger.error(f"Skipping invalid provider entry {entry!r}: {e}")
    return configs


def provider_tool_spec(server: str, tool: dict[str, Any]) -> ToolSpec:
    schema = tool.get("inputSchema") or tool.get("input_schema") or empty_object_schema()
    return ToolSpec(
        name=f"{TOOL_PREFIX}_{server}_{tool['name']}",
        description=f"[MCP:{server}] {tool.get('description') or tool['name']}",
        input_schema=schema,
    )


class ProviderManager:
    def __init__(
        self,
        registry: ToolRegistry,
        client_factory: Callable[[ProviderConfig], ProviderClient] = default_client_factory,
    ):
        self.registry = registry
        self.client_factory = client_factory
        self.clients: dict[str, ProviderClient] = {}

    load_config = staticmethod(load_config)

    async def connect_server(self, config: ProviderConfig) -> int:
        """Connect one provider and register its tools; returns the number
        registered, 0 on any failure."""
        client = self.client_factory(config)
        try:
            await client.connect()
            self.clients[config.name] = client

            tools = await client.list_tools()
            logger.info(f"Provider {config.name} offers {len(tools)} tools")
            # Build every entry first so a malformed tool registers nothing
            entries = [
                (provider_tool_spec(config.name, tool), self._forwarder(client, tool["name"]))
                for tool in tools
            ]
            return self.registry.register_all(entries)
        except Exception as e:
            logger.error(f'Failed to connect provider "{config.name}": {e}')
            self.clients.pop(config.name, None)
            await self._close(config.name, client)
            return 0

    @staticmethod
    def _forwarder(client: ProviderClient, tool_name: str):
        async def handler(tool_input: dict[str, Any]) -> Any:
            return await client.call_tool(tool_name, tool_input)

        return handler

    async def connect_all(self, configs: list[ProviderConfig]) -> int:
        counts = await asyncio.gather(*(self.connect_server(c) for c in configs))
        return sum(counts)

    async def disconnect_all(self) -> None:
        clients, self.clients = self.clients, {}
        for name, client in clients.items():
            logger.info(f"Disconnecting provider {name}")
            await self._close(name, client)

    @staticmethod
    async def _close(name: str, client: ProviderClient) -> None:
        try:
            await client.disconnect()
        except Exception as e:
            logger.warning(f"Error disconnecting provider {name}: {e}")
