# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Client for a tool provider reachable over HTTP.

Every operation is one POST and one JSON response, so there is no request-id
bookkeeping and no handshake state beyond holding an open HTTP client.
"""

import logging

import httpx

from typing import Any

from ..config import settings
from ..types.rpc_types import (
    AGENT_NAME,
    AGENT_VERSION,
    PROTOCOL_VERSION,
    ProviderConfig,
    RpcConnectionError,
    RpcTimeoutError,
)

logger = logging.getLogger(__name__)


class SSEClient:
    def __init__(
        self,
        config: ProviderConfig,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.base_url = (config.url or "").rstrip("/")
        self.timeout = settings.RPC_TIMEOUT if timeout is None else timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        if self._client is None:
            raise RpcConnectionError(f"{self.name}: not connected")
        try:
            return await self._client.post(f"{self.base_url}/{path}", json=body)
        except httpx.TimeoutException as e:
            raise RpcTimeoutError(path, self.timeout) from e
        except httpx.HTTPError as e:
            raise RpcConnectionError(f"{self.name}: {e}") from e

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Content-Type": "application/json"},
        )
        try:
            response = await self._post(
                "initialize",
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": {"name": AGENT_NAME, "version": AGENT_VERSION},
                },
            )
            if response.status_code >= 300:
                raise RpcConnectionError(
                    f"{self.name}: initialize returned HTTP {response.status_code}"
                )
        except BaseException:
            await self.disconnect()
            raise
        logger.info(f"Connected to HTTP provider {self.name}")

    async def list_tools(self) -> list[dict[str, Any]]:
        response = await self._post("tools/list", {})
        body = response.json()
        return (body.get("tools") if isinstance(body, dict) else None) or []

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        response = await self._post("tools/call", {"name": name, "arguments": arguments or {}})
        return response.json()

    async def disconnect(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()
