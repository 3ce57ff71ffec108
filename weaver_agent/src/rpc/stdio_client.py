# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Client for a tool provider that runs as a child process speaking
line-delimited JSON-RPC on its stdin and stdout.

State machine::

    DISCONNECTED -> CONNECTING -> HANDSHAKING -> READY -> DISCONNECTED

CONNECTING spawns the process and starts the readers, HANDSHAKING sends
``initialize`` and the ``notifications/initialized`` notification. Leaving
READY happens on ``disconnect()`` or when the process exits; either way every
request still waiting for a response fails with RpcConnectionError.

Each request waits at most ``timeout`` seconds. A timeout fails that call only:
the pending entry is dropped, a response arriving later is ignored, and the
connection stays up.
"""

import os
import json
import asyncio
import logging

from enum import Enum
from typing import Any

from ..config import settings
from ..types.rpc_types import (
    AGENT_NAME,
    AGENT_VERSION,
    PROTOCOL_VERSION,
    ProviderConfig,
    RpcConnectionError,
    RpcRemoteError,
    RpcRequest,
    RpcTimeoutError,
)

logger = logging.getLogger(__name__)

STREAM_LIMIT = 16 * 1024 * 1024


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    HANDSHAKING = "handshaking"
    READY = "ready"


class StdioClient:
    def __init__(self, config: ProviderConfig, timeout: float | None = None):
        self.config = config
        self.timeout = settings.RPC_TIMEOUT if timeout is None else timeout
        self.state = ConnectionState.DISCONNECTED
        self.server_info: dict[str, Any] = {}

        self._process: asyncio.subprocess.Process | None = None
        self._readers: list[asyncio.Task] = []
        self._pending: dict[int, asyncio.Future] = {}
        self._next_id = 0

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def connect(self) -> None:
        if self.state != ConnectionState.DISCONNECTED:
            raise RpcConnectionError(f"{self.name}: already {self.state.value}")

        self.state = ConnectionState.CONNECTING
        try:
            self._process = await asyncio.create_subprocess_exec(
                self.config.command,
                *self.config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **self.config.env},
                limit=STREAM_LIMIT,
            )
            self._readers = [
                asyncio.create_task(self._read_stdout(self._process)),
                asyncio.create_task(self._read_stderr(self._process)),
            ]

            self.state = ConnectionState.HANDSHAKING
            self.server_info = await self._request(
                "initialize",
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "capabilities": {},
                    "clientInfo": {"name": AGENT_NAME, "version": AGENT_VERSION},
                },
            )
            await self._notify("notifications/initialized")
        except BaseException:
            await self._teardown("connection failed")
            raise

        self.state = ConnectionState.READY
        logger.info(f"Connected to provider {self.name}")

    async def list_tools(self) -> list[dict[str, Any]]:
        self._require_ready()
        result = await self._request("tools/list", {})
        return (result or {}).get("tools", [])

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        self._require_ready()
        return await self._request("tools/call", {"name": name, "arguments": arguments or {}})

    async def disconnect(self) -> None:
        if self.state == ConnectionState.DISCONNECTED and self._process is None:
            return
        await self._teardown("disconnected")
        logger.info(f"Disconnected from provider {self.name}")

    # ---------------------------------------------------------------------

    def _require_ready(self) -> None:
        if self.state != ConnectionState.READY:
            raise RpcConnectionError(f"{self.name}: not connected ({self.state.value})")

    async def _write(self, request: RpcRequest) -> None:
        process = self._process
        if process is None or process.stdin is None or process.returncode is not None:
            raise RpcConnectionError(f"{self.name}: process is not running")
        try:
            process.stdin.write(request.to_line().encode("utf-8"))
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise RpcConnectionError(f"{self.name}: write failed: {e}") from e

    async def _notify(self, method: str, params: dict | None = None) -> None:
        await self._write(RpcRequest(method=method, params=params))

    async def _request(self, method: str, params: dict | None = None) -> Any:
        self._next_id += 1
        request_id = self._next_id
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._write(RpcRequest(id=request_id, method=method, params=params))
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self.name}: {method} (id {request_id}) timed out")
            raise RpcTimeoutError(method, self.timeout) from None
        finally:
            self._pending.pop(request_id, None)

    def _handle_line(self, line: str) -> None:
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            logger.debug(f"{self.name}: ignoring non-JSON output: {line[:200]}")
            return

        request_id = message.get("id") if isinstance(message, dict) else None
        future = self._pending.get(request_id) if isinstance(request_id, int) else None
        if future is None or future.done():
            logger.debug(f"{self.name}: ignoring unmatched message: {line[:200]}")
            return

        error = message.get("error")
        if error is not None:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            future.set_exception(
                RpcRemoteError(
                    code=error.get("code", 0),
                    message=error.get("message", ""),
                    data=error.get("data"),
                )
            )
        else:
            future.set_result(message.get("result"))

    async def _read_stdout(self, process: asyncio.subprocess.Process) -> None:
        assert process.stdout is not None
        try:
            while True:
                raw = await process.stdout.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").strip()
                if line:
                    self._handle_line(line)
        except ValueError as e:
            # A single line longer than the stream limit
            logger.error(f"{self.name}: oversized output, stopping provider: {e}")
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
        finally:
            if self._process is process:
                await self._on_exit(process)

    async def _read_stderr(self, process: asyncio.subprocess.Process) -> None:
        assert process.stderr is not None
        while True:
            raw = await process.stderr.readline()
            if not raw:
                break
            logger.debug(f"[{self.name} stderr] {raw.decode('utf-8', errors='replace').rstrip()}")

    async def _on_exit(self, process: asyncio.subprocess.Process) -> None:
        code = await process.wait()
        logger.info(f"Provider {self.name} exited with code {code}")
        self._fail_pending(f"{self.name}: process exited with code {code}")
        self._process = None
        self.state = ConnectionState.DISCONNECTED

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(RpcConnectionError(reason))
        self._pending.clear()

    async def _teardown(self, reason: str) -> None:
        process, self._process = self._process, None
        readers, self._readers = self._readers, []

        if process is not None and process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        for task in readers:
            if task is not asyncio.current_task():
                task.cancel()
        if readers:
            await asyncio.gather(*readers, return_exceptions=True)
        if process is not None:
            await process.wait()

        self._fail_pending(f"{self.name}: {reason}")
        self.state = ConnectionState.DISCONNECTED
