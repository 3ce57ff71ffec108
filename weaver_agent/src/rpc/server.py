# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
A line-delimited JSON-RPC server exposing a ToolRegistry.

One JSON object per line in each direction. Every parsed request with an id
gets exactly one response; notifications never get one. Requests are
dispatched as independent tasks, so a slow tool does not hold up the ones
behind it, and responses may come out in a different order from the requests.

The server only ever writes protocol messages to its writer. When it runs on
stdout, logging has to go to stderr.
"""

import sys
import json
import signal
import asyncio
import logging

from typing import Any, Protocol

from ..tools.registry import ToolRegistry
from ..types.rpc_types import (
    AGENT_NAME,
    AGENT_VERSION,
    PROTOCOL_VERSION,
    ErrorCode,
    RpcResponse,
)
from ..types.tool_types import InvalidToolInput, ToolResult, UnknownTool

logger = logging.getLogger(__name__)

# Tool outputs can be large; the asyncio default of 64 KiB per line is not enough
STREAM_LIMIT = 16 * 1024 * 1024


class LineWriter(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


class _MethodError(Exception):
    def __init__(self, code: ErrorCode, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message)


def usable_id(value: Any) -> bool:
    """Request ids are integers or strings; JSON booleans are not integers."""
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def tool_output_text(output: Any) -> str:
    if isinstance(output, str):
        return output
    return json.dumps(output, indent=2, default=str)


class ToolServer:
    def __init__(
        self,
        registry: ToolRegistry,
        name: str = AGENT_NAME,
        version: str = AGENT_VERSION,
    ):
        self.registry = registry
        self.name = name
        self.version = version
        self._write_lock = asyncio.Lock()
        self._in_flight: set[asyncio.Task] = set()
        self._read_task: asyncio.Task | None = None
        self._stopping = False

    # ---------------------------------------------------------------------
    # Method handlers
    # ---------------------------------------------------------------------

    async def _initialize(self, params: Any) -> dict:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": {"name": self.name, "version": self.version},
            "capabilities": {"tools": {}},
        }

    async def _list_tools(self, params: Any) -> dict:
        return {"tools": [spec.to_rpc() for spec in self.registry.definitions()]}

    async def _call_tool(self, params: Any) -> dict:
        if not isinstance(params, dict) or not isinstance(params.get("name"), str):
            raise _MethodError(ErrorCode.INVALID_PARAMS, "Invalid params")

        name = params["name"]
        arguments = params.get("arguments")
        try:
            outcome = await self.registry.execute(name, {} if arguments is None else arguments)
        except UnknownTool:
            raise _MethodError(ErrorCode.INVALID_PARAMS, f"Tool not found: {name}")
        except InvalidToolInput as e:
            raise _MethodError(ErrorCode.INVALID_PARAMS, "Invalid params", "; ".join(e.errors))
        except Exception as e:
            logger.error(f"Tool {name} raised: {e}")
            raise _MethodError(ErrorCode.INTERNAL_ERROR, "Tool execution failed", str(e))

        if isinstance(outcome, ToolResult):
            if not outcome.success:
                raise _MethodError(
                    ErrorCode.INTERNAL_ERROR, "Tool execution failed", outcome.errors
                )
            outcome = outcome.output

        return {"content": [{"type": "text", "text": tool_output_text(outcome)}]}

    async def _ping(self, params: Any) -> dict:
        return {"status": "ok"}

    @property
    def methods(self):
        return {
            "initialize": self._initialize,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "ping": self._ping,
        }

    # ---------------------------------------------------------------------
    # Dispatch
    # ---------------------------------------------------------------------

    async def handle_message(self, message: Any) -> RpcResponse | None:
        """Produce the response for one decoded message, or None for a
        notification."""
        if not isinstance(message, dict):
            return RpcResponse.failure(None, ErrorCode.INVALID_REQUEST, "Invalid Request")

        request_id = message.get("id")
        method = message.get("method")
        if request_id is None:
            if method not in ("initialized", "notifications/initialized"):
                logger.debug(f"Ignoring notification {method}")
            return None

        if not usable_id(request_id):
            logger.debug(f"Rejecting request with unusable id {request_id!r}")
            return RpcResponse.failure(None, ErrorCode.INVALID_REQUEST, "Invalid Request")

        if not isinstance(method, str):
            return RpcResponse.failure(request_id, ErrorCode.INVALID_REQUEST, "Invalid Request")

        handler = self.methods.get(method)
        if handler is None:
            return RpcResponse.failure(
                request_id, ErrorCode.METHOD_NOT_FOUND, f"Method not found: {method}"
            )

        try:
            result = await handler(message.get("params"))
        except _MethodError as e:
            return RpcResponse.failure(request_id, e.code, e.message, e.data)
        except Exception as e:
            logger.exception(f"Unhandled error in {method}")
            return RpcResponse.failure(request_id, ErrorCode.INTERNAL_ERROR, str(e))
        return RpcResponse.success(request_id, result)

    async def _send(self, writer: LineWriter, response: RpcResponse) -> None:
        async with self._write_lock:
            writer.write(response.to_line().encode("utf-8"))
            await writer.drain()

    async def _process(self, message: Any, writer: LineWriter) -> None:
        try:
            response = await self.handle_message(message)
        except Exception as e:
            logger.exception("Failed to build a response")
            request_id = message.get("id") if isinstance(message, dict) else None
            if not usable_id(request_id):
                request_id = None
            response = RpcResponse.failure(request_id, ErrorCode.INTERNAL_ERROR, str(e))
        if response is not None:
            await self._send(writer, response)

    def _dispatch(self, line: str, writer: LineWriter) -> None:
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            logger.debug(f"Unparseable line: {e}")
            response = RpcResponse.failure(None, ErrorCode.PARSE_ERROR, "Parse error")
            task = asyncio.create_task(self._send(writer, response))
        else:
            task = asyncio.create_task(self._process(message, writer))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    # ---------------------------------------------------------------------
    # Main loop
    # ---------------------------------------------------------------------

    def stop(self) -> None:
        """Stop reading new requests; those in flight still complete."""
        self._stopping = True
        if self._read_task is not None:
            self._read_task.cancel()

    async def serve(self, reader: asyncio.StreamReader, writer: LineWriter) -> None:
        """Serve requests until EOF on ``reader`` or ``stop()``."""
        logger.info(f"{self.name} serving {len(self.registry)} tools")
        self._stopping = False
        try:
            while not self._stopping:
                self._read_task = asyncio.ensure_future(reader.readline())
                try:
                    raw = await self._read_task
                except asyncio.CancelledError:
                    if self._stopping:
                        break
                    raise
                finally:
                    self._read_task = None

                if not raw:
                    logger.info("Input closed")
                    break
                line = raw.decode("utf-8", errors="replace").strip()
                if line:
                    self._dispatch(line, writer)
        finally:
            if self._in_flight:
                await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def serve_stdio(self) -> None:
        reader, writer = await stdio_streams()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.stop)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            pass
        try:
            await self.serve(reader, writer)
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass


async def stdio_streams() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap this process's stdin and stdout as asyncio streams."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STREAM_LIMIT)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return reader, writer
