# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Wire types for the line-delimited JSON-RPC tool protocol."""

import json

from enum import Enum, IntEnum
from typing import Any
from pydantic import BaseModel, Field, model_validator

PROTOCOL_VERSION = "2024-11-05"
JSONRPC = "2.0"

AGENT_NAME = "weaver-agent"
AGENT_VERSION = "0.1.0"


class ErrorCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class RpcRequest(BaseModel):
    """A request or, when ``id`` is absent, a notification."""

    jsonrpc: str = JSONRPC
    id: int | str | None = None
    method: str
    params: Any = None

    def to_line(self) -> str:
        data = self.model_dump(exclude_none=True)
        if self.params is None:
            data["params"] = {}
        return _dump_line(data)


class RpcErrorObject(BaseModel):
    code: int
    message: str
    data: Any = None


class RpcResponse(BaseModel):
    jsonrpc: str = JSONRPC
    id: int | str | None = None
    result: Any = None
    error: RpcErrorObject | None = None

    @classmethod
    def success(cls, id: int | str | None, result: Any) -> "RpcResponse":
        return cls(id=id, result=result)

    @classmethod
    def failure(
        cls, id: int | str | None, code: int, message: str, data: Any = None
    ) -> "RpcResponse":
        return cls(id=id, error=RpcErrorObject(code=int(code), message=message, data=data))

    def to_line(self) -> str:
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump(exclude_none=True)
        else:
            data["result"] = self.result
        return _dump_line(data)


def _dump_line(data: dict[str, Any]) -> str:
    return json.dumps(data, default=str) + "\n"


class Transport(str, Enum):
    STDIO = "stdio"
    SSE = "sse"


class ProviderConfig(BaseModel):
    """One entry in the tool-provider configuration file."""

    name: str
    transport: Transport = Transport.STDIO
    command: str | None = None
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    url: str | None = None

    @model_validator(mode="after")
    def check_endpoint(self) -> "ProviderConfig":
        if self.transport == Transport.STDIO and not self.command:
            raise ValueError(f"stdio provider {self.name!r} needs a command")
        if self.transport == Transport.SSE and not self.url:
            raise ValueError(f"sse provider {self.name!r} needs a url")
        return self


class RpcError(Exception):
    """Base class for client-side transport failures."""


class RpcConnectionError(RpcError):
    pass


class RpcTimeoutError(RpcError):
    def __init__(self, method: str, timeout: float):
        self.method = method
        self.timeout = timeout
        super().__init__(f"Request timed out after {timeout:g}s: {method}")


class RpcRemoteError(RpcError):
    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.message = message
        self.data = data
        super().__init__(message or f"Remote error {code}")
