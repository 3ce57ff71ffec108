# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from .server import ToolServer, stdio_streams
from .stdio_client import ConnectionState, StdioClient
from .sse_client import SSEClient
from .manager import ProviderManager, load_config

__all__ = [
    "ToolServer",
    "stdio_streams",
    "ConnectionState",
    "StdioClient",
    "SSEClient",
    "ProviderManager",
    "load_config",
]
