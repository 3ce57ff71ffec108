# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""LLM integration module.

This module provides a single ``Oracle`` interface over the supported LLM
providers (Anthropic and OpenAI-compatible APIs).
"""

import logging

from .oracle import Oracle, OracleError, create_provider, extract_text, extract_tool_use

# Quieten LLM API call logs to make stdout more useful
logging.getLogger("httpx").setLevel(logging.WARNING)

__all__ = [
    "Oracle",
    "OracleError",
    "create_provider",
    "extract_text",
    "extract_tool_use",
]
