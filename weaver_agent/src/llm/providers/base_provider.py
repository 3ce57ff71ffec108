# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Base provider interface for LLM interactions."""

import logging

from abc import ABC, abstractmethod
from typing import Any

from ...types.llm_types import Completion, Message, StopReason
from ...types.tool_types import ToolSpec

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """Abstract base class for LLM providers.

    A provider translates our conversation types into one vendor's API and
    normalises the reply into a Completion. It does no retrying and no error
    translation: SDK exceptions propagate to the caller.
    """

    def map_stop_reason(self, response: Any) -> StopReason:
        """Map provider-specific stop information to standard format."""
        # Default implementation assumes a normal completion
        return StopReason.COMPLETE

    @abstractmethod
    def _prepare_messages(self, system_prompt: str, messages: list[Message]) -> Any:
        """Maps our framework-specific message list into provider-specific messages

        Note that this might involve agglomerating content blocks, or splitting
        out into multiple messages.
        """
        pass

    @abstractmethod
    def prepare_tools(self, tools: list[ToolSpec]) -> list[dict]:
        """Converts tool specs into this provider's native tool schema."""
        pass

    @abstractmethod
    async def create_completion(
        self,
        system_prompt: str,
        messages: list[Message],
        model: str,
        max_tokens: int,
        tools: list[ToolSpec] | None = None,
    ) -> Completion:
        """Create a completion using this provider."""
        pass
