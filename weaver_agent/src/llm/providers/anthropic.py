# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Anthropic Messages API provider."""

import logging

from typing import Any
from anthropic import AsyncAnthropic

from .base_provider import BaseProvider
from ...types.llm_types import (
    Completion,
    ContentTypes,
    Message,
    StopReason,
    TextContent,
    TokenUsage,
    ToolCallContent,
)
from ...types.tool_types import ToolSpec

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):
    """Provider implementation for Anthropic's models.

    Our block types already follow the Messages API, so the mapping in both
    directions is mostly a matter of dumping and re-validating.
    """

    def __init__(self, api_key: str, base_url: str | None = None, timeout: float = 120.0):
        self.client = AsyncAnthropic(api_key=api_key, base_url=base_url, timeout=timeout)

    def map_stop_reason(self, response: Any) -> StopReason:
        match getattr(response, "stop_reason", None):
            case "tool_use":
                return StopReason.TOOL_USE
            case "max_tokens":
                return StopReason.LENGTH
            case _:
                return StopReason.COMPLETE

    def _prepare_messages(self, system_prompt: str, messages: list[Message]) -> list[dict]:
        # The system prompt travels as a separate request parameter
        return [m.to_api() for m in messages]

    def prepare_tools(self, tools: list[ToolSpec]) -> list[dict]:
        return [t.to_api() for t in tools]

    def _map_content(self, response: Any) -> list[ContentTypes]:
        content: list[ContentTypes] = []
        for block in response.content:
            if block.type == "text":
                content.append(TextContent(text=block.text))
            elif block.type == "tool_use":
                content.append(
                    ToolCallContent(id=block.id, name=block.name, input=dict(block.input or {}))
                )
            else:
                logger.debug(f"Ignoring unsupported content block type: {block.type}")
        return content

    async def create_completion(
        self,
        system_prompt: str,
        messages: list[Message],
        model: str,
        max_tokens: int,
        tools: list[ToolSpec] | None = None,
    ) -> Completion:
        args: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": self._prepare_messages(system_prompt, messages),
        }
        if tools:
            args["tools"] = self.prepare_tools(tools)

        logger.debug(f"LLM request -> {model} | msgs={len(messages)}")
        response = await self.client.messages.create(**args)

        usage = getattr(response, "usage", None)
        return Completion(
            id=response.id,
            model=response.model,
            content=self._map_content(response),
            stop_reason=self.map_stop_reason(response),
            usage=TokenUsage(
                input_tokens=getattr(usage, "input_tokens", 0) or 0,
                output_tokens=getattr(usage, "output_tokens", 0) or 0,
            ),
            raw_response=response,
        )
