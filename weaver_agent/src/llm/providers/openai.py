# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""OpenAI-compatible chat completions provider."""

import json
import logging

from typing import Any
from openai import AsyncOpenAI

from .base_provider import BaseProvider
from ...types.llm_types import (
    Completion,
    ContentTypes,
    Message,
    StopReason,
    TextContent,
    TokenUsage,
    ToolCallContent,
    ToolResultContent,
)
from ...types.tool_types import ToolSpec

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """Provider for OpenAI and servers that speak its chat completions API."""

    def __init__(self, api_key: str, base_url: str | None = None, timeout: float = 120.0):
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    def map_stop_reason(self, response: Any) -> StopReason:
        finish_reason = response.choices[0].finish_reason if response.choices else None
        if finish_reason == "tool_calls":
            return StopReason.TOOL_USE
        elif finish_reason == "length":
            return StopReason.LENGTH
        return StopReason.COMPLETE

    def prepare_tools(self, tools: list[ToolSpec]) -> list[dict]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.input_schema,
                },
            }
            for t in tools
        ]

    def _prepare_messages(self, system_prompt: str, messages: list[Message]) -> list[dict]:
        oai_messages: list[dict] = [{"role": "system", "content": system_prompt}]
        for msg in messages:
            if msg.role == "assistant":
                msg_content = ""
                tool_calls = []
                for block in msg.blocks:
                    if isinstance(block, TextContent):
                        msg_content += block.text
                    elif isinstance(block, ToolCallContent):
                        tool_calls.append(
                            {
                                "id": block.id,
                                "type": "function",
                                "function": {
                                    "name": block.name,
                                    "arguments": json.dumps(block.input),
                                },
                            }
                        )
                entry: dict[str, Any] = {"role": "assistant", "content": msg_content or None}
                if tool_calls:
                    entry["tool_calls"] = tool_calls
                oai_messages.append(entry)
            else:
                msg_content = ""
                for block in msg.blocks:
                    if isinstance(block, TextContent):
                        msg_content += block.text
                    elif isinstance(block, ToolResultContent):
                        # Tool results are separate messages in this API
                        oai_messages.append(
                            {
                                "role": "tool",
                                "tool_call_id": block.tool_use_id,
                                "content": block.content,
                            }
                        )
                if msg_content:
                    oai_messages.append({"role": "user", "content": msg_content})
        return oai_messages

    def _map_content(self, response: Any) -> list[ContentTypes]:
        content: list[ContentTypes] = []
        if not response.choices:
            return content
        message = response.choices[0].message
        if message.content:
            content.append(TextContent(text=message.content))
        for call in message.tool_calls or []:
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError:
                logger.warning(f"Could not decode arguments for tool call {call.function.name}")
                arguments = {}
            content.append(
                ToolCallContent(
                    id=call.id,
                    name=call.function.name,
                    input=arguments if isinstance(arguments, dict) else {},
                )
            )
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
            "messages": self._prepare_messages(system_prompt, messages),
        }
        if tools:
            args["tools"] = self.prepare_tools(tools)

        response = await self.client.chat.completions.create(**args)

        usage = getattr(response, "usage", None)
        return Completion(
            id=response.id,
            model=response.model,
            content=self._map_content(response),
            stop_reason=self.map_stop_reason(response),
            usage=TokenUsage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
            raw_response=response,
        )
