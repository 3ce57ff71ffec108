# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The oracle: the one place the agent loops talk to an LLM.

``Oracle.call`` is stateless. Everything the model should see, the system
prompt, the whole conversation and the tools on offer, is passed in on every
call.
"""

import logging

from .providers import AnthropicProvider, BaseProvider, OpenAIProvider
from ..config import Settings, settings as default_settings
from ..types.llm_types import Completion, Message, TextContent, ToolCallContent
from ..types.tool_types import ToolSpec

logger = logging.getLogger(__name__)

ANTHROPIC_BASE_URL = "https://api.anthropic.com"


class OracleError(Exception):
    """The LLM backend could not be reached or rejected the request."""


def create_provider(settings: Settings) -> BaseProvider:
    provider = settings.LLM_PROVIDER.lower()
    if provider == "anthropic":
        return AnthropicProvider(
            api_key=settings.LLM_API_KEY,
            base_url=settings.LLM_BASE_URL or None,
            timeout=settings.LLM_TIMEOUT,
        )
    elif provider == "openai":
        # The default base URL points at Anthropic; let the SDK pick its own
        base_url = settings.LLM_BASE_URL
        if not base_url or base_url.rstrip("/") == ANTHROPIC_BASE_URL:
            base_url = None
        return OpenAIProvider(
            api_key=settings.LLM_API_KEY,
            base_url=base_url,
            timeout=settings.LLM_TIMEOUT,
        )
    raise ValueError(f"Unsupported LLM provider: {settings.LLM_PROVIDER}")


class Oracle:
    def __init__(self, provider: BaseProvider, model: str, max_tokens: int = 4096):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "Oracle":
        return cls(
            provider=create_provider(settings),
            model=settings.LLM_MODEL,
            max_tokens=settings.LLM_MAX_TOKENS,
        )

    async def call(
        self,
        system_prompt: str,
        messages: list[Message],
        tools: list[ToolSpec] | None = None,
        max_tokens: int | None = None,
    ) -> Completion:
        try:
            return await self.provider.create_completion(
                system_prompt=system_prompt,
                messages=messages,
                model=self.model,
                max_tokens=max_tokens or self.max_tokens,
                tools=tools or None,
            )
        except Exception as e:
            logger.error(f"LLM call to {self.model} failed: {e}")
            raise OracleError(f"LLM call to {self.model} failed: {e}") from e


def extract_text(completion: Completion) -> str:
    """Join the completion's text blocks with newlines."""
    return "\n".join(b.text for b in completion.content if isinstance(b, TextContent))


def extract_tool_use(completion: Completion) -> list[ToolCallContent]:
    return [b for b in completion.content if isinstance(b, ToolCallContent)]
