# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import time
import logging

from abc import ABC, abstractmethod
from typing import Any, ClassVar
from pydantic import BaseModel, ConfigDict, ValidationError

from .registry import ToolRegistry
from ..types.tool_types import InvalidToolInput, ToolHandler, ToolResult, ToolSpec

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Every concrete tool class, by name
tool_classes: dict[str, type["BaseTool"]] = {}


def _strip_titles(schema: Any) -> Any:
    """Drop pydantic's auto-generated ``title`` keys, which only add noise to
    the oracle's tool definitions."""
    if isinstance(schema, dict):
        return {
            k: _strip_titles(v)
            for k, v in schema.items()
            if not (k == "title" and isinstance(v, str))
        }
    if isinstance(schema, list):
        return [_strip_titles(v) for v in schema]
    return schema


class BaseTool(BaseModel, ABC):
    """Abstract base class for built-in tools.

    A tool's pydantic fields are its arguments: the JSON schema offered to the
    oracle is generated from them, and an instance is only ever built from
    input that passed validation. ``run`` returns a ToolResult, with
    ``success=False`` for expected failures, and raises only when something
    unexpected goes wrong.
    """

    TOOL_NAME: ClassVar[str]
    TOOL_DESCRIPTION: ClassVar[str]

    model_config = ConfigDict(extra="forbid")

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "TOOL_NAME" in cls.__dict__:
            tool_classes[cls.TOOL_NAME] = cls

    @abstractmethod
    async def run(self) -> ToolResult:
        """Execute the tool's functionality"""
        pass

    def fail(self, errors: str, output: Any = None) -> ToolResult:
        return ToolResult(tool_name=self.TOOL_NAME, success=False, errors=errors, output=output)

    def ok(self, output: Any = None, warnings: str | None = None) -> ToolResult:
        return ToolResult(tool_name=self.TOOL_NAME, success=True, output=output, warnings=warnings)

    @classmethod
    def spec(cls) -> ToolSpec:
        schema = _strip_titles(cls.model_json_schema())
        schema.pop("description", None)
        schema.pop("additionalProperties", None)
        schema.setdefault("properties", {})
        return ToolSpec(
            name=cls.TOOL_NAME,
            description=cls.TOOL_DESCRIPTION,
            input_schema=schema,
        )

    @classmethod
    def handler(cls) -> ToolHandler:
        async def handle(tool_input: dict[str, Any]) -> ToolResult:
            try:
                tool = cls.model_validate(tool_input)
            except ValidationError as e:
                raise InvalidToolInput(
                    cls.TOOL_NAME,
                    [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
                ) from e

            start_time = time.time()
            tool_result = await tool.run()
            tool_result.duration = time.time() - start_time
            if not tool_result.success:
                logger.info(f"{cls.TOOL_NAME} failed: {tool_result.errors}")
            return tool_result

        handle.__name__ = f"handle_{cls.TOOL_NAME}"
        return handle

    @classmethod
    def register(cls, registry: ToolRegistry) -> None:
        registry.register(cls.spec(), cls.handler())
