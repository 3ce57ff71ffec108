# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The tool registry: an in-memory catalog mapping tool names to a spec and an
async handler.

A registry is an ordinary object. The shell builds one at startup and hands it
to the agent loops, the RPC server and the provider manager, so tests (or two
shells in one process) never share catalogs by accident.

Everything here runs on one event loop. ``register`` may be called while
agents are running (a provider connecting late, say), and nothing relies on a
catalog staying unchanged across an ``await``.
"""

import logging

from fnmatch import fnmatchcase
from typing import Any, Iterable, Iterator
from pydantic import BaseModel

from .validation import compile_schema, validation_errors
from ..types.tool_types import (
    InvalidToolInput,
    ToolHandler,
    ToolSpec,
    UnknownTool,
)

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("spec", "handler", "input_model")

    def __init__(self, spec: ToolSpec, handler: ToolHandler):
        self.spec = spec
        self.handler = handler
        self.input_model: type[BaseModel] = compile_schema(spec.name, spec.input_schema)


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, _Entry] = {}

    def register(self, spec: ToolSpec, handler: ToolHandler) -> None:
        """Store ``handler`` under ``spec.name``; an existing entry is replaced."""
        if spec.name in self._tools:
            logger.debug(f"Overwriting tool registration: {spec.name}")
        self._tools[spec.name] = _Entry(spec, handler)

    def register_all(self, entries: Iterable[tuple[ToolSpec, ToolHandler]]) -> int:
        """Register several tools at once: either all of them or, if any
        schema fails to compile, none."""
        built = [_Entry(spec, handler) for spec, handler in entries]
        for entry in built:
            if entry.spec.name in self._tools:
                logger.debug(f"Overwriting tool registration: {entry.spec.name}")
            self._tools[entry.spec.name] = entry
        return len(built)

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> ToolSpec | None:
        entry = self._tools.get(name)
        return entry.spec if entry else None

    def has(self, name: str) -> bool:
        return name in self._tools

    def names(self) -> list[str]:
        return list(self._tools)

    def validate(self, name: str, tool_input: Any) -> None:
        """Raise InvalidToolInput if ``tool_input`` does not fit the tool's schema."""
        entry = self._lookup(name)
        errors = validation_errors(entry.input_model, tool_input)
        if errors:
            raise InvalidToolInput(name, errors)

    async def execute(self, name: str, tool_input: dict[str, Any] | None = None) -> Any:
        """Validate and run a tool, returning whatever its handler returns.

        Raises:
            UnknownTool: no tool is registered under ``name``.
            InvalidToolInput: the input does not match the tool's schema.

        Exceptions raised by the handler itself are not caught here.
        """
        entry = self._lookup(name)
        tool_input = {} if tool_input is None else tool_input
        errors = validation_errors(entry.input_model, tool_input)
        if errors:
            raise InvalidToolInput(name, errors)

        logger.debug(f"Executing tool {name}")
        return await entry.handler(tool_input)

    def definitions(self, names: Iterable[str] | None = None) -> list[ToolSpec]:
        """All specs in registration order, or the named subset when ``names``
        is non-empty."""
        if names:
            return self.definitions_for(names)
        return [entry.spec for entry in self._tools.values()]

    def definitions_for(self, names: Iterable[str]) -> list[ToolSpec]:
        """Specs for ``names``, in the order the names were given.

        Unknown names are skipped and repeated names are returned once.
        """
        specs: list[ToolSpec] = []
        seen: set[str] = set()
        for name in names:
            if name in seen:
                continue
            seen.add(name)
            entry = self._tools.get(name)
            if entry is not None:
                specs.append(entry.spec)
        return specs

    def match(self, patterns: Iterable[str]) -> list[str]:
        """Expand shell-style patterns (``code_*``) into registered names,
        in pattern order, without duplicates."""
        matched: list[str] = []
        for pattern in patterns:
            for name in self._tools:
                if fnmatchcase(name, pattern) and name not in matched:
                    matched.append(name)
        return matched

    def _lookup(self, name: str) -> _Entry:
        entry = self._tools.get(name)
        if entry is None:
            raise UnknownTool(name)
        return entry

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tools))
