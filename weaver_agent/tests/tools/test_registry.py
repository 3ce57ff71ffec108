# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the ToolRegistry."""
import pytest
from unittest.mock import AsyncMock

from src.tools.registry import ToolRegistry
from src.types.tool_types import InvalidToolInput, ToolSpec, UnknownTool


def make_spec(name: str, **schema) -> ToolSpec:
    if schema:
        return ToolSpec(name=name, description=f"{name} tool", input_schema=schema)
    return ToolSpec(name=name, description=f"{name} tool")


ECHO_SCHEMA = {
    "type": "object",
    "properties": {
        "text": {"type": "string"},
        "count": {"type": "integer"},
        "mode": {"type": "string", "enum": ["upper", "lower"]},
    },
    "required": ["text"],
}


class TestToolRegistry:
    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        with pytest.raises(UnknownTool) as exc:
            await registry.execute("nope", {})
        assert exc.value.name == "nope"

    @pytest.mark.asyncio
    async def test_execute_returns_handler_result(self, registry):
        handler = AsyncMock(return_value={"ok": True})
        registry.register(make_spec("echo"), handler)

        result = await registry.execute("echo", {"x": 1})

        assert result == {"ok": True}
        handler.assert_awaited_once_with({"x": 1})

    @pytest.mark.asyncio
    async def test_none_input_is_empty_object(self, registry):
        handler = AsyncMock(return_value="done")
        registry.register(make_spec("noargs"), handler)

        assert await registry.execute("noargs") == "done"
        handler.assert_awaited_once_with({})

    @pytest.mark.asyncio
    async def test_register_overwrites(self, registry):
        first = AsyncMock(return_value="first")
        second = AsyncMock(return_value="second")
        registry.register(make_spec("tool"), first)
        registry.register(ToolSpec(name="tool", description="newer"), second)

        assert await registry.execute("tool", {}) == "second"
        assert registry.get("tool").description == "newer"
        assert len(registry) == 1
        first.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_exceptions_propagate(self, registry):
        registry.register(make_spec("boom"), AsyncMock(side_effect=RuntimeError("kaput")))

        with pytest.raises(RuntimeError, match="kaput"):
            await registry.execute("boom", {})

    def test_definitions_full_catalog(self, registry):
        for name in ["a", "b", "c"]:
            registry.register(make_spec(name), AsyncMock())

        assert [s.name for s in registry.definitions()] == ["a", "b", "c"]
        assert [s.name for s in registry.definitions([])] == ["a", "b", "c"]
        assert [s.name for s in registry.definitions(None)] == ["a", "b", "c"]

    def test_definitions_for_follows_filter_order(self, registry):
        for name in ["a", "b", "c"]:
            registry.register(make_spec(name), AsyncMock())

        specs = registry.definitions_for(["c", "missing", "a", "c"])

        assert [s.name for s in specs] == ["c", "a"]
        assert [s.name for s in registry.definitions(["b"])] == ["b"]

    def test_match_patterns(self, registry):
        for name in ["code_read_file", "code_search", "skills_get", "jira_search"]:
            registry.register(make_spec(name), AsyncMock())

        assert registry.match(["code_*"]) == ["code_read_file", "code_search"]
        assert registry.match(["*_search", "code_*"]) == [
            "code_search",
            "jira_search",
            "code_read_file",
        ]
        assert registry.match(["skills_get", "nothing_*"]) == ["skills_get"]

    def test_membership_and_unregister(self, registry):
        registry.register(make_spec("tool"), AsyncMock())

        assert "tool" in registry
        assert registry.has("tool")
        assert registry.names() == ["tool"]
        assert list(registry) == ["tool"]

        assert registry.unregister("tool") is True
        assert registry.unregister("tool") is False
        assert "tool" not in registry
        assert registry.get("tool") is None

    def test_register_all(self, registry):
        count = registry.register_all(
            [(make_spec("a"), AsyncMock()), (make_spec("b"), AsyncMock())]
        )
        assert count == 2
        assert registry.names() == ["a", "b"]

    def test_register_all_is_all_or_nothing(self, registry):
        registry.register(make_spec("existing"), AsyncMock())
        broken = make_spec("broken", type="object", properties=["not", "a", "mapping"])

        with pytest.raises(AttributeError):
            registry.register_all([(make_spec("fine"), AsyncMock()), (broken, AsyncMock())])

        assert registry.names() == ["existing"]

    def test_registries_are_independent(self):
        first, second = ToolRegistry(), ToolRegistry()
        first.register(make_spec("only_here"), AsyncMock())
        assert "only_here" not in second


class TestInputValidation:
    @pytest.fixture
    def echo(self, registry):
        handler = AsyncMock(return_value="ok")
        registry.register(make_spec("echo", **ECHO_SCHEMA), handler)
        return handler

    @pytest.mark.asyncio
    async def test_valid_input(self, registry, echo):
        assert await registry.execute("echo", {"text": "hi", "count": 2, "mode": "upper"}) == "ok"
        echo.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_required_field(self, registry, echo):
        with pytest.raises(InvalidToolInput) as exc:
            await registry.execute("echo", {"count": 1})
        assert exc.value.name == "echo"
        assert any("text" in e for e in exc.value.errors)
        echo.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_wrong_type(self, registry, echo):
        with pytest.raises(InvalidToolInput):
            await registry.execute("echo", {"text": "hi", "count": "two"})
        with pytest.raises(InvalidToolInput):
            await registry.execute("echo", {"text": 42})
        echo.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enum_violation(self, registry, echo):
        with pytest.raises(InvalidToolInput):
            await registry.execute("echo", {"text": "hi", "mode": "sideways"})

    @pytest.mark.asyncio
    async def test_non_object_input(self, registry, echo):
        with pytest.raises(InvalidToolInput):
            await registry.execute("echo", ["text"])

    def test_validate_without_executing(self, registry, echo):
        registry.validate("echo", {"text": "fine", "extra": True})
        with pytest.raises(InvalidToolInput):
            registry.validate("echo", {})
        with pytest.raises(UnknownTool):
            registry.validate("missing", {})
