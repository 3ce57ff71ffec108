# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the bounded agent loop."""
import json
import asyncio
import pytest

from unittest.mock import AsyncMock

from conftest import ScriptedOracle, text_reply, tool_reply
from src.agents.engine import execute_tool_call, run_agent, tool_result_text
from src.llm.oracle import OracleError
from src.types.agent_types import AgentStatus
from src.types.llm_types import Message, ToolCallContent, ToolResultContent
from src.types.tool_types import ToolResult, ToolSpec


def add_tool(registry, name, handler, **schema):
    spec = ToolSpec(name=name, description=name, input_schema=schema) if schema else ToolSpec(name=name)
    registry.register(spec, handler)


class TestRunAgent:
    @pytest.mark.asyncio
    async def test_single_iteration_without_tools(self, registry):
        oracle = ScriptedOracle([text_reply("All done")])

        result = await run_agent(
            oracle, registry, name="t", system_prompt="sys", user_message="hi"
        )

        assert result.result == "All done"
        assert result.iterations == 1
        assert result.tool_calls == []
        assert result.status == AgentStatus.SUCCESS
        assert [m.role for m in result.messages] == ["user", "assistant"]
        assert oracle.calls[0]["system_prompt"] == "sys"
        # Empty tool list is sent as None
        assert oracle.calls[0]["tools"] is None

    @pytest.mark.asyncio
    async def test_budget_exhaustion_is_soft(self, registry):
        add_tool(registry, "loop", AsyncMock(return_value="again"))
        replies = [tool_reply((f"c{i}", "loop", {}), text=f"step {i}") for i in range(3)]
        oracle = ScriptedOracle(replies)

        result = await run_agent(
            oracle, registry, name="t", system_prompt="s", user_message="go", max_iterations=3
        )

        assert len(oracle.calls) == 3
        assert result.iterations == 3
        assert result.exhausted
        assert result.result == "step 2"
        assert len(result.tool_calls) == 3

    @pytest.mark.asyncio
    async def test_exhaustion_without_text_returns_empty(self, registry):
        add_tool(registry, "loop", AsyncMock(return_value="again"))
        oracle = ScriptedOracle([tool_reply(("c1", "loop", {}))])

        result = await run_agent(
            oracle, registry, name="t", system_prompt="s", user_message="go", max_iterations=1
        )

        assert result.result == ""
        assert result.status == AgentStatus.INCOMPLETE

    @pytest.mark.asyncio
    async def test_failure_isolation_in_batch(self, registry):
        add_tool(registry, "good", AsyncMock(return_value={"value": 42}))
        add_tool(registry, "bad", AsyncMock(side_effect=RuntimeError("broken")))
        oracle = ScriptedOracle(
            [
                tool_reply(("id-good", "good", {}), ("id-bad", "bad", {}), ("id-missing", "missing", {})),
                text_reply("recovered"),
            ]
        )

        result = await run_agent(oracle, registry, name="t", system_prompt="s", user_message="go")

        assert result.result == "recovered"
        assert [c.name for c in result.tool_calls] == ["good", "bad", "missing"]

        # One user message answers every call of the batch, paired by id
        results_msg = result.messages[2]
        assert results_msg.role == "user"
        blocks = {b.tool_use_id: b.content for b in results_msg.content}
        assert set(blocks) == {"id-good", "id-bad", "id-missing"}
        assert json.loads(blocks["id-good"]) == {"value": 42}
        assert json.loads(blocks["id-bad"]) == {"error": "broken"}
        assert "Unknown tool" in json.loads(blocks["id-missing"])["error"]

        # The second oracle call saw the tool results
        assert oracle.calls[1]["messages"][-1] == results_msg

    @pytest.mark.asyncio
    async def test_calls_in_batch_run_concurrently(self, registry):
        started = asyncio.Event()
        both = {"count": 0}

        async def waiter(_):
            both["count"] += 1
            if both["count"] == 2:
                started.set()
            await asyncio.wait_for(started.wait(), timeout=1)
            return "ok"

        add_tool(registry, "wait", waiter)
        oracle = ScriptedOracle([tool_reply(("a", "wait", {}), ("b", "wait", {})), text_reply("done")])

        result = await run_agent(oracle, registry, name="t", system_prompt="s", user_message="go")

        assert result.result == "done"
        assert [b.content for b in result.messages[2].content] == ["ok", "ok"]

    @pytest.mark.asyncio
    async def test_oracle_errors_propagate(self, registry):
        oracle = ScriptedOracle([OracleError("backend down")])

        with pytest.raises(OracleError, match="backend down"):
            await run_agent(oracle, registry, name="t", system_prompt="s", user_message="go")

    @pytest.mark.asyncio
    async def test_prior_messages_come_first(self, registry):
        oracle = ScriptedOracle([text_reply("ok")])
        prior = [
            Message(role="user", content="earlier question"),
            Message(role="assistant", content="earlier answer"),
        ]

        result = await run_agent(
            oracle, registry, name="t", system_prompt="s", user_message="now", prior_messages=prior
        )

        sent = oracle.calls[0]["messages"]
        assert [m.content for m in sent] == ["earlier question", "earlier answer", "now"]
        assert result.messages[:2] == prior
        assert len(prior) == 2

    @pytest.mark.asyncio
    async def test_tool_subset(self, registry):
        for name in ["a", "b", "c"]:
            add_tool(registry, name, AsyncMock(return_value=name))
        oracle = ScriptedOracle([text_reply("ok")])

        await run_agent(
            oracle, registry, name="t", system_prompt="s", user_message="go", tool_names=["c", "a", "zzz"]
        )

        assert [t.name for t in oracle.calls[0]["tools"]] == ["c", "a"]

    @pytest.mark.asyncio
    async def test_invalid_input_reported_to_oracle(self, registry):
        handler = AsyncMock(return_value="never")
        add_tool(
            registry, "strict", handler,
            type="object", properties={"n": {"type": "integer"}}, required=["n"],
        )
        oracle = ScriptedOracle([tool_reply(("x", "strict", {"n": "one"})), text_reply("ok")])

        result = await run_agent(oracle, registry, name="t", system_prompt="s", user_message="go")

        handler.assert_not_awaited()
        payload = json.loads(result.messages[2].content[0].content)
        assert "Invalid input for tool strict" in payload["error"]


class TestExecuteToolCall:
    @pytest.mark.asyncio
    async def test_tool_result_unwrapped(self, registry):
        add_tool(registry, "ok", AsyncMock(return_value=ToolResult(tool_name="ok", success=True, output=[1, 2])))
        add_tool(registry, "fails", AsyncMock(return_value=ToolResult(tool_name="fails", success=False, errors="nope")))

        assert await execute_tool_call(registry, ToolCallContent(id="1", name="ok")) == [1, 2]
        assert await execute_tool_call(registry, ToolCallContent(id="2", name="fails")) == {"error": "nope"}

    def test_tool_result_text(self):
        assert tool_result_text("plain") == "plain"
        assert tool_result_text({"a": 1}) == '{"a": 1}'
        assert tool_result_text(None) == "null"

    def test_result_block_shape(self):
        block = ToolResultContent(tool_use_id="abc", content="x")
        assert block.model_dump() == {"type": "tool_result", "tool_use_id": "abc", "content": "x"}
