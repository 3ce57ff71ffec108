# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for delegation, keyword routing and the sub-agent catalog."""
import pytest

from unittest.mock import AsyncMock

from conftest import text_reply, tool_reply
from src.agents.orchestrator import (
    DELEGATE_TOOL_NAME,
    EMPTY_RESULT,
    Orchestrator,
    UnknownAgent,
    quick_route,
)
from src.agents.sub_agents import SUB_AGENTS, SubAgentDefinition, get_provider_tool_names
from src.llm.oracle import OracleError
from src.types.agent_types import AgentStatus
from src.types.tool_types import ToolSpec


class RoutingOracle:
    """Replays scripted replies per system prompt, so nested runs that
    interleave still get their own script."""

    def __init__(self, scripts: dict[str, list]):
        self.scripts = {k: list(v) for k, v in scripts.items()}
        self.calls: list[tuple[str, list, list]] = []

    async def call(self, system_prompt, messages, tools=None, max_tokens=None):
        key = next(k for k in self.scripts if system_prompt.startswith(k))
        self.calls.append((key, list(messages), tools))
        reply = self.scripts[key].pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_agent(key: str, tool_names=(), triggers=()) -> SubAgentDefinition:
    return SubAgentDefinition(
        key=key,
        description=f"The {key} agent",
        triggers=tuple(triggers),
        system_prompt=f"{key} prompt",
        tool_names=tuple(tool_names),
    )


CATALOG = {"alpha": make_agent("alpha"), "beta": make_agent("beta")}
ORCH = "You are the orchestrator"


def delegate(call_id: str, agent: str, message: str):
    return (call_id, DELEGATE_TOOL_NAME, {"agent": agent, "message": message})


class TestQuickRoute:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Create a Jira ticket for the login bug", "jira_management"),
            ("write unit tests for auth", "code_test"),
            ("Please do a code review of my branch", "code_review"),
            ("Draw a sequence diagram of checkout", "diagram_generation"),
            ("xyzzy plugh", None),
            ("", None),
        ],
    )
    def test_examples(self, message, expected):
        assert quick_route(message) == expected

    def test_multi_word_triggers_weigh_more(self):
        catalog = {
            "short": make_agent("short", triggers=["test"]),
            "long": make_agent("long", triggers=["unit test"]),
        }
        assert quick_route("add a unit test", catalog) == "long"

    def test_ties_go_to_catalog_order(self):
        catalog = {
            "first": make_agent("first", triggers=["deploy"]),
            "second": make_agent("second", triggers=["deploy"]),
        }
        assert quick_route("deploy it", catalog) == "first"
        reversed_catalog = {"second": catalog["second"], "first": catalog["first"]}
        assert quick_route("deploy it", reversed_catalog) == "second"


class TestCatalog:
    def test_catalog_order(self):
        assert list(SUB_AGENTS) == [
            "feature_analysis",
            "jira_management",
            "code_analysis",
            "code_writer",
            "code_test",
            "code_review",
            "document_management",
            "diagram_generation",
        ]

    def test_provider_tools_by_keyword(self, registry):
        for name in ["mcp_jira_search", "mcp_github_pr", "jira_search", "mcp_other_thing"]:
            registry.register(ToolSpec(name=name), AsyncMock())

        assert get_provider_tool_names(registry, ["jira"]) == ["mcp_jira_search"]
        assert get_provider_tool_names(registry, ["GitHub", "jira"]) == ["mcp_jira_search", "mcp_github_pr"]
        assert get_provider_tool_names(registry, []) == ["mcp_jira_search", "mcp_github_pr", "mcp_other_thing"]

    def test_agent_tool_subset_includes_provider_tools(self, registry):
        registry.register(ToolSpec(name="mcp_jira_create"), AsyncMock())
        registry.register(ToolSpec(name="mcp_bitbucket_pr"), AsyncMock())

        tools = SUB_AGENTS["jira_management"].resolve_tools(registry)

        assert "jira_create_issue" in tools
        assert "mcp_jira_create" in tools
        assert "mcp_bitbucket_pr" not in tools


class TestOrchestrator:
    @pytest.mark.asyncio
    async def test_delegation_is_recorded(self, registry):
        oracle = RoutingOracle(
            {
                ORCH: [tool_reply(delegate("d1", "alpha", "do the thing")), text_reply("Alpha did it")],
                "alpha prompt": [text_reply("thing done")],
            }
        )
        orchestrator = Orchestrator(oracle, registry, catalog=CATALOG)

        result = await orchestrator.run("please do the thing")

        assert result.result == "Alpha did it"
        assert [(d.agent, d.result) for d in result.delegations] == [("alpha", "thing done")]
        assert result.status == AgentStatus.SUCCESS

        # The sub-agent got the delegated message, not the user's
        sub_call = next(c for c in oracle.calls if c[0] == "alpha prompt")
        assert sub_call[1][0].content == "do the thing"

        # Only the delegate tool is ever offered to the orchestrator
        orch_tools = [c[2] for c in oracle.calls if c[0] == ORCH]
        assert all([t.name for t in tools] == [DELEGATE_TOOL_NAME] for tools in orch_tools)
        schema = orch_tools[0][0].input_schema
        assert schema["properties"]["agent"]["enum"] == ["alpha", "beta"]
        assert schema["required"] == ["agent", "message"]

        tool_result = result.conversation_history[2].content[0]
        assert tool_result.tool_use_id == "d1"
        assert tool_result.content == "thing done"

    @pytest.mark.asyncio
    async def test_unknown_agent_is_inline_error(self, registry):
        oracle = RoutingOracle(
            {ORCH: [tool_reply(delegate("d1", "gamma", "hello")), text_reply("sorry")]}
        )

        result = await Orchestrator(oracle, registry, catalog=CATALOG).run("hi")

        assert result.result == "sorry"
        assert result.delegations == []
        assert result.conversation_history[2].content[0].content == 'Error: Unknown agent "gamma"'

    @pytest.mark.asyncio
    async def test_sub_agent_error_is_inline(self, registry):
        oracle = RoutingOracle(
            {
                ORCH: [
                    tool_reply(delegate("d1", "alpha", "a"), delegate("d2", "beta", "b")),
                    text_reply("partial"),
                ],
                "alpha prompt": [text_reply("alpha ok")],
                "beta prompt": [OracleError("rate limited")],
            }
        )

        result = await Orchestrator(oracle, registry, catalog=CATALOG).run("both")

        assert result.result == "partial"
        assert [d.agent for d in result.delegations] == ["alpha"]
        contents = {b.tool_use_id: b.content for b in result.conversation_history[2].content}
        assert contents["d1"] == "alpha ok"
        assert contents["d2"] == "Error from beta: rate limited"

    @pytest.mark.asyncio
    async def test_empty_sub_agent_result_placeholder(self, registry):
        oracle = RoutingOracle(
            {
                ORCH: [tool_reply(delegate("d1", "alpha", "quiet")), text_reply("ok")],
                "alpha prompt": [tool_reply()],
            }
        )

        result = await Orchestrator(oracle, registry, catalog=CATALOG).run("go")

        assert result.conversation_history[2].content[0].content == EMPTY_RESULT
        assert result.delegations[0].result == ""

    @pytest.mark.asyncio
    async def test_orchestrator_budget(self, registry):
        oracle = RoutingOracle(
            {
                ORCH: [tool_reply(delegate(f"d{i}", "alpha", "again")) for i in range(2)],
                "alpha prompt": [text_reply("once"), text_reply("twice")],
            }
        )

        result = await Orchestrator(oracle, registry, catalog=CATALOG, max_iterations=2).run("loop")

        assert result.iterations == 2
        assert result.status == AgentStatus.INCOMPLETE
        assert len(result.delegations) == 2

    @pytest.mark.asyncio
    async def test_direct(self, registry):
        oracle = RoutingOracle({"beta prompt": [text_reply("direct answer")]})
        orchestrator = Orchestrator(oracle, registry, catalog=CATALOG)

        outcome = await orchestrator.direct("beta", "question")
        assert outcome.result == "direct answer"

        with pytest.raises(UnknownAgent):
            await orchestrator.direct("nobody", "question")

    def test_system_prompt_lists_agents(self, registry):
        prompt = Orchestrator(AsyncMock(), registry, catalog=CATALOG).system_prompt
        assert prompt.startswith(ORCH)
        assert "- alpha: The alpha agent" in prompt
        assert "- beta: The beta agent" in prompt
