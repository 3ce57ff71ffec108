# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import pytest

from src.config import settings
from src.tools.registry import ToolRegistry
from src.types.llm_types import Completion, StopReason, TextContent, ToolCallContent

# Enable asyncio support for pytest
pytest_plugins = ["pytest_asyncio"]


def pytest_addoption(parser):
    parser.addoption(
        "--run-llm",
        action="store_true",
        default=False,
        help="Run tests marked with 'uses_llm' (needs an API key)",
    )
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run tests marked with 'slow'",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "uses_llm: calls a real LLM backend")
    config.addinivalue_line("markers", "slow: long running test")


# Skip tests based on markers unless the corresponding option is provided
def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-llm"):
        skip_llm = pytest.mark.skip(reason="need --run-llm option to run")
        for item in items:
            if "uses_llm" in item.keywords:
                item.add_marker(skip_llm)
    if not config.getoption("--run-slow"):
        skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


def text_reply(text: str) -> Completion:
    return Completion(content=[TextContent(text=text)], stop_reason=StopReason.COMPLETE)


def tool_reply(*calls: tuple[str, str, dict], text: str | None = None) -> Completion:
    """A completion requesting the given ``(id, name, input)`` tool calls."""
    content = [TextContent(text=text)] if text else []
    content += [ToolCallContent(id=i, name=n, input=inp) for i, n, inp in calls]
    return Completion(content=content, stop_reason=StopReason.TOOL_USE)


class ScriptedOracle:
    """Stands in for the Oracle, replaying a fixed list of replies.

    Each call records its arguments. An exception in the script is raised
    instead of returned.
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def call(self, system_prompt, messages, tools=None, max_tokens=None):
        self.calls.append(
            {"system_prompt": system_prompt, "messages": list(messages), "tools": tools}
        )
        if not self.replies:
            raise AssertionError("ScriptedOracle ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def registry():
    return ToolRegistry()


@pytest.fixture
def repo(tmp_path, monkeypatch):
    """Point the code and skills tools at an empty temporary repository."""
    monkeypatch.setattr(settings, "REPO_PATH", str(tmp_path))
    monkeypatch.setattr(settings, "SKILLS_DIR", ".weaver/skills")
    return tmp_path
