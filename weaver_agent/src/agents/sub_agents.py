# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The sub-agent catalog.

A sub-agent is a configuration for the agent engine: a system prompt, the
tools it may use, and the trigger phrases ``quick_route`` scores it by. The
catalog is fixed at import time and its order is significant: it is the
tie-break order for keyword routing.
"""

import logging

from typing import Iterable
from pydantic import BaseModel, ConfigDict

from . import prompts
from .engine import run_agent
from ..llm.oracle import Oracle
from ..tools.registry import ToolRegistry
from ..types.agent_types import AgentRunResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

PROVIDER_TOOL_PREFIX = "mcp_"


def get_provider_tool_names(registry: ToolRegistry, keywords: Iterable[str]) -> list[str]:
    """Names of provider-imported tools whose name contains any keyword.

    With no keywords, every provider tool is returned.
    """
    keywords = [k.lower() for k in keywords]
    return [
        n
        for n in registry.names()
        if n.startswith(PROVIDER_TOOL_PREFIX)
        and (not keywords or any(k in n.lower() for k in keywords))
    ]


class SubAgentDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    description: str
    triggers: tuple[str, ...]
    system_prompt: str
    tool_names: tuple[str, ...]
    # Provider tools whose names mention one of these are offered as well
    provider_keywords: tuple[str, ...] = ()
    max_iterations: int | None = None

    def resolve_tools(self, registry: ToolRegistry) -> list[str]:
        names = list(self.tool_names)
        if self.provider_keywords:
            names += get_provider_tool_names(registry, self.provider_keywords)
        return names

    async def run(self, oracle: Oracle, registry: ToolRegistry, message: str) -> AgentRunResult:
        return await run_agent(
            oracle,
            registry,
            name=self.key,
            system_prompt=self.system_prompt,
            user_message=message,
            tool_names=self.resolve_tools(registry),
            max_iterations=self.max_iterations,
        )


_READ_CODE = (
    "code_analyze_repo",
    "code_project_tree",
    "code_read_file",
    "code_search",
    "code_list_directory",
)
_SKILLS = ("skills_list", "skills_get", "skills_save")


SUB_AGENTS: dict[str, SubAgentDefinition] = {
    agent.key: agent
    for agent in [
        SubAgentDefinition(
            key="feature_analysis",
            description="Analyze requirements, create implementation plans, decompose into stories/tasks",
            triggers=(
                "analyze feature",
                "requirement",
                "implementation plan",
                "decompose",
                "wireframe to requirements",
                "diagram to requirements",
                "prd",
            ),
            system_prompt=prompts.FEATURE_ANALYSIS_PROMPT,
            tool_names=_READ_CODE
            + _SKILLS
            + ("jira_create_issue", "jira_add_subtask", "jira_search")
            + ("confluence_search", "confluence_get_page"),
            provider_keywords=("jira", "confluence"),
        ),
        SubAgentDefinition(
            key="jira_management",
            description="Create, update, search Jira tickets; manage statuses, comments, sub-tasks",
            triggers=("jira", "ticket", "story", "epic", "sprint", "backlog", "sub-task", "status"),
            system_prompt=prompts.JIRA_PROMPT,
            tool_names=(
                "jira_create_issue",
                "jira_get_issue",
                "jira_update_issue",
                "jira_add_comment",
                "jira_transition_issue",
                "jira_search",
                "jira_add_subtask",
            ),
            provider_keywords=("jira",),
        ),
        SubAgentDefinition(
            key="code_analysis",
            description="Deep analysis of codebase: structure, standards, patterns, improvements",
            triggers=(
                "analyze code",
                "code analysis",
                "repo analysis",
                "understand codebase",
                "code standards",
                "analyze the codebase",
                "codebase",
            ),
            system_prompt=prompts.CODE_ANALYSIS_PROMPT,
            tool_names=_READ_CODE + ("code_git_status", "code_run_command") + _SKILLS,
            provider_keywords=("bitbucket", "github"),
        ),
        SubAgentDefinition(
            key="code_writer",
            description="Write production code matching project patterns and standards",
            triggers=("write code", "implement", "create file", "add feature", "build", "code"),
            system_prompt=prompts.CODE_WRITER_PROMPT,
            tool_names=_READ_CODE + ("code_write_file", "code_run_command") + _SKILLS,
            provider_keywords=("bitbucket", "github"),
        ),
        SubAgentDefinition(
            key="code_test",
            description="Write unit tests, integration tests following project conventions",
            triggers=("test", "unit test", "integration test", "write test", "add test"),
            system_prompt=prompts.CODE_TEST_PROMPT,
            tool_names=_READ_CODE + ("code_write_file", "code_run_command") + _SKILLS,
            provider_keywords=("bitbucket", "github"),
        ),
        SubAgentDefinition(
            key="code_review",
            description="Review code changes and pull requests against project standards",
            triggers=("review", "code review", "pr review", "pull request", "check code"),
            system_prompt=prompts.CODE_REVIEW_PROMPT,
            tool_names=_READ_CODE
            + ("code_git_diff", "code_git_status")
            + _SKILLS
            + ("bitbucket_get_pr_diff", "bitbucket_add_pr_comment", "bitbucket_get_file"),
            provider_keywords=("bitbucket", "github"),
        ),
        SubAgentDefinition(
            key="document_management",
            description="Create, update and search Confluence pages and project documentation",
            triggers=("confluence", "documentation", "wiki", "page", "document", "docs"),
            system_prompt=prompts.DOCUMENT_PROMPT,
            tool_names=(
                "confluence_get_page",
                "confluence_search",
                "confluence_create_page",
                "confluence_update_page",
                "code_read_file",
                "code_write_file",
                "code_project_tree",
                "code_search",
            ),
            provider_keywords=("confluence",),
        ),
        SubAgentDefinition(
            key="diagram_generation",
            description="Generate Mermaid diagrams and wireframe descriptions",
            triggers=("diagram", "flowchart", "wireframe", "sequence diagram", "er diagram", "mermaid"),
            system_prompt=prompts.DIAGRAM_PROMPT,
            tool_names=(
                "code_read_file",
                "code_write_file",
                "code_project_tree",
                "code_analyze_repo",
                "skills_list",
                "skills_get",
            ),
        ),
    ]
}
