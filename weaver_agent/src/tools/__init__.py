# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
A module of Agent tools
"""

import logging

from typing import Callable, Iterable

from .base_tool import BaseTool, tool_classes
from .registry import ToolRegistry
from .code_tools import (
    AnalyzeRepo,
    ReadFile,
    WriteFile,
    SearchCode,
    ListDirectory,
    RunCommand,
    ProjectTree,
    GitStatus,
    GitDiff,
)
from .skills import ListSkills, GetSkill, SaveSkill, DeleteSkill
from .atlassian import (
    JiraCreateIssue,
    JiraGetIssue,
    JiraUpdateIssue,
    JiraAddComment,
    JiraTransitionIssue,
    JiraSearch,
    JiraAddSubtask,
    ConfluenceGetPage,
    ConfluenceSearch,
    ConfluenceCreatePage,
    ConfluenceUpdatePage,
    BitbucketListBranches,
    BitbucketGetFile,
    BitbucketCreatePR,
    BitbucketGetPRDiff,
    BitbucketAddPRComment,
    jira_configured,
    confluence_configured,
    bitbucket_configured,
)

logger = logging.getLogger(__name__)

toolkits: dict[str, list[type[BaseTool]]] = dict(
    code=[
        AnalyzeRepo,
        ReadFile,
        WriteFile,
        SearchCode,
        ListDirectory,
        RunCommand,
        ProjectTree,
        GitStatus,
        GitDiff,
    ],
    skills=[ListSkills, GetSkill, SaveSkill, DeleteSkill],
    jira=[
        JiraCreateIssue,
        JiraGetIssue,
        JiraUpdateIssue,
        JiraAddComment,
        JiraTransitionIssue,
        JiraSearch,
        JiraAddSubtask,
    ],
    confluence=[
        ConfluenceGetPage,
        ConfluenceSearch,
        ConfluenceCreatePage,
        ConfluenceUpdatePage,
    ],
    bitbucket=[
        BitbucketListBranches,
        BitbucketGetFile,
        BitbucketCreatePR,
        BitbucketGetPRDiff,
        BitbucketAddPRComment,
    ],
)

# Toolkits that need credentials are only offered once they are configured
toolkit_guards: dict[str, Callable[[], bool]] = dict(
    jira=jira_configured,
    confluence=confluence_configured,
    bitbucket=bitbucket_configured,
)


def register_builtin_tools(
    registry: ToolRegistry, names: Iterable[str] | None = None
) -> int:
    """Register the named toolkits (all of them by default) and return the
    number of tools registered."""
    count = 0
    for name in names if names is not None else toolkits:
        guard = toolkit_guards.get(name)
        if guard is not None and not guard():
            logger.info(f"Skipping {name} tools: not configured")
            continue
        for tool_cls in toolkits[name]:
            tool_cls.register(registry)
            count += 1
    return count


__all__ = [
    "BaseTool",
    "ToolRegistry",
    "tool_classes",
    "toolkits",
    "register_builtin_tools",
]
