# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Thin wrappers over the Jira, Confluence and Bitbucket REST APIs.

Each tool makes one or two authenticated requests and hands the JSON body
back to the oracle. Any response with a status of 300 or above becomes a
failed ToolResult carrying that body.
"""

import logging

from typing import Any, ClassVar, Literal
from pydantic import Field

import httpx

from .base_tool import BaseTool
from ..config import settings
from ..types.tool_types import ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

HTTP_TIMEOUT = 30.0


def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=HTTP_TIMEOUT, follow_redirects=True)


def _body(response: httpx.Response) -> Any:
    if "application/json" in response.headers.get("content-type", ""):
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


async def api_request(
    method: str,
    url: str,
    auth: tuple[str, str],
    json: Any = None,
    params: dict[str, Any] | None = None,
    accept: str = "application/json",
) -> tuple[int, Any]:
    async with http_client() as client:
        response = await client.request(
            method,
            url,
            auth=auth,
            json=json,
            params=params,
            headers={"Accept": accept},
        )
    return response.status_code, _body(response)


def _adf(text: str) -> dict[str, Any]:
    """Wrap plain text in a minimal Atlassian Document Format document."""
    return {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": text}]}],
    }


# Jira ------------------------------------------------------------------------


def jira_configured() -> bool:
    return bool(settings.JIRA_BASE_URL and settings.JIRA_EMAIL and settings.JIRA_API_TOKEN)


async def jira_request(method: str, path: str, **kwargs) -> tuple[int, Any]:
    url = f"{settings.JIRA_BASE_URL.rstrip('/')}/rest/api/3/{path}"
    return await api_request(method, url, (settings.JIRA_EMAIL, settings.JIRA_API_TOKEN), **kwargs)


IssueType = Literal["Epic", "Story", "Task", "Bug", "Sub-task"]
Priority = Literal["Highest", "High", "Medium", "Low", "Lowest"]


async def create_jira_issue(
    summary: str,
    description: str = "",
    issue_type: str = "Task",
    project_key: str = "",
    parent_key: str = "",
    labels: list[str] | None = None,
    priority: str | None = None,
    assignee: str = "",
) -> tuple[int, Any]:
    fields: dict[str, Any] = {
        "project": {"key": project_key or settings.JIRA_PROJECT_KEY},
        "summary": summary,
        "issuetype": {"name": issue_type},
    }
    if description:
        fields["description"] = _adf(description)
    if parent_key:
        fields["parent"] = {"key": parent_key}
    if labels:
        fields["labels"] = labels
    if priority:
        fields["priority"] = {"name": priority}
    if assignee:
        fields["assignee"] = {"accountId": assignee}
    return await jira_request("POST", "issue", json={"fields": fields})


class JiraCreateIssue(BaseTool):
    TOOL_NAME: ClassVar[str] = "jira_create_issue"
    TOOL_DESCRIPTION: ClassVar[str] = (
        "Create a new Jira issue (Epic, Story, Task, Bug, Sub-task) with an optional "
        "description, parent, labels, priority and assignee."
    )

    summary: str = Field(..., description="Issue title", min_length=1)
    description: str = Field(default="", description="Detailed description")
    issue_type: IssueType = Field(default="Task", description="Issue type")
    project_key: str = Field(default="", description="Jira project key; uses the configured default when empty")
    parent_key: str = Field(default="", description="Parent issue key for stories and sub-tasks")
    labels: list[str] = Field(default_factory=list, description="Labels")
    priority: Priority | None = Field(default=None, description="Priority")
    assignee: str = Field(default="", description="Assignee account ID")

    async def run(self) -> ToolResult:
        status, body = await create_jira_issue(
            self.summary, self.description, self.issue_type, self.project_key,
            self.parent_key, self.labels, self.priority, self.assignee,
        )
        if status >= 300:
            return self.fail(f"Jira create issue error {status}: {body}")
        logger.info(f"Created Jira issue {body.get('key') if isinstance(body, dict) else body}")
        return self.ok(body)


class JiraGetIssue(BaseTool):
    TOOL_NAME: ClassVar[str] = "jira_get_issue"
    TOOL_DESCRIPTION: ClassVar[str] = "Get the details of a Jira issue by key."

    issue_key: str = Field(..., description="e.g. PROJ-123", min_length=1)

    async def run(self) -> ToolResult:
        status, body = await jira_request("GET", f"issue/{self.issue_key}")
        if status >= 300:
            return self.fail(f"Jira get issue error {status}: {body}")
        return self.ok(body)


class JiraUpdateIssue(BaseTool):
    TOOL_NAME: ClassVar[str] = "jira_update_issue"
    TOOL_DESCRIPTION: ClassVar[str] = "Update fields of an existing Jira issue. Only the given fields change."

    issue_key: str = Field(..., description="e.g. PROJ-123", min_length=1)
    summary: str = Field(default="")
    description: str = Field(default="")
    labels: list[str] | None = Field(default=None)
    priority: Priority | None = Field(default=None)
    assignee: str = Field(default="", description="Assignee account ID")

    async def run(self) -> ToolResult:
        fields: dict[str, Any] = {}
        if self.summary:
            fields["summary"] = self.summary
        if self.description:
            fields["description"] = _adf(self.description)
        if self.labels is not None:
            fields["labels"] = self.labels
        if self.priority:
            fields["priority"] = {"name": self.priority}
        if self.assignee:
            fields["assignee"] = {"accountId": self.assignee}
        if not fields:
            return self.fail("No fields to update")

        status, body = await jira_request("PUT", f"issue/{self.issue_key}", json={"fields": fields})
        if status >= 300:
            return self.fail(f"Jira update issue error {status}: {body}")
        return self.ok({"success": True, "issue_key": self.issue_key})


class JiraAddComment(BaseTool):
    TOOL_NAME: ClassVar[str] = "jira_add_comment"
    TOOL_DESCRIPTION: ClassVar[str] = "Add a comment to a Jira issue."

    issue_key: str = Field(..., min_length=1)
    comment: str = Field(..., min_length=1)

    async def run(self) -> ToolResult:
        status, body = await jira_request(
            "POST", f"issue/{self.issue_key}/comment", json={"body": _adf(self.comment)}
        )
        if status >= 300:
            return self.fail(f"Jira add comment error {status}: {body}")
        return self.ok(body)


class JiraTransitionIssue(BaseTool):
    TOOL_NAME: ClassVar[str] = "jira_transition_issue"
    TOOL_DESCRIPTION: ClassVar[str] = "Move a Jira issue to another status (e.g. To Do -> In Progress -> Done)."

    issue_key: str = Field(..., min_length=1)
    transition_name: str = Field(..., description="Target status name", min_length=1)

    async def run(self) -> ToolResult:
        status, body = await jira_request("GET", f"issue/{self.issue_key}/transitions")
        if status >= 300:
            return self.fail(f"Jira transitions error {status}: {body}")

        transitions = body.get("transitions", []) if isinstance(body, dict) else []
        wanted = self.transition_name.lower()
        match = next((t for t in transitions if t.get("name", "").lower() == wanted), None)
        if match is None:
            available = ", ".join(t.get("name", "") for t in transitions)
            return self.fail(f'Transition "{self.transition_name}" not found. Available: {available}')

        status, body = await jira_request(
            "POST", f"issue/{self.issue_key}/transitions", json={"transition": {"id": match["id"]}}
        )
        if status >= 300:
            return self.fail(f"Jira transition error {status}: {body}")
        return self.ok({"success": True, "issue_key": self.issue_key, "new_status": self.transition_name})


class JiraSearch(BaseTool):
    TOOL_NAME: ClassVar[str] = "jira_search"
    TOOL_DESCRIPTION: ClassVar[str] = "Search Jira issues with JQL."

    jql: str = Field(..., description="JQL query", min_length=1)
    max_results: int = Field(default=20, ge=1, le=100)

    async def run(self) -> ToolResult:
        status, body = await jira_request(
            "GET", "search", params={"jql": self.jql, "maxResults": self.max_results}
        )
        if status >= 300:
            return self.fail(f"Jira search error {status}: {body}")
        return self.ok(body)


class JiraAddSubtask(BaseTool):
    TOOL_NAME: ClassVar[str] = "jira_add_subtask"
    TOOL_DESCRIPTION: ClassVar[str] = "Create a sub-task under a parent issue."

    parent_key: str = Field(..., min_length=1)
    summary: str = Field(..., min_length=1)
    description: str = Field(default="")

    async def run(self) -> ToolResult:
        status, body = await create_jira_issue(
            self.summary, self.description, issue_type="Sub-task", parent_key=self.parent_key
        )
        if status >= 300:
            return self.fail(f"Jira create sub-task error {status}: {body}")
        return self.ok(body)


# Confluence ------------------------------------------------------------------


def confluence_configured() -> bool:
    return bool(
        settings.CONFLUENCE_BASE_URL and settings.CONFLUENCE_EMAIL and settings.CONFLUENCE_API_TOKEN
    )


async def confluence_request(method: str, path: str, **kwargs) -> tuple[int, Any]:
    url = f"{settings.CONFLUENCE_BASE_URL.rstrip('/')}/rest/api/{path}"
    return await api_request(
        method, url, (settings.CONFLUENCE_EMAIL, settings.CONFLUENCE_API_TOKEN), **kwargs
    )


class ConfluenceGetPage(BaseTool):
    TOOL_NAME: ClassVar[str] = "confluence_get_page"
    TOOL_DESCRIPTION: ClassVar[str] = "Get a Confluence page, including its storage-format body and version."

    page_id: str = Field(..., min_length=1)

    async def run(self) -> ToolResult:
        status, body = await confluence_request(
            "GET", f"content/{self.page_id}", params={"expand": "body.storage,version,space,ancestors"}
        )
        if status >= 300:
            return self.fail(f"Confluence get page error {status}: {body}")
        return self.ok(body)


class ConfluenceSearch(BaseTool):
    TOOL_NAME: ClassVar[str] = "confluence_search"
    TOOL_DESCRIPTION: ClassVar[str] = "Full-text search for Confluence pages, optionally within one space."

    query: str = Field(..., min_length=1)
    space_key: str = Field(default="", description="Space to search; uses the configured default when empty")
    max_results: int = Field(default=10, ge=1, le=100)

    async def run(self) -> ToolResult:
        escaped = self.query.replace('"', '\\"')
        cql = f'type=page AND text~"{escaped}"'
        space = self.space_key or settings.CONFLUENCE_SPACE_KEY
        if space:
            cql += f' AND space="{space}"'
        status, body = await confluence_request(
            "GET", "content/search", params={"cql": cql, "limit": self.max_results}
        )
        if status >= 300:
            return self.fail(f"Confluence search error {status}: {body}")
        return self.ok(body)


class ConfluenceCreatePage(BaseTool):
    TOOL_NAME: ClassVar[str] = "confluence_create_page"
    TOOL_DESCRIPTION: ClassVar[str] = "Create a Confluence page. The body is Confluence storage format (XHTML)."

    title: str = Field(..., min_length=1)
    body: str = Field(..., description="Page body in storage format")
    space_key: str = Field(default="")
    parent_id: str = Field(default="", description="Optional parent page id")

    async def run(self) -> ToolResult:
        payload: dict[str, Any] = {
            "type": "page",
            "title": self.title,
            "space": {"key": self.space_key or settings.CONFLUENCE_SPACE_KEY},
            "body": {"storage": {"value": self.body, "representation": "storage"}},
        }
        if self.parent_id:
            payload["ancestors"] = [{"id": self.parent_id}]
        status, body = await confluence_request("POST", "content", json=payload)
        if status >= 300:
            return self.fail(f"Confluence create page error {status}: {body}")
        return self.ok(body)


class ConfluenceUpdatePage(BaseTool):
    TOOL_NAME: ClassVar[str] = "confluence_update_page"
    TOOL_DESCRIPTION: ClassVar[str] = "Replace the body (and optionally the title) of a Confluence page."

    page_id: str = Field(..., min_length=1)
    body: str = Field(..., description="New page body in storage format")
    title: str = Field(default="", description="New title; keeps the current one when empty")
    version_comment: str = Field(default="Updated by weaver-agent")

    async def run(self) -> ToolResult:
        status, current = await confluence_request(
            "GET", f"content/{self.page_id}", params={"expand": "version"}
        )
        if status >= 300 or not isinstance(current, dict):
            return self.fail(f"Confluence get page error {status}: {current}")

        payload = {
            "type": "page",
            "title": self.title or current.get("title", ""),
            "version": {
                "number": current.get("version", {}).get("number", 0) + 1,
                "message": self.version_comment,
            },
            "body": {"storage": {"value": self.body, "representation": "storage"}},
        }
        status, body = await confluence_request("PUT", f"content/{self.page_id}", json=payload)
        if status >= 300:
            return self.fail(f"Confluence update page error {status}: {body}")
        return self.ok(body)


# Bitbucket -------------------------------------------------------------------


def bitbucket_configured() -> bool:
    return bool(
        settings.BITBUCKET_USERNAME
        and settings.BITBUCKET_APP_PASSWORD
        and settings.BITBUCKET_WORKSPACE
        and settings.BITBUCKET_REPO_SLUG
    )


async def bitbucket_request(method: str, path: str, **kwargs) -> tuple[int, Any]:
    url = (
        f"{settings.BITBUCKET_BASE_URL.rstrip('/')}/repositories/"
        f"{settings.BITBUCKET_WORKSPACE}/{settings.BITBUCKET_REPO_SLUG}/{path}"
    )
    return await api_request(
        method, url, (settings.BITBUCKET_USERNAME, settings.BITBUCKET_APP_PASSWORD), **kwargs
    )


class BitbucketListBranches(BaseTool):
    TOOL_NAME: ClassVar[str] = "bitbucket_list_branches"
    TOOL_DESCRIPTION: ClassVar[str] = "List branches of the configured Bitbucket repository."

    max_results: int = Field(default=25, ge=1, le=100)

    async def run(self) -> ToolResult:
        status, body = await bitbucket_request("GET", "refs/branches", params={"pagelen": self.max_results})
        if status >= 300:
            return self.fail(f"Bitbucket list branches error {status}: {body}")
        return self.ok(body)


class BitbucketGetFile(BaseTool):
    TOOL_NAME: ClassVar[str] = "bitbucket_get_file"
    TOOL_DESCRIPTION: ClassVar[str] = "Read a file from the Bitbucket repository at a branch."

    file_path: str = Field(..., min_length=1)
    branch: str = Field(default="main")

    async def run(self) -> ToolResult:
        status, body = await bitbucket_request(
            "GET", f"src/{self.branch}/{self.file_path}", accept="text/plain"
        )
        if status >= 300:
            return self.fail(f"Bitbucket get file error {status}: {body}")
        return self.ok({"path": self.file_path, "content": body})


class BitbucketCreatePR(BaseTool):
    TOOL_NAME: ClassVar[str] = "bitbucket_create_pr"
    TOOL_DESCRIPTION: ClassVar[str] = "Open a pull request from a source branch."

    title: str = Field(..., min_length=1)
    source_branch: str = Field(..., min_length=1)
    destination_branch: str = Field(default="main")
    description: str = Field(default="")
    reviewers: list[str] = Field(default_factory=list, description="Reviewer account UUIDs")

    async def run(self) -> ToolResult:
        payload: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "source": {"branch": {"name": self.source_branch}},
            "destination": {"branch": {"name": self.destination_branch}},
            "close_source_branch": True,
        }
        if self.reviewers:
            payload["reviewers"] = [{"uuid": r} for r in self.reviewers]
        status, body = await bitbucket_request("POST", "pullrequests", json=payload)
        if status >= 300:
            return self.fail(f"Bitbucket create PR error {status}: {body}")
        return self.ok(body)


class BitbucketGetPRDiff(BaseTool):
    TOOL_NAME: ClassVar[str] = "bitbucket_get_pr_diff"
    TOOL_DESCRIPTION: ClassVar[str] = "Get the unified diff of a pull request."

    pr_id: int = Field(..., ge=1)

    async def run(self) -> ToolResult:
        status, body = await bitbucket_request(
            "GET", f"pullrequests/{self.pr_id}/diff", accept="text/plain"
        )
        if status >= 300:
            return self.fail(f"Bitbucket PR diff error {status}: {body}")
        return self.ok({"pr_id": self.pr_id, "diff": body})


class BitbucketAddPRComment(BaseTool):
    TOOL_NAME: ClassVar[str] = "bitbucket_add_pr_comment"
    TOOL_DESCRIPTION: ClassVar[str] = "Comment on a pull request, optionally inline on a file and line."

    pr_id: int = Field(..., ge=1)
    comment: str = Field(..., min_length=1)
    file_path: str = Field(default="")
    line_number: int | None = Field(default=None, ge=1)

    async def run(self) -> ToolResult:
        payload: dict[str, Any] = {"content": {"raw": self.comment}}
        if self.file_path:
            payload["inline"] = {"path": self.file_path}
            if self.line_number:
                payload["inline"]["to"] = self.line_number
        status, body = await bitbucket_request("POST", f"pullrequests/{self.pr_id}/comments", json=payload)
        if status >= 300:
            return self.fail(f"Bitbucket PR comment error {status}: {body}")
        return self.ok(body)
