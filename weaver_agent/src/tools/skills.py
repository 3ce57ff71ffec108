# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Skills: small markdown documents the agents keep as long-term memory about a
repository (coding standards, test patterns, review checklists and so on).

Skills live at ``<skills dir>/<category>/<name>.md``.
"""

import logging

from pathlib import Path
from typing import ClassVar, Literal
from pydantic import Field

from .base_tool import BaseTool
from ..config import settings
from ..types.tool_types import ToolResult
from ..utils.file_views import read_text, walk_dir

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

SkillCategory = Literal[
    "coding-standards", "test-patterns", "review-checklists", "architecture", "general"
]


def skills_dir() -> Path:
    return settings.skills_root


def skill_filename(skill_name: str) -> str:
    return skill_name if skill_name.endswith(".md") else f"{skill_name}.md"


def list_skills() -> list[dict[str, str]]:
    root = skills_dir()
    if not root.is_dir():
        return []
    skills = []
    for rel in walk_dir(root, max_depth=2, ignore=frozenset()):
        content = read_text(root / rel) or ""
        first_line = content.split("\n", 1)[0]
        skills.append({"file": rel, "title": first_line.lstrip("#").strip()})
    return skills


class ListSkills(BaseTool):
    TOOL_NAME: ClassVar[str] = "skills_list"
    TOOL_DESCRIPTION: ClassVar[str] = "List saved skills (reusable knowledge about this repository)."

    async def run(self) -> ToolResult:
        if not skills_dir().is_dir():
            return self.ok({"skills": [], "message": "No skills directory found. Use skills_save to create one."})
        return self.ok({"skills": list_skills()})


class GetSkill(BaseTool):
    TOOL_NAME: ClassVar[str] = "skills_get"
    TOOL_DESCRIPTION: ClassVar[str] = (
        "Read a saved skill. Accepts 'category/name' as listed by skills_list, or a bare "
        "name which is looked up in every category."
    )

    skill_name: str = Field(..., description="e.g. 'coding-standards/python' or 'python'", min_length=1)

    async def run(self) -> ToolResult:
        root = skills_dir()
        filename = skill_filename(self.skill_name)
        candidates = [root / filename]
        if "/" not in self.skill_name:
            candidates += sorted(root.glob(f"*/{filename}"))

        for path in candidates:
            content = read_text(path)
            if content is not None:
                return self.ok({"skill_name": self.skill_name, "content": content})
        return self.fail(f"Skill not found: {self.skill_name}")


class SaveSkill(BaseTool):
    TOOL_NAME: ClassVar[str] = "skills_save"
    TOOL_DESCRIPTION: ClassVar[str] = (
        "Save a skill as markdown, overwriting any skill with the same name and category. "
        "Start the content with a '# Title' line."
    )

    skill_name: str = Field(..., description="File name for the skill, without directories", min_length=1)
    content: str = Field(..., description="Markdown content")
    category: SkillCategory = Field(default="general", description="Skill category")

    async def run(self) -> ToolResult:
        if "/" in self.skill_name or "\\" in self.skill_name:
            return self.fail("skill_name must not contain path separators")
        rel = f"{self.category}/{skill_filename(self.skill_name)}"
        path = skills_dir() / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.content, encoding="utf-8")
        logger.info(f"Saved skill: {rel}")
        return self.ok({"saved": True, "path": rel})


class DeleteSkill(BaseTool):
    TOOL_NAME: ClassVar[str] = "skills_delete"
    TOOL_DESCRIPTION: ClassVar[str] = "Delete a saved skill."

    skill_name: str = Field(..., description="Name of the skill", min_length=1)
    category: SkillCategory = Field(default="general", description="Skill category")

    async def run(self) -> ToolResult:
        rel = f"{self.category}/{skill_filename(self.skill_name)}"
        path = skills_dir() / rel
        if not path.is_file():
            return self.fail(f"Skill not found: {rel}")
        path.unlink()
        logger.info(f"Deleted skill: {rel}")
        return self.ok({"deleted": True, "path": rel})
