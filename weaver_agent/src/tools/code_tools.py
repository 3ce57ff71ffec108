# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Tools over the local repository checkout at ``settings.REPO_PATH``.

Relative paths are resolved against the repository root; absolute paths are
used as given.
"""

import re
import shlex
import asyncio
import logging

from pathlib import Path
from typing import ClassVar
from pydantic import Field

from .base_tool import BaseTool
from ..config import settings
from ..types.tool_types import ToolResult
from ..utils.file_views import build_tree, read_text, walk_dir

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

ALLOWED_COMMANDS = (
    "ls", "cat", "head", "tail", "wc", "find", "grep", "tree",
    "git", "npm", "npx", "node", "tsc",
)
SHELL_METACHARACTERS = frozenset(";|&$`<>\n")

COMMAND_TIMEOUT = 30.0
MAX_COMMAND_OUTPUT = 5000
MAX_COMMAND_ERROR = 2000
MAX_DIFF = 10000

KEY_CONFIG_FILES = (
    "package.json", "tsconfig.json", ".eslintrc.json", ".eslintrc.js", ".prettierrc",
    "jest.config.js", "jest.config.ts", "vitest.config.ts",
    "pyproject.toml", "setup.cfg", "requirements.txt",
)


def repo_root() -> Path:
    return settings.repo_root


def resolve(path: str) -> Path:
    p = Path(path).expanduser()
    return p if p.is_absolute() else repo_root() / p


async def run_process(
    *args: str, cwd: Path, timeout: float = COMMAND_TIMEOUT
) -> tuple[int, str, str]:
    """Run a command to completion, returning (exit code, stdout, stderr)."""
    process = await asyncio.create_subprocess_exec(
        *args, cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise
    return (
        process.returncode,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )


class AnalyzeRepo(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_analyze_repo"
    TOOL_DESCRIPTION: ClassVar[str] = (
        "Analyze the local repository: file counts per extension, project type "
        "indicators, key config files, a directory tree and sample files. Use this "
        "first to understand the codebase structure and conventions."
    )

    async def run(self) -> ToolResult:
        root = repo_root()
        if not root.is_dir():
            return self.fail(f"Repo path does not exist: {root}")

        files = walk_dir(root)
        extension_counts: dict[str, int] = {}
        sample_files: dict[str, list[dict[str, str]]] = {}
        total_lines = 0

        for rel in files:
            ext = Path(rel).suffix.lower() or "(no ext)"
            extension_counts[ext] = extension_counts.get(ext, 0) + 1

            # Up to 3 samples per extension for pattern detection
            samples = sample_files.setdefault(ext, [])
            if len(samples) < 3:
                content = read_text(root / rel)
                if content:
                    total_lines += len(content.split("\n"))
                    samples.append({"path": rel, "preview": content[:500]})

        indicators = {
            "has_package_json": (root / "package.json").exists(),
            "has_tsconfig": (root / "tsconfig.json").exists(),
            "has_pom_xml": (root / "pom.xml").exists(),
            "has_python_project": any(
                (root / f).exists() for f in ("pyproject.toml", "setup.py", "requirements.txt", "Pipfile")
            ),
            "has_go_mod": (root / "go.mod").exists(),
            "has_dockerfile": (root / "Dockerfile").exists(),
            "has_ci": (root / ".github").exists() or (root / "bitbucket-pipelines.yml").exists(),
        }

        key_files: dict[str, str] = {}
        for name in KEY_CONFIG_FILES:
            content = read_text(root / name)
            if content:
                key_files[name] = content[:2000]

        return self.ok(
            {
                "total_files": len(files),
                "total_lines": total_lines,
                "extension_counts": extension_counts,
                "project_indicators": indicators,
                "key_config_files": key_files,
                "directory_tree": build_tree(root, max_depth=4),
                "sample_files": sample_files,
            }
        )


class ReadFile(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_read_file"
    TOOL_DESCRIPTION: ClassVar[str] = "Read a file from the local repository."

    file_path: str = Field(..., description="Path relative to the repo root, or absolute")

    async def run(self) -> ToolResult:
        full_path = resolve(self.file_path)
        content = read_text(full_path)
        if content is None:
            return self.fail(f"File not found: {full_path}")
        return self.ok(
            {"path": self.file_path, "content": content, "lines": len(content.split("\n"))}
        )


class WriteFile(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_write_file"
    TOOL_DESCRIPTION: ClassVar[str] = (
        "Write content to a file in the local repository, creating parent "
        "directories as needed. Overwrites any existing file."
    )

    file_path: str = Field(..., description="Path relative to the repo root, or absolute")
    content: str = Field(..., description="The full file content to write")

    async def run(self) -> ToolResult:
        full_path = resolve(self.file_path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(self.content, encoding="utf-8")
        logger.info(f"Wrote file: {full_path}")
        return self.ok(
            {"path": self.file_path, "bytes_written": len(self.content.encode("utf-8"))}
        )


class SearchCode(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_search"
    TOOL_DESCRIPTION: ClassVar[str] = (
        "Search the repository for lines containing a literal pattern. Returns "
        "matching files, line numbers and surrounding context."
    )

    pattern: str = Field(..., description="Text to search for (literal, case-sensitive)", min_length=1)
    file_pattern: str = Field(
        default="",
        description="Optional case-insensitive regex that file paths must match, e.g. '\\.py$'",
    )
    max_results: int = Field(default=50, description="Maximum number of matches", ge=1)

    async def run(self) -> ToolResult:
        root = repo_root()
        try:
            path_filter = re.compile(self.file_pattern, re.IGNORECASE) if self.file_pattern else None
        except re.error as e:
            return self.fail(f"Invalid file_pattern: {e}")

        matches: list[dict] = []
        for rel in walk_dir(root):
            if len(matches) >= self.max_results:
                break
            if path_filter and not path_filter.search(rel):
                continue
            content = read_text(root / rel)
            if not content:
                continue

            lines = content.split("\n")
            for i, line in enumerate(lines):
                if self.pattern in line:
                    matches.append(
                        {
                            "file": rel,
                            "line": i + 1,
                            "content": line.strip(),
                            "context": "\n".join(lines[max(0, i - 2): i + 3]),
                        }
                    )
                    if len(matches) >= self.max_results:
                        break

        return self.ok({"pattern": self.pattern, "match_count": len(matches), "matches": matches})


class ListDirectory(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_list_directory"
    TOOL_DESCRIPTION: ClassVar[str] = "List the entries of a directory in the repository."

    dir_path: str = Field(default="", description="Directory relative to the repo root; empty for the root")

    async def run(self) -> ToolResult:
        full_path = resolve(self.dir_path) if self.dir_path else repo_root()
        if not full_path.is_dir():
            return self.fail(f"Directory not found: {full_path}")

        entries = [
            {
                "name": entry.name,
                "type": "directory" if entry.is_dir() else "file",
                "path": (Path(self.dir_path) / entry.name).as_posix(),
            }
            for entry in sorted(full_path.iterdir(), key=lambda p: p.name)
            if not entry.name.startswith(".") and entry.name != "node_modules"
        ]
        return self.ok(entries)


class RunCommand(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_run_command"
    TOOL_DESCRIPTION: ClassVar[str] = (
        "Run a command in the repository. It runs without a shell, so shell operators are rejected. "
        "Only these programs are allowed: "
        + ", ".join(ALLOWED_COMMANDS)
        + f". Commands are killed after {COMMAND_TIMEOUT:g}s."
    )

    command: str = Field(..., description="The command line to run", min_length=1)
    cwd: str = Field(default="", description="Working directory; defaults to the repo root")

    @staticmethod
    def program_allowed(command: str) -> bool:
        if any(c in SHELL_METACHARACTERS for c in command):
            return False
        try:
            argv = shlex.split(command)
        except ValueError:
            return False
        if not argv:
            return False
        program = argv[0]
        return any(program == a or program.endswith(f"/{a}") for a in ALLOWED_COMMANDS)

    async def run(self) -> ToolResult:
        if not self.program_allowed(self.command):
            program = self.command.split(" ")[0]
            return self.fail(
                f"Command not allowed: {program}. Allowed: {', '.join(ALLOWED_COMMANDS)}"
                " (shell operators are not supported)"
            )

        cwd = resolve(self.cwd) if self.cwd else repo_root()
        try:
            code, stdout, stderr = await run_process(*shlex.split(self.command), cwd=cwd)
        except asyncio.TimeoutError:
            return self.fail(f"Command timed out after {COMMAND_TIMEOUT:g}s", {"command": self.command})
        except OSError as e:
            return self.fail(f"Could not run command: {e}", {"command": self.command})

        if code != 0:
            return self.fail(
                (stderr or stdout)[:MAX_COMMAND_ERROR] or f"exit code {code}",
                {"command": self.command, "exit_code": code, "output": stdout[:MAX_COMMAND_OUTPUT]},
            )
        return self.ok({"command": self.command, "output": stdout[:MAX_COMMAND_OUTPUT]})


class ProjectTree(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_project_tree"
    TOOL_DESCRIPTION: ClassVar[str] = "Show the repository's file tree."

    max_depth: int = Field(default=5, description="Maximum directory depth", ge=0)

    async def run(self) -> ToolResult:
        return self.ok({"tree": build_tree(repo_root(), max_depth=self.max_depth)})


class GitStatus(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_git_status"
    TOOL_DESCRIPTION: ClassVar[str] = "Show the current branch, working tree status and the last 10 commits."

    async def run(self) -> ToolResult:
        root = repo_root()
        code, status, err = await run_process("git", "status", "--porcelain", cwd=root)
        if code != 0:
            return self.fail(err.strip() or "git status failed")
        _, branch, _ = await run_process("git", "branch", "--show-current", cwd=root)
        _, log, _ = await run_process("git", "log", "--oneline", "-10", cwd=root)
        return self.ok({"branch": branch.strip(), "status": status, "recent_commits": log})


class GitDiff(BaseTool):
    TOOL_NAME: ClassVar[str] = "code_git_diff"
    TOOL_DESCRIPTION: ClassVar[str] = "Show the git diff of the working tree, staged changes, or against a branch."

    branch: str = Field(default="", description="Branch or commit to diff against")
    staged: bool = Field(default=False, description="Show staged changes only")

    async def run(self) -> ToolResult:
        args = ["git", "diff"]
        if self.staged:
            args.append("--staged")
        if self.branch:
            args.append(self.branch)
        code, diff, err = await run_process(*args, cwd=repo_root())
        if code != 0:
            return self.fail(err.strip() or "git diff failed")
        return self.ok({"diff": diff[:MAX_DIFF]})
