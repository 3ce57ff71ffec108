# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""File Visualization Utilities

Repository walking and tree rendering shared by the code and skills tools.
"""

import logging

from pathlib import Path

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

DEFAULT_IGNORE = frozenset(
    {"node_modules", ".git", ".weaver", "dist", "build", "__pycache__", ".venv"}
)


def walk_dir(
    root: Path | str,
    max_depth: int = 8,
    ignore: frozenset[str] | set[str] = DEFAULT_IGNORE,
    include_hidden: bool = False,
) -> list[str]:
    """Recursively list files under ``root`` as sorted, relative POSIX paths.

    Directories deeper than ``max_depth`` are not entered, and unreadable
    directories are skipped.
    """
    root = Path(root)
    results: list[str] = []

    def walk(current: Path, depth: int) -> None:
        if depth > max_depth:
            return
        try:
            entries = sorted(current.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {current}: {e}")
            return

        for entry in entries:
            if entry.name in ignore or (not include_hidden and entry.name.startswith(".")):
                continue
            if entry.is_dir():
                walk(entry, depth + 1)
            else:
                results.append(entry.relative_to(root).as_posix())

    walk(root, 0)
    return results


def read_text(path: Path | str) -> str | None:
    """Read a file as UTF-8, or return None if it cannot be read."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def build_tree(root: Path | str, max_depth: int = 5) -> str:
    """Render the files under ``root`` as an indented tree."""
    tree: dict[str, dict | None] = {}
    for rel in walk_dir(root, max_depth=max_depth):
        node = tree
        *dirs, leaf = rel.split("/")
        for part in dirs:
            child = node.setdefault(part, {})
            node = child if child is not None else {}
        node[leaf] = None

    lines: list[str] = []

    def render(node: dict[str, dict | None], prefix: str) -> None:
        keys = list(node)
        for i, key in enumerate(keys):
            last = i == len(keys) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{key}")
            child = node[key]
            if child is not None:
                render(child, prefix + ("    " if last else "│   "))

    render(tree, "")
    return "\n".join(lines)
