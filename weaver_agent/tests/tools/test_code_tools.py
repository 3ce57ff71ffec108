# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import shutil
import pytest

from src.tools.code_tools import (
    AnalyzeRepo,
    GitStatus,
    ListDirectory,
    ProjectTree,
    ReadFile,
    RunCommand,
    SearchCode,
    WriteFile,
)


@pytest.fixture
def sample_repo(repo):
    (repo / "src").mkdir()
    (repo / "src" / "app.py").write_text("import os\n\ndef main():\n    return 'hello'\n")
    (repo / "src" / "util.py").write_text("def helper():\n    return 'hello again'\n")
    (repo / "README.md").write_text("# Sample\n")
    (repo / "pyproject.toml").write_text("[project]\nname = 'sample'\n")
    (repo / "node_modules").mkdir()
    (repo / "node_modules" / "dep.js").write_text("hello from a dependency")
    (repo / ".hidden").write_text("secret hello")
    return repo


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_read_file(self, sample_repo):
        result = await ReadFile(file_path="src/app.py").run()

        assert result.success
        assert result.output["path"] == "src/app.py"
        assert "def main" in result.output["content"]
        assert result.output["lines"] == 5

    @pytest.mark.asyncio
    async def test_read_missing_file_fails(self, sample_repo):
        result = await ReadFile(file_path="nope.py").run()
        assert not result.success
        assert "File not found" in result.errors

    @pytest.mark.asyncio
    async def test_write_creates_parents(self, sample_repo):
        result = await WriteFile(file_path="pkg/new/mod.py", content="x = 1\n").run()

        assert result.success
        assert result.output == {"path": "pkg/new/mod.py", "bytes_written": 6}
        assert (sample_repo / "pkg" / "new" / "mod.py").read_text() == "x = 1\n"

    @pytest.mark.asyncio
    async def test_absolute_paths_are_used_as_given(self, sample_repo, tmp_path_factory):
        elsewhere = tmp_path_factory.mktemp("elsewhere") / "out.txt"
        result = await WriteFile(file_path=str(elsewhere), content="abc").run()

        assert result.success
        assert elsewhere.read_text() == "abc"


class TestSearchAndList:
    @pytest.mark.asyncio
    async def test_search_finds_lines_with_context(self, sample_repo):
        result = await SearchCode(pattern="hello").run()

        assert result.success
        files = [m["file"] for m in result.output["matches"]]
        # Ignored and hidden paths are not searched
        assert files == ["src/app.py", "src/util.py"]
        first = result.output["matches"][0]
        assert first["line"] == 4
        assert first["content"] == "return 'hello'"
        assert "def main():" in first["context"]

    @pytest.mark.asyncio
    async def test_search_file_pattern_and_limit(self, sample_repo):
        result = await SearchCode(pattern="hello", file_pattern="UTIL").run()
        assert [m["file"] for m in result.output["matches"]] == ["src/util.py"]

        limited = await SearchCode(pattern="hello", max_results=1).run()
        assert limited.output["match_count"] == 1

    @pytest.mark.asyncio
    async def test_search_bad_regex(self, sample_repo):
        result = await SearchCode(pattern="x", file_pattern="([").run()
        assert not result.success

    @pytest.mark.asyncio
    async def test_list_directory_hides_dotfiles_and_node_modules(self, sample_repo):
        result = await ListDirectory().run()

        names = [e["name"] for e in result.output]
        assert names == ["README.md", "pyproject.toml", "src"]
        assert {"name": "src", "type": "directory", "path": "src"} in result.output

    @pytest.mark.asyncio
    async def test_list_missing_directory(self, sample_repo):
        result = await ListDirectory(dir_path="missing").run()
        assert not result.success

    @pytest.mark.asyncio
    async def test_project_tree(self, sample_repo):
        result = await ProjectTree(max_depth=3).run()
        tree = result.output["tree"]
        assert "app.py" in tree
        assert "node_modules" not in tree

    @pytest.mark.asyncio
    async def test_analyze_repo(self, sample_repo):
        result = await AnalyzeRepo().run()

        assert result.success
        out = result.output
        assert out["total_files"] == 4
        assert out["extension_counts"][".py"] == 2
        assert out["project_indicators"]["has_python_project"] is True
        assert "pyproject.toml" in out["key_config_files"]
        assert len(out["sample_files"][".py"]) == 2


class TestRunCommand:
    @pytest.mark.parametrize(
        "command,allowed",
        [
            ("ls -la", True),
            ("git status", True),
            ("/usr/bin/grep foo", True),
            ("rm -rf /", False),
            ("curl http://example.com", False),
            ("lsblk", False),
            ("'unterminated", False),
            ("ls; rm -rf x", False),
            ("cat a.txt | sh", False),
            ("git log && curl evil", False),
            ("ls `whoami`", False),
            ("ls > out.txt", False),
            ("python -c 'import os'", False),
        ],
    )
    def test_allowlist(self, command, allowed):
        assert RunCommand.program_allowed(command) is allowed

    @pytest.mark.asyncio
    async def test_disallowed_command_is_not_run(self, sample_repo):
        result = await RunCommand(command="touch created.txt").run()

        assert not result.success
        assert "Command not allowed: touch" in result.errors
        assert not (sample_repo / "created.txt").exists()

    @pytest.mark.asyncio
    async def test_chained_command_is_not_run(self, sample_repo):
        result = await RunCommand(command="ls; touch created.txt").run()

        assert not result.success
        assert "shell operators" in result.errors
        assert not (sample_repo / "created.txt").exists()

    @pytest.mark.asyncio
    async def test_quoted_arguments_reach_the_program(self, sample_repo):
        (sample_repo / "notes file.txt").write_text("hello\n")

        result = await RunCommand(command="cat 'notes file.txt'").run()

        assert result.success
        assert result.output["output"] == "hello\n"

    @pytest.mark.asyncio
    async def test_runs_in_repo(self, sample_repo):
        result = await RunCommand(command="ls src").run()

        assert result.success
        assert result.output["output"].split() == ["app.py", "util.py"]

    @pytest.mark.asyncio
    async def test_nonzero_exit_fails(self, sample_repo):
        result = await RunCommand(command="ls does-not-exist").run()

        assert not result.success
        assert result.output["exit_code"] != 0


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestGit:
    @pytest.mark.asyncio
    async def test_status_outside_repo_fails(self, repo):
        result = await GitStatus().run()
        assert not result.success
