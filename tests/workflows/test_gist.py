from pathlib import Path
from typing import Any

import pytest

from github_workflows_mcp.clients.models.github import GistFile
from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.workflows.errors import WorkflowError
from github_workflows_mcp.workflows.gist import collect_contents, create_gist
from tests.conftest import FakeGitHubClient, make_working_copy, requires_git

pytestmark = requires_git


@pytest.fixture
def notes(tmp_path: Path) -> Path:
    notes = tmp_path / "notes"
    (notes / "sub").mkdir(parents=True)
    (notes / ".cache").mkdir()

    _ = (notes / "a.md").write_text("# A\n", encoding="utf-8")
    _ = (notes / "sub" / "b.md").write_text("# B\n", encoding="utf-8")
    _ = (notes / "blank.txt").write_text("  \n\n", encoding="utf-8")
    _ = (notes / ".hidden").write_text("secret\n", encoding="utf-8")
    _ = (notes / ".cache" / "c.md").write_text("# C\n", encoding="utf-8")
    _ = (notes / "image.bin").write_bytes(b"\xff\xfe\x00\x80")

    return notes


class TestCollectContents:
    def test_directory(self, notes: Path):
        assert collect_contents([notes]) == [
            GistFile(filename="notes_a.md", content="# A\n"),
            GistFile(filename="notes_sub_b.md", content="# B\n"),
        ]

    def test_single_file(self, notes: Path):
        assert collect_contents([notes / "a.md", notes / "blank.txt"]) == [GistFile(filename="a.md", content="# A\n")]

    def test_git_ignored_files_are_skipped(self, tmp_path: Path, git_remotes_dir: Path):
        make_working_copy(tmp_path / "project", files={".gitignore": "build/\n*.log\n", "main.py": "print('hi')\n"})
        (tmp_path / "project" / "build").mkdir()
        _ = (tmp_path / "project" / "build" / "out.txt").write_text("generated\n", encoding="utf-8")
        _ = (tmp_path / "project" / "debug.log").write_text("noise\n", encoding="utf-8")

        assert collect_contents([tmp_path / "project"]) == [GistFile(filename="project_main.py", content="print('hi')\n")]
        assert collect_contents([tmp_path / "project" / "debug.log"]) == []

    def test_unreadable_file(self, notes: Path, monkeypatch: pytest.MonkeyPatch):
        unreadable = notes / "a.md"
        read_text = Path.read_text

        def deny(self: Path, *args: Any, **kwargs: Any) -> str:
            if self == unreadable:
                raise PermissionError(13, "Permission denied", str(self))
            return read_text(self, *args, **kwargs)

        monkeypatch.setattr(Path, "read_text", deny)

        with pytest.raises(WorkflowError, match="Couldn't get file contents"):
            collect_contents([notes])

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(WorkflowError, match="File not found"):
            collect_contents([tmp_path / "missing.txt"])


class TestCreateGist:
    async def test_from_files(self, github_context: GitHubContext, github_client: FakeGitHubClient, notes: Path):
        result = await create_gist(context=github_context, paths=[notes], description="My notes")

        assert result.title == "Gist Created Successfully"
        assert result.url == "https://gist.github.com/aa5a315d61ae9438b18d"
        assert result.open_in_browser
        assert result.gist.public is False

        files, description, public = github_client.created_gists[0]
        assert [file.filename for file in files] == ["notes_a.md", "notes_sub_b.md"]
        assert description == "My notes"
        assert public is False

    async def test_single_file_is_renamed(self, github_context: GitHubContext, github_client: FakeGitHubClient, notes: Path):
        _ = await create_gist(context=github_context, paths=[notes / "a.md"], filename="readme.md", private=False)

        files, _, public = github_client.created_gists[0]
        assert files == [GistFile(filename="readme.md", content="# A\n")]
        assert public is True

    async def test_from_content(self, github_context: GitHubContext, github_client: FakeGitHubClient):
        _ = await create_gist(context=github_context, content="print('hello')\n", filename="hello.py")

        files, _, _ = github_client.created_gists[0]
        assert files == [GistFile(filename="hello.py", content="print('hello')\n")]

    async def test_empty(self, github_context: GitHubContext, github_client: FakeGitHubClient, notes: Path):
        with pytest.raises(WorkflowError, match="Can't create empty gist"):
            await create_gist(context=github_context, paths=[notes / "blank.txt"], content="   ")

        assert github_client.calls == []
