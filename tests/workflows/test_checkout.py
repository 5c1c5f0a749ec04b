from pathlib import Path

import pytest
from git.repo import Repo

from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.workflows.checkout import clone_repository, list_available_repositories
from github_workflows_mcp.workflows.errors import WorkflowError
from tests.conftest import FakeGitHubClient, make_bare_remote, make_repository, make_working_copy, requires_git


@pytest.fixture
def github_client() -> FakeGitHubClient:
    return FakeGitHubClient(
        repositories=[
            make_repository("zed", "alpha"),
            make_repository("Alice", "zeta"),
            make_repository("alice", "Beta"),
        ]
    )


async def test_list_available_repositories(github_context: GitHubContext):
    repository_list = await list_available_repositories(context=github_context)

    assert [repository.full_name for repository in repository_list.repositories] == ["alice/Beta", "Alice/zeta", "zed/alpha"]


@requires_git
class TestClone:
    @pytest.fixture
    def remote(self, tmp_path: Path, git_remotes_dir: Path) -> Path:
        bare = make_bare_remote(git_remotes_dir, "octocat", "hello-world")

        seed = make_working_copy(tmp_path / "seed")
        _ = seed.create_remote("origin", str(bare.git_dir))
        seed.git.push("origin", "main")

        return Path(bare.git_dir)

    async def test_named_after_the_repository(self, remote: Path, tmp_path: Path):
        (tmp_path / "checkouts").mkdir()

        result = await clone_repository(url=str(remote), parent_directory=tmp_path / "checkouts")

        assert Path(result.directory) == (tmp_path / "checkouts" / "hello-world").resolve()
        assert (tmp_path / "checkouts" / "hello-world" / "README.md").exists()

    async def test_custom_directory(self, remote: Path, tmp_path: Path):
        result = await clone_repository(url=str(remote), parent_directory=tmp_path, directory_name="mine")

        assert Repo(result.directory).head.commit is not None

    async def test_existing_directory(self, remote: Path, tmp_path: Path):
        (tmp_path / "mine").mkdir()
        _ = (tmp_path / "mine" / "file.txt").write_text("taken\n", encoding="utf-8")

        with pytest.raises(WorkflowError, match="already exists and is not empty"):
            await clone_repository(url=str(remote), parent_directory=tmp_path, directory_name="mine")

    async def test_clone_failure(self, tmp_path: Path, git_remotes_dir: Path):
        with pytest.raises(WorkflowError, match="git clone failed"):
            await clone_repository(url=str(tmp_path / "nowhere" / "repo.git"), parent_directory=tmp_path)
