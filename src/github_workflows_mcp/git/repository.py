from logging import Logger
from pathlib import Path
from typing import Self

from fastmcp.utilities.logging import get_logger
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from git.repo import Repo
from pydantic import BaseModel, ConfigDict, Field

from github_workflows_mcp.utilities.urls import DEFAULT_GITHUB_HOST, is_github_url

logger: Logger = get_logger(name=__name__)

ORIGIN_REMOTE = "origin"
GITHUB_REMOTE = "github"
UPSTREAM_REMOTE = "upstream"


class GitCommandFailedError(Exception):
    """A git command exited with an error."""

    def __init__(self, operation: str, stderr: str | None = None):
        msg = f"git {operation} failed"
        if stderr:
            msg += f": {stderr.strip()}"
        super().__init__(msg)


class GitRemote(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="The name of the remote.")
    urls: list[str] = Field(description="The URLs configured for the remote.")


class GitRemoteUrl(BaseModel):
    """A remote together with the one URL of it that was selected."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str


class GitRemoteBranch(BaseModel):
    model_config = ConfigDict(frozen=True)

    remote: str = Field(description="The name of the remote.")
    name: str = Field(description="The name of the branch on the remote, `main`.")
    local_name: str = Field(description="The name of the remote tracking branch, `origin/main`.")


class LocalRepository:
    """A local git working copy."""

    repo: Repo
    logger: Logger

    def __init__(self, repo: Repo, logger: Logger | None = None):
        self.repo = repo
        self.logger = logger or get_logger(name=__name__)

    @classmethod
    def find(cls, path: Path) -> Self | None:
        """The repository containing the path, or None when the path is not inside a working copy."""

        search_path = path if path.is_dir() else path.parent

        try:
            repo = Repo(search_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            return None

        if repo.bare:
            return None

        return cls(repo=repo)

    @classmethod
    def init(cls, path: Path) -> Self:
        logger.info(f"Initializing git repository at {path}")

        try:
            return cls(repo=Repo.init(path))
        except GitCommandError as e:
            raise GitCommandFailedError(operation="init", stderr=e.stderr) from e

    @classmethod
    def clone(cls, url: str, directory: Path) -> Self:
        logger.info(f"Cloning {url} to {directory}")

        try:
            return cls(repo=Repo.clone_from(url, to_path=directory))
        except GitCommandError as e:
            raise GitCommandFailedError(operation="clone", stderr=e.stderr) from e

    @property
    def root(self) -> Path:
        if self.repo.working_tree_dir is None:
            msg = "Repository has no working tree"
            raise ValueError(msg)

        return Path(self.repo.working_tree_dir).resolve()

    def _git(self, operation: str, *args: str) -> str:
        self.logger.debug(f"Running git {operation} {' '.join(args)} in {self.root}")

        try:
            return self.repo.git.execute(["git", operation, *args])  # pyright: ignore[reportReturnType]
        except GitCommandError as e:
            raise GitCommandFailedError(operation=operation, stderr=e.stderr) from e

    # Remotes

    def remotes(self) -> list[GitRemote]:
        return [GitRemote(name=remote.name, urls=list(remote.urls)) for remote in self.repo.remotes]

    def find_github_remote(self, host: str = DEFAULT_GITHUB_HOST) -> GitRemoteUrl | None:
        """The GitHub remote to use: `github` or `origin` when they point at GitHub, otherwise the first one that does."""

        github_remote: GitRemoteUrl | None = None

        for remote in self.remotes():
            for url in remote.urls:
                if not is_github_url(url, host=host):
                    continue

                if remote.name in {GITHUB_REMOTE, ORIGIN_REMOTE}:
                    return GitRemoteUrl(name=remote.name, url=url)

                if github_remote is None:
                    github_remote = GitRemoteUrl(name=remote.name, url=url)

                break

        return github_remote

    def find_upstream_remote_url(self, host: str = DEFAULT_GITHUB_HOST) -> str | None:
        """The URL of the `upstream` remote, preferring one that points at GitHub."""

        for remote in self.remotes():
            if remote.name != UPSTREAM_REMOTE:
                continue

            for url in remote.urls:
                if is_github_url(url, host=host):
                    return url

            return remote.urls[0] if remote.urls else None

        return None

    def add_remote(self, name: str, url: str) -> None:
        self.logger.info(f"Adding remote {name} at {url}")

        _ = self._git("remote", "add", name, url)

    def remote_branches(self) -> dict[str, list[GitRemoteBranch]]:
        """The remote tracking branches known locally, by remote name."""

        branches: dict[str, list[GitRemoteBranch]] = {}

        for remote in self.repo.remotes:
            for ref in remote.refs:
                if ref.remote_head == "HEAD":
                    continue
                branches.setdefault(remote.name, []).append(
                    GitRemoteBranch(remote=remote.name, name=ref.remote_head, local_name=ref.name),
                )

        return branches

    # Branches and revisions

    @property
    def current_branch(self) -> str | None:
        """The checked out branch, or None on a detached HEAD."""

        if self.repo.head.is_detached:
            return None

        return self.repo.head.ref.name

    def tracked_branch(self) -> GitRemoteBranch | None:
        """The remote branch the current branch tracks."""

        if self.repo.head.is_detached:
            return None

        tracking_branch = self.repo.head.ref.tracking_branch()
        if tracking_branch is None:
            return None

        return GitRemoteBranch(remote=tracking_branch.remote_name, name=tracking_branch.remote_head, local_name=tracking_branch.name)

    def is_fresh(self) -> bool:
        """Whether the repository has no commits yet."""

        return not self.repo.head.is_valid()

    def resolve_revision(self, revision: str) -> str:
        try:
            return self.repo.commit(revision).hexsha
        except (ValueError, GitCommandError) as e:
            raise GitCommandFailedError(operation="rev-parse", stderr=f"Unknown revision {revision}") from e

    def has_ref(self, ref: str) -> bool:
        try:
            _ = self.repo.commit(ref)
        except (ValueError, GitCommandError):
            return False
        return True

    # Working tree

    def relative_path(self, path: Path) -> str | None:
        """The path relative to the repository root, in posix form. None when the path is outside the root."""

        try:
            return path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    def untracked_files(self) -> list[str]:
        return list(self.repo.untracked_files)

    def indexed_files(self) -> list[str]:
        return sorted({str(path) for path, _stage in self.repo.index.entries})

    def is_dirty(self) -> bool:
        return self.repo.is_dirty(untracked_files=False)

    def ignored(self, paths: list[str]) -> set[str]:
        if not paths:
            return set()

        try:
            return set(self.repo.ignored(*paths))
        except GitCommandError as e:
            raise GitCommandFailedError(operation="check-ignore", stderr=e.stderr) from e

    def add_files(self, paths: list[str]) -> None:
        if paths:
            _ = self._git("add", "--", *paths)

    def remove_from_index(self, paths: list[str]) -> None:
        if paths:
            _ = self._git("rm", "--cached", "--quiet", "--", *paths)

    def commit(self, message: str) -> str:
        _ = self._git("commit", "-m", message)
        return self.repo.head.commit.hexsha

    # Network

    def push(self, remote: str, branch: str, set_upstream: bool = True) -> None:
        self.logger.info(f"Pushing {branch} to {remote}")

        args = ["--set-upstream"] if set_upstream else []
        _ = self._git("push", *args, remote, f"{branch}:{branch}")

    def fetch(self, remote: str) -> None:
        self.logger.info(f"Fetching {remote}")

        _ = self._git("fetch", remote)

    # Rebase

    def stash(self) -> bool:
        """Stash local changes. Returns whether anything was stashed."""

        if not self.is_dirty():
            return False

        _ = self._git("stash", "push", "--message", "github-workflows: rebase")
        return True

    def unstash(self) -> None:
        _ = self._git("stash", "pop")

    def rebase(self, onto: str) -> None:
        """Rebase the current branch onto the ref, aborting the rebase if it fails."""

        self.logger.info(f"Rebasing {self.current_branch} onto {onto}")

        try:
            _ = self._git("rebase", onto)
        except GitCommandFailedError:
            self.logger.warning(f"Rebase onto {onto} failed, aborting")
            try:
                _ = self._git("rebase", "--abort")
            except GitCommandFailedError:
                self.logger.exception("Aborting the rebase failed")
            raise
