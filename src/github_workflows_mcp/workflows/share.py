"""Publish a local project as a new GitHub repository."""

import asyncio
from logging import Logger
from pathlib import Path

from fastmcp.utilities.logging import get_logger

from github_workflows_mcp.clients.github import GitHubWorkflowClient
from github_workflows_mcp.clients.models.github import Repository, User
from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.git.repository import GITHUB_REMOTE, ORIGIN_REMOTE, GitCommandFailedError, GitRemoteUrl, LocalRepository
from github_workflows_mcp.utilities.urls import make_clone_url, make_repository_url_from_remote_url
from github_workflows_mcp.workflows.errors import WorkflowError
from github_workflows_mcp.workflows.models import ShareResult

CANNOT_SHARE = "Can't share project on GitHub"
CANNOT_FINISH_SHARE = "Can't finish GitHub sharing process"

DEFAULT_COMMIT_MESSAGE = "Initial commit"

logger: Logger = get_logger(name=__name__)


async def _load_user_info(client: GitHubWorkflowClient) -> tuple[list[Repository], User]:
    return await client.get_user_repositories(), await client.get_current_user()


def select_initial_files(local_repository: LocalRepository, files: list[str] | None) -> list[str]:
    """The files to put in the first commit: the given ones, or everything untracked or already added, minus ignored files."""

    candidates: list[str] = (
        [local_repository.relative_path(local_repository.root / file) or file for file in files]
        if files is not None
        else sorted({*local_repository.untracked_files(), *local_repository.indexed_files()})
    )

    ignored: set[str] = local_repository.ignored(candidates)

    return [file for file in candidates if file not in ignored]


def make_initial_commit(local_repository: LocalRepository, files: list[str], commit_message: str) -> None:
    """Commit exactly the selected files, dropping anything else that was added to the index."""

    unselected: list[str] = [file for file in local_repository.indexed_files() if file not in set(files)]

    local_repository.remove_from_index(unselected)
    local_repository.add_files(files)

    _ = local_repository.commit(commit_message)


async def share_project(
    context: GitHubContext,
    path: Path,
    name: str,
    description: str = "",
    private: bool = False,
    files: list[str] | None = None,
    commit_message: str | None = None,
) -> ShareResult:
    """Create a GitHub repository for the project at `path` and push the project to it.

    When the project has no commits yet, the selected files (by default every untracked or added file) are
    committed first. A project that already has a GitHub remote is left as is."""

    local_repository: LocalRepository | None = LocalRepository.find(path)

    if local_repository is not None and (remote := local_repository.find_github_remote(host=context.host)) is not None:
        return ShareResult(
            title="Project is already on GitHub",
            message=f"Remote {remote.name} points at {remote.url}",
            url=make_repository_url_from_remote_url(remote.url),
            status="already_shared",
            remote_name=remote.name,
        )

    name = name.strip()
    if not name:
        raise WorkflowError(title=CANNOT_SHARE, message="Repository name can't be empty")

    (repositories, user), credential = await context.run_and_get_valid_auth(operation=_load_user_info)

    if any(repository.name.lower() == name.lower() for repository in repositories):
        raise WorkflowError(title=CANNOT_SHARE, message=f"Repository with name {name} already exists", extra_info={"login": user.login})

    if private and not user.can_create_private_repositories:
        raise WorkflowError(title=CANNOT_SHARE, message="Your account can't create private repositories")

    logger.info(f"Creating repository {name} for {user.login}")
    repository: Repository = await context.client(credential).create_repository(name=name, description=description, private=private)

    try:
        if local_repository is None:
            local_repository = await asyncio.to_thread(LocalRepository.init, path)

        remote = GitRemoteUrl(
            name=GITHUB_REMOTE if local_repository.remotes() else ORIGIN_REMOTE,
            url=make_clone_url(host=context.host, owner=user.login, repo=name),
        )
        local_repository.add_remote(name=remote.name, url=remote.url)

        if local_repository.is_fresh():
            selected_files: list[str] = await asyncio.to_thread(select_initial_files, local_repository, files)

            if not selected_files:
                return ShareResult(
                    title="Successfully created empty repository on GitHub",
                    message=f"Nothing was committed, push to {remote.url} when ready",
                    url=repository.html_url,
                    status="created_empty",
                    repository_name=repository.full_name,
                    remote_name=remote.name,
                )

            logger.info(f"Committing {len(selected_files)} files")
            await asyncio.to_thread(make_initial_commit, local_repository, selected_files, commit_message or DEFAULT_COMMIT_MESSAGE)

        current_branch: str | None = local_repository.current_branch
        if current_branch is None:
            raise WorkflowError(title=CANNOT_FINISH_SHARE, message="No current branch", url=repository.html_url)

        await asyncio.to_thread(local_repository.push, remote=remote.name, branch=current_branch)

    except GitCommandFailedError as e:
        raise WorkflowError(title=CANNOT_FINISH_SHARE, message=str(e), url=repository.html_url) from e

    return ShareResult(
        title="Successfully shared project on GitHub",
        message=repository.full_name,
        url=repository.html_url,
        status="shared",
        repository_name=repository.full_name,
        remote_name=remote.name,
    )
