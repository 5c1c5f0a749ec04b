"""List the repositories available to the user and clone one of them."""

import asyncio
from pathlib import Path

from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.git.repository import GitCommandFailedError, LocalRepository
from github_workflows_mcp.utilities.urls import get_repository_path_from_remote_url
from github_workflows_mcp.workflows.errors import WorkflowError
from github_workflows_mcp.workflows.models import CloneResult, RepositoryList

CANNOT_CLONE = "Can't clone repository"


async def list_available_repositories(context: GitHubContext) -> RepositoryList:
    repositories = await context.run_with_valid_auth(operation=lambda client: client.get_available_repositories())

    return RepositoryList(repositories=sorted(repositories, key=lambda repository: (repository.owner.lower(), repository.name.lower())))


async def clone_repository(url: str, parent_directory: Path, directory_name: str | None = None) -> CloneResult:
    """Clone the repository into `parent_directory/directory_name`, naming the directory after the repository by default."""

    if directory_name is None:
        repository_path = get_repository_path_from_remote_url(url)
        if repository_path is None:
            raise WorkflowError(title=CANNOT_CLONE, message=f"Can't work out a directory name for {url}")
        directory_name = repository_path.repo

    directory: Path = parent_directory / directory_name

    if directory.exists() and any(directory.iterdir()):
        raise WorkflowError(title=CANNOT_CLONE, message=f"Directory {directory} already exists and is not empty")

    try:
        local_repository: LocalRepository = await asyncio.to_thread(LocalRepository.clone, url, directory)
    except GitCommandFailedError as e:
        raise WorkflowError(title=CANNOT_CLONE, message=str(e), url=url) from e

    return CloneResult(
        title="Successfully cloned repository",
        message=f"Cloned {url} into {local_repository.root}",
        url=url,
        directory=str(local_repository.root),
    )
