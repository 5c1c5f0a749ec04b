from pathlib import Path

from github_workflows_mcp.clients.models.github import RepositoryPath
from github_workflows_mcp.git.repository import GitRemoteUrl, LocalRepository
from github_workflows_mcp.utilities.urls import get_repository_path_from_remote_url
from github_workflows_mcp.workflows.errors import WorkflowError


def require_repository(path: Path, title: str) -> LocalRepository:
    repository: LocalRepository | None = LocalRepository.find(path)

    if repository is None:
        raise WorkflowError(title=title, message="Can't find git repository", extra_info={"path": str(path)})

    return repository


def require_github_remote(repository: LocalRepository, host: str, title: str) -> GitRemoteUrl:
    remote: GitRemoteUrl | None = repository.find_github_remote(host=host)

    if remote is None:
        raise WorkflowError(title=title, message="Can't find GitHub remote")

    return remote


def require_repository_path(url: str, title: str) -> RepositoryPath:
    repository_path: RepositoryPath | None = get_repository_path_from_remote_url(url)

    if repository_path is None:
        raise WorkflowError(title=title, message=f"Can't process remote: {url}")

    return repository_path
