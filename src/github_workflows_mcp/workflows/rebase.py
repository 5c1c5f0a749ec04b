"""Rebase a fork onto the repository it was forked from."""

import asyncio
from logging import Logger
from pathlib import Path

from fastmcp.utilities.logging import get_logger

from github_workflows_mcp.clients.models.github import Repository, RepositoryPath
from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.git.repository import UPSTREAM_REMOTE, GitCommandFailedError, LocalRepository
from github_workflows_mcp.utilities.urls import get_repository_path_from_remote_url, is_github_url, make_clone_url
from github_workflows_mcp.workflows.errors import WorkflowError
from github_workflows_mcp.workflows.models import RebaseResult
from github_workflows_mcp.workflows.shared import require_github_remote, require_repository, require_repository_path

CANNOT_REBASE = "Can't perform GitHub rebase"

FALLBACK_BRANCHES = ("main", "master")

logger: Logger = get_logger(name=__name__)


async def configure_upstream_remote(context: GitHubContext, local_repository: LocalRepository) -> str:
    """Add an `upstream` remote pointing at the parent of the fork, returning its URL."""

    remote = require_github_remote(repository=local_repository, host=context.host, title=CANNOT_REBASE)
    repository_path: RepositoryPath = require_repository_path(url=remote.url, title=CANNOT_REBASE)

    repository: Repository = await context.run_with_valid_auth(
        operation=lambda client: client.get_repository(owner=repository_path.owner, repo=repository_path.repo),
    )

    if not repository.fork or repository.parent is None:
        raise WorkflowError(title=CANNOT_REBASE, message=f"GitHub repository {repository.full_name} is not a forked one")

    upstream_url: str = make_clone_url(host=context.host, owner=repository.parent.owner, repo=repository.parent.name)

    try:
        local_repository.add_remote(name=UPSTREAM_REMOTE, url=upstream_url)
    except GitCommandFailedError as e:
        raise WorkflowError(title=CANNOT_REBASE, message=f"Can't configure remote upstream: {e}") from e

    return upstream_url


def find_rebase_target(local_repository: LocalRepository, default_branch: str | None) -> str | None:
    """The upstream branch to rebase onto: the parent's default branch, or `main`/`master` as they exist."""

    candidates: list[str] = [default_branch] if default_branch else list(FALLBACK_BRANCHES)

    for branch in candidates:
        ref = f"{UPSTREAM_REMOTE}/{branch}"
        if local_repository.has_ref(ref):
            return ref

    return None


def rebase_with_stash(local_repository: LocalRepository, onto: str) -> bool:
    """Rebase onto the ref, stashing local changes around it. Returns whether anything was stashed."""

    stashed: bool = local_repository.stash()

    try:
        local_repository.rebase(onto)
    finally:
        if stashed:
            local_repository.unstash()

    return stashed


async def rebase_fork(context: GitHubContext, path: Path) -> RebaseResult:
    """Fetch the upstream repository of a fork and rebase the current branch onto it."""

    local_repository: LocalRepository = require_repository(path=path, title=CANNOT_REBASE)

    upstream_url: str | None = local_repository.find_upstream_remote_url(host=context.host)
    if upstream_url is None:
        upstream_url = await configure_upstream_remote(context=context, local_repository=local_repository)

    if not is_github_url(upstream_url, host=context.host):
        raise WorkflowError(title=CANNOT_REBASE, message="Configured upstream is not a GitHub repository", url=upstream_url)

    upstream_path: RepositoryPath = require_repository_path(url=upstream_url, title=CANNOT_REBASE)

    login: str | None = context.settings.login
    if login is not None and upstream_path.is_owned_by(login):
        raise WorkflowError(title=CANNOT_REBASE, message="Configured upstream seems to be your own repository", url=upstream_url)

    upstream_repository: Repository = await context.run_with_valid_auth(
        operation=lambda client: client.get_repository(owner=upstream_path.owner, repo=upstream_path.repo),
    )

    if local_repository.current_branch is None:
        raise WorkflowError(title=CANNOT_REBASE, message="No current branch")

    try:
        await asyncio.to_thread(local_repository.fetch, UPSTREAM_REMOTE)
    except GitCommandFailedError as e:
        raise WorkflowError(title=CANNOT_REBASE, message=f"Can't fetch upstream: {e}", url=upstream_url) from e

    onto: str | None = find_rebase_target(local_repository=local_repository, default_branch=upstream_repository.default_branch)
    if onto is None:
        raise WorkflowError(title=CANNOT_REBASE, message="Can't find a branch of upstream to rebase onto", url=upstream_url)

    try:
        stashed: bool = await asyncio.to_thread(rebase_with_stash, local_repository, onto)
    except GitCommandFailedError as e:
        raise WorkflowError(title=CANNOT_REBASE, message=str(e), url=upstream_url) from e

    return RebaseResult(
        title="Successfully rebased GitHub fork",
        message=f"Rebased {local_repository.current_branch} onto {onto}",
        upstream_url=upstream_url,
        onto=onto,
        stashed=stashed,
    )
