"""Create a pull request from the current branch, to a branch of the repository, its parent, source or upstream."""

import asyncio
from collections.abc import Iterable
from logging import Logger
from pathlib import Path

from fastmcp.utilities.logging import get_logger
from pydantic import BaseModel, ConfigDict

from github_workflows_mcp.auth.credentials import Credential
from github_workflows_mcp.clients.errors.github import ClientError, RequestError
from github_workflows_mcp.clients.github import GitHubWorkflowClient
from github_workflows_mcp.clients.models.github import PullRequest, RemoteBranch, Repository, RepositoryPath
from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.git.repository import GitCommandFailedError, GitRemoteUrl, LocalRepository
from github_workflows_mcp.utilities.urls import get_repository_path_from_remote_url, is_github_url
from github_workflows_mcp.workflows.errors import MalformedTargetError, WorkflowError
from github_workflows_mcp.workflows.models import PullRequestResult, PullRequestTargets
from github_workflows_mcp.workflows.shared import require_github_remote, require_repository, require_repository_path

CANNOT_CREATE_PULL_REQUEST = "Can't create pull request"

logger: Logger = get_logger(name=__name__)


def parse_target(target: str) -> tuple[str, str]:
    """Split an `owner:branch` target."""

    owner, separator, branch = target.partition(":")

    if not separator or not owner.strip() or not branch.strip():
        raise MalformedTargetError(target=target)

    return owner.strip(), branch.strip()


def _same_owner(first: Repository | RepositoryPath, second: Repository | RepositoryPath | None) -> bool:
    return second is not None and first.owner.lower() == second.owner.lower()


async def find_target_repository(
    client: GitHubWorkflowClient,
    target: str,
    repository: Repository,
    upstream: RepositoryPath | None,
    branches: Iterable[RemoteBranch],
) -> RepositoryPath | None:
    """Work out which repository the `owner:branch` target belongs to.

    Candidates are checked in order: a known branch of the target owner, the repository itself, its parent,
    its source, the upstream remote. Failing those, GitHub is asked for the target owner's repository of the
    same name (when it shares our source) and then for the target owner's fork of our source."""

    target_owner, _ = parse_target(target)

    for branch in branches:
        if branch.owner.lower() == target_owner.lower() and branch.repo is not None:
            return RepositoryPath(owner=branch.owner, repo=branch.repo)

    parent = repository.parent
    source = repository.source

    if repository.is_owned_by(target_owner):
        return repository.path
    if parent is not None and parent.is_owned_by(target_owner):
        return parent.path
    if source is not None and source.is_owned_by(target_owner):
        return source.path
    if upstream is not None and upstream.is_owned_by(target_owner):
        return upstream

    if source is None:
        return None

    try:
        target_repository = await client.get_repository(owner=target_owner, repo=repository.name, error_on_not_found=False)
    except ClientError:
        logger.debug(f"Couldn't load {target_owner}/{repository.name}", exc_info=True)
    else:
        if target_repository is not None and _same_owner(source, target_repository.source):
            return target_repository.path

    try:
        fork = await client.find_fork_by_user(owner=source.owner, repo=source.name, fork_owner=target_owner)
    except ClientError:
        logger.exception(f"Couldn't look for a fork of {source.full_name} owned by {target_owner}")
        return None

    return fork.path if fork is not None else None


def get_branches_from_git(local_repository: LocalRepository, host: str) -> list[RemoteBranch]:
    """The branches of GitHub remotes that git already knows about."""

    result: list[RemoteBranch] = []

    remote_urls: dict[str, list[str]] = {remote.name: remote.urls for remote in local_repository.remotes()}

    for remote_name, remote_branches in local_repository.remote_branches().items():
        for url in remote_urls.get(remote_name, []):
            if not is_github_url(url, host=host):
                continue

            repository_path = get_repository_path_from_remote_url(url)
            if repository_path is None:
                continue

            result.extend(
                RemoteBranch(owner=repository_path.owner, branch=branch.name, repo=repository_path.repo, local_branch=branch.local_name)
                for branch in remote_branches
            )
            break

    return result


async def get_branches_from_github(
    client: GitHubWorkflowClient, repository: Repository, upstream: RepositoryPath | None
) -> list[RemoteBranch]:
    """The branches of the repository, its parent, its source and the upstream remote, each owner loaded once."""

    candidates: list[RepositoryPath] = []

    if repository.parent is not None:
        candidates.append(repository.parent.path)

    candidates.append(repository.path)

    if repository.source is not None and not _same_owner(repository.source, repository.parent):
        candidates.append(repository.source.path)

    if (
        upstream is not None
        and not _same_owner(upstream, repository)
        and not _same_owner(upstream, repository.parent)
        and not _same_owner(upstream, repository.source)
    ):
        candidates.append(upstream)

    result: list[RemoteBranch] = []

    for candidate in candidates:
        try:
            branch_names = await client.get_branches(owner=candidate.owner, repo=candidate.repo)
        except RequestError:
            logger.exception(f"Can't load available branches of {candidate}")
            break

        result.extend(RemoteBranch(owner=candidate.owner, branch=name, repo=candidate.repo) for name in branch_names)

    return result


def merge_branches(*branch_lists: Iterable[RemoteBranch]) -> list[RemoteBranch]:
    """Combine branch lists, keeping the first of branches that are equal ignoring case."""

    merged: dict[RemoteBranch, RemoteBranch] = {}

    for branches in branch_lists:
        for branch in branches:
            _ = merged.setdefault(branch, branch)

    return list(merged.values())


class PullRequestContext(BaseModel):
    """What is known about the working copy and its GitHub repository before a pull request is created."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    local_repository: LocalRepository
    remote: GitRemoteUrl
    current_branch: str
    repository: Repository
    upstream: RepositoryPath | None
    credential: Credential
    branches: list[RemoteBranch]
    suggested_target: str | None


async def load_pull_request_context(context: GitHubContext, path: Path) -> PullRequestContext:
    local_repository: LocalRepository = require_repository(path=path, title=CANNOT_CREATE_PULL_REQUEST)

    remote: GitRemoteUrl = require_github_remote(repository=local_repository, host=context.host, title=CANNOT_CREATE_PULL_REQUEST)
    repository_path: RepositoryPath = require_repository_path(url=remote.url, title=CANNOT_CREATE_PULL_REQUEST)

    upstream_url: str | None = local_repository.find_upstream_remote_url(host=context.host)
    upstream: RepositoryPath | None = (
        get_repository_path_from_remote_url(upstream_url)
        if upstream_url is not None and is_github_url(upstream_url, host=context.host)
        else None
    )

    current_branch: str | None = local_repository.current_branch
    if current_branch is None:
        raise WorkflowError(title=CANNOT_CREATE_PULL_REQUEST, message="No current branch")

    repository, credential = await context.run_and_get_valid_auth(
        operation=lambda client: client.get_repository(owner=repository_path.owner, repo=repository_path.repo),
    )

    github_branches = await get_branches_from_github(client=context.client(credential), repository=repository, upstream=upstream)

    branches = merge_branches(get_branches_from_git(local_repository=local_repository, host=context.host), github_branches)

    references: list[str] = [branch.reference for branch in branches]

    suggested_target: str | None = None
    if (default_branch := context.settings.create_pull_request_default_branch) and default_branch in references:
        suggested_target = default_branch
    elif repository.parent is not None and repository.parent.default_branch:
        suggested_target = f"{repository.parent.owner}:{repository.parent.default_branch}"

    return PullRequestContext(
        local_repository=local_repository,
        remote=remote,
        current_branch=current_branch,
        repository=repository,
        upstream=upstream,
        credential=credential,
        branches=branches,
        suggested_target=suggested_target,
    )


async def list_pull_request_targets(context: GitHubContext, path: Path) -> PullRequestTargets:
    pull_request_context = await load_pull_request_context(context=context, path=path)

    return PullRequestTargets(
        current_branch=pull_request_context.current_branch,
        repository=pull_request_context.repository.full_name,
        suggested_target=pull_request_context.suggested_target,
        targets=[branch.reference for branch in pull_request_context.branches],
    )


async def create_pull_request(
    context: GitHubContext,
    path: Path,
    title: str,
    description: str = "",
    target: str | None = None,
) -> PullRequestResult:
    """Push the current branch and open a pull request from it to the target `owner:branch`."""

    if not title.strip():
        raise WorkflowError(title=CANNOT_CREATE_PULL_REQUEST, message="Title can't be empty")

    if target is not None:
        _ = parse_target(target)

    pull_request_context = await load_pull_request_context(context=context, path=path)

    target = target or pull_request_context.suggested_target
    if target is None:
        raise WorkflowError(title=CANNOT_CREATE_PULL_REQUEST, message="No target branch given and none could be suggested")

    logger.info(f"Pushing current branch {pull_request_context.current_branch}")
    try:
        await asyncio.to_thread(
            pull_request_context.local_repository.push,
            remote=pull_request_context.remote.name,
            branch=pull_request_context.current_branch,
        )
    except GitCommandFailedError as e:
        raise WorkflowError(title=CANNOT_CREATE_PULL_REQUEST, message=f"Push failed: {e}") from e

    client: GitHubWorkflowClient = context.client(pull_request_context.credential)

    target_repository: RepositoryPath | None = await find_target_repository(
        client=client,
        target=target,
        repository=pull_request_context.repository,
        upstream=pull_request_context.upstream,
        branches=pull_request_context.branches,
    )
    if target_repository is None:
        raise WorkflowError(title=CANNOT_CREATE_PULL_REQUEST, message=f"Can't find repository for specified branch: {target}")

    _, target_branch = parse_target(target)
    head: str = f"{pull_request_context.repository.owner}:{pull_request_context.current_branch}"

    logger.info(f"Creating pull request from {head} to {target} in {target_repository}")
    pull_request: PullRequest = await client.create_pull_request(
        owner=target_repository.owner,
        repo=target_repository.repo,
        title=title,
        body=description,
        head=head,
        base=target_branch,
    )

    context.settings_store.set_create_pull_request_default_branch(target)

    return PullRequestResult(
        title="Successfully created pull request",
        message=f"Pull Request #{pull_request.number}",
        url=pull_request.html_url,
        pull_request=pull_request,
    )
