"""Links to files and commits of a working copy on GitHub."""

from pathlib import Path

from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.git.repository import GitCommandFailedError, GitRemoteBranch, LocalRepository
from github_workflows_mcp.utilities.urls import make_repository_url_from_remote_url
from github_workflows_mcp.workflows.errors import WorkflowError
from github_workflows_mcp.workflows.models import WorkflowResult
from github_workflows_mcp.workflows.shared import require_github_remote, require_repository

CANNOT_OPEN_IN_BROWSER = "Can't open in browser"


def _get_repository_url(context: GitHubContext, local_repository: LocalRepository) -> str:
    remote = require_github_remote(repository=local_repository, host=context.host, title=CANNOT_OPEN_IN_BROWSER)

    repository_url: str | None = make_repository_url_from_remote_url(remote.url)
    if repository_url is None:
        raise WorkflowError(title=CANNOT_OPEN_IN_BROWSER, message=f"Can't process remote: {remote.url}")

    return repository_url


def make_line_anchor(start_line: int | None, end_line: int | None) -> str:
    if start_line is None:
        return ""

    return f"#L{start_line}-{end_line if end_line is not None else start_line}"


def get_file_url(context: GitHubContext, path: Path, start_line: int | None = None, end_line: int | None = None) -> WorkflowResult:
    """The URL of a file, or of a range of lines in it, on the branch the current branch tracks."""

    local_repository: LocalRepository = require_repository(path=path, title=CANNOT_OPEN_IN_BROWSER)

    repository_url: str = _get_repository_url(context=context, local_repository=local_repository)

    relative_path: str | None = local_repository.relative_path(path)
    if relative_path is None:
        raise WorkflowError(title=CANNOT_OPEN_IN_BROWSER, message="File is not under repository root", extra_info={"path": str(path)})

    if local_repository.current_branch is None:
        raise WorkflowError(title=CANNOT_OPEN_IN_BROWSER, message="Can't open the file while HEAD is detached")

    tracked_branch: GitRemoteBranch | None = local_repository.tracked_branch()
    if tracked_branch is None:
        raise WorkflowError(
            title=CANNOT_OPEN_IN_BROWSER,
            message=f"Can't find tracked branch for current branch {local_repository.current_branch}",
        )

    url: str = f"{repository_url}/tree/{tracked_branch.name}"
    if relative_path and relative_path != ".":
        url += f"/{relative_path}"
    url += make_line_anchor(start_line=start_line, end_line=end_line)

    return WorkflowResult(title="GitHub file URL", message=url, url=url)


def get_commit_url(context: GitHubContext, path: Path, revision: str = "HEAD") -> WorkflowResult:
    local_repository: LocalRepository = require_repository(path=path, title=CANNOT_OPEN_IN_BROWSER)

    repository_url: str = _get_repository_url(context=context, local_repository=local_repository)

    try:
        sha: str = local_repository.resolve_revision(revision)
    except GitCommandFailedError as e:
        raise WorkflowError(title=CANNOT_OPEN_IN_BROWSER, message=str(e)) from e

    url: str = f"{repository_url}/commit/{sha}"

    return WorkflowResult(title="GitHub commit URL", message=url, url=url)
