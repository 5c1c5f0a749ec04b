"""Create a gist from files, directories or a snippet of text."""

import asyncio
from logging import Logger
from pathlib import Path

from fastmcp.utilities.logging import get_logger

from github_workflows_mcp.clients.models.github import Gist, GistFile
from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.git.repository import LocalRepository
from github_workflows_mcp.workflows.errors import WorkflowError
from github_workflows_mcp.workflows.models import GistResult

FAILED_TO_CREATE_GIST = "Failed to create gist"

logger: Logger = get_logger(name=__name__)


def _is_ignored(path: Path, local_repository: LocalRepository | None) -> bool:
    if path.name.startswith("."):
        return True

    if local_repository is None:
        return False

    relative_path: str | None = local_repository.relative_path(path)
    if relative_path is None:
        return False

    return relative_path in local_repository.ignored([relative_path])


def _read_file(path: Path, filename: str) -> GistFile | None:
    try:
        content: str = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.debug(f"Skipping binary file {path}")
        return None
    except OSError as e:
        raise WorkflowError(title=FAILED_TO_CREATE_GIST, message=f"Couldn't get file contents: {e}", extra_info={"path": str(path)}) from e

    if not content.strip():
        logger.debug(f"Skipping empty file {path}")
        return None

    return GistFile(filename=filename, content=content)


def _collect_directory(directory: Path, prefix: str, local_repository: LocalRepository | None) -> list[GistFile]:
    files: list[GistFile] = []

    for child in sorted(directory.iterdir()):
        if _is_ignored(child, local_repository):
            continue

        if child.is_dir():
            files.extend(_collect_directory(child, prefix=f"{prefix}{child.name}_", local_repository=local_repository))
        elif gist_file := _read_file(child, filename=prefix + child.name):
            files.append(gist_file)

    return files


def collect_contents(paths: list[Path]) -> list[GistFile]:
    """Read the files to put in a gist.

    Directories are walked recursively and the files in them are named after the path from the selected
    directory, `src/app/main.py` under `src` becomes `src_app_main.py`. Hidden files, files ignored by git,
    binary files and blank files are skipped."""

    files: list[GistFile] = []

    for path in paths:
        local_repository: LocalRepository | None = LocalRepository.find(path)

        if not path.exists():
            raise WorkflowError(title=FAILED_TO_CREATE_GIST, message=f"File not found: {path}")

        if path.is_dir():
            files.extend(_collect_directory(path, prefix=f"{path.resolve().name}_", local_repository=local_repository))
        elif not _is_ignored(path, local_repository) and (gist_file := _read_file(path, filename=path.name)):
            files.append(gist_file)

    return files


async def create_gist(
    context: GitHubContext,
    paths: list[Path] | None = None,
    content: str | None = None,
    filename: str | None = None,
    description: str = "",
    private: bool | None = None,
) -> GistResult:
    """Create a gist from the given files and directories, or from a snippet of text.

    A gist with a single file takes `filename` as the name of that file, when one is given."""

    files: list[GistFile] = []

    if content is not None and content.strip():
        files.append(GistFile(filename=filename or "snippet.txt", content=content))

    if paths:
        files.extend(await asyncio.to_thread(collect_contents, paths))

    if not files:
        raise WorkflowError(title=FAILED_TO_CREATE_GIST, message="Can't create empty gist")

    if len(files) == 1 and filename:
        files = [GistFile(filename=filename, content=files[0].content)]

    private = context.settings.private_gist if private is None else private

    _, credential = await context.run_and_get_valid_auth(operation=lambda client: client.get_current_user())

    logger.info(f"Creating {'secret' if private else 'public'} gist with {len(files)} files")
    gist: Gist = await context.client(credential).create_gist(files=files, description=description, public=not private)

    return GistResult(
        title="Gist Created Successfully",
        message=f"Your gist url: {gist.html_url}",
        url=gist.html_url,
        gist=gist,
        open_in_browser=context.settings.open_in_browser_gist,
    )
