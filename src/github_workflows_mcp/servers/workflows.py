from collections.abc import Awaitable
from logging import Logger
from pathlib import Path
from typing import Any

from fastmcp.server import FastMCP
from fastmcp.server.dependencies import get_context
from fastmcp.tools import Tool
from fastmcp.utilities.logging import get_logger

from github_workflows_mcp.auth.prompts import ElicitationPrompter
from github_workflows_mcp.clients.errors.github import AuthenticationCancelledError
from github_workflows_mcp.context import ClientFactory, GitHubContext
from github_workflows_mcp.servers.shared.annotations import (
    CLONE_URL,
    COMMIT_MESSAGE,
    DIRECTORY_NAME,
    END_LINE,
    GIST_CONTENT,
    GIST_DESCRIPTION,
    GIST_FILENAME,
    GIST_PATHS,
    PARENT_DIRECTORY,
    PATH,
    PRIVATE_GIST,
    PRIVATE_REPOSITORY,
    PROJECT_PATH,
    PULL_REQUEST_DESCRIPTION,
    PULL_REQUEST_TARGET,
    PULL_REQUEST_TITLE,
    REPOSITORY_DESCRIPTION,
    REPOSITORY_NAME,
    REVISION,
    SHARE_FILES,
    START_LINE,
)
from github_workflows_mcp.settings import SettingsStore
from github_workflows_mcp.workflows import browser, checkout, gist, pull_request, rebase, share
from github_workflows_mcp.workflows.models import (
    CancelledResult,
    CloneResult,
    GistResult,
    PullRequestResult,
    PullRequestTargets,
    RebaseResult,
    RepositoryList,
    ShareResult,
    WorkflowResult,
)


async def cancellable[T](workflow: Awaitable[T]) -> T | CancelledResult:
    """Run a workflow, reporting a declined login as a cancelled result rather than an error."""

    try:
        return await workflow
    except AuthenticationCancelledError as e:
        return CancelledResult(title="Cancelled", message=str(e))


class WorkflowServer:
    """Exposes the GitHub workflows as MCP tools. Credentials and trust decisions are asked for through elicitation."""

    settings_store: SettingsStore
    client_factory: ClientFactory | None
    logger: Logger

    def __init__(
        self, settings_store: SettingsStore | None = None, client_factory: ClientFactory | None = None, logger: Logger | None = None
    ):
        self.logger = logger or get_logger(name=__name__)
        self.settings_store = settings_store or SettingsStore(logger=self.logger)
        self.client_factory = client_factory

    def register_tools(self, fastmcp: FastMCP[Any]) -> FastMCP[Any]:
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.share_project))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.list_pull_request_targets))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.create_pull_request))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.create_gist))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.rebase_fork))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.get_file_url))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.get_commit_url))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.list_available_repositories))
        _ = fastmcp.add_tool(tool=Tool.from_function(fn=self.clone_repository))

        return fastmcp

    def _github_context(self) -> GitHubContext:
        return GitHubContext(
            prompter=ElicitationPrompter(context=get_context()),
            settings_store=self.settings_store,
            client_factory=self.client_factory,
            logger=self.logger,
        )

    async def share_project(
        self,
        path: PROJECT_PATH,
        name: REPOSITORY_NAME,
        description: REPOSITORY_DESCRIPTION = "",
        private: PRIVATE_REPOSITORY = False,
        files: SHARE_FILES = None,
        commit_message: COMMIT_MESSAGE = None,
    ) -> ShareResult | CancelledResult:
        """Create a GitHub repository for a local project and push the project to it."""

        return await cancellable(
            share.share_project(
                context=self._github_context(),
                path=Path(path),
                name=name,
                description=description,
                private=private,
                files=files,
                commit_message=commit_message,
            )
        )

    async def list_pull_request_targets(self, path: PATH) -> PullRequestTargets | CancelledResult:
        """List the `owner:branch` targets a pull request from the current branch could be opened against."""

        return await cancellable(pull_request.list_pull_request_targets(context=self._github_context(), path=Path(path)))

    async def create_pull_request(
        self,
        path: PATH,
        title: PULL_REQUEST_TITLE,
        description: PULL_REQUEST_DESCRIPTION = "",
        target: PULL_REQUEST_TARGET = None,
    ) -> PullRequestResult | CancelledResult:
        """Push the current branch and open a pull request from it."""

        return await cancellable(
            pull_request.create_pull_request(
                context=self._github_context(), path=Path(path), title=title, description=description, target=target
            )
        )

    async def create_gist(
        self,
        paths: GIST_PATHS = None,
        content: GIST_CONTENT = None,
        filename: GIST_FILENAME = None,
        description: GIST_DESCRIPTION = "",
        private: PRIVATE_GIST = None,
    ) -> GistResult | CancelledResult:
        """Create a gist from local files and directories, or from a snippet of text."""

        return await cancellable(
            gist.create_gist(
                context=self._github_context(),
                paths=[Path(path) for path in paths] if paths else None,
                content=content,
                filename=filename,
                description=description,
                private=private,
            )
        )

    async def rebase_fork(self, path: PATH) -> RebaseResult | CancelledResult:
        """Fetch the repository a fork was forked from and rebase the current branch onto it."""

        return await cancellable(rebase.rebase_fork(context=self._github_context(), path=Path(path)))

    async def get_file_url(self, path: PATH, start_line: START_LINE = None, end_line: END_LINE = None) -> WorkflowResult:
        """Get the GitHub URL of a local file, optionally highlighting a range of lines."""

        return browser.get_file_url(
            context=self._github_context(),
            path=Path(path),
            start_line=start_line,
            end_line=end_line,
        )

    async def get_commit_url(self, path: PATH, revision: REVISION = "HEAD") -> WorkflowResult:
        """Get the GitHub URL of a commit of the local repository."""

        return browser.get_commit_url(
            context=self._github_context(),
            path=Path(path),
            revision=revision,
        )

    async def list_available_repositories(self) -> RepositoryList | CancelledResult:
        """List the GitHub repositories the user can access, sorted by owner and name."""

        return await cancellable(checkout.list_available_repositories(context=self._github_context()))

    async def clone_repository(
        self, url: CLONE_URL, parent_directory: PARENT_DIRECTORY, directory_name: DIRECTORY_NAME = None
    ) -> CloneResult:
        """Clone a repository into a new directory."""

        return await checkout.clone_repository(url=url, parent_directory=Path(parent_directory), directory_name=directory_name)
