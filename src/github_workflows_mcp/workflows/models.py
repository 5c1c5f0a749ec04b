from typing import Literal

from pydantic import BaseModel, Field

from github_workflows_mcp.clients.models.github import Gist, PullRequest, Repository


class WorkflowResult(BaseModel):
    """What a finished workflow reports back to the user."""

    title: str = Field(description="A short summary of the outcome.")
    message: str = Field(description="The details of the outcome.")
    url: str | None = Field(default=None, description="A URL to open for the outcome, if any.")


class CancelledResult(WorkflowResult):
    """The user declined to log in, so nothing was done."""

    cancelled: Literal[True] = True


class ShareResult(WorkflowResult):
    status: Literal["already_shared", "created_empty", "shared"] = Field(description="How far the share got.")
    repository_name: str | None = Field(default=None, description="The name of the repository on GitHub.")
    remote_name: str | None = Field(default=None, description="The name of the git remote pointing at GitHub.")


class PullRequestTargets(BaseModel):
    """The branches a pull request from the current branch could target."""

    current_branch: str = Field(description="The branch the pull request would come from.")
    repository: str = Field(description="The full name of the GitHub repository of the working copy.")
    suggested_target: str | None = Field(default=None, description="The `owner:branch` target to use by default.")
    targets: list[str] = Field(description="Every `owner:branch` target found.")


class PullRequestResult(WorkflowResult):
    pull_request: PullRequest = Field(description="The created pull request.")


class GistResult(WorkflowResult):
    gist: Gist = Field(description="The created gist.")
    open_in_browser: bool = Field(description="Whether the gist should be opened in a browser.")


class RebaseResult(WorkflowResult):
    upstream_url: str = Field(description="The URL of the upstream remote.")
    onto: str = Field(description="The ref the current branch was rebased onto.")
    stashed: bool = Field(description="Whether local changes were stashed and restored around the rebase.")


class RepositoryList(BaseModel):
    repositories: list[Repository] = Field(description="The repositories, sorted by owner and name.")


class CloneResult(WorkflowResult):
    directory: str = Field(description="The directory the repository was cloned into.")
