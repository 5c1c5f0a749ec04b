from typing import Any, Self

from githubkit.versions.v2022_11_28.models import FullRepository as GitHubKitFullRepository
from githubkit.versions.v2022_11_28.models import GistSimple as GitHubKitGistSimple
from githubkit.versions.v2022_11_28.models import MinimalRepository as GitHubKitMinimalRepository
from githubkit.versions.v2022_11_28.models import PrivateUser as GitHubKitPrivateUser
from githubkit.versions.v2022_11_28.models import PublicUser as GitHubKitPublicUser
from githubkit.versions.v2022_11_28.models import PullRequest as GitHubKitPullRequest
from githubkit.versions.v2022_11_28.models import Repository as GitHubKitRepository
from pydantic import BaseModel, ConfigDict, Field


class RepositoryPath(BaseModel):
    """The owner and name of a repository, as found in a remote URL."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(description="The owner of the repository.")
    repo: str = Field(description="The name of the repository.")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def is_owned_by(self, owner: str) -> bool:
        return self.owner.lower() == owner.lower()

    def __str__(self) -> str:
        return self.full_name


class Repository(BaseModel):
    """A repository, with the fork relationships needed to pick pull request targets."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    owner: str = Field(description="The login of the owner of the repository.")
    name: str = Field(description="The name of the repository.")
    full_name: str = Field(description="The full name of the repository, `owner/name`.")
    html_url: str = Field(description="The URL of the repository on GitHub.")
    clone_url: str | None = Field(default=None, description="The HTTPS clone URL of the repository.")
    fork: bool = Field(default=False, description="Whether the repository is a fork.")
    private: bool = Field(default=False, description="Whether the repository is private.")
    default_branch: str | None = Field(default=None, description="The default branch of the repository.")
    parent: "Repository | None" = Field(default=None, description="The repository this repository was directly forked from.")
    source: "Repository | None" = Field(default=None, description="The root repository of the fork network.")

    @property
    def path(self) -> RepositoryPath:
        return RepositoryPath(owner=self.owner, repo=self.name)

    def is_owned_by(self, owner: str) -> bool:
        return self.owner.lower() == owner.lower()

    @classmethod
    def from_repository(cls, repository: GitHubKitRepository | GitHubKitMinimalRepository) -> Self:
        return cls(
            owner=repository.owner.login,
            name=repository.name,
            full_name=repository.full_name,
            html_url=repository.html_url,
            clone_url=repository.clone_url or None,
            fork=repository.fork,
            private=repository.private,
            default_branch=repository.default_branch or None,
        )

    @classmethod
    def from_full_repository(cls, full_repository: GitHubKitFullRepository) -> Self:
        parent = cls.from_repository(repository=full_repository.parent) if full_repository.parent else None
        source = cls.from_repository(repository=full_repository.source) if full_repository.source else None

        return cls(
            owner=full_repository.owner.login,
            name=full_repository.name,
            full_name=full_repository.full_name,
            html_url=full_repository.html_url,
            clone_url=full_repository.clone_url,
            fork=full_repository.fork,
            private=full_repository.private,
            default_branch=full_repository.default_branch,
            parent=parent,
            source=source,
        )


class RemoteBranch(BaseModel):
    """A branch that a pull request could target, `owner:branch`."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(description="The owner of the repository containing the branch.")
    branch: str = Field(description="The name of the branch on the remote.")
    repo: str | None = Field(default=None, description="The name of the repository containing the branch, if known.")
    local_branch: str | None = Field(default=None, description="The name of the remote tracking branch in the local repository.")

    @property
    def reference(self) -> str:
        return f"{self.owner}:{self.branch}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RemoteBranch):
            return NotImplemented
        return self.owner.lower() == other.owner.lower() and self.branch.lower() == other.branch.lower()

    def __hash__(self) -> int:
        return hash((self.owner.lower(), self.branch.lower()))


class User(BaseModel):
    """The authenticated GitHub user."""

    login: str = Field(description="The login of the user.")
    name: str | None = Field(default=None, description="The display name of the user.")
    can_create_private_repositories: bool = Field(default=True, description="Whether the user's plan allows another private repository.")

    @classmethod
    def from_githubkit_user(cls, user: GitHubKitPrivateUser | GitHubKitPublicUser) -> Self:
        can_create_private: bool = True

        if isinstance(user, GitHubKitPrivateUser) and user.plan:
            can_create_private = user.plan.private_repos > user.owned_private_repos

        return cls(login=user.login, name=user.name or None, can_create_private_repositories=can_create_private)


class GistFile(BaseModel):
    """A file to include in a gist."""

    model_config = ConfigDict(frozen=True)

    filename: str = Field(description="The name of the file in the gist.")
    content: str = Field(description="The content of the file.")


class Gist(BaseModel):
    """A created gist."""

    id: str | None = Field(default=None, description="The id of the gist.")
    html_url: str = Field(description="The URL of the gist.")
    public: bool = Field(description="Whether the gist is public.")

    @classmethod
    def from_gist_simple(cls, gist_simple: GitHubKitGistSimple) -> Self:
        return cls(id=gist_simple.id or None, html_url=gist_simple.html_url or "", public=bool(gist_simple.public))


class PullRequest(BaseModel):
    """A created pull request."""

    number: int = Field(description="The number of the pull request.")
    html_url: str = Field(description="The URL of the pull request.")
    title: str = Field(description="The title of the pull request.")
    head: str = Field(description="The branch the changes come from, `owner:branch`.")
    base: str = Field(description="The branch the changes are merged into.")

    @classmethod
    def from_pull_request(cls, pull_request: GitHubKitPullRequest) -> Self:
        return cls(
            number=pull_request.number,
            html_url=pull_request.html_url,
            title=pull_request.title,
            head=pull_request.head.label,
            base=pull_request.base.ref,
        )


def gist_files_payload(files: list[GistFile]) -> dict[str, Any]:
    return {file.filename: {"content": file.content} for file in files}
