import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Any, overload

import pytest
from git.repo import Repo
from pydantic import BaseModel

from github_workflows_mcp.auth.credentials import Credential, TokenCredential
from github_workflows_mcp.clients.errors.github import AuthenticationError, CertificateError, ResourceNotFoundError
from github_workflows_mcp.clients.models.github import Gist, GistFile, PullRequest, Repository, User
from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.settings import SettingsStore

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


class MemorySecretStore:
    def __init__(self, secrets: dict[str, str] | None = None):
        self.secrets: dict[str, str] = dict(secrets or {})

    def get_secret(self, key: str) -> str | None:
        return self.secrets.get(key)

    def set_secret(self, key: str, value: str) -> None:
        self.secrets[key] = value

    def delete_secret(self, key: str) -> None:
        _ = self.secrets.pop(key, None)


class FakePrompter:
    """Answers prompts from queued responses and records what was asked."""

    def __init__(self, credentials: Sequence[Credential | None] = (), trust: bool = False):
        self.credentials: list[Credential | None] = list(credentials)
        self.trust: bool = trust
        self.credential_prompts: list[tuple[str, str]] = []
        self.trust_prompts: list[tuple[str, str]] = []

    async def ask_credentials(self, host: str, message: str) -> Credential | None:
        self.credential_prompts.append((host, message))

        if not self.credentials:
            return None

        return self.credentials.pop(0)

    async def confirm_trust(self, host: str, message: str) -> bool:
        self.trust_prompts.append((host, message))
        return self.trust


def make_repository(
    owner: str,
    name: str,
    fork: bool = False,
    parent: Repository | None = None,
    source: Repository | None = None,
    default_branch: str | None = "main",
    private: bool = False,
) -> Repository:
    return Repository(
        owner=owner,
        name=name,
        full_name=f"{owner}/{name}",
        html_url=f"https://github.com/{owner}/{name}",
        clone_url=f"https://github.com/{owner}/{name}.git",
        fork=fork,
        private=private,
        default_branch=default_branch,
        parent=parent,
        source=source,
    )


class FakeGitHubClient:
    """Serves canned GitHub data and records what was created."""

    def __init__(
        self,
        user: User | None = None,
        repositories: Sequence[Repository] = (),
        user_repositories: Sequence[Repository] | None = None,
        branches: dict[str, list[str]] | None = None,
        forks: dict[str, list[Repository]] | None = None,
        valid_tokens: set[str] | None = None,
        self_signed_hosts: set[str] | None = None,
    ):
        self.credential: Credential = TokenCredential(token="token")
        self.trusted: bool = False
        self.user: User = user or User(login="octocat")
        self.repositories: dict[str, Repository] = {repository.full_name.lower(): repository for repository in repositories}
        self.user_repositories: list[Repository] = list(user_repositories if user_repositories is not None else repositories)
        self.branches: dict[str, list[str]] = branches or {}
        self.forks: dict[str, list[Repository]] = forks or {}
        self.valid_tokens: set[str] | None = valid_tokens
        self.self_signed_hosts: set[str] = self_signed_hosts or set()

        self.calls: list[str] = []
        self.created_repositories: list[Repository] = []
        self.created_gists: list[tuple[list[GistFile], str, bool]] = []
        self.created_pull_requests: list[dict[str, str]] = []

    @property
    def host(self) -> str:
        return self.credential.host

    def _check_credential(self, call: str) -> None:
        self.calls.append(call)

        if self.host in self.self_signed_hosts and not self.trusted:
            raise CertificateError(action=call, host=self.host)

        if self.valid_tokens is not None and getattr(self.credential, "token", None) not in self.valid_tokens:
            raise AuthenticationError(message="Bad credentials", host=self.host, status_code=401)

    async def get_current_user(self) -> User:
        self._check_credential("get_current_user")
        return self.user

    async def get_user_repositories(self) -> list[Repository]:
        self._check_credential("get_user_repositories")
        return self.user_repositories

    async def get_available_repositories(self) -> list[Repository]:
        self._check_credential("get_available_repositories")
        return list(self.repositories.values())

    async def get_repository(self, owner: str, repo: str, error_on_not_found: bool = True) -> Repository | None:
        self._check_credential(f"get_repository {owner}/{repo}")

        repository = self.repositories.get(f"{owner}/{repo}".lower())
        if repository is None and error_on_not_found:
            raise ResourceNotFoundError(action="Get repository", resource=f"/repos/{owner}/{repo}")

        return repository

    async def get_branches(self, owner: str, repo: str) -> list[str]:
        self._check_credential(f"get_branches {owner}/{repo}")
        return self.branches.get(f"{owner}/{repo}", [])

    async def find_fork_by_user(self, owner: str, repo: str, fork_owner: str) -> Repository | None:
        self._check_credential(f"find_fork_by_user {owner}/{repo} {fork_owner}")

        for fork in self.forks.get(f"{owner}/{repo}", []):
            if fork.is_owned_by(fork_owner):
                return fork

        return None

    async def create_repository(self, name: str, description: str, private: bool) -> Repository:
        self._check_credential(f"create_repository {name}")

        repository = make_repository(owner=self.user.login, name=name, private=private)
        self.created_repositories.append(repository)

        return repository

    async def create_gist(self, files: list[GistFile], description: str, public: bool) -> Gist:
        self._check_credential("create_gist")

        self.created_gists.append((files, description, public))

        return Gist(id="aa5a315d61ae9438b18d", html_url="https://gist.github.com/aa5a315d61ae9438b18d", public=public)

    async def create_pull_request(self, owner: str, repo: str, title: str, body: str, head: str, base: str) -> PullRequest:
        self._check_credential(f"create_pull_request {owner}/{repo}")

        self.created_pull_requests.append({"owner": owner, "repo": repo, "title": title, "body": body, "head": head, "base": base})

        return PullRequest(number=42, html_url=f"https://github.com/{owner}/{repo}/pull/42", title=title, head=head, base=base)


class FakeClientFactory:
    """Hands out the same fake client for every credential, remembering the credentials it was given."""

    def __init__(self, client: FakeGitHubClient):
        self.client: FakeGitHubClient = client
        self.credentials: list[Credential] = []

    def __call__(self, credential: Credential, trusted: bool) -> Any:
        self.credentials.append(credential)
        self.client.credential = credential
        self.client.trusted = trusted
        return self.client


@pytest.fixture
def secret_store() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture
def settings_store(tmp_path: Path, secret_store: MemorySecretStore, monkeypatch: pytest.MonkeyPatch) -> SettingsStore:
    for env_var in ("GITHUB_TOKEN", "GITHUB_PERSONAL_ACCESS_TOKEN", "GITHUB_HOST"):
        monkeypatch.delenv(env_var, raising=False)

    return SettingsStore(settings_path=tmp_path / "config" / "settings.yaml", secret_store=secret_store)


@pytest.fixture
def token_settings_store(settings_store: SettingsStore) -> SettingsStore:
    settings_store.set_credential(TokenCredential(token="valid-token"), remember_secret=True)
    return settings_store


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture
def github_client() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def github_context(prompter: FakePrompter, token_settings_store: SettingsStore, github_client: FakeGitHubClient) -> GitHubContext:
    return GitHubContext(prompter=prompter, settings_store=token_settings_store, client_factory=FakeClientFactory(github_client))


# Git


@pytest.fixture
def git_remotes_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolates git from the user's configuration and sends pushes to `https://github.com/...` to local bare repositories."""

    remotes_dir = tmp_path / "remotes"
    remotes_dir.mkdir()

    global_config = tmp_path / "gitconfig"
    global_config.touch()

    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")

    config: dict[str, str] = {
        "init.defaultBranch": "main",
        f"url.{remotes_dir.as_uri()}/.pushInsteadOf": "https://github.com/",
    }

    monkeypatch.setenv("GIT_CONFIG_COUNT", str(len(config)))
    for index, (key, value) in enumerate(config.items()):
        monkeypatch.setenv(f"GIT_CONFIG_KEY_{index}", key)
        monkeypatch.setenv(f"GIT_CONFIG_VALUE_{index}", value)

    return remotes_dir


def make_bare_remote(remotes_dir: Path, owner: str, repo: str) -> Repo:
    return Repo.init(remotes_dir / owner / f"{repo}.git", bare=True)


def make_working_copy(path: Path, files: dict[str, str] | None = None, commit: bool = True) -> Repo:
    path.mkdir(parents=True, exist_ok=True)

    repo = Repo.init(path)

    for name, content in (files or {"README.md": "# Project\n"}).items():
        file_path = path / name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        _ = file_path.write_text(content, encoding="utf-8")

    if commit:
        repo.git.add(all=True)
        repo.git.commit(message="Initial commit")

    return repo


# Snapshots


def handle_exclude_keys(dictionary: dict[str, Any], exclude_keys: list[str] | None = None) -> dict[str, Any]:
    if exclude_keys is None:
        return dictionary
    return {key: value for key, value in dictionary.items() if key not in exclude_keys}


@overload
def dump_for_snapshot(
    basemodel: None,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> None: ...


@overload
def dump_for_snapshot(
    basemodel: BaseModel,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> dict[str, Any]: ...


def dump_for_snapshot(
    basemodel: None | BaseModel,
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> dict[str, Any] | None:
    if basemodel is None:
        return None

    return handle_exclude_keys(basemodel.model_dump(exclude_none=exclude_none, **dump_kwargs), exclude_keys)


def dump_list_for_snapshot(
    basemodel: None | Sequence[BaseModel],
    /,
    exclude_keys: list[str] | None = None,
    exclude_none: bool = True,
    **dump_kwargs: Any,
) -> list[dict[str, Any]] | None:
    if basemodel is None:
        return []

    return [dump_for_snapshot(item, exclude_keys, exclude_none, **dump_kwargs) for item in basemodel]
