from pathlib import Path

import pytest
from click.testing import CliRunner

from github_workflows_mcp.auth.credentials import AuthType, TokenCredential
from github_workflows_mcp.cli import cli
from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.settings import SettingsStore
from tests.conftest import (
    FakeClientFactory,
    FakeGitHubClient,
    FakePrompter,
    make_repository,
    make_working_copy,
    requires_git,
)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def github_client() -> FakeGitHubClient:
    return FakeGitHubClient(repositories=[make_repository("octocat", "hello-world")], valid_tokens={"valid-token", "entered-token"})


def test_repos(runner: CliRunner, github_context: GitHubContext):
    result = runner.invoke(cli, ["repos"], obj=github_context)

    assert result.exit_code == 0
    assert result.output == "octocat/hello-world\thttps://github.com/octocat/hello-world.git\n"


class TestLogin:
    def test_login(self, runner: CliRunner, settings_store: SettingsStore, github_client: FakeGitHubClient):
        prompter = FakePrompter(credentials=[TokenCredential(token="entered-token")])
        context = GitHubContext(prompter=prompter, settings_store=settings_store, client_factory=FakeClientFactory(github_client))

        result = runner.invoke(cli, ["login", "--remember"], obj=context)

        assert result.exit_code == 0
        assert result.output == "Logged in to github.com as octocat\n"
        assert settings_store.settings.auth_type == AuthType.TOKEN
        assert settings_store.get_credential() == TokenCredential(token="entered-token")

    def test_rejected(self, runner: CliRunner, settings_store: SettingsStore, github_client: FakeGitHubClient):
        prompter = FakePrompter(credentials=[TokenCredential(token="wrong-token")])
        context = GitHubContext(prompter=prompter, settings_store=settings_store, client_factory=FakeClientFactory(github_client))

        result = runner.invoke(cli, ["login"], obj=context)

        assert result.exit_code == 1
        assert "Bad credentials" in result.output
        assert not settings_store.settings.is_auth_configured()

    def test_cancelled(self, runner: CliRunner, settings_store: SettingsStore, github_client: FakeGitHubClient):
        context = GitHubContext(
            prompter=FakePrompter(credentials=[None]), settings_store=settings_store, client_factory=FakeClientFactory(github_client)
        )

        result = runner.invoke(cli, ["login"], obj=context)

        assert result.exit_code == 1
        assert result.output == ""

    def test_self_signed_host_is_trusted(self, runner: CliRunner, settings_store: SettingsStore):
        github_client = FakeGitHubClient(valid_tokens={"entered-token"}, self_signed_hosts={"github.example.com"})
        prompter = FakePrompter(credentials=[TokenCredential(host="github.example.com", token="entered-token")], trust=True)
        context = GitHubContext(prompter=prompter, settings_store=settings_store, client_factory=FakeClientFactory(github_client))

        result = runner.invoke(cli, ["login", "--remember"], obj=context)

        assert result.exit_code == 0
        assert [host for host, _ in prompter.trust_prompts] == ["github.example.com"]
        assert github_client.calls == ["get_current_user", "get_current_user"]
        assert "github.example.com" in context.trusted_hosts
        assert settings_store.get_credential() == TokenCredential(host="github.example.com", token="entered-token")

    def test_self_signed_host_not_trusted(self, runner: CliRunner, settings_store: SettingsStore):
        github_client = FakeGitHubClient(valid_tokens={"entered-token"}, self_signed_hosts={"github.example.com"})
        prompter = FakePrompter(credentials=[TokenCredential(host="github.example.com", token="entered-token")], trust=False)
        context = GitHubContext(prompter=prompter, settings_store=settings_store, client_factory=FakeClientFactory(github_client))

        result = runner.invoke(cli, ["login"], obj=context)

        assert result.exit_code == 1
        assert "security certificate" in result.output
        assert len(prompter.credential_prompts) == 1
        assert not settings_store.settings.is_auth_configured()

    def test_logout(self, runner: CliRunner, github_context: GitHubContext):
        result = runner.invoke(cli, ["logout"], obj=github_context)

        assert result.exit_code == 0
        assert not github_context.settings.is_auth_configured()


def test_settings(runner: CliRunner, github_context: GitHubContext):
    result = runner.invoke(cli, ["settings"], obj=github_context)

    assert result.exit_code == 0
    assert "host: github.com" in result.output
    assert "auth_type: token" in result.output
    assert "valid-token" not in result.output


@requires_git
def test_workflow_error(runner: CliRunner, github_context: GitHubContext, tmp_path: Path, git_remotes_dir: Path):
    make_working_copy(tmp_path / "project")

    result = runner.invoke(cli, ["commit-url", str(tmp_path / "project")], obj=github_context)

    assert result.exit_code == 1
    assert "Error: Can't open in browser: Can't find GitHub remote" in result.output


@requires_git
def test_open_print_only(runner: CliRunner, github_context: GitHubContext, tmp_path: Path, git_remotes_dir: Path):
    repo = make_working_copy(tmp_path / "project")
    _ = repo.create_remote("origin", "https://github.com/octocat/project.git")
    repo.git.update_ref("refs/remotes/origin/main", "HEAD")
    repo.git.branch("--set-upstream-to", "origin/main")

    result = runner.invoke(cli, ["open", str(tmp_path / "project" / "README.md"), "--start", "2", "--print-only"], obj=github_context)

    assert result.exit_code == 0
    assert result.output == "https://github.com/octocat/project/tree/main/README.md#L2-2\n"
