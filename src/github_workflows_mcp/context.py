"""Everything a workflow needs from its surroundings, constructed once per invocation."""

from collections.abc import Awaitable, Callable
from logging import Logger

from fastmcp.utilities.logging import get_logger

from github_workflows_mcp.auth.credentials import Credential, check_credential_fields
from github_workflows_mcp.auth.prompts import Prompter
from github_workflows_mcp.auth.resolver import AuthResolver
from github_workflows_mcp.auth.trust import TrustDecision, TrustedHosts
from github_workflows_mcp.clients.github import GitHubWorkflowClient
from github_workflows_mcp.clients.models.github import User
from github_workflows_mcp.settings import GitHubSettings, SettingsStore

type ClientFactory = Callable[[Credential, bool], GitHubWorkflowClient]

type ClientOperation[T] = Callable[[GitHubWorkflowClient], Awaitable[T]]


def default_client_factory(credential: Credential, trusted: bool) -> GitHubWorkflowClient:
    return GitHubWorkflowClient(credential=credential, trusted=trusted)


class GitHubContext:
    """The settings, prompts and GitHub access shared by the workflows."""

    settings_store: SettingsStore
    prompter: Prompter
    trusted_hosts: TrustedHosts
    auth_resolver: AuthResolver
    client_factory: ClientFactory
    logger: Logger

    def __init__(
        self,
        prompter: Prompter,
        settings_store: SettingsStore | None = None,
        client_factory: ClientFactory | None = None,
        logger: Logger | None = None,
    ):
        self.logger = logger or get_logger(name=__name__)
        self.prompter = prompter
        self.settings_store = settings_store or SettingsStore(logger=self.logger)
        _ = self.settings_store.reload()
        self.client_factory = client_factory or default_client_factory
        self.trusted_hosts = TrustedHosts(settings_store=self.settings_store)
        self.auth_resolver = AuthResolver(
            prompter=prompter,
            trust_decision=TrustDecision(prompter=prompter, trusted_hosts=self.trusted_hosts, logger=self.logger),
            logger=self.logger,
        )

    @property
    def settings(self) -> GitHubSettings:
        return self.settings_store.settings

    @property
    def host(self) -> str:
        return self.settings.host

    def client(self, credential: Credential) -> GitHubWorkflowClient:
        """A client for the credential's host, skipping certificate checks for hosts the user trusts."""

        return self.client_factory(credential, credential.host in self.trusted_hosts)

    async def run_with_valid_auth[T](self, operation: ClientOperation[T]) -> T:
        value, _ = await self.run_and_get_valid_auth(operation=operation)
        return value

    async def run_and_get_valid_auth[T](self, operation: ClientOperation[T]) -> tuple[T, Credential]:
        """Run the operation against a client built from the stored credential, re-prompting as needed."""

        async def run_with_credential(credential: Credential) -> T:
            return await operation(self.client(credential))

        return await self.auth_resolver.run_and_get_valid_auth(
            operation=run_with_credential,
            credential=self.settings_store.get_credential(),
        )

    async def check_credential(self, credential: Credential) -> User:
        """Validate the credential locally, then test it against the host, offering to trust an unverified certificate."""

        check_credential_fields(credential)

        user, _ = await self.auth_resolver.run_and_get_valid_auth(
            operation=lambda checked: self.client(checked).get_current_user(),
            credential=credential,
            allow_login_prompt=False,
        )
        return user

    async def get_valid_credential(self) -> Credential:
        """The stored credential if it works, otherwise one entered by the user."""

        _, credential = await self.run_and_get_valid_auth(operation=lambda client: client.get_current_user())
        return credential
