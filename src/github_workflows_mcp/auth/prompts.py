"""The two questions the workflows may need to ask the user: credentials, and whether to trust a certificate."""

import asyncio
from typing import TYPE_CHECKING, Protocol

import click
from fastmcp.server.elicitation import AcceptedElicitation
from pydantic import BaseModel, Field

from github_workflows_mcp.auth.credentials import AuthType, BasicCredential, Credential, TokenCredential

if TYPE_CHECKING:
    from fastmcp.server import Context


class Prompter(Protocol):
    async def ask_credentials(self, host: str, message: str) -> Credential | None:
        """Ask for a new credential. Returns None when the user cancels."""
        ...

    async def confirm_trust(self, host: str, message: str) -> bool:
        """Ask whether to proceed without certificate validation for the host."""
        ...


class CredentialEntry(BaseModel):
    """What the user fills in when asked to log in."""

    host: str = Field(description="The GitHub host, for example github.com or a GitHub Enterprise hostname.")
    token: str = Field(default="", description="A personal access token. Leave empty to use a login and password instead.")
    login: str = Field(default="", description="The GitHub login, when not using a token.")
    password: str = Field(default="", description="The GitHub password, when not using a token.")

    def to_credential(self) -> Credential:
        if self.token.strip():
            return TokenCredential(host=self.host.strip(), token=self.token.strip())

        return BasicCredential(host=self.host.strip(), login=self.login.strip(), password=self.password)


class ElicitationPrompter:
    """Asks the MCP client's user through elicitation requests."""

    context: "Context"

    def __init__(self, context: "Context"):
        self.context = context

    async def ask_credentials(self, host: str, message: str) -> Credential | None:
        result = await self.context.elicit(message=f"{message} Log in to {host}.", response_type=CredentialEntry)

        if not isinstance(result, AcceptedElicitation):
            return None

        return result.data.to_credential()

    async def confirm_trust(self, host: str, message: str) -> bool:
        result = await self.context.elicit(message=message, response_type=bool)

        return isinstance(result, AcceptedElicitation) and result.data is True


class ConsolePrompter:
    """Asks on the terminal."""

    def _ask_credentials(self, host: str, message: str) -> Credential | None:
        click.echo(message)

        try:
            entered_host: str = click.prompt("Host", default=host)
            auth_type: str = click.prompt(
                "Authenticate with", type=click.Choice([AuthType.TOKEN.value, AuthType.BASIC.value]), default=AuthType.TOKEN.value
            )

            if auth_type == AuthType.TOKEN.value:
                token: str = click.prompt("Token", hide_input=True)
                return CredentialEntry(host=entered_host, token=token).to_credential()

            login: str = click.prompt("Login")
            password: str = click.prompt("Password", hide_input=True)
        except click.Abort:
            return None

        return CredentialEntry(host=entered_host, login=login, password=password).to_credential()

    def _confirm_trust(self, message: str) -> bool:
        try:
            return click.confirm(message, default=False)
        except click.Abort:
            return False

    async def ask_credentials(self, host: str, message: str) -> Credential | None:
        return await asyncio.to_thread(self._ask_credentials, host, message)

    async def confirm_trust(self, host: str, message: str) -> bool:
        return await asyncio.to_thread(self._confirm_trust, message)
