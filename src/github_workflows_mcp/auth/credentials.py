from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from github_workflows_mcp.clients.errors.github import AuthenticationError
from github_workflows_mcp.utilities.urls import DEFAULT_GITHUB_HOST, normalize_host


class AuthType(str, Enum):
    ANONYMOUS = "anonymous"
    BASIC = "basic"
    TOKEN = "token"


class BaseCredential(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = Field(default=DEFAULT_GITHUB_HOST, description="The hostname of the GitHub-compatible server.")


class AnonymousCredential(BaseCredential):
    """No credential at all. Never sent to the network."""

    auth_type: Literal[AuthType.ANONYMOUS] = AuthType.ANONYMOUS


class BasicCredential(BaseCredential):
    """A login and password."""

    auth_type: Literal[AuthType.BASIC] = AuthType.BASIC

    login: str = Field(description="The login of the user.")
    password: str = Field(description="The password of the user.", repr=False)


class TokenCredential(BaseCredential):
    """A personal access token."""

    auth_type: Literal[AuthType.TOKEN] = AuthType.TOKEN

    token: str = Field(description="The personal access token.", repr=False)


Credential = Annotated[AnonymousCredential | BasicCredential | TokenCredential, Field(discriminator="auth_type")]


def credential_secret(credential: Credential) -> str:
    """The part of the credential that belongs in the secret store."""

    match credential:
        case AnonymousCredential():
            return ""
        case BasicCredential(password=password):
            return password
        case TokenCredential(token=token):
            return token


def credential_login(credential: Credential) -> str | None:
    match credential:
        case BasicCredential(login=login):
            return login
        case AnonymousCredential() | TokenCredential():
            return None


def make_credential(auth_type: AuthType, host: str, login: str | None, secret: str | None) -> Credential:
    """Rebuild a credential from its persisted pieces."""

    host = normalize_host(host) or DEFAULT_GITHUB_HOST

    match auth_type:
        case AuthType.BASIC:
            return BasicCredential(host=host, login=login or "", password=secret or "")
        case AuthType.TOKEN:
            return TokenCredential(host=host, token=secret or "")
        case AuthType.ANONYMOUS:
            return AnonymousCredential(host=host)


def check_credential_fields(credential: Credential) -> None:
    """Reject credentials that can't possibly work, before any request is made.

    Raises:
        AuthenticationError: If the host is missing, a required field is blank, or the credential is anonymous.
    """

    if not credential.host.strip():
        raise AuthenticationError(message="Target host not defined")

    match credential:
        case BasicCredential(login=login, password=password):
            if not login.strip() or not password.strip():
                raise AuthenticationError(message="Empty login or password", host=credential.host)
        case TokenCredential(token=token):
            if not token.strip():
                raise AuthenticationError(message="Empty token", host=credential.host)
        case AnonymousCredential():
            raise AuthenticationError(message="Anonymous connection not allowed", host=credential.host)
