"""Persisted settings: a YAML document for plain values, and the OS keyring for secrets."""

import os
from logging import Logger
from pathlib import Path
from typing import Any, Protocol

import keyring
import yaml
from fastmcp.utilities.logging import get_logger
from keyring.errors import PasswordDeleteError
from pydantic import BaseModel, Field

from github_workflows_mcp.auth.credentials import (
    AnonymousCredential,
    AuthType,
    Credential,
    TokenCredential,
    credential_login,
    credential_secret,
    make_credential,
)
from github_workflows_mcp.utilities.urls import DEFAULT_GITHUB_HOST, normalize_host

KEYRING_SERVICE_NAME = "github-workflows-mcp"
PASSWORD_KEY = "GITHUB_SETTINGS_PASSWORD_KEY"

SETTINGS_FILE_NAME = "settings.yaml"

logger: Logger = get_logger(name=__name__)


def get_config_dir() -> Path:
    if config_dir := os.getenv("GITHUB_WORKFLOWS_CONFIG_DIR"):
        return Path(config_dir)

    return Path.home() / ".github-workflows-mcp"


def get_environment_token() -> str | None:
    for env_var in ("GITHUB_TOKEN", "GITHUB_PERSONAL_ACCESS_TOKEN"):
        if token := os.getenv(env_var):
            return token
    return None


class GitHubSettings(BaseModel):
    """The settings document."""

    host: str = Field(default=DEFAULT_GITHUB_HOST, description="The GitHub-compatible host to talk to.")
    login: str | None = Field(default=None, description="The login used with basic authentication.")
    auth_type: AuthType = Field(default=AuthType.ANONYMOUS, description="How requests authenticate to the host.")
    save_password: bool = Field(default=True, description="Whether entered secrets are kept in the keyring.")
    trusted_hosts: list[str] = Field(default_factory=list, description="Hosts accepted despite certificate validation failures.")
    private_gist: bool = Field(default=True, description="Whether gists are created secret by default.")
    open_in_browser_gist: bool = Field(default=True, description="Whether a created gist is opened in the browser.")
    create_pull_request_default_branch: str | None = Field(
        default=None, description="The `owner:branch` last used as a pull request target."
    )

    def is_auth_configured(self) -> bool:
        return self.auth_type != AuthType.ANONYMOUS


class SecretStore(Protocol):
    def get_secret(self, key: str) -> str | None: ...

    def set_secret(self, key: str, value: str) -> None: ...

    def delete_secret(self, key: str) -> None: ...


class KeyringSecretStore:
    """Secrets kept in the platform keyring under a fixed service name."""

    service_name: str

    def __init__(self, service_name: str = KEYRING_SERVICE_NAME):
        self.service_name = service_name

    def get_secret(self, key: str) -> str | None:
        return keyring.get_password(self.service_name, key)

    def set_secret(self, key: str, value: str) -> None:
        keyring.set_password(self.service_name, key, value)

    def delete_secret(self, key: str) -> None:
        try:
            keyring.delete_password(self.service_name, key)
        except PasswordDeleteError:
            logger.debug(f"No secret stored for {key} in {self.service_name}")


class SettingsStore:
    """Loads and saves `GitHubSettings`, and maps them to and from credentials."""

    settings_path: Path
    secret_store: SecretStore
    logger: Logger

    _settings: GitHubSettings | None

    def __init__(self, settings_path: Path | None = None, secret_store: SecretStore | None = None, logger: Logger | None = None):
        self.settings_path = settings_path or get_config_dir() / SETTINGS_FILE_NAME
        self.secret_store = secret_store or KeyringSecretStore()
        self.logger = logger or get_logger(name=__name__)
        self._settings = None

    @property
    def settings(self) -> GitHubSettings:
        if self._settings is None:
            self._settings = self.load()
        return self._settings

    def load(self) -> GitHubSettings:
        if not self.settings_path.exists():
            self.logger.debug(f"No settings found at {self.settings_path}, using defaults")
            return GitHubSettings()

        raw_settings = yaml.safe_load(self.settings_path.read_text(encoding="utf-8")) or {}

        return GitHubSettings.model_validate(raw_settings)

    def reload(self) -> GitHubSettings:
        """Read the document again, dropping the cached copy. Other processes may have written it."""

        self._settings = self.load()
        return self._settings

    def update(self, **changes: Any) -> GitHubSettings:
        """Apply changes on top of the document as it is now on disk, and save the result."""

        settings = self.reload().model_copy(update=changes)
        self.save(settings)
        return settings

    def save(self, settings: GitHubSettings | None = None) -> None:
        if settings is not None:
            self._settings = settings

        self.settings_path.parent.mkdir(parents=True, exist_ok=True)

        document = yaml.safe_dump(self.settings.model_dump(mode="json"), sort_keys=False)
        _ = self.settings_path.write_text(document, encoding="utf-8")

        self.logger.debug(f"Saved settings to {self.settings_path}")

    def get_credential(self) -> Credential:
        """The stored credential, or a token from the environment when nothing is stored."""

        settings = self.reload()

        if not settings.is_auth_configured():
            if token := get_environment_token():
                return TokenCredential(host=normalize_host(os.getenv("GITHUB_HOST", settings.host)), token=token)
            return AnonymousCredential(host=settings.host)

        return make_credential(
            auth_type=settings.auth_type,
            host=settings.host,
            login=settings.login,
            secret=self.secret_store.get_secret(PASSWORD_KEY),
        )

    def set_credential(self, credential: Credential, remember_secret: bool | None = None) -> None:
        """Persist a credential. The secret is only stored when it should be remembered."""

        remember_secret = self.reload().save_password if remember_secret is None else remember_secret

        if remember_secret:
            self.secret_store.set_secret(PASSWORD_KEY, credential_secret(credential))

        _ = self.update(
            host=normalize_host(credential.host) or DEFAULT_GITHUB_HOST,
            auth_type=credential.auth_type,
            login=credential_login(credential),
            save_password=remember_secret,
        )

    def clear_credential(self) -> None:
        self.secret_store.delete_secret(PASSWORD_KEY)

        _ = self.update(auth_type=AuthType.ANONYMOUS, login=None)

    def set_create_pull_request_default_branch(self, branch: str) -> None:
        _ = self.update(create_pull_request_default_branch=branch)
