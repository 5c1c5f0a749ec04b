import ssl
from logging import Logger
from typing import TYPE_CHECKING

from fastmcp.utilities.logging import get_logger

from github_workflows_mcp.clients.errors.github import CertificateError
from github_workflows_mcp.utilities.urls import normalize_host

if TYPE_CHECKING:
    from github_workflows_mcp.auth.prompts import Prompter
    from github_workflows_mcp.settings import SettingsStore


def iter_error_chain(error: BaseException):
    """Yield the error and every exception it was raised from, guarding against cycles."""

    seen: set[int] = set()
    current: BaseException | None = error

    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def is_certificate_failure(error: BaseException) -> bool:
    """Whether the error was caused by a TLS certificate that could not be validated."""

    return any(isinstance(cause, CertificateError | ssl.SSLCertVerificationError) for cause in iter_error_chain(error))


class TrustedHosts:
    """The hosts the user accepted despite certificate failures. Only ever grows."""

    settings_store: "SettingsStore"

    def __init__(self, settings_store: "SettingsStore"):
        self.settings_store = settings_store

    def __contains__(self, host: str) -> bool:
        return normalize_host(host).lower() in {trusted.lower() for trusted in self.settings_store.settings.trusted_hosts}

    def __iter__(self):
        return iter(list(self.settings_store.settings.trusted_hosts))

    def __len__(self) -> int:
        return len(self.settings_store.settings.trusted_hosts)

    def add(self, host: str) -> None:
        trusted_hosts = self.settings_store.reload().trusted_hosts
        if host in self:
            return

        _ = self.settings_store.update(trusted_hosts=[*trusted_hosts, normalize_host(host)])


class TrustDecision:
    """Asks whether to proceed with a host whose certificate could not be validated."""

    prompter: "Prompter"
    trusted_hosts: TrustedHosts
    logger: Logger

    def __init__(self, prompter: "Prompter", trusted_hosts: TrustedHosts, logger: Logger | None = None):
        self.prompter = prompter
        self.trusted_hosts = trusted_hosts
        self.logger = logger or get_logger(name=__name__)

    async def confirm_trust(self, host: str) -> bool:
        message = f"The security certificate of {host} is not trusted. Do you want to proceed anyway?"

        trust: bool = await self.prompter.confirm_trust(host=host, message=message)

        if trust:
            self.logger.info(f"Trusting {host} despite its certificate")
            self.trusted_hosts.add(host)
        else:
            self.logger.info(f"Not trusting {host}")

        return trust
