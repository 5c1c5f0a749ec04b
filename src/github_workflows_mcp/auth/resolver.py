from collections.abc import Awaitable, Callable
from logging import Logger

from fastmcp.utilities.logging import get_logger

from github_workflows_mcp.auth.credentials import Credential, check_credential_fields
from github_workflows_mcp.auth.prompts import Prompter
from github_workflows_mcp.auth.trust import TrustDecision, is_certificate_failure
from github_workflows_mcp.clients.errors.github import (
    AuthenticationCancelledError,
    AuthenticationError,
    ClientError,
    RequestError,
)

# The original attempt, a retry after trusting the host, the attempt with re-entered
# credentials, and a retry of that after trusting its host.
MAX_NETWORK_ATTEMPTS = 4

type Operation[T] = Callable[[Credential], Awaitable[T]]


class AuthResolver:
    """Runs an operation with a credential that works, asking the user when it doesn't.

    An anonymous or rejected credential leads to a single login prompt. A certificate failure leads to a
    trust prompt for the host, after which the same credential is retried. Anything else propagates."""

    prompter: Prompter
    trust_decision: TrustDecision
    logger: Logger

    def __init__(self, prompter: Prompter, trust_decision: TrustDecision, logger: Logger | None = None):
        self.prompter = prompter
        self.trust_decision = trust_decision
        self.logger = logger or get_logger(name=__name__)

    async def run_with_valid_auth[T](self, operation: Operation[T], credential: Credential, allow_login_prompt: bool = True) -> T:
        value, _ = await self.run_and_get_valid_auth(operation=operation, credential=credential, allow_login_prompt=allow_login_prompt)
        return value

    async def run_and_get_valid_auth[T](
        self, operation: Operation[T], credential: Credential, allow_login_prompt: bool = True
    ) -> tuple[T, Credential]:
        """Run the operation and return its value together with the credential that produced it.

        With `allow_login_prompt` off, a rejected credential is raised at once and only the trust prompt is offered.

        Raises:
            AuthenticationCancelledError: If the user cancels the login prompt.
            AuthenticationError: If the credential entered at the prompt is rejected too.
            RequestError: If the request fails for any other reason, or the user doesn't trust the host.
        """

        prompted: bool = not allow_login_prompt
        asked_trust: set[str] = set()

        for attempt in range(1, MAX_NETWORK_ATTEMPTS + 1):
            try:
                check_credential_fields(credential)
            except AuthenticationError as e:
                if prompted:
                    raise
                credential = await self._ask_credentials(host=credential.host, reason=str(e))
                prompted = True
                check_credential_fields(credential)

            try:
                self.logger.debug(f"Attempt {attempt} against {credential.host} using {credential.auth_type.value} auth")
                return await operation(credential), credential
            except AuthenticationError as e:
                if prompted:
                    raise
                self.logger.info(f"Authentication to {credential.host} failed, asking for credentials: {e}")
                credential = await self._ask_credentials(host=credential.host, reason=str(e))
                prompted = True
            except (RequestError, OSError) as e:
                if not await self._trust_after_certificate_failure(error=e, host=credential.host, asked_trust=asked_trust):
                    raise

        msg = f"Gave up after {MAX_NETWORK_ATTEMPTS} attempts"
        raise ClientError(message=msg, extra_info={"host": credential.host})

    async def _ask_credentials(self, host: str, reason: str) -> Credential:
        credential: Credential | None = await self.prompter.ask_credentials(host=host, message=reason)

        if credential is None:
            self.logger.info(f"Login to {host} cancelled")
            raise AuthenticationCancelledError

        return credential

    async def _trust_after_certificate_failure(self, error: BaseException, host: str, asked_trust: set[str]) -> bool:
        """Whether the same credential should be retried because the user now trusts the host."""

        if not is_certificate_failure(error):
            return False

        if host in asked_trust or host in self.trust_decision.trusted_hosts:
            self.logger.info(f"Certificate of {host} failed validation again, not asking twice")
            return False

        asked_trust.add(host)

        return await self.trust_decision.confirm_trust(host=host)
