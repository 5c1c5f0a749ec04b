from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from logging import Logger, getLogger
from typing import TYPE_CHECKING, Any, Literal, overload

import httpx
from githubkit import GitHub as GitHubKit
from githubkit.auth.base import BaseAuthStrategy
from githubkit.auth.token import TokenAuthStrategy
from githubkit.auth.unauth import UnauthAuthStrategy
from githubkit.exception import GitHubException as GitHubKitGitHubException
from githubkit.exception import RequestError as GitHubKitRequestError
from githubkit.exception import RequestFailed as GitHubKitRequestFailed
from githubkit.exception import RequestTimeout as GitHubKitRequestTimeout
from githubkit.response import Response as GitHubKitResponse
from pydantic import BaseModel

from github_workflows_mcp.auth.credentials import AnonymousCredential, BasicCredential, Credential, TokenCredential
from github_workflows_mcp.auth.trust import is_certificate_failure
from github_workflows_mcp.clients.errors.github import (
    AuthenticationError,
    CertificateError,
    RequestError,
    ResourceNotFoundError,
    TransportError,
)
from github_workflows_mcp.clients.models.github import Gist, GistFile, PullRequest, Repository, User, gist_files_payload
from github_workflows_mcp.utilities.urls import get_api_url

if TYPE_CHECKING:
    from githubkit.core import GitHubCore

NOT_FOUND_ERROR = 404

# GitHub answers a rejected credential with 401, and a credential that lacks access (or a
# plan that lacks a feature) with 403 or 402.
AUTHENTICATION_ERRORS = {401, 402, 403}

GITHUBKIT_RESPONSE_TYPE = BaseModel | Sequence[BaseModel]


def extract_response[T: GITHUBKIT_RESPONSE_TYPE](response: GitHubKitResponse[T], /) -> T:
    """Extract the response from a response."""

    return response.parsed_data


class BasicAuthStrategy(BaseAuthStrategy):
    """HTTP basic authentication with a login and password."""

    login: str
    password: str

    def __init__(self, login: str, password: str):
        self.login = login
        self.password = password

    def get_auth_flow(self, github: "GitHubCore[Any]") -> httpx.Auth:  # pyright: ignore[reportUnusedParameter]
        return httpx.BasicAuth(username=self.login, password=self.password)


def get_auth_strategy(credential: Credential) -> BaseAuthStrategy:
    match credential:
        case BasicCredential(login=login, password=password):
            return BasicAuthStrategy(login=login, password=password)
        case TokenCredential(token=token):
            return TokenAuthStrategy(token=token)
        case AnonymousCredential():
            return UnauthAuthStrategy()


def get_githubkit_client(credential: Credential, trusted: bool = False) -> GitHubKit[Any]:
    """Build a githubkit client for the credential's host.

    Automatic retries are disabled, the auth resolver decides when a request is retried. Certificate
    verification is disabled for hosts the user explicitly trusted."""

    return GitHubKit[Any](
        auth=get_auth_strategy(credential),
        base_url=get_api_url(credential.host),
        ssl_verify=not trusted,
        auto_retry=False,
    )


class GitHubWorkflowClient:
    credential: Credential
    githubkit_client: GitHubKit[Any]
    logger: Logger

    log_requests: bool
    log_responses: bool
    log_on_error: bool

    def __init__(
        self,
        credential: Credential,
        githubkit_client: GitHubKit[Any] | None = None,
        trusted: bool = False,
        logger: Logger | None = None,
        log_requests: bool = True,
        log_responses: bool = False,
        log_on_error: bool = True,
    ):
        self.credential = credential
        self.githubkit_client = githubkit_client or get_githubkit_client(credential=credential, trusted=trusted)
        self.logger = logger or getLogger(__name__)
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.log_on_error = log_on_error

    @property
    def host(self) -> str:
        return self.credential.host

    def _get_loggers(
        self, log_request: bool | None = None, log_response: bool | None = None, log_on_error: bool | None = None
    ) -> tuple[Callable[[str], Any], Callable[[str], Any], Callable[[BaseException | str], Any]]:
        request_logger = self.logger.info if log_request or self.log_requests else self.logger.debug
        response_logger = self.logger.info if log_response or self.log_responses else self.logger.debug
        error_logger = self.logger.exception if log_on_error or self.log_on_error else self.logger.debug
        return request_logger, response_logger, error_logger

    def _translate_error(self, action: str, error: GitHubKitGitHubException) -> Exception:
        """Map a githubkit exception onto the client's error taxonomy."""

        if isinstance(error, GitHubKitRequestFailed):
            status_code: int = error.response.status_code

            if status_code == NOT_FOUND_ERROR:
                return ResourceNotFoundError(action=action, resource=error.request.url.path)

            if status_code in AUTHENTICATION_ERRORS:
                return AuthenticationError(message=f"{action} was rejected: {error}", host=self.host, status_code=status_code)

            return RequestError(action=action, message=str(error))

        if isinstance(error, GitHubKitRequestError | GitHubKitRequestTimeout):
            if is_certificate_failure(error):
                return CertificateError(action=action, host=self.host, message=str(error))

            return TransportError(action=action, host=self.host, message=str(error))

        return RequestError(action=action, message=str(error))

    @overload
    async def _perform_rest_request[T: GITHUBKIT_RESPONSE_TYPE](
        self,
        action: str,
        log_request: bool | None = None,
        log_response: bool | None = None,
        log_on_error: bool | None = None,
        error_on_not_found: Literal[False] = False,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[T]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> T | None: ...

    @overload
    async def _perform_rest_request[T: GITHUBKIT_RESPONSE_TYPE](
        self,
        action: str,
        log_request: bool | None = None,
        log_response: bool | None = None,
        log_on_error: bool | None = None,
        error_on_not_found: Literal[True] = True,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[T]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> T: ...

    async def _perform_rest_request[T: GITHUBKIT_RESPONSE_TYPE](
        self,
        action: str,
        log_request: bool | None = None,
        log_response: bool | None = None,
        log_on_error: bool | None = None,
        error_on_not_found: bool | None = None,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[T]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> T | None:
        """Perform a request and extract the response.

        Args:
            action: The action being performed.
            log_request: Whether to log the request.
            log_response: Whether to log the response.
            log_on_error: Whether to log on error.
            error_on_not_found: Whether to raise an error if the resource is not found.

        Raises:
            ResourceNotFoundError: If the resource is not found and error_on_not_found is True.
            AuthenticationError: If the credential is rejected.
            CertificateError: If the host's certificate could not be validated.
            TransportError: If the host could not be reached.
            RequestError: If the request fails for any other reason.
        """

        request_logger, response_logger, error_logger = self._get_loggers(
            log_request=log_request, log_response=log_response, log_on_error=log_on_error
        )

        request_logger(f"Performing {action} against {self.host} using {method.__name__} with kwargs {request_args}")

        try:
            response: GitHubKitResponse[T] = await method(**request_args)
        except GitHubKitGitHubException as e:
            translated_error = self._translate_error(action=action, error=e)

            if isinstance(translated_error, ResourceNotFoundError) and not error_on_not_found:
                return None

            if isinstance(translated_error, AuthenticationError | CertificateError):
                # expected, and handled by the auth resolver
                response_logger(f"{type(translated_error).__name__} performing {action} against {self.host}: {e}")
            else:
                error_logger(f"Error performing {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise translated_error from e

        extracted_response = extract_response(response)

        response_logger(f"Extracted response for {action} using {method.__name__} with kwargs {request_args}: {extracted_response}")

        return extracted_response

    async def _perform_paginated_request[T](
        self,
        action: str,
        *,
        method: Callable[..., Awaitable[GitHubKitResponse[list[T]]]],
        **request_args: Any,  # pyright: ignore[reportAny]
    ) -> list[T]:
        """Perform a request and collect every page of the response."""

        request_logger, response_logger, error_logger = self._get_loggers()

        request_logger(f"Performing paginated {action} against {self.host} using {method.__name__} with kwargs {request_args}")

        items: list[T] = []

        try:
            paginator: AsyncIterator[T] = self.githubkit_client.paginate(  # pyright: ignore[reportAssignmentType]
                method, per_page=100, **request_args
            )
            async for item in paginator:
                items.append(item)
        except GitHubKitGitHubException as e:
            translated_error = self._translate_error(action=action, error=e)

            if not isinstance(translated_error, AuthenticationError | CertificateError):
                error_logger(f"Error performing {action} using {method.__name__} with kwargs {request_args}: {e}")

            raise translated_error from e

        response_logger(f"Collected {len(items)} items for {action}")

        return items

    async def get_current_user(self) -> User:
        """Get the authenticated user. Doubles as a test of the credential."""

        githubkit_user = await self._perform_rest_request(
            action="Get current user",
            error_on_not_found=True,
            method=self.githubkit_client.rest.users.async_get_authenticated,
        )

        return User.from_githubkit_user(user=githubkit_user)

    async def get_user_repositories(self) -> list[Repository]:
        """Get the repositories owned by the authenticated user."""

        githubkit_repositories = await self._perform_paginated_request(
            action="List user repositories",
            method=self.githubkit_client.rest.repos.async_list_for_authenticated_user,
            affiliation="owner",
        )

        return [Repository.from_repository(repository=repository) for repository in githubkit_repositories]

    async def get_available_repositories(self) -> list[Repository]:
        """Get every repository the authenticated user can access."""

        githubkit_repositories = await self._perform_paginated_request(
            action="List available repositories",
            method=self.githubkit_client.rest.repos.async_list_for_authenticated_user,
        )

        return [Repository.from_repository(repository=repository) for repository in githubkit_repositories]

    @overload
    async def get_repository(self, owner: str, repo: str, error_on_not_found: Literal[True] = True) -> Repository: ...

    @overload
    async def get_repository(self, owner: str, repo: str, error_on_not_found: Literal[False] = False) -> Repository | None: ...

    async def get_repository(self, owner: str, repo: str, error_on_not_found: bool = True) -> Repository | None:
        """Get a repository, including its parent and source when it is a fork."""

        if githubkit_repository := await self._perform_rest_request(
            action="Get repository",
            error_on_not_found=error_on_not_found,
            method=self.githubkit_client.rest.repos.async_get,
            owner=owner,
            repo=repo,
        ):
            return Repository.from_full_repository(full_repository=githubkit_repository)

        return None

    async def get_branches(self, owner: str, repo: str) -> list[str]:
        """Get the names of the branches of a repository."""

        githubkit_branches = await self._perform_paginated_request(
            action="List branches",
            method=self.githubkit_client.rest.repos.async_list_branches,
            owner=owner,
            repo=repo,
        )

        return [branch.name for branch in githubkit_branches]

    async def find_fork_by_user(self, owner: str, repo: str, fork_owner: str) -> Repository | None:
        """Find the fork of `owner/repo` that belongs to `fork_owner`."""

        githubkit_forks = await self._perform_paginated_request(
            action="List forks",
            method=self.githubkit_client.rest.repos.async_list_forks,
            owner=owner,
            repo=repo,
        )

        for fork in githubkit_forks:
            if fork.owner.login.lower() == fork_owner.lower():
                return Repository.from_repository(repository=fork)

        return None

    async def create_repository(self, name: str, description: str, private: bool) -> Repository:
        githubkit_repository = await self._perform_rest_request(
            action="Create repository",
            error_on_not_found=True,
            method=self.githubkit_client.rest.repos.async_create_for_authenticated_user,
            name=name,
            description=description,
            private=private,
        )

        return Repository.from_full_repository(full_repository=githubkit_repository)

    async def create_gist(self, files: list[GistFile], description: str, public: bool) -> Gist:
        githubkit_gist = await self._perform_rest_request(
            action="Create gist",
            error_on_not_found=True,
            method=self.githubkit_client.rest.gists.async_create,
            files=gist_files_payload(files),
            description=description,
            public=public,
        )

        return Gist.from_gist_simple(gist_simple=githubkit_gist)

    async def create_pull_request(self, owner: str, repo: str, title: str, body: str, head: str, base: str) -> PullRequest:
        githubkit_pull_request = await self._perform_rest_request(
            action="Create pull request",
            error_on_not_found=True,
            method=self.githubkit_client.rest.pulls.async_create,
            owner=owner,
            repo=repo,
            title=title,
            body=body,
            head=head,
            base=base,
        )

        return PullRequest.from_pull_request(pull_request=githubkit_pull_request)
