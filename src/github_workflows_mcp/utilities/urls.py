"""Helpers for working with GitHub hosts and git remote URLs."""

import re

from github_workflows_mcp.clients.models.github import RepositoryPath

DEFAULT_GITHUB_HOST = "github.com"
DEFAULT_GITHUB_API_URL = "https://api.github.com"

SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def normalize_host(host: str) -> str:
    """Strip any scheme and trailing slashes from a host, `https://github.com/` becomes `github.com`."""

    return SCHEME_PATTERN.sub("", host.strip()).rstrip("/")


def remove_protocol_prefix(url: str) -> str:
    """Remove the scheme and user info from a remote URL.

    `git@github.com:owner/repo.git` and `https://user@github.com/owner/repo.git` both become
    `github.com/owner/repo.git`."""

    url = url.strip()

    has_scheme = SCHEME_PATTERN.match(url) is not None
    url = SCHEME_PATTERN.sub("", url)

    at_index = url.find("@")
    slash_index = url.find("/")
    if at_index != -1 and (slash_index == -1 or at_index < slash_index):
        url = url[at_index + 1 :]

    # scp-like syntax: host:owner/repo
    if not has_scheme:
        colon_index = url.find(":")
        slash_index = url.find("/")
        if colon_index != -1 and (slash_index == -1 or colon_index < slash_index):
            url = url[:colon_index] + "/" + url[colon_index + 1 :]

    return url


def get_host_from_url(url: str) -> str:
    url = remove_protocol_prefix(url)

    host = url.split("/", 1)[0]

    # drop an explicit port
    return host.split(":", 1)[0]


def is_github_url(url: str, host: str = DEFAULT_GITHUB_HOST) -> bool:
    remote_host = get_host_from_url(url).lower()

    return remote_host in {DEFAULT_GITHUB_HOST, normalize_host(host).lower()}


def get_repository_path_from_remote_url(url: str) -> RepositoryPath | None:
    path = remove_protocol_prefix(url).rstrip("/")

    path = path.removesuffix(".git")

    segments = [segment for segment in path.split("/") if segment]

    # host, owner, repo
    if len(segments) < 3:
        return None

    return RepositoryPath(owner=segments[-2], repo=segments[-1])


def make_repository_url_from_remote_url(url: str) -> str | None:
    repository_path = get_repository_path_from_remote_url(url)
    if repository_path is None:
        return None

    return f"{get_git_host(get_host_from_url(url))}/{repository_path.owner}/{repository_path.repo}"


def get_git_host(host: str = DEFAULT_GITHUB_HOST) -> str:
    return "https://" + normalize_host(host)


def get_api_url(host: str = DEFAULT_GITHUB_HOST) -> str:
    normalized_host = normalize_host(host)

    if normalized_host.lower() in {DEFAULT_GITHUB_HOST, "api.github.com"}:
        return DEFAULT_GITHUB_API_URL

    return f"https://{normalized_host}/api/v3"


def make_clone_url(host: str, owner: str, repo: str) -> str:
    return f"{get_git_host(host)}/{owner}/{repo}.git"
