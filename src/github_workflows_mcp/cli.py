"""The workflows on the terminal. Credentials and trust decisions are asked for with prompts."""

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

import click
import yaml
from fastmcp.utilities.logging import configure_logging

from github_workflows_mcp.auth.credentials import Credential
from github_workflows_mcp.auth.prompts import ConsolePrompter
from github_workflows_mcp.clients.errors.github import AuthenticationCancelledError, ClientError
from github_workflows_mcp.clients.models.github import User
from github_workflows_mcp.context import GitHubContext
from github_workflows_mcp.workflows import browser, checkout, gist, pull_request, rebase, share
from github_workflows_mcp.workflows.errors import WorkflowError
from github_workflows_mcp.workflows.models import WorkflowResult


def run_workflow[T](workflow: Coroutine[Any, Any, T]) -> T:
    """Run a workflow to completion, turning its failures into CLI errors. A declined login exits quietly."""

    try:
        return asyncio.run(workflow)
    except AuthenticationCancelledError as e:
        raise click.exceptions.Exit(1) from e
    except (WorkflowError, ClientError) as e:
        raise click.ClickException(str(e)) from e


def echo_result(result: WorkflowResult) -> None:
    click.secho(result.title, bold=True)
    click.echo(result.message)
    if result.url and result.url != result.message:
        click.echo(result.url)


@click.group()
@click.option("--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    if verbose:
        configure_logging(level="DEBUG")

    if ctx.obj is None:
        ctx.obj = GitHubContext(prompter=ConsolePrompter())


@cli.command(name="share")
@click.argument("path", type=click.Path(file_okay=False, path_type=Path), default=".")
@click.option("--name", help="The name of the repository. Defaults to the name of the directory.")
@click.option("--description", default="", help="The description of the repository.")
@click.option("--private", is_flag=True, help="Create a private repository.")
@click.option("--file", "files", multiple=True, help="A file to include in the first commit. May be repeated.")
@click.option("--message", "commit_message", help="The message of the first commit.")
@click.pass_obj
def share_command(
    context: GitHubContext,
    path: Path,
    name: str | None,
    description: str,
    private: bool,
    files: tuple[str, ...],
    commit_message: str | None,
):
    """Share the project at PATH on GitHub."""

    result = run_workflow(
        share.share_project(
            context=context,
            path=path,
            name=name or path.resolve().name,
            description=description,
            private=private,
            files=list(files) if files else None,
            commit_message=commit_message,
        )
    )

    echo_result(result)


@cli.command(name="pr-targets")
@click.argument("path", type=click.Path(path_type=Path), default=".")
@click.pass_obj
def pr_targets_command(context: GitHubContext, path: Path):
    """List the branches a pull request from the current branch could target."""

    targets = run_workflow(pull_request.list_pull_request_targets(context=context, path=path))

    click.echo(f"From {targets.repository} {targets.current_branch}")
    for target in targets.targets:
        marker = "*" if target == targets.suggested_target else " "
        click.echo(f"{marker} {target}")


@cli.command(name="pr")
@click.argument("path", type=click.Path(path_type=Path), default=".")
@click.option("--title", prompt=True, help="The title of the pull request.")
@click.option("--description", default="", help="The description of the pull request.")
@click.option("--target", help="The branch to merge into, as owner:branch. Defaults to the suggested target.")
@click.pass_obj
def pr_command(context: GitHubContext, path: Path, title: str, description: str, target: str | None):
    """Push the current branch and open a pull request from it."""

    result = run_workflow(pull_request.create_pull_request(context=context, path=path, title=title, description=description, target=target))

    echo_result(result)


@cli.command(name="gist")
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--stdin", "from_stdin", is_flag=True, help="Read the content of the gist from standard input.")
@click.option("--filename", help="The file name to use when the gist has a single file.")
@click.option("--description", default="", help="The description of the gist.")
@click.option("--private/--public", default=None, help="Whether the gist is secret. Defaults to the stored setting.")
@click.pass_obj
def gist_command(
    context: GitHubContext, paths: tuple[Path, ...], from_stdin: bool, filename: str | None, description: str, private: bool | None
):
    """Create a gist from PATHS, or from standard input."""

    content: str | None = click.get_text_stream("stdin").read() if from_stdin else None

    result = run_workflow(
        gist.create_gist(context=context, paths=list(paths), content=content, filename=filename, description=description, private=private)
    )

    echo_result(result)

    if result.open_in_browser and result.url:
        _ = click.launch(result.url)


@cli.command(name="rebase")
@click.argument("path", type=click.Path(path_type=Path), default=".")
@click.pass_obj
def rebase_command(context: GitHubContext, path: Path):
    """Rebase the current branch of a fork onto its upstream repository."""

    echo_result(run_workflow(rebase.rebase_fork(context=context, path=path)))


@cli.command(name="open")
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--start", "start_line", type=int, help="The first line to highlight.")
@click.option("--end", "end_line", type=int, help="The last line to highlight.")
@click.option("--print-only", is_flag=True, help="Print the URL instead of opening it.")
@click.pass_obj
def open_command(context: GitHubContext, path: Path, start_line: int | None, end_line: int | None, print_only: bool):
    """Open PATH on GitHub."""

    try:
        result = browser.get_file_url(context=context, path=path, start_line=start_line, end_line=end_line)
    except WorkflowError as e:
        raise click.ClickException(str(e)) from e

    click.echo(result.url)

    if not print_only and result.url:
        _ = click.launch(result.url)


@cli.command(name="commit-url")
@click.argument("path", type=click.Path(path_type=Path), default=".")
@click.option("--revision", default="HEAD", help="The revision to link to.")
@click.pass_obj
def commit_url_command(context: GitHubContext, path: Path, revision: str):
    """Print the GitHub URL of a commit."""

    try:
        result = browser.get_commit_url(context=context, path=path, revision=revision)
    except WorkflowError as e:
        raise click.ClickException(str(e)) from e

    click.echo(result.url)


@cli.command(name="repos")
@click.pass_obj
def repos_command(context: GitHubContext):
    """List the repositories available to you."""

    repository_list = run_workflow(checkout.list_available_repositories(context=context))

    for repository in repository_list.repositories:
        click.echo(f"{repository.full_name}\t{repository.clone_url}")


@cli.command(name="clone")
@click.argument("url")
@click.argument("directory_name", required=False)
@click.option("--parent", "parent_directory", type=click.Path(file_okay=False, path_type=Path), default=".", help="Where to clone into.")
def clone_command(url: str, directory_name: str | None, parent_directory: Path):
    """Clone the repository at URL."""

    echo_result(run_workflow(checkout.clone_repository(url=url, parent_directory=parent_directory, directory_name=directory_name)))


async def _login(context: GitHubContext, remember: bool | None) -> User:
    credential: Credential | None = await context.prompter.ask_credentials(host=context.host, message="Log in to GitHub.")
    if credential is None:
        raise AuthenticationCancelledError

    user: User = await context.check_credential(credential)

    context.settings_store.set_credential(credential, remember_secret=remember)

    return user


@cli.command(name="login")
@click.option("--remember/--no-remember", default=None, help="Whether to keep the secret in the keyring.")
@click.pass_obj
def login_command(context: GitHubContext, remember: bool | None):
    """Log in and store the credential."""

    user: User = run_workflow(_login(context=context, remember=remember))

    click.echo(f"Logged in to {context.host} as {user.login}")


@cli.command(name="logout")
@click.pass_obj
def logout_command(context: GitHubContext):
    """Forget the stored credential."""

    context.settings_store.clear_credential()

    click.echo(f"Logged out of {context.host}")


@cli.command(name="settings")
@click.pass_obj
def settings_command(context: GitHubContext):
    """Show the stored settings and trusted hosts."""

    click.echo(f"# {context.settings_store.settings_path}")
    click.echo(yaml.safe_dump(context.settings.model_dump(mode="json"), sort_keys=False), nl=False)


if __name__ == "__main__":
    cli()
