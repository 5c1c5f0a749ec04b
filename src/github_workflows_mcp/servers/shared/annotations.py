from typing import Annotated

from pydantic import Field

PATH = Annotated[str, Field(description="A path inside the local git working copy, absolute or relative to the server's directory.")]
PROJECT_PATH = Annotated[str, Field(description="The root directory of the project to share.")]

REPOSITORY_NAME = Annotated[str, Field(description="The name of the GitHub repository to create.")]
REPOSITORY_DESCRIPTION = Annotated[str, Field(description="The description of the GitHub repository to create.")]
PRIVATE_REPOSITORY = Annotated[bool, Field(description="Whether the GitHub repository should be private.")]
SHARE_FILES = Annotated[
    list[str] | None,
    Field(
        description=(
            "The files, relative to the project root, to include in the first commit. "
            "If None, every untracked or added file that isn't ignored is included."
        )
    ),
]
COMMIT_MESSAGE = Annotated[str | None, Field(description="The message of the first commit. If None, 'Initial commit' is used.")]

PULL_REQUEST_TITLE = Annotated[str, Field(description="The title of the pull request.")]
PULL_REQUEST_DESCRIPTION = Annotated[str, Field(description="The description of the pull request.")]
PULL_REQUEST_TARGET = Annotated[
    str | None,
    Field(description="The branch to merge into, as `owner:branch`. If None, the suggested target is used."),
]

GIST_PATHS = Annotated[list[str] | None, Field(description="The files and directories to include in the gist.")]
GIST_CONTENT = Annotated[str | None, Field(description="A snippet of text to include in the gist.")]
GIST_FILENAME = Annotated[str | None, Field(description="The file name to use when the gist has a single file.")]
GIST_DESCRIPTION = Annotated[str, Field(description="The description of the gist.")]
PRIVATE_GIST = Annotated[bool | None, Field(description="Whether the gist should be secret. If None, the stored setting is used.")]

START_LINE = Annotated[int | None, Field(description="The first line to highlight, 1-based.")]
END_LINE = Annotated[int | None, Field(description="The last line to highlight, 1-based. Defaults to the first line.")]
REVISION = Annotated[str, Field(description="The revision to link to, a commit sha, branch or tag.")]

CLONE_URL = Annotated[str, Field(description="The URL of the repository to clone.")]
PARENT_DIRECTORY = Annotated[str, Field(description="The directory to clone the repository into.")]
DIRECTORY_NAME = Annotated[str | None, Field(description="The name of the new directory. Defaults to the name of the repository.")]
