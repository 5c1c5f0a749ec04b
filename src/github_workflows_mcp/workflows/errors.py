ExtraInfoType = dict[str, str | None]


class WorkflowError(Exception):
    """A workflow could not finish. The title names the workflow step that failed."""

    title: str
    message: str
    url: str | None

    def __init__(self, title: str, message: str, url: str | None = None, extra_info: ExtraInfoType | None = None):
        self.title = title
        self.message = message
        self.url = url

        msg = f"{title}: {message}"
        if url:
            msg += f" ({url})"
        if extra_info:
            msg += " (" + ", ".join([f"{key}: {value}" for key, value in extra_info.items() if value is not None]) + ")"
        super().__init__(msg)


class MalformedTargetError(WorkflowError):
    """A pull request target that isn't of the form `owner:branch`."""

    def __init__(self, target: str):
        super().__init__(
            title="Can't create pull request",
            message=f"Target branch must be of the form owner:branch, got {target!r}",
        )
