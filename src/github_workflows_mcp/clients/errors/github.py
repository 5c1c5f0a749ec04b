ExtraInfoType = dict[str, str | None]


class ClientError(Exception):
    """An error from the GitHub Workflows client."""

    def __init__(self, message: str, extra_info: ExtraInfoType | None = None):
        msg = message
        if extra_info:
            msg += " (" + ", ".join([f"{key}: {value}" for key, value in extra_info.items() if value is not None]) + ")"
        super().__init__(msg)


class RequestError(ClientError):
    """A request error from the GitHub Workflows client."""

    def __init__(self, action: str, message: str | None = None, extra_info: ExtraInfoType | None = None):
        if not extra_info:
            extra_info = {}
        super().__init__(message="A request error occured.", extra_info={"action": action, "message": message, **extra_info})


class ResourceNotFoundError(RequestError):
    """A not found error from the GitHub Workflows client."""

    def __init__(self, action: str, resource: str | None = None, extra_info: ExtraInfoType | None = None):
        if not extra_info:
            extra_info = {}
        super().__init__(
            action=action,
            message="The resource could not be found.",
            extra_info={"resource": resource, **extra_info},
        )


class TransportError(RequestError):
    """The request never reached GitHub, or the connection failed before a response was received."""

    def __init__(self, action: str, host: str, message: str | None = None):
        super().__init__(action=action, message=message, extra_info={"host": host})


class CertificateError(TransportError):
    """The TLS certificate presented by the host could not be validated."""

    host: str

    def __init__(self, action: str, host: str, message: str | None = None):
        self.host = host
        super().__init__(action=action, host=host, message=message or "The security certificate of the host is not trusted.")


class AuthenticationError(ClientError):
    """The credential was rejected, either locally or by the remote host."""

    def __init__(self, message: str, host: str | None = None, status_code: int | None = None):
        super().__init__(
            message=message,
            extra_info={"host": host, "status_code": str(status_code) if status_code is not None else None},
        )


class AuthenticationCancelledError(ClientError):
    """The user declined to enter credentials."""

    def __init__(self, message: str = "Can't get valid credentials"):
        super().__init__(message=message)
