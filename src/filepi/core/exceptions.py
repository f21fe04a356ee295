"""Custom exceptions for the FilePi application"""


class FilePiError(Exception):
    """Base exception for FilePi application.

    ``public_message`` is what a client gets to see; ``str(exc)`` may carry
    extra detail meant for the logs only.
    """

    status_code = 500

    def __init__(self, message: str, public_message: str | None = None):
        super().__init__(message)
        self.public_message = public_message or message


class NotFoundError(FilePiError):
    """Path or resource does not exist"""

    status_code = 404


class BadRequestError(FilePiError):
    """Malformed or disallowed input"""

    status_code = 400


class PathEscapeError(BadRequestError):
    """A path resolved outside of the configured root.

    Clients receive the same wording as a missing path so the response does
    not reveal anything about the tree outside the root.
    """

    def __init__(self, relative: str, target: str):
        super().__init__(
            f"Path '{relative}' resolves outside root: {target}",
            public_message=f"Path not found: {relative}",
        )
        self.relative = relative
        self.target = target


class InvalidMediaError(BadRequestError):
    """File is not usable as a thumbnail source"""

    pass


class InternalError(FilePiError):
    """I/O failures and other server-side problems"""

    status_code = 500


class ConfigurationError(InternalError):
    """Configuration-related errors"""

    pass


class ExternalToolError(InternalError):
    """An external process failed; ``diagnostics`` holds its output"""

    def __init__(self, message: str, diagnostics: str = ""):
        super().__init__(message)
        self.diagnostics = diagnostics


class OperationTimeoutError(InternalError):
    """A bounded walk or subprocess ran past its time budget"""

    pass


class AlreadyExistsError(BadRequestError):
    """Target name is already taken; ``names`` lists the conflicting entries"""

    def __init__(self, names: list[str], message: str | None = None):
        super().__init__(message or f"File or folder already exists: {', '.join(names)}")
        self.names = names


class RangeNotSatisfiableError(FilePiError):
    """Requested byte range lies outside the file"""

    status_code = 416

    def __init__(self, size: int):
        super().__init__(f"Range not satisfiable for {size} byte file", public_message="Range Not Satisfiable")
        self.size = size
