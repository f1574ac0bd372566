from typing import Optional


class IDRRequestError(ValueError):
    """A request to the IDR server failed or returned an unusable body."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        if status_code is not None:
            message = f"{message} (HTTP {status_code})"
        super().__init__(f"{message}: {url}")


class MetadataFieldError(ValueError):
    """An expected metadata field is missing from a response."""

    def __init__(self, field: str, context: str = ""):
        self.field = field
        message = f"Missing metadata field '{field}'"
        if context:
            message = f"{message} in {context}"
        super().__init__(message)


class OutputWriteError(OSError):
    """A table or figure could not be written to disk."""

    def __init__(self, path, cause: Exception):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Failed to write {self.path}: {cause}")
