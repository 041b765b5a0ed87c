"""Custom exceptions for the Qiniu storage client."""


class QiniuError(Exception):
    """Base exception for client failures."""


class ConfigurationError(QiniuError):
    """Raised when configuration or credentials are invalid or incomplete."""


class InvalidArgumentError(QiniuError, ValueError):
    """Raised when a container, key, URL or descriptor field is unusable."""


class InvalidOperationError(QiniuError, ValueError):
    """Raised when an operation descriptor carries an unrecognized tag."""

    def __init__(self, tag: object) -> None:
        super().__init__(f"Invalid operation type: {tag!r}")
        self.tag = tag


class TransportError(QiniuError):
    """Raised when the storage service answers with a non-success status."""

    def __init__(self, status_code: int, body: str, url: str | None = None) -> None:
        message = f"Request failed with HTTP {status_code}"
        if url:
            message += f" ({url})"
        if body:
            message += f": {body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.url = url
