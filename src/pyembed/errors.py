"""Error types for embedded runtime management."""
from typing import Any, Dict, Optional

from mcp.types import ErrorData, INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST

from pyembed.logging import get_logger


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    logger: Optional[Any] = None,
) -> None:
    """Log an error with context."""
    logger = logger or get_logger(__name__)

    error_info = {
        "error_type": error.__class__.__name__,
        "error_message": str(error),
    }
    if context:
        error_info["context"] = context
    if isinstance(error, EmbedError):
        error_info["code"] = error.code
        error_info["details"] = error.details

    logger.error("embed_error", **error_info)


class EmbedError(Exception):
    """Base error class for embedded runtime operations."""

    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_error_data(self) -> ErrorData:
        """Convert to ErrorData format."""
        return ErrorData(code=self.code, message=str(self), data=self.details)


class InvalidArgumentError(EmbedError, ValueError):
    """A required argument is blank or empty."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(
            message or f"{name} must be provided",
            code=INVALID_PARAMS,
            details={"argument": name},
        )
        self.argument = name


class MissingArgumentError(InvalidArgumentError):
    """A required argument is None."""

    def __init__(self, name: str):
        super().__init__(name, f"{name} must not be None")


class NotFoundError(EmbedError, FileNotFoundError):
    """A referenced file or directory does not exist."""

    def __init__(self, what: str, path: Any):
        EmbedError.__init__(
            self,
            f"{what} not found: {path}",
            code=INVALID_REQUEST,
            details={"path": str(path)},
        )
        self.filename = str(path)


class DownloadError(EmbedError):
    """Fetching a URL failed."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        super().__init__(
            f"Failed to download {url}: {reason}",
            details={"url": url, "status": status},
        )
        self.url = url
        self.status = status


class UnsupportedArchiveError(EmbedError, ValueError):
    """Archive format cannot be extracted."""

    def __init__(self, archive: Any):
        super().__init__(
            f"Unsupported archive format: {archive}",
            code=INVALID_PARAMS,
            details={"archive": str(archive)},
        )


class UnsupportedPlatformError(EmbedError):
    """No runtime layout for the host system or architecture."""

    def __init__(self, system: str, machine: Optional[str] = None):
        target = f"{system}/{machine}" if machine else system
        super().__init__(
            f"Unsupported platform: {target}",
            details={"system": system, "machine": machine},
        )
