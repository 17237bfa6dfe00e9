"""
Custom exception hierarchy for the library cleaner.

This module defines a structured hierarchy of exceptions that allows for
precise error handling and clear separation of different failure modes.
An empty album directory is not an error and has no exception here; see
filesystem.file_ops.AlbumListing.
"""


class DiscoCleanerError(Exception):
    """Base class for all application-specific errors."""
    pass


class ConfigurationError(DiscoCleanerError):
    """Raised when the configuration is missing, unreadable or invalid."""
    pass


class TagReadWriteError(DiscoCleanerError):
    """Raised when a tag cannot be read from or written to a song file."""

    def __init__(self, file_path: str, operation: str, reason: str = None):
        self.file_path = file_path
        self.operation = operation
        self.reason = reason

        message = f"Cannot {operation} tag of {file_path}"
        if reason:
            message += f": {reason}"

        super().__init__(message)


class ExternalToolError(DiscoCleanerError):
    """Raised when an external program cannot be started or exits abnormally."""

    def __init__(self, command: str, reason: str = None, return_code: int = None):
        self.command = command
        self.reason = reason
        self.return_code = return_code

        message = f"External command '{command}' failed"
        if return_code is not None:
            message += f" with exit status {return_code}"
        if reason:
            message += f": {reason}"

        super().__init__(message)


class FilesystemError(DiscoCleanerError):
    """Raised when filesystem operations fail."""

    def __init__(self, path: str, operation: str, reason: str = None):
        self.path = path
        self.operation = operation
        self.reason = reason

        message = f"Filesystem error during {operation} on {path}"
        if reason:
            message += f": {reason}"

        super().__init__(message)
