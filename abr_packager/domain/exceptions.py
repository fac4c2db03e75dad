"""
Defines custom exception types for the ABR packager.

A pipeline run either succeeds completely or fails with exactly one of the
stage errors below. Each stage error keeps the original exception both as
`cause` and as `__cause__` (the stages raise with `from`), so callers can tell
a missing binary from a timeout from a bad exit status.

All custom exceptions inherit from the base `AbrPackagerException`.
"""
from typing import Optional


class AbrPackagerException(Exception):
    """Base class for all custom exceptions in the ABR packager."""

    pass


# --- Configuration / Input Exceptions ---
class InvalidLadderError(AbrPackagerException):
    """
    Raised when a resolution ladder is rejected.

    The whole ladder is rejected when any entry is malformed (wrong arity),
    has a non-positive or non-integer dimension or bitrate, or duplicates a
    name. The previously configured ladder stays in effect.
    """

    pass


class InputNotFoundError(AbrPackagerException):
    """Raised when the source video does not exist. Nothing is created on disk."""

    pass


class DirectoryCreationError(AbrPackagerException):
    """
    Raised when an output directory cannot be created.

    A directory that fails to be created but exists afterwards (another
    process created it first) is not an error.
    """

    pass


class InvalidEncryptionError(AbrPackagerException, ValueError):
    """
    Raised when encryption is requested with empty key material or PSSH.

    Checked before the output tree is created, so nothing is written.
    """

    pass


# --- Stage Exceptions ---
class TranscodeError(AbrPackagerException):
    """Raised when the transcoding engine fails for one rendition."""

    def __init__(self, rendition_name: str, cause: Optional[BaseException] = None):
        self.rendition_name = rendition_name
        self.cause = cause
        message = f"Transcoding rendition '{rendition_name}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class PackagingError(AbrPackagerException):
    """Raised when the packaging engine fails. No manifest of the run is valid."""

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        message = "Packaging failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


# --- External Engine Exceptions ---
class EngineException(AbrPackagerException):
    """
    Raised by an external engine (ffmpeg, packager) that could not complete a
    call: the binary is missing, it exited non-zero, or it produced no output.
    """

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


class EngineTimeoutException(EngineException):
    """Raised when an external engine call exceeds its configured timeout."""

    pass


class EngineCancelledException(EngineException):
    """Raised when a running engine call is stopped because the run is aborting."""

    pass
