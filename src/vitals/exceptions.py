"""Failure taxonomy for a metrics update run.

Every fatal condition is a ``VitalsError`` carrying the process exit code the
CLI reports for it. Degradations that do not end a run (an unavailable
pull-request source, a probe with nothing to report) are not exceptions.
"""

from __future__ import annotations


class VitalsError(RuntimeError):
    exit_code = 1


class RepoResolutionError(VitalsError):
    """No candidate location held the target repository."""

    exit_code = 3

    def __init__(self, message: str, *, tried: tuple[str, ...] = ()):
        super().__init__(message)
        self.tried = tried


class ProbeFailure(VitalsError):
    """A section probe crashed instead of reporting data or no data."""

    exit_code = 4

    def __init__(self, section: str, cause: str):
        super().__init__(f"{section} probe failed: {cause}")
        self.section = section
        self.cause = cause


class DocumentValidationError(VitalsError):
    """The serialized document did not parse; nothing was published."""

    exit_code = 5


class PublishError(VitalsError):
    exit_code = 6


class PublishConflictError(PublishError):
    """Push was rejected again after the single resync-and-retry."""

    exit_code = 7


class InvalidPeriodError(VitalsError):
    exit_code = 2
