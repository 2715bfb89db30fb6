"""Error taxonomy for devbootstrap."""

from __future__ import annotations

from enum import Enum

__all__ = ["BootstrapError", "ConfigurationError", "FailureKind"]


class BootstrapError(Exception):
    """Base class for devbootstrap errors."""
    pass


class ConfigurationError(BootstrapError):
    """Raised when the versions manifest or settings are missing or invalid."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class FailureKind(str, Enum):
    """Classification attached to failed or advisory step outcomes.

    Collaborators never raise for these; the orchestrator tags each outcome
    and decides whether it is fatal.
    """
    CONFIGURATION = "ConfigurationError"
    INSTALLATION = "InstallationFailure"
    TIMEOUT = "TimeoutFailure"
    HEALTH_CHECK = "HealthCheckFailure"
    UNEXPECTED = "UnexpectedError"
