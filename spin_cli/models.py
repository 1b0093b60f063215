"""Core value types and the error hierarchy."""

from dataclasses import dataclass
from enum import IntEnum

__all__ = [
    "BuildInfo",
    "CommandUnavailableError",
    "ExitCode",
    "HelpArgsOnlyError",
    "InvalidStateTransition",
    "ManifestError",
    "PluginNotFoundError",
    "PluginStoreError",
    "SpinError",
    "TriggerError",
    "UsageError",
]


class ExitCode(IntEnum):
    """Process exit codes."""

    SUCCESS = 0
    ERROR = 1  # any error reaching the top level, usage errors included
    INTERRUPTED = 130


@dataclass(frozen=True)
class BuildInfo:
    """Version information, computed once at startup."""

    version: str
    commit_sha: str = "unknown"
    commit_date: str = "unknown"

    def __str__(self) -> str:
        return f"{self.version} ({self.commit_sha} {self.commit_date})"


class SpinError(Exception):
    """Base class for errors reported to the user."""


class UsageError(SpinError):
    """The command line could not be parsed."""

    def __init__(self, message: str, usage: str = "") -> None:
        super().__init__(message)
        self.usage = usage


class PluginStoreError(SpinError):
    """The local plugin store could not be opened or read."""


class ManifestError(SpinError):
    """A manifest (plugin or application) is missing or invalid."""


class PluginNotFoundError(SpinError):
    """No executable could be located for a forwarded subcommand."""


class CommandUnavailableError(SpinError):
    """The subcommand is declared but not provided by this distribution."""


class TriggerError(SpinError):
    """A trigger executor failed."""


class InvalidStateTransition(TriggerError):
    """A trigger executor was moved to a state it cannot reach."""


class HelpArgsOnlyError(TriggerError):
    """The help-only trigger was asked to actually run."""
