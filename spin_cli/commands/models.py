"""Data models for command resolution."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..constants import PLUGIN_MARKER
from ..plugins import PluginStore

if TYPE_CHECKING:
    import argparse

    from ..builtin_commands import BuiltinCommand
    from ..models import BuildInfo
    from .tree import CommandTree

__all__ = [
    "BuiltIn",
    "CommandContext",
    "ExternalCommand",
    "Forward",
    "Invocation",
    "ParsedCommand",
    "PluginEntry",
    "Resolution",
]


@dataclass(frozen=True)
class PluginEntry:
    """A plugin-backed pseudo-subcommand shown in help and dispatched by forwarding."""

    name: str
    about: str = ""

    @property
    def display_text(self) -> str:
        """Name as listed in help, marked as implemented via plugin."""
        return f"{self.name}{PLUGIN_MARKER}"


@dataclass(frozen=True)
class ParsedCommand:
    """A command matched by a node of the command tree."""

    name: str  # as typed, may be an alias
    args: argparse.Namespace


@dataclass(frozen=True)
class ExternalCommand:
    """Tokens whose first element matched no node of the command tree."""

    argv: list[str]


Invocation = ParsedCommand | ExternalCommand


@dataclass(frozen=True)
class BuiltIn:
    """Run a built-in handler in-process."""

    command: BuiltinCommand
    args: argparse.Namespace


@dataclass(frozen=True)
class Forward:
    """Run an external executable with the original tokens."""

    argv: list[str]

    @property
    def name(self) -> str:
        """The subcommand (plugin) name."""
        return self.argv[0]

    @property
    def arguments(self) -> list[str]:
        """Tokens passed to the plugin, verbatim."""
        return self.argv[1:]


Resolution = BuiltIn | Forward


@dataclass
class CommandContext:
    """Per-invocation values threaded through the handlers."""

    tree: CommandTree
    build_info: BuildInfo
    catalog: list[PluginEntry] = field(default_factory=list)
    argv: list[str] = field(default_factory=list)
    store_opener: Callable[[], PluginStore] = PluginStore.try_open
