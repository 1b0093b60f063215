"""Invocation resolution: which handler runs a command line."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..models import UsageError
from .models import BuiltIn, ExternalCommand, Forward, Invocation, ParsedCommand, PluginEntry, Resolution

if TYPE_CHECKING:
    from .tree import CommandTree

__all__ = ["parse_invocation", "resolve"]


def parse_invocation(tree: CommandTree, argv: Sequence[str]) -> Invocation | None:
    """Parse `argv` (program name excluded) against the command tree.

    A first token naming no node, or naming a plugin that took the name of a
    built-in, is not parsed at all: it is captured with everything after it
    as an external command.

    Returns:
        The invocation, or None if no command was given

    Raises:
        UsageError: if the tokens don't match the tree
    """
    if argv and argv[0] in tree.shadowed:
        return ExternalCommand(list(argv))
    if argv and not argv[0].startswith("-") and not tree.knows(argv[0]):
        return ExternalCommand(list(argv))
    args = tree.parser.parse_args(list(argv))
    if args.command is None:
        return None
    return ParsedCommand(args.command, args)


def resolve(invocation: Invocation, tree: CommandTree, catalog: Sequence[PluginEntry], argv: Sequence[str]) -> Resolution:
    """Map an invocation to a handler.

    Plugin entries are matched before built-ins and always forward the
    original tokens, never the parsed values.
    """
    if isinstance(invocation, ExternalCommand):
        return Forward(invocation.argv)
    if any(entry.name == invocation.name for entry in catalog):
        return Forward(list(argv))
    command = tree.builtins.get(invocation.name)
    if command is None:
        msg = f"unrecognized subcommand '{invocation.name}'"
        raise UsageError(msg, usage=tree.format_usage())
    return BuiltIn(command, invocation.args)
