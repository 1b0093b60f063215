"""Command tree: built-in commands and plugin entries merged into one parser."""

from __future__ import annotations

import argparse
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..builtin_commands import BuiltinCommand, TriggerCommand, default_commands
from ..constants import PASSTHROUGH_PREFIX, PLUGIN_FOOTER, PROGRAM_NAME
from ..logging_setup import get_logger
from .parser import SpinArgumentParser

if TYPE_CHECKING:
    from ..models import BuildInfo
    from ..triggers import TriggerExecutorCommand
    from .models import PluginEntry

__all__ = ["CommandTree", "build_command_tree", "render_command_list"]

DESCRIPTION = "The Spin CLI"
USAGE = "%(prog)s [OPTIONS] <COMMAND>"


@dataclass
class CommandTree:
    """The merged argument parser and the command listing shown in help.

    Attributes:
        parser: Top-level parser, one sub-parser per node
        builtins: Built-in commands by name and alias
        plugins: Plugin entries having a node, by name
        shadowed: Plugin entries named like a built-in or alias; they get no
            node and are forwarded before parsing
        nodes: Sub-parser of every node, by name and alias
        listing: (display name, about) pairs, in help order
    """

    parser: SpinArgumentParser
    builtins: dict[str, BuiltinCommand] = field(default_factory=dict)
    plugins: dict[str, PluginEntry] = field(default_factory=dict)
    shadowed: dict[str, PluginEntry] = field(default_factory=dict)
    nodes: dict[str, argparse.ArgumentParser] = field(default_factory=dict)
    listing: list[tuple[str, str]] = field(default_factory=list)

    def knows(self, name: str) -> bool:
        """Return True if `name` selects a node of the tree."""
        return name in self.nodes

    def format_help(self) -> str:
        """Return the top-level help."""
        return self.parser.format_help()

    def format_usage(self) -> str:
        """Return the top-level usage line."""
        return self.parser.format_usage()

    def trigger_executor(self, trigger_type: str) -> TriggerExecutorCommand | None:
        """Return the built-in executor for `trigger_type`, if any."""
        trigger = self.builtins.get(TriggerCommand.name)
        if not isinstance(trigger, TriggerCommand):
            return None
        return trigger.executors.get(trigger_type)


def render_command_list(listing: Iterable[tuple[str, str]], footer: bool = False) -> str:
    """Format the command listing appended to the top-level help.

    Args:
        listing: (display name, about) pairs
        footer: Add the note explaining the plugin marker
    """
    listing = list(listing)
    width = max((len(name) for name, _ in listing), default=0)
    lines = ["Commands:"]
    lines.extend(f"  {name:{width}s}  {about}".rstrip() for name, about in listing)
    if footer:
        lines.extend(["", PLUGIN_FOOTER])
    return "\n".join(lines)


def build_command_tree(
    catalog: Iterable[PluginEntry],
    build_info: BuildInfo,
    commands: Iterable[BuiltinCommand] | None = None,
) -> CommandTree:
    """Build the command tree for one invocation.

    Built-in commands come first, in declaration order, then one node per
    catalog entry. A plugin node accepts any tokens, `--help` and hyphen
    values included, and has no help flag of its own; the tokens are never
    interpreted since plugin invocations are forwarded verbatim.

    Args:
        catalog: Plugin entries, see `catalog.assemble`
        build_info: Shown by `--version`
        commands: Built-in commands (defaults to `default_commands()`)
    """
    log = get_logger("tree")
    catalog = list(catalog)
    parser = SpinArgumentParser(
        prog=PROGRAM_NAME,
        usage=USAGE,
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument("-V", "--version", action="version", version=f"{PROGRAM_NAME} {build_info}")
    subparsers = parser.add_subparsers(dest="command", metavar="<COMMAND>", prog=PROGRAM_NAME, help=argparse.SUPPRESS)
    tree = CommandTree(parser)

    for command in default_commands() if commands is None else commands:
        node_options = {"prefix_chars": PASSTHROUGH_PREFIX, "add_help": False} if command.passthrough else {}
        node = subparsers.add_parser(
            command.name,
            aliases=list(command.aliases),
            description=command.about,
            **node_options,
        )
        node.set_defaults(builtin=command.name)
        command.configure(node)
        for name in (command.name, *command.aliases):
            tree.builtins[name] = command
            tree.nodes[name] = node
        if not command.hidden:
            tree.listing.append((command.name, command.about))

    for entry in catalog:
        if entry.name in tree.nodes:
            log.warning("Plugin %s has the name of a built-in command: it is not listed but receives the invocation", entry.name)
            tree.shadowed.setdefault(entry.name, entry)
            continue
        node = subparsers.add_parser(
            entry.name,
            description=entry.about,
            prefix_chars=PASSTHROUGH_PREFIX,
            add_help=False,
        )
        node.add_argument("plugin_args", nargs=argparse.REMAINDER)
        node.set_defaults(plugin=entry.name)
        tree.plugins[entry.name] = entry
        tree.nodes[entry.name] = node
        tree.listing.append((entry.display_text, entry.about))

    parser.epilog = render_command_list(tree.listing, footer=bool(catalog))
    return tree
