"""spin - the command line entry point.

Builds the plugin catalog and the command tree, resolves the invocation, then
runs exactly one handler: a built-in command, a trigger executor or an
external plugin.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Callable, Sequence
from typing import TextIO

from .ansi import BannerStyles, styled_for
from .commands.catalog import assemble
from .commands.external import execute_external_subcommand
from .commands.models import CommandContext, Forward, Resolution
from .commands.resolver import parse_invocation, resolve
from .commands.tree import build_command_tree
from .logging_setup import get_logger, init_logger
from .models import BuildInfo, ExitCode, UsageError
from .plugins import PluginStore
from .version import COMMIT_DATE, COMMIT_SHA, VERSION

__all__ = ["dispatch", "error_causes", "main", "print_error_chain", "run"]


def error_causes(err: BaseException) -> list[BaseException]:
    """Return the chain of causes of `err`, closest first.

    Explicit causes (`raise ... from ...`) are followed, then implicit
    contexts unless suppressed.
    """
    causes: list[BaseException] = []
    seen = {id(err)}
    current: BaseException = err
    while True:
        cause = current.__cause__
        if cause is None and not current.__suppress_context__:
            cause = current.__context__
        if cause is None or id(cause) in seen:
            return causes
        causes.append(cause)
        seen.add(id(cause))
        current = cause


def _describe(err: BaseException) -> str:
    return str(err) or type(err).__name__


def print_error_chain(err: BaseException, stream: TextIO | None = None) -> None:
    """Print `err` and its causes.

    Error: <message>

    Caused by:
       0: <cause>
       1: <cause of cause>
    """
    stream = stream or sys.stderr
    print(styled_for(stream, "Error:", *BannerStyles.ERROR), _describe(err), file=stream)
    causes = error_causes(err)
    if not causes:
        return
    print("\nCaused by:", file=stream)
    for index, cause in enumerate(causes):
        if len(causes) > 1:
            print(f"{index:>4}: {_describe(cause)}", file=stream)
        else:
            print(f"      {_describe(cause)}", file=stream)


def print_usage_error(err: UsageError, stream: TextIO | None = None) -> None:
    """Print a command line error with the usage of the failing command."""
    stream = stream or sys.stderr
    print(styled_for(stream, "Error:", *BannerStyles.ERROR), err, file=stream)
    if err.usage:
        print(f"\n{err.usage.rstrip()}\n\nFor more information, try '--help'.", file=stream)


async def dispatch(resolution: Resolution, context: CommandContext) -> int:
    """Run the handler selected by `resolution`."""
    if isinstance(resolution, Forward):
        return await execute_external_subcommand(resolution.argv, context)
    return await resolution.command.run(resolution.args, context)


def run(
    argv: Sequence[str],
    build_info: BuildInfo,
    *,
    store_opener: Callable[[], PluginStore] = PluginStore.try_open,
) -> int:
    """Run one invocation and return the process exit code.

    Args:
        argv: Arguments, program name excluded
        build_info: Version information
        store_opener: Opens the local plugin store
    """
    log = get_logger()
    try:
        catalog = assemble(store_opener)
        tree = build_command_tree(catalog, build_info)
        invocation = parse_invocation(tree, argv)
        if invocation is None:
            sys.stderr.write(tree.format_help())
            return ExitCode.ERROR
        resolution = resolve(invocation, tree, catalog, argv)
        context = CommandContext(tree, build_info, catalog, list(argv), store_opener)
        return asyncio.run(dispatch(resolution, context))
    except UsageError as e:
        print_usage_error(e)
        return ExitCode.ERROR
    except KeyboardInterrupt:
        return ExitCode.INTERRUPTED
    except Exception as e:  # pylint: disable=broad-exception-caught
        log.debug("Command failed", exc_info=True)
        print_error_chain(e)
        return ExitCode.ERROR


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point of the `spin` executable."""
    init_logger()
    build_info = BuildInfo(VERSION, COMMIT_SHA, COMMIT_DATE)
    sys.exit(run(sys.argv[1:] if argv is None else argv, build_info))


if __name__ == "__main__":
    main()
