"""External forwarder: runs plugin executables for unknown and plugin subcommands."""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from ..constants import PROGRAM_NAME, TRIGGER_PLUGIN_PREFIX
from ..logging_setup import get_logger
from ..models import PluginNotFoundError, PluginStoreError, SpinError
from ..process import ChildProcess
from .catalog import PREDEFINED_EXTERNALS

if TYPE_CHECKING:
    from ..plugins import PluginStore
    from .models import CommandContext

__all__ = ["execute_external_subcommand", "find_plugin_executable", "plugin_environment"]


def find_plugin_executable(name: str, store: PluginStore | None) -> Path | None:
    """Locate the executable implementing subcommand `name`.

    The installed plugin binary wins over a `spin-<name>` executable on PATH.
    """
    if store is not None:
        installed = store.find_executable(name)
        if installed is not None:
            return installed
    on_path = shutil.which(f"{PROGRAM_NAME}-{name}")
    return Path(on_path) if on_path else None


def plugin_environment(context: CommandContext, executable: Path) -> dict[str, str]:
    """Return the environment of a plugin process."""
    return {
        **os.environ,
        "SPIN_VERSION": context.build_info.version,
        "SPIN_BIN_PATH": os.path.abspath(sys.argv[0]),
        "SPIN_PLUGIN_PATH": str(executable),
    }


def _not_found_message(name: str, context: CommandContext) -> str:
    if name in dict(PREDEFINED_EXTERNALS):
        return (
            f"The '{name}' plugin is required but is not installed. "
            f"Install it by running `{PROGRAM_NAME} plugins update && {PROGRAM_NAME} plugins install {name}`"
        )
    if name.startswith(TRIGGER_PLUGIN_PREFIX):
        trigger_type = name.removeprefix(TRIGGER_PLUGIN_PREFIX)
        return f"No built-in trigger named '{trigger_type}', and the '{name}' plugin is not installed"
    return f"no such command '{name}'\n\n{context.tree.format_usage().rstrip()}\n\nFor more information, try '--help'."


async def execute_external_subcommand(
    argv: list[str],
    context: CommandContext,
    *,
    extra_env: dict[str, str] | None = None,
) -> int:
    """Run the plugin `argv[0]` with `argv[1:]`, unmodified, as arguments.

    The child shares the terminal (stdin, stdout and stderr are inherited).

    Returns:
        The exit status of the plugin

    Raises:
        PluginNotFoundError: if no executable implements `argv[0]`
        SpinError: if the executable can't be started
    """
    log = get_logger("external")
    name, arguments = argv[0], argv[1:]
    try:
        store: PluginStore | None = context.store_opener()
    except PluginStoreError as e:
        log.debug("No plugin store: %s", e)
        store = None

    executable = find_plugin_executable(name, store)
    if executable is None:
        raise PluginNotFoundError(_not_found_message(name, context))

    env = plugin_environment(context, executable) | (extra_env or {})
    log.debug("Running %s %s", executable, arguments)
    proc = ChildProcess()
    try:
        await proc.start([str(executable), *arguments], env=env)
    except OSError as e:
        msg = f"Failed to run plugin '{name}' ({executable})"
        raise SpinError(msg) from e
    return await proc.wait()
