"""Shared constants for spin-cli."""

import os
from pathlib import Path

__all__ = [
    "APP_MANIFEST_ENV",
    "DEFAULT_APP_MANIFEST",
    "DEFAULT_HTTP_LISTEN",
    "DEFAULT_REDIS_PORT",
    "GRACEFUL_STOP_TIMEOUT",
    "HELP_ARGS_ONLY_TRIGGER_TYPE",
    "PASSTHROUGH_PREFIX",
    "PLUGIN_MARKER",
    "PLUGIN_FOOTER",
    "PROGRAM_NAME",
    "TRIGGER_PLUGIN_PREFIX",
    "data_dir",
    "manifests_dir",
    "plugins_dir",
]

PROGRAM_NAME = "spin"

# Marker appended to plugin-backed entries in the help listing
PLUGIN_MARKER = "*"
PLUGIN_FOOTER = f"{PLUGIN_MARKER} implemented via plugin"

# Plugins providing trigger types (eg: trigger-sqs) are not user-facing subcommands
TRIGGER_PLUGIN_PREFIX = "trigger-"

# Trigger type used only to render the common trigger options in `spin up --help`
HELP_ARGS_ONLY_TRIGGER_TYPE = "provide-help-args-no-really-i-mean-it"

# No user token starts with this, so plugin nodes see every token as a value
PASSTHROUGH_PREFIX = "\x00"

DEFAULT_APP_MANIFEST = "spin.toml"
APP_MANIFEST_ENV = "SPIN_MANIFEST"

DEFAULT_HTTP_LISTEN = "127.0.0.1:3000"
DEFAULT_REDIS_PORT = 6379

# Seconds given to a child process between SIGTERM and SIGKILL
GRACEFUL_STOP_TIMEOUT = 2.0


def data_dir() -> Path:
    """Return the spin data directory.

    `SPIN_DATA_DIR` wins, then `$XDG_DATA_HOME/spin`, then `~/.local/share/spin`.
    """
    explicit = os.environ.get("SPIN_DATA_DIR")
    if explicit:
        return Path(explicit).expanduser()
    xdg_data_home = Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")
    return xdg_data_home / "spin"


def plugins_dir() -> Path:
    """Return the directory holding installed plugin binaries."""
    return data_dir() / "plugins"


def manifests_dir() -> Path:
    """Return the directory holding installed plugin manifests."""
    return plugins_dir() / "manifests"
