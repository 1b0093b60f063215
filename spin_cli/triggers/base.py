"""Trigger capability interface and schema driven command-line flags."""

from __future__ import annotations

import argparse
import asyncio
import copy
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar

from ..constants import APP_MANIFEST_ENV, DEFAULT_APP_MANIFEST
from ..models import TriggerError
from ..validation import BOOL_TRUE_STRINGS, ConfigField, ConfigItems, ConfigValidator

if TYPE_CHECKING:
    from logging import Logger

    from ..manifest import AppManifest
    from .components import ComponentRunner

__all__ = [
    "COMMON_OPTIONS",
    "TriggerCapability",
    "add_schema_arguments",
    "collect_config",
]

# Options shared by every `spin trigger <type>` command
COMMON_OPTIONS = ConfigItems(
    ConfigField(
        "app",
        Path,
        default=DEFAULT_APP_MANIFEST,
        env=APP_MANIFEST_ENV,
        short="f",
        description="Application manifest file or directory",
    ),
    ConfigField("log_dir", Path, env="SPIN_LOG_DIR", short="L", description="Log directory for the stdout and stderr of components"),
    ConfigField("follow", list[str], default=[], description="Print output to stdout/stderr only for the given component(s)"),
    ConfigField("quiet", bool, default=False, short="q", description="Silence all component output to stdout/stderr"),
    ConfigField("state_dir", Path, description="Directory for application state (key-value stores, logs)"),
    ConfigField("runtime_config_file", Path, env="SPIN_RUNTIME_CONFIG_FILE", description="Runtime configuration file"),
)


def _help_text(field_def: ConfigField) -> str:
    text = field_def.description
    if field_def.env:
        text += f" [env: {field_def.env}]"
    if field_def.default not in (None, [], False):
        text += f" [default: {field_def.default}]"
    return text.strip().replace("%", "%%")


def add_schema_arguments(parser: argparse.ArgumentParser, schema: ConfigItems) -> None:
    """Declare one option per schema field on `parser`.

    Options default to None so that `collect_config` can tell an absent flag
    from an explicit value and fall back to the environment, then to the
    field's default.
    """
    for field_def in schema:
        names = [f"-{field_def.short}"] if field_def.short else []
        names.append(field_def.flag)
        kwargs: dict[str, Any] = {"dest": field_def.name, "default": None, "help": _help_text(field_def)}
        base_type = field_def.base_type
        if base_type is bool:
            kwargs["action"] = "store_true"
        else:
            kwargs["metavar"] = field_def.name.upper()
            if base_type is list:
                kwargs["action"] = "append"
            elif base_type in (int, Path):
                kwargs["type"] = base_type
            if field_def.choices is not None:
                kwargs["choices"] = field_def.choices
        parser.add_argument(*names, **kwargs)


def _from_env(field_def: ConfigField, raw: str) -> Any:  # noqa: ANN401
    base_type = field_def.base_type
    if base_type is bool:
        return raw.strip().lower() in BOOL_TRUE_STRINGS
    if base_type is list:
        return [item.strip() for item in raw.split(",") if item.strip()]
    if base_type in (int, Path):
        try:
            return base_type(raw)
        except ValueError as e:
            msg = f"Invalid value {raw!r} in ${field_def.env}"
            raise TriggerError(msg) from e
    return raw


def collect_config(args: argparse.Namespace, schema: ConfigItems) -> dict[str, Any]:
    """Return the effective value of each schema field.

    Precedence: command-line flag, then environment variable, then default.

    Raises:
        TriggerError: if a required field has no value
    """
    config = {}
    for field_def in schema:
        value = getattr(args, field_def.name, None)
        if value is None and field_def.env and os.environ.get(field_def.env):
            value = _from_env(field_def, os.environ[field_def.env])
        if value is None:
            value = copy.copy(field_def.default)
        if value is None and field_def.required:
            msg = f"Missing required option {field_def.flag}"
            raise TriggerError(msg)
        if value is not None and field_def.base_type is Path:
            value = Path(value)
        config[field_def.name] = value
    return config


class TriggerCapability(ABC):
    """A trigger backend: a protocol listening for events and invoking components.

    Subclasses declare:
        trigger_type: the `[[trigger.<type>]]` manifest key and the subcommand name
        config_schema: executor options, exposed as command-line flags
        app_config_schema: the `[application.trigger.<type>]` table
        trigger_schema: each `[[trigger.<type>]]` entry
    """

    trigger_type: ClassVar[str]
    about: ClassVar[str] = ""
    config_schema: ClassVar[ConfigItems] = ConfigItems()
    app_config_schema: ClassVar[ConfigItems] = ConfigItems()
    trigger_schema: ClassVar[ConfigItems] = ConfigItems()
    hidden: ClassVar[bool] = False
    help_only: ClassVar[bool] = False

    def __init__(self, app: AppManifest, config: dict[str, Any], runner: ComponentRunner, log: Logger) -> None:
        """Initialize the trigger.

        Args:
            app: The application being run
            config: Effective executor options (common options included)
            runner: Invokes the application components
            log: Logger of the executor
        """
        self.app = app
        self.config = config
        self.runner = runner
        self.log = log

    @property
    def entries(self) -> list[dict[str, Any]]:
        """The `[[trigger.<type>]]` entries of the application."""
        return self.app.triggers.get(self.trigger_type, [])

    @property
    def app_config(self) -> dict[str, Any]:
        """The `[application.trigger.<type>]` table, defaults applied."""
        values = dict(self.app.trigger_config.get(self.trigger_type, {}))
        for field_def in self.app_config_schema:
            if values.get(field_def.name) is None and field_def.default is not None:
                values[field_def.name] = copy.copy(field_def.default)
        return values

    def validate(self) -> list[str]:
        """Check the application's configuration for this trigger.

        Returns:
            List of error messages (empty if valid)
        """
        section = f"application.trigger.{self.trigger_type}"
        validator = ConfigValidator(self.app.trigger_config.get(self.trigger_type, {}), section, self.log)
        errors = validator.validate(self.app_config_schema)
        validator.warn_unknown_keys(self.app_config_schema)
        for index, entry in enumerate(self.entries):
            validator = ConfigValidator(entry, f"trigger.{self.trigger_type}[{index}]", self.log)
            errors.extend(validator.validate(self.trigger_schema))
            validator.warn_unknown_keys(self.trigger_schema)
        return errors

    @abstractmethod
    async def run(self, stop: asyncio.Event) -> None:
        """Serve events until `stop` is set.

        Args:
            stop: Set when the executor is asked to shut down
        """
