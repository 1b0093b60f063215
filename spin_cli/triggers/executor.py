"""Generic trigger command.

One `TriggerExecutorCommand` is instantiated per trigger capability; it
declares the common executor options plus the capability's own, loads the
application and drives the capability until it completes or is stopped.

    CONFIGURED -> RUNNING -> COMPLETED
                          -> ABORTED
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
from enum import StrEnum
from typing import Generic, TypeVar

from ..logging_setup import get_logger
from ..manifest import load_app_manifest
from ..models import HelpArgsOnlyError, InvalidStateTransition, TriggerError
from .base import COMMON_OPTIONS, TriggerCapability, add_schema_arguments, collect_config
from .components import ComponentRunner

__all__ = ["TriggerExecutorCommand", "TriggerState"]

T = TypeVar("T", bound=TriggerCapability)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class TriggerState(StrEnum):
    """Lifecycle of a trigger executor."""

    CONFIGURED = "configured"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


_TRANSITIONS: dict[TriggerState, frozenset[TriggerState]] = {
    TriggerState.CONFIGURED: frozenset({TriggerState.RUNNING}),
    TriggerState.RUNNING: frozenset({TriggerState.COMPLETED, TriggerState.ABORTED}),
    TriggerState.COMPLETED: frozenset(),
    TriggerState.ABORTED: frozenset(),
}


class TriggerExecutorCommand(Generic[T]):
    """The `spin trigger <type>` command for one capability.

    Usage:
        command: TriggerExecutorCommand[HttpTrigger] = TriggerExecutorCommand(HttpTrigger)
        command.configure(parser)
        await command.run(parser.parse_args(argv))
    """

    def __init__(self, capability: type[T]) -> None:
        self.capability = capability
        self.state = TriggerState.CONFIGURED
        self.parser: argparse.ArgumentParser | None = None
        self.log = get_logger(f"trigger.{capability.trigger_type}")

    @property
    def trigger_type(self) -> str:
        """Name of the trigger type, also the subcommand name."""
        return self.capability.trigger_type

    @property
    def about(self) -> str:
        """One line summary."""
        return self.capability.about

    @property
    def hidden(self) -> bool:
        """Return True if the command is not listed in help."""
        return self.capability.hidden

    def transition(self, new_state: TriggerState) -> None:
        """Move to `new_state`.

        Raises:
            InvalidStateTransition: if `new_state` can't be reached from the current state
        """
        if new_state not in _TRANSITIONS[self.state]:
            msg = f"{self.trigger_type} trigger can't go from {self.state} to {new_state}"
            raise InvalidStateTransition(msg)
        self.log.debug("%s -> %s", self.state, new_state)
        self.state = new_state

    def configure(self, parser: argparse.ArgumentParser) -> None:
        """Declare the executor options on `parser`."""
        self.parser = parser
        add_schema_arguments(parser, COMMON_OPTIONS)
        add_schema_arguments(parser, self.capability.config_schema)

    def _configured_parser(self) -> argparse.ArgumentParser:
        if self.parser is None:
            msg = f"{self.trigger_type} trigger command is not configured"
            raise TriggerError(msg)
        return self.parser

    def parse(self, argv: list[str]) -> argparse.Namespace:
        """Parse executor options (eg: forwarded by `spin up`)."""
        return self._configured_parser().parse_args(argv)

    def format_options(self) -> str:
        """Return the help text describing the executor options, without a usage line."""
        parser = argparse.ArgumentParser(usage=argparse.SUPPRESS, add_help=False)
        add_schema_arguments(parser, COMMON_OPTIONS)
        add_schema_arguments(parser, self.capability.config_schema)
        return parser.format_help()

    async def run(self, args: argparse.Namespace) -> int:
        """Load the application and run the trigger until it completes or is stopped.

        Raises:
            HelpArgsOnlyError: for the help-only capability
            TriggerError: if the application is invalid or the trigger fails
        """
        config = collect_config(args, COMMON_OPTIONS) | collect_config(args, self.capability.config_schema)
        if self.capability.help_only:
            msg = "This trigger type only describes the common trigger options and cannot be run"
            raise HelpArgsOnlyError(msg)

        app = await load_app_manifest(config["app"])
        runner = ComponentRunner(
            app,
            log_dir=config["log_dir"],
            follow=config["follow"],
            quiet=config["quiet"],
            log=self.log,
        )
        trigger = self.capability(app, config, runner, self.log)
        errors = trigger.validate()
        if errors:
            raise TriggerError(f"Invalid {self.trigger_type} trigger configuration:\n" + "\n".join(errors))

        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        installed = []
        for sig in STOP_SIGNALS:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, stop.set)
                installed.append(sig)

        self.transition(TriggerState.RUNNING)
        try:
            await trigger.run(stop)
        except asyncio.CancelledError:
            stop.set()
            self.transition(TriggerState.ABORTED)
            raise
        except Exception as e:
            self.transition(TriggerState.ABORTED)
            msg = f"{self.trigger_type} trigger failed"
            raise TriggerError(msg) from e
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

        self.transition(TriggerState.ABORTED if stop.is_set() else TriggerState.COMPLETED)
        return 0
