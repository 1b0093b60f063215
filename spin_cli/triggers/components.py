"""Component invocation.

Components are executables run once per event, CGI style: the event payload
is written to stdin, metadata is passed through the environment and the
response is read from stdout.
"""

from __future__ import annotations

import asyncio
import os
import sys
from dataclasses import dataclass
from logging import Logger
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles

from ..logging_setup import get_logger
from ..models import TriggerError
from ..process import ChildProcess, exit_status

if TYPE_CHECKING:
    from ..manifest import AppManifest

__all__ = ["ComponentOutput", "ComponentRunner"]


@dataclass
class ComponentOutput:
    """Result of a component invocation."""

    status: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        """Return True if the component exited successfully."""
        return self.status == 0


class ComponentRunner:
    """Runs the components of an application."""

    def __init__(
        self,
        app: AppManifest,
        log_dir: Path | None = None,
        follow: list[str] | None = None,
        quiet: bool = False,
        log: Logger | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            app: The application owning the components
            log_dir: Directory receiving `<component>_stderr.txt` files
            follow: Only echo the output of these components (all if empty)
            quiet: Never echo component output
            log: Logger to use
        """
        self.app = app
        self.log_dir = log_dir
        self.follow = follow or []
        self.quiet = quiet
        self.log = log or get_logger("components")

    def should_echo(self, component_id: str) -> bool:
        """Return True if the output of `component_id` is echoed to the terminal."""
        if self.quiet:
            return False
        return not self.follow or component_id in self.follow

    async def invoke(self, component_id: str, payload: bytes = b"", env: dict[str, str] | None = None) -> ComponentOutput:
        """Run `component_id` once.

        Args:
            component_id: Id of a `[component.<id>]` table
            payload: Bytes written to the component's stdin
            env: Extra environment variables

        Raises:
            TriggerError: if the component is unknown or can't be started
        """
        component = self.app.components.get(component_id)
        if component is None:
            msg = f"Unknown component '{component_id}'"
            raise TriggerError(msg)

        source = self.app.resolve(component.source)
        child_env = {**os.environ, **component.environment, **(env or {})}
        self.log.debug("Invoking %s (%s)", component_id, source)
        proc = ChildProcess()
        try:
            await proc.start(
                [str(source)],
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.app.base_dir,
                env=child_env,
            )
        except OSError as e:
            msg = f"Unable to start component '{component_id}' ({source})"
            raise TriggerError(msg) from e

        stdout, stderr = await proc.communicate(payload)
        await self._record_stderr(component_id, stderr)
        return ComponentOutput(exit_status(proc.returncode or 0), stdout, stderr)

    async def _record_stderr(self, component_id: str, stderr: bytes) -> None:
        if not stderr:
            return
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.log_dir / f"{component_id}_stderr.txt", "ab") as f:
                await f.write(stderr)
        if self.should_echo(component_id):
            sys.stderr.write(stderr.decode(errors="replace"))
            sys.stderr.flush()
