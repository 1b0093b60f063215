"""Child process lifecycle.

ChildProcess wraps an asyncio subprocess with a graceful stop sequence
(SIGTERM, wait, SIGKILL, reap). It is used to run forwarded plugins,
component build commands and component invocations.
"""

__all__ = ["ChildProcess", "exit_status"]

import asyncio
import contextlib
import signal
from collections.abc import Sequence
from typing import Any

from .constants import GRACEFUL_STOP_TIMEOUT


def exit_status(returncode: int) -> int:
    """Convert an asyncio return code to a shell-style exit status.

    A child killed by signal N reports -N; shells report 128 + N.
    """
    if returncode < 0:
        return 128 - returncode
    return returncode


class ChildProcess:
    """Manages a subprocess with proper lifecycle handling.

    Usage:
        proc = ChildProcess()
        await proc.start(["spin-cloud", "deploy"])
        status = await proc.wait()
    """

    def __init__(self, graceful_timeout: float = GRACEFUL_STOP_TIMEOUT) -> None:
        """Initialize.

        Args:
            graceful_timeout: Seconds to wait after SIGTERM before SIGKILL
        """
        self._proc: asyncio.subprocess.Process | None = None
        self._graceful_timeout = graceful_timeout

    @property
    def pid(self) -> int | None:
        """Return PID if process exists, else None."""
        return self._proc.pid if self._proc else None

    @property
    def returncode(self) -> int | None:
        """Return exit code if process exited, else None."""
        return self._proc.returncode if self._proc else None

    @property
    def is_alive(self) -> bool:
        """Check if process is currently running."""
        return self._proc is not None and self._proc.returncode is None

    async def start(self, argv: Sequence[str], **subprocess_kwargs: Any) -> None:  # noqa: ANN401
        """Start `argv[0]` with the remaining items as arguments, without a shell.

        Raises:
            OSError: if the executable can't be spawned
        """
        if self.is_alive:
            await self.stop()
        self._proc = await asyncio.create_subprocess_exec(*argv, **subprocess_kwargs)

    async def start_shell(self, command: str, **subprocess_kwargs: Any) -> None:  # noqa: ANN401
        """Start a shell command line."""
        if self.is_alive:
            await self.stop()
        self._proc = await asyncio.create_subprocess_shell(command, **subprocess_kwargs)

    async def stop(self) -> int | None:
        """Stop the process gracefully.

        Returns:
            The process return code, or None if never started
        """
        if self._proc is None:
            return None

        if self._proc.returncode is not None:
            return self._proc.returncode

        with contextlib.suppress(ProcessLookupError):
            self._proc.send_signal(signal.SIGTERM)

        try:
            await asyncio.wait_for(self._proc.wait(), timeout=self._graceful_timeout)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                self._proc.kill()
            await self._proc.wait()

        return self._proc.returncode

    async def wait(self) -> int:
        """Wait for process to exit and return its exit status.

        The child is stopped if the waiting task is cancelled.

        Raises:
            RuntimeError: If no process was started
        """
        if self._proc is None:
            msg = "No process running"
            raise RuntimeError(msg)
        try:
            return exit_status(await self._proc.wait())
        except asyncio.CancelledError:
            await self.stop()
            raise

    async def communicate(self, payload: bytes = b"") -> tuple[bytes, bytes]:
        """Write `payload` to stdin and read stdout and stderr until the child exits.

        The process must have been started with pipes. The child is stopped
        if the calling task is cancelled.

        Raises:
            RuntimeError: If no process was started
        """
        if self._proc is None:
            msg = "No process running"
            raise RuntimeError(msg)
        try:
            return await self._proc.communicate(payload)
        except asyncio.CancelledError:
            await self.stop()
            raise
