"""External command execution.

Wraps :func:`subprocess.run` so every external program (the mellon
metadata script, ``systemctl``, the settings command) is invoked the same
way and reports failures as a :class:`CommandResultError` carrying the
captured output.

Example::

    runner = CommandRunner()
    result = runner.run_checked("/usr/bin/true", ["a", "b"], cwd="/tmp")
    print(result.exit_status)   # 0
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Sequence

from authmode.errors import AuthModeError

logger = logging.getLogger(__name__)

# Exit status reported when the command could not be launched at all.
_LAUNCH_FAILURE_STATUS = 127


@dataclass
class CommandResult:
    """Outcome of one external command."""

    command: str
    exit_status: int
    output: str = ""
    error: str = ""

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "exit_status": self.exit_status,
            "output": self.output,
            "error": self.error,
        }


class CommandResultError(AuthModeError):
    """Raised when an external command exits nonzero or cannot be launched.

    :param result: The :class:`CommandResult` with captured stdout/stderr.
    """

    def __init__(self, result: CommandResult) -> None:
        self.result = result
        super().__init__(f"{result.command} exit code: {result.exit_status}")


class CommandRunner:
    """Run external commands synchronously and capture their output."""

    def run(
        self,
        command: str | os.PathLike,
        params: Sequence[str] = (),
        *,
        cwd: str | os.PathLike | None = None,
    ) -> CommandResult:
        """Run *command* with positional *params* in *cwd*.

        Never raises for a nonzero exit; a launch failure is reported as
        exit status 127 with the OS error text in ``error``.
        """
        cmd = [str(command), *params]
        command_line = " ".join(cmd)
        logger.debug("Running: %s (cwd=%s)", command_line, cwd)

        try:
            completed = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            return CommandResult(
                command=command_line,
                exit_status=_LAUNCH_FAILURE_STATUS,
                error=str(exc),
            )

        return CommandResult(
            command=command_line,
            exit_status=completed.returncode,
            output=completed.stdout or "",
            error=completed.stderr or "",
        )

    def run_checked(
        self,
        command: str | os.PathLike,
        params: Sequence[str] = (),
        *,
        cwd: str | os.PathLike | None = None,
    ) -> CommandResult:
        """Like :meth:`run` but raise :class:`CommandResultError` on failure."""
        result = self.run(command, params, cwd=cwd)
        if not result.success:
            raise CommandResultError(result)
        return result
