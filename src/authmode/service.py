"""Web server service control through ``systemctl``."""

from __future__ import annotations

import logging

from authmode.runner import CommandRunner

logger = logging.getLogger(__name__)


class ServiceController:
    """Query and restart one systemd unit.

    :param name: Unit name, e.g. ``"httpd"``.
    :param runner: Command runner used to call ``systemctl``.
    """

    def __init__(self, name: str, runner: CommandRunner | None = None) -> None:
        self.name = name
        self._runner = runner or CommandRunner()

    def running(self) -> bool:
        result = self._runner.run("systemctl", ["is-active", "--quiet", self.name])
        return result.success

    def restart(self) -> None:
        """Restart the unit.

        :raises CommandResultError: If ``systemctl restart`` fails.
        """
        logger.debug("Restarting service %s", self.name)
        self._runner.run_checked("systemctl", ["restart", self.name])
