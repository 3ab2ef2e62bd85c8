"""Appliance authentication settings.

The appliance keeps its authentication mode in a central settings store
that is written by running a settings command (``rake evm:settings:set``)
with ``/authentication/<key>=<value>`` assignments.  The whole batch is
one logical update.
"""

from __future__ import annotations

import logging
import os
from typing import Sequence

from authmode.runner import CommandRunner

logger = logging.getLogger(__name__)


def _flag(value: bool) -> str:
    return "true" if value else "false"


def saml_settings(*, enable_sso: bool = False) -> list[str]:
    """Return the assignments that switch the appliance to SAML."""
    return [
        "/authentication/mode=httpd",
        "/authentication/httpd_role=true",
        "/authentication/saml_enabled=true",
        "/authentication/oidc_enabled=false",
        f"/authentication/sso_enabled={_flag(enable_sso)}",
        "/authentication/provider_type=saml",
    ]


def database_settings() -> list[str]:
    """Return the assignments that switch the appliance to database auth."""
    return [
        "/authentication/mode=database",
        "/authentication/httpd_role=false",
        "/authentication/saml_enabled=false",
        "/authentication/oidc_enabled=false",
        "/authentication/sso_enabled=false",
        "/authentication/provider_type=none",
    ]


class SettingsClient:
    """Write key/value assignments to the settings store.

    :param command: Command prefix, e.g. ``["rake", "evm:settings:set"]``.
    :param cwd: Working directory the command runs in.
    :param runner: Command runner.
    """

    def __init__(
        self,
        command: Sequence[str],
        *,
        cwd: str | os.PathLike | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        if not command:
            raise ValueError("settings command must not be empty")
        self.command = list(command)
        self.cwd = cwd
        self._runner = runner or CommandRunner()

    def apply(self, params: Sequence[str]) -> None:
        """Apply *params* as one update.

        :raises CommandResultError: If the settings command fails.
        """
        logger.debug("Applying settings: %s", ", ".join(params))
        self._runner.run_checked(
            self.command[0],
            [*self.command[1:], *params],
            cwd=self.cwd,
        )
