"""Shared fixtures for the authmode test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from authmode.config import AuthModeConfig
from authmode.files import relative_from_root
from authmode.runner import CommandResult, CommandRunner
from authmode.saml import REMOTE_USER_CONF, SAML_CONF

# ---------------------------------------------------------------------------
# Constants reused across tests
# ---------------------------------------------------------------------------

TEST_HOST = "appliance.example.com"
METADATA_SCRIPT = "mellon_create_metadata.sh"
IDP_METADATA = "<EntityDescriptor entityID='https://idp.example.com'/>"


# ---------------------------------------------------------------------------
# Fake command runner
# ---------------------------------------------------------------------------


class FakeRunner(CommandRunner):
    """Records commands instead of spawning them.

    ``systemctl is-active`` reports *httpd_running*.  The mellon metadata
    script drops ``https_*`` key, cert and metadata files in its working
    directory.  A command whose basename, or basename plus first argument
    (e.g. ``"systemctl restart"``), is in *failures* returns that exit
    status with canned output.
    """

    def __init__(
        self,
        *,
        httpd_running: bool = True,
        failures: Optional[Dict[str, int]] = None,
        extra_generated: Sequence[str] = (),
    ) -> None:
        self.httpd_running = httpd_running
        self.failures = failures or {}
        self.extra_generated = list(extra_generated)
        self.calls: List[Tuple[str, List[str], Any]] = []

    def run(self, command, params=(), *, cwd=None) -> CommandResult:
        command = str(command)
        params = list(params)
        self.calls.append((command, params, cwd))
        command_line = " ".join([command, *params])
        name = Path(command).name

        for key in (f"{name} {params[0]}" if params else None, name):
            if key in self.failures:
                return CommandResult(
                    command=command_line,
                    exit_status=self.failures[key],
                    output=f"{key} stdout",
                    error=f"{key} stderr",
                )
        if name == "systemctl" and params[0] == "is-active":
            return CommandResult(command=command_line, exit_status=0 if self.httpd_running else 3)
        if name == METADATA_SCRIPT:
            prefix = "https_" + params[0].replace("https://", "").replace(".", "_")
            for suffix in ("key", "cert", "xml", *self.extra_generated):
                (Path(cwd) / f"{prefix}.{suffix}").write_text(f"generated {suffix}\n")
        return CommandResult(command=command_line, exit_status=0)

    # -- inspection helpers ------------------------------------------------

    def calls_to(self, name: str) -> List[Tuple[str, List[str], Any]]:
        return [c for c in self.calls if Path(c[0]).name == name]

    def restarts(self) -> int:
        return sum(1 for _, params, _ in self.calls_to("systemctl") if params[0] == "restart")

    def applied_settings(self) -> Dict[str, str]:
        """Return the ``/authentication`` values from the last settings call."""
        calls = self.calls_to("rake")
        if not calls:
            return {}
        _, params, _ = calls[-1]
        settings: Dict[str, str] = {}
        for param in params:
            if param.startswith("/authentication/"):
                key, _, value = param[len("/authentication/"):].partition("=")
                settings[key] = value
        return settings


# ---------------------------------------------------------------------------
# Appliance layout
# ---------------------------------------------------------------------------


@pytest.fixture()
def config(tmp_path: Path) -> AuthModeConfig:
    """An appliance layout under *tmp_path* with both httpd templates present."""
    root = tmp_path / "appliance"
    httpd_dir = root / "etc" / "httpd" / "conf.d"
    httpd_dir.mkdir(parents=True)
    template_dir = tmp_path / "templates"

    cfg = AuthModeConfig(
        httpd_config_dir=httpd_dir,
        saml2_config_dir=root / "etc" / "httpd" / "saml2",
        metadata_command=tmp_path / "bin" / METADATA_SCRIPT,
        template_dir=template_dir,
        vmdb_dir=tmp_path / "vmdb",
        lock_file=tmp_path / "run" / "authmode.lock",
    )

    templates = template_dir / relative_from_root(httpd_dir)
    templates.mkdir(parents=True)
    (templates / REMOTE_USER_CONF).write_text("# remote user template\n")
    (templates / SAML_CONF).write_text("# saml template\n")
    return cfg


@pytest.fixture()
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def idp_metadata_file(tmp_path: Path) -> Path:
    path = tmp_path / "downloads" / "idp.xml"
    path.parent.mkdir()
    path.write_text(IDP_METADATA)
    return path
