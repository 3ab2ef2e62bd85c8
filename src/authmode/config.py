"""Configuration for authmode.

All filesystem locations and external commands used by a configure or
unconfigure run live in one :class:`AuthModeConfig`, so components can be
pointed at temporary directories in tests.

Precedence (highest first):
    1. Explicit keyword overrides (e.g. from CLI flags).
    2. Environment variables (``AUTHMODE_HTTPD_CONFIG_DIR``, etc.).
    3. Config file (``/etc/authmode/config.yaml`` or ``$AUTHMODE_CONFIG``).
    4. Built-in defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from authmode import parse_float_env

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path("/etc/authmode/config.yaml")

# Environment variable for each config key that can be set that way.
_ENV_VARS: dict[str, str] = {
    "httpd_config_dir": "AUTHMODE_HTTPD_CONFIG_DIR",
    "saml2_config_dir": "AUTHMODE_SAML2_CONFIG_DIR",
    "metadata_command": "AUTHMODE_METADATA_COMMAND",
    "template_dir": "APPLIANCE_TEMPLATE_DIRECTORY",
    "service_name": "AUTHMODE_SERVICE_NAME",
    "vmdb_dir": "AUTHMODE_VMDB_DIR",
    "lock_file": "AUTHMODE_LOCK_FILE",
}

_PATH_KEYS = {
    "httpd_config_dir",
    "saml2_config_dir",
    "idp_metadata_file",
    "metadata_command",
    "template_dir",
    "vmdb_dir",
    "lock_file",
}


@dataclass
class AuthModeConfig:
    """Filesystem layout and external commands for one appliance.

    :param httpd_config_dir: Apache ``conf.d`` directory receiving the
        SAML configuration fragments.
    :param saml2_config_dir: Working directory for the mellon key,
        certificate and metadata files.
    :param idp_metadata_file: Where the IdP metadata is materialized.
        Defaults to ``idp-metadata.xml`` inside *saml2_config_dir*.
    :param metadata_command: Script that generates the SP key, cert and
        metadata.
    :param template_dir: Root of the appliance template tree, or ``None``
        when not provided.
    :param service_name: systemd unit of the web server.
    :param settings_command: Command prefix used to write appliance
        settings; the ``/authentication/...`` assignments are appended.
    :param vmdb_dir: Working directory for *settings_command*.
    :param lock_file: File locked for the duration of a run.
    :param http_timeout: Timeout in seconds for the IdP metadata download.
    """

    httpd_config_dir: Path = Path("/etc/httpd/conf.d")
    saml2_config_dir: Path = Path("/etc/httpd/saml2")
    idp_metadata_file: Path | None = None
    metadata_command: Path = Path("/usr/libexec/mod_auth_mellon/mellon_create_metadata.sh")
    template_dir: Path | None = None
    service_name: str = "httpd"
    settings_command: list[str] = field(default_factory=lambda: ["rake", "evm:settings:set"])
    vmdb_dir: Path = Path("/var/www/miq/vmdb")
    lock_file: Path = Path("/run/authmode.lock")
    http_timeout: float = 30

    def __post_init__(self) -> None:
        for key in _PATH_KEYS:
            value = getattr(self, key)
            if value is not None and not isinstance(value, Path):
                setattr(self, key, Path(value))
        if self.idp_metadata_file is None:
            self.idp_metadata_file = self.saml2_config_dir / "idp-metadata.xml"
        if isinstance(self.settings_command, str):
            self.settings_command = self.settings_command.split()
        self.http_timeout = float(self.http_timeout)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable dictionary."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = str(value) if isinstance(value, Path) else value
        return result


def get_config_path() -> Path:
    """Return the config file path (``$AUTHMODE_CONFIG`` or the default)."""
    env_path = os.environ.get("AUTHMODE_CONFIG")
    return Path(env_path) if env_path else _DEFAULT_CONFIG_PATH


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Read and parse a YAML config file, returning an empty dict on any failure."""
    if not config_path.is_file():
        return {}
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (yaml.YAMLError, OSError) as exc:
        logger.warning("Could not read config file %s: %s", config_path, exc)
        return {}
    if not isinstance(data, dict):
        return {}

    known = {f.name for f in fields(AuthModeConfig)}
    for key in sorted(set(data) - known):
        logger.warning("Config file %s contains unknown key %r, ignoring", config_path, key)
    return {k: v for k, v in data.items() if k in known and v is not None}


def load_config(config_path: str | Path | None = None, **overrides: Any) -> AuthModeConfig:
    """Resolve an :class:`AuthModeConfig` from file, environment and overrides.

    :param config_path: YAML config file.  Defaults to :func:`get_config_path`.
    :param overrides: Explicit values; ``None`` values are ignored.
    """
    path = Path(config_path) if config_path else get_config_path()
    values = _load_config_file(path)

    for key, env_var in _ENV_VARS.items():
        env_value = os.environ.get(env_var)
        if env_value:
            values[key] = env_value
    if os.environ.get("AUTHMODE_HTTP_TIMEOUT"):
        values["http_timeout"] = parse_float_env(
            "AUTHMODE_HTTP_TIMEOUT", float(values.get("http_timeout", 30))
        )

    values.update({k: v for k, v in overrides.items() if v is not None})
    return AuthModeConfig(**values)
