"""authmode - switch appliance authentication between SAML and database mode."""

from __future__ import annotations

import logging
import os
from importlib.metadata import PackageNotFoundError, version

_logger = logging.getLogger(__name__)

try:
    __version__ = version("authmode")
except PackageNotFoundError:
    __version__ = "unknown"


def parse_float_env(name: str, default: float) -> float:
    """Parse a float from an environment variable with safe fallback.

    Logs a warning and returns *default* if the value is not a valid number.
    """
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        _logger.warning(
            "Invalid number for %s=%r, using default %s",
            name,
            raw,
            default,
        )
        return default
