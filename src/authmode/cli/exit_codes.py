"""Exit codes for the authmode CLI.

These let provisioning scripts tell failure categories apart without
parsing messages.
"""

from __future__ import annotations

SUCCESS = 0

# Missing or invalid input, or the appliance is not in the expected state
VALIDATION_ERROR = 1

# An external command (metadata script, systemctl, settings command) failed
COMMAND_ERROR = 2

# Any other error (template, download, I/O, lock)
OTHER_ERROR = 3


ERROR_CODE_MAP: dict[str, int] = {
    "VALIDATION_ERROR": VALIDATION_ERROR,
    "COMMAND_ERROR": COMMAND_ERROR,
    "CONFIGURE_FAILED": OTHER_ERROR,
    "UNCONFIGURE_FAILED": OTHER_ERROR,
}


def exit_code_for(error_code: str) -> int:
    """Map an error code string to a CLI exit code."""
    return ERROR_CODE_MAP.get(error_code, OTHER_ERROR)
