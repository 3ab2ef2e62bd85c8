"""Output formatting for the authmode CLI.

All public functions accept a ``json_mode`` flag:
    - ``True``  -> JSON envelope ``{status, data, error}``
    - ``False`` -> Rich panel for humans
"""

from __future__ import annotations

import json
from io import StringIO
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text


def _render(renderable: Any) -> str:
    """Render a Rich object to a string."""
    buf = StringIO()
    console = Console(file=buf, force_terminal=False, width=100)
    console.print(renderable)
    return buf.getvalue().rstrip("\n")


def format_response(
    status: str,
    data: Optional[Dict[str, Any]] = None,
    error: Optional[Dict[str, Any]] = None,
    *,
    json_mode: bool = False,
) -> str:
    """Build a standard ``{status, data, error}`` response."""
    if json_mode:
        envelope: Dict[str, Any] = {"status": status}
        if data is not None:
            envelope["data"] = data
        if error is not None:
            envelope["error"] = error
        return json.dumps(envelope, indent=2, sort_keys=False)

    if status == "error" and error:
        code = error.get("code", "UNKNOWN")
        msg = error.get("message", "An unknown error occurred.")
        t = Text()
        t.append("Error", style="bold red")
        t.append(f" [{code}]: ", style="red")
        t.append(msg)
        return _render(Panel(t, title="Error", border_style="red"))

    if data:
        t = Text()
        for i, (key, value) in enumerate(data.items()):
            if i:
                t.append("\n")
            t.append(f"{key}: ", style="bold")
            t.append(str(value))
        return _render(Panel(t, border_style="green"))

    return f"Status: {status}"


def format_error(
    message: str,
    code: str = "ERROR",
    *,
    json_mode: bool = False,
) -> str:
    """Shortcut for a standard error response."""
    return format_response(
        "error",
        error={"code": code, "message": message},
        json_mode=json_mode,
    )


def format_status(configured: bool, config: Dict[str, Any], *, json_mode: bool = False) -> str:
    """Format the current authentication mode."""
    data = {
        "mode": "saml" if configured else "database",
        "configured": configured,
        "httpd_config_dir": config.get("httpd_config_dir"),
        "saml2_config_dir": config.get("saml2_config_dir"),
    }
    return format_response("success", data=data, json_mode=json_mode)
