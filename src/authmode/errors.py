"""Exception hierarchy for authmode.

Every step of a configure/unconfigure run raises one of these (or
:class:`~authmode.runner.CommandResultError` for external tool failures).
:class:`~authmode.saml.SamlAuthentication` catches them at its boundary
and folds them into an :class:`~authmode.saml.AuthResult`.
"""

from __future__ import annotations


class AuthModeError(Exception):
    """Base class for all authmode failures."""


class ValidationError(AuthModeError):
    """Raised for missing or invalid input before any side effect."""


class ArtifactError(AuthModeError):
    """Raised when a template, key or metadata file cannot be copied,
    removed, renamed or written."""


class MetadataDownloadError(AuthModeError):
    """Raised when IdP metadata cannot be fetched over HTTP.

    :param url: The metadata URL that was requested.
    :param status_code: HTTP status of the response, or ``None`` for
        transport failures.
    """

    def __init__(self, url: str, *, status_code: int | None = None, reason: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        detail = f" (HTTP {status_code})" if status_code is not None else ""
        if reason:
            detail += f": {reason}"
        super().__init__(f"Failed to download file from {url}{detail}")


class ConcurrentRunError(AuthModeError):
    """Raised when another configure/unconfigure run holds the run lock."""
