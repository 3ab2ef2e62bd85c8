"""SAML authentication configuration for the appliance.

Switches the appliance between SAML (Apache ``mod_auth_mellon``) and
database authentication.  :meth:`SamlAuthentication.configure` runs these
steps in order, stopping at the first failure:

1. Copy the Apache SAML configuration fragments from the template tree.
2. Generate the service provider key, certificate and metadata with the
   mellon metadata script.
3. Rename the generated files to their canonical names.
4. Copy or download the IdP metadata.
5. Switch the appliance settings to SAML.
6. Restart httpd if it is running.

:meth:`SamlAuthentication.unconfigure` removes the fragments, switches the
settings back to database mode and restarts httpd.  Neither call rolls back
earlier steps when a later one fails; running the call again is the way to
recover.

Example::

    auth = SamlAuthentication(SamlOptions(idp_metadata="/tmp/idp.xml"))
    result = auth.configure("appliance.example.com")
    if not result:
        print(result.message)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from authmode.config import AuthModeConfig, load_config
from authmode.errors import ValidationError
from authmode.files import FileArtifactManager, RenameRule
from authmode.lock import RunLock
from authmode.metadata import MetadataAcquirer, is_file_path
from authmode.runner import CommandResultError, CommandRunner
from authmode.service import ServiceController
from authmode.settings import SettingsClient, database_settings, saml_settings

logger = logging.getLogger(__name__)

REMOTE_USER_CONF = "manageiq-remote-user.conf"
SAML_CONF = "manageiq-external-auth-saml.conf"

MELLON_FILE_PATTERN = "https_*.*"
MELLON_RENAME_RULES: list[RenameRule] = [
    (re.compile(r"^https_.*\.key$"), "miqsp-key.key"),
    (re.compile(r"^https_.*\.cert$"), "miqsp-cert.cert"),
    (re.compile(r"^https_.*\.xml$"), "miqsp-metadata.xml"),
]


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SamlOptions:
    """Caller options for one configure or unconfigure run.

    :param idp_metadata: IdP metadata file path or http(s) URL.
    :param enable_sso: Enable single sign-on in the appliance settings.
    :param verbose: Log step detail at INFO level.
    """

    idp_metadata: str = ""
    enable_sso: bool = False
    verbose: bool = False


@dataclass
class AuthResult:
    """Outcome of a configure or unconfigure run.

    Truthiness follows :attr:`success`.  ``code`` classifies a failure
    (``VALIDATION_ERROR``, ``COMMAND_ERROR`` or ``<ACTION>_FAILED``);
    ``output`` and ``error`` hold the captured streams when an external
    command failed.
    """

    success: bool
    message: str
    code: str = ""
    output: str = ""
    error: str = ""

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.code:
            d["code"] = self.code
        if self.output:
            d["output"] = self.output
        if self.error:
            d["error"] = self.error
        return d


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class SamlAuthentication:
    """Configure or unconfigure SAML authentication on the appliance.

    Collaborators default to real implementations built from *config*
    and may be replaced for testing.

    :param options: Caller options.
    :param config: Filesystem layout and commands.  Loaded with
        :func:`~authmode.config.load_config` when omitted.
    """

    def __init__(
        self,
        options: SamlOptions | None = None,
        config: AuthModeConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        files: FileArtifactManager | None = None,
        metadata: MetadataAcquirer | None = None,
        service: ServiceController | None = None,
        settings: SettingsClient | None = None,
    ) -> None:
        self.options = options or SamlOptions()
        self.config = config or load_config()
        self.host: str | None = None

        verbose = self.options.verbose
        self._runner = runner or CommandRunner()
        self._files = files or FileArtifactManager(self.config.template_dir, verbose=verbose)
        self._metadata = metadata or MetadataAcquirer(timeout=self.config.http_timeout, verbose=verbose)
        self._service = service or ServiceController(self.config.service_name, self._runner)
        self._settings = settings or SettingsClient(
            self.config.settings_command,
            cwd=self.config.vmdb_dir,
            runner=self._runner,
        )

    # -- public API --------------------------------------------------------

    def configure(self, host: str) -> AuthResult:
        """Configure SAML authentication for ``https://<host>``."""
        self.host = host
        return self._run("Configure", self._validate_configure, self._configure)

    def unconfigure(self) -> AuthResult:
        """Restore database authentication."""
        return self._run("Unconfigure", self._validate_unconfigure, self._unconfigure)

    def configured(self) -> bool:
        """Return ``True`` if the SAML httpd configuration is in place."""
        return (self.config.httpd_config_dir / SAML_CONF).exists()

    # -- sequences ---------------------------------------------------------

    def _configure(self) -> None:
        logger.info("Configuring SAML Authentication for https://%s ...", self.host)
        self._copy_apache_saml_configfiles()
        self.config.saml2_config_dir.mkdir(parents=True, exist_ok=True)
        self._runner.run_checked(
            self.config.metadata_command,
            [f"https://{self.host}", f"https://{self.host}/saml2"],
            cwd=self.config.saml2_config_dir,
        )
        self._rename_mellon_configfiles()
        self._fetch_idp_metadata()
        self._configure_auth_settings_saml()
        self._restart_httpd()

    def _unconfigure(self) -> None:
        logger.info("Unconfiguring SAML Authentication ...")
        self._remove_apache_saml_configfiles()
        self._configure_auth_settings_database()
        self._restart_httpd()

    def _run(
        self,
        action: str,
        validate: Callable[[], None],
        sequence: Callable[[], None],
    ) -> AuthResult:
        """Validate, then run *sequence* under the run lock.

        Validation touches nothing on disk, the lock file included.  Any
        failure is translated into an :class:`AuthResult`.
        """
        failure = f"Failed to {action} SAML Authentication"
        try:
            validate()
            with RunLock(self.config.lock_file, owner=action.lower()):
                sequence()
        except CommandResultError as exc:
            self._log_command_error(exc)
            message = f"{failure} - {exc}"
            logger.error("%s", message)
            return AuthResult(False, message, "COMMAND_ERROR", output=exc.result.output, error=exc.result.error)
        except ValidationError as exc:
            message = f"{failure} - {exc}"
            logger.error("%s", message)
            return AuthResult(False, message, "VALIDATION_ERROR")
        except Exception as exc:
            logger.debug("%s", failure, exc_info=True)
            message = f"{failure} - {exc}"
            logger.error("%s", message)
            return AuthResult(False, message, f"{action.upper()}_FAILED")

        message = f"{action}d SAML Authentication"
        logger.info("%s", message)
        return AuthResult(True, message)

    # -- validation --------------------------------------------------------

    def _validate_configure(self) -> None:
        self._validate_host()
        self._validate_idp_metadata()

    def _validate_unconfigure(self) -> None:
        if not self.configured():
            raise ValidationError("Appliance is not currently configured for SAML")

    def _validate_host(self) -> None:
        if not self.host or not self.host.strip():
            raise ValidationError("Must specify the appliance host name via --host")

    def _validate_idp_metadata(self) -> None:
        idp_metadata = self.options.idp_metadata
        if not idp_metadata or not idp_metadata.strip():
            raise ValidationError("Must specify the SAML IDP metadata file or URL via --idp-metadata")
        if is_file_path(idp_metadata) and not Path(idp_metadata).exists():
            raise ValidationError(f"Missing SAML IDP metadata file {idp_metadata}")

    # -- apache configuration ----------------------------------------------

    def _debug_msg(self, msg: str, *args: object) -> None:
        logger.log(logging.INFO if self.options.verbose else logging.DEBUG, msg, *args)

    def _copy_apache_saml_configfiles(self) -> None:
        self._debug_msg("Copying Apache SAML Config files ...")
        self._files.copy_template(self.config.httpd_config_dir, REMOTE_USER_CONF)
        self._files.copy_template(self.config.httpd_config_dir, SAML_CONF)

    def _remove_apache_saml_configfiles(self) -> None:
        self._debug_msg("Removing Apache SAML Config files ...")
        self._files.remove(self.config.httpd_config_dir / REMOTE_USER_CONF)
        self._files.remove(self.config.httpd_config_dir / SAML_CONF)

    def _rename_mellon_configfiles(self) -> None:
        self._debug_msg("Renaming mellon config files ...")
        self._files.rename_by_pattern(
            self.config.saml2_config_dir,
            MELLON_FILE_PATTERN,
            MELLON_RENAME_RULES,
        )

    def _fetch_idp_metadata(self) -> None:
        self._metadata.resolve(self.options.idp_metadata, self.config.idp_metadata_file)

    def _restart_httpd(self) -> None:
        if self._service.running():
            logger.info("Restarting %s ...", self._service.name)
            self._service.restart()

    # -- appliance settings ------------------------------------------------

    def _configure_auth_settings_saml(self) -> None:
        logger.info("Setting Appliance Authentication Settings to SAML ...")
        self._settings.apply(saml_settings(enable_sso=self.options.enable_sso))

    def _configure_auth_settings_database(self) -> None:
        logger.info("Setting Appliance Authentication Settings to Database ...")
        self._settings.apply(database_settings())

    # -- logging -----------------------------------------------------------

    @staticmethod
    def _log_command_error(err: CommandResultError) -> None:
        logger.error("%s", err.result.output)
        logger.error("%s", err.result.error)
        logger.error("")
