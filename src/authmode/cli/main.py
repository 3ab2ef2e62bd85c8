"""authmode CLI - switch appliance authentication between SAML and database.

Usage:
    authmode configure --host <host> --idp-metadata <file-or-url> [--enable-sso] [--json]
    authmode unconfigure [--json]
    authmode status [--json]
"""

from __future__ import annotations

import sys

import click

from authmode.cli.exit_codes import SUCCESS, exit_code_for
from authmode.cli.output import format_error, format_response, format_status
from authmode.config import AuthModeConfig, load_config
from authmode.log_config import configure_logging
from authmode.saml import AuthResult, SamlAuthentication, SamlOptions

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _emit(output: str, exit_code: int = SUCCESS) -> None:
    """Print output and exit with the given code."""
    click.echo(output)
    sys.exit(exit_code)


def _load(ctx: click.Context) -> AuthModeConfig:
    return load_config(ctx.obj["config_path"])


def _emit_result(result: AuthResult, json_mode: bool) -> None:
    if result:
        _emit(format_response("success", data=result.to_dict(), json_mode=json_mode))
    _emit(
        format_error(result.message, result.code or "ERROR", json_mode=json_mode),
        exit_code_for(result.code),
    )


# ------------------------------------------------------------------
# CLI group
# ------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "config_path",
    envvar="AUTHMODE_CONFIG",
    default=None,
    type=click.Path(dir_okay=False),
    help="Path to the authmode YAML config file.",
)
@click.option("--log-dir", default=None, help="Directory for authmode.log.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show step detail.")
@click.version_option(package_name="authmode")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_dir: str | None, verbose: bool) -> None:
    """Switch appliance authentication between SAML and database mode."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    configure_logging(log_dir, verbose=verbose)


# ------------------------------------------------------------------
# configure
# ------------------------------------------------------------------


@cli.command()
@click.option("--host", envvar="AUTHMODE_HOST", default="", help="Appliance host name.")
@click.option("--idp-metadata", default="", help="SAML IdP metadata file or http(s) URL.")
@click.option("--enable-sso", is_flag=True, default=False, help="Enable single sign-on.")
@click.option("--json", "json_mode", is_flag=True, default=False, help="Output as JSON.")
@click.pass_context
def configure(
    ctx: click.Context,
    host: str,
    idp_metadata: str,
    enable_sso: bool,
    json_mode: bool,
) -> None:
    """Configure SAML authentication."""
    options = SamlOptions(
        idp_metadata=idp_metadata,
        enable_sso=enable_sso,
        verbose=ctx.obj["verbose"],
    )
    result = SamlAuthentication(options, _load(ctx)).configure(host)
    _emit_result(result, json_mode)


# ------------------------------------------------------------------
# unconfigure
# ------------------------------------------------------------------


@cli.command()
@click.option("--json", "json_mode", is_flag=True, default=False, help="Output as JSON.")
@click.pass_context
def unconfigure(ctx: click.Context, json_mode: bool) -> None:
    """Restore database authentication."""
    options = SamlOptions(verbose=ctx.obj["verbose"])
    result = SamlAuthentication(options, _load(ctx)).unconfigure()
    _emit_result(result, json_mode)


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------


@cli.command()
@click.option("--json", "json_mode", is_flag=True, default=False, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, json_mode: bool) -> None:
    """Show whether SAML authentication is configured."""
    config = _load(ctx)
    configured = SamlAuthentication(config=config).configured()
    _emit(format_status(configured, config.to_dict(), json_mode=json_mode))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
