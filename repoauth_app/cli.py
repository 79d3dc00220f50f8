"""Command line entry point for ``repoauth``."""

import configparser
import sys
from pathlib import Path

import click

from .config import load_settings
from .controllers.setup_controller import SetupController
from .errors import EXIT_FILESYSTEM, EXIT_INVALID, RepoAuthError
from .log import PROG, setup_logging
from .prompts import TerminalConfirmer

__version__ = "3.1.0"


def usage_tips(host: str, key_file: Path, config_file: Path) -> str:
    return f"""
Setup complete for host: {host}

You can now use your Git repos normally:
  git clone git@{host}:username/repository.git

Diagnostics:
  ssh -T {host}
  grep -A4 "Host {host}" {config_file}

Removal (manual):
  rm -f {key_file}
  edit {config_file} and delete the "Host {host}" block

Logs:
  journalctl -t {PROG}
"""


@click.command(name=PROG)
@click.option("--host", help="Git host to configure (prompted for when omitted)")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Additional INI configuration file",
)
@click.option(
    "--ssh-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="SSH directory to use instead of ~/.ssh",
)
@click.option(
    "--test/--no-test",
    "test",
    default=None,
    help="Run or skip the SSH connection test without asking",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name=PROG)
@click.pass_context
def main(ctx, host, config_path, ssh_dir, test, verbose):
    """Store a private key for a Git host and add it to the ssh config.

    The key is read from standard input until end of file.
    """
    try:
        settings = load_settings(config_path)
    except (configparser.Error, ValueError) as exc:
        click.echo(f"Failed to read configuration: {exc}", err=True)
        sys.exit(EXIT_INVALID)
    if ssh_dir is not None:
        settings.ssh_dir = ssh_dir
    if verbose:
        settings.log_level = "DEBUG"

    logger = setup_logging(settings.log_level, settings.syslog)
    logger.info("Starting %s v%s", PROG, __version__)

    obj = ctx.obj or {}
    confirmer = obj.get("confirmer") or TerminalConfirmer(logger=logger)
    controller = SetupController(settings, confirmer, logger)
    try:
        result = controller.run(sys.stdin, host=host, test=test)
    except RepoAuthError as exc:
        logger.critical("%s", exc)
        sys.exit(exc.exit_code)
    except Exception as exc:  # pragma: no cover - unexpected failure
        logger.exception("Unexpected error: %s", exc)
        sys.exit(EXIT_FILESYSTEM)
    finally:
        if isinstance(confirmer, TerminalConfirmer):
            confirmer.close()

    click.echo(usage_tips(result.host, result.key_file, result.config_file))
    logger.info("%s completed successfully.", PROG)


if __name__ == "__main__":
    main()
