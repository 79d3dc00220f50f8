"""Checks against the local system: executables, directory modes and ssh."""

import logging
import os
import shutil
import stat
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from .errors import FilesystemError, MissingDependencyError, PermissionDrift

SSH_DIR_MODE = 0o700
FILE_MODE = 0o600
DEFAULT_SSH_DIR = Path("~/.ssh")
DEFAULT_CONFIG_NAME = "config"


def check_prerequisites(
    commands: Iterable[str],
    logger: logging.Logger = logging.getLogger(__name__),
) -> None:
    """Raise :class:`MissingDependencyError` for the first absent command."""
    for command in commands:
        if shutil.which(command) is None:
            raise MissingDependencyError(command)
        logger.debug("Found required command %s", command)


def ensure_ssh_dir(
    ssh_dir: Union[str, Path],
    logger: logging.Logger = logging.getLogger(__name__),
) -> Path:
    """Create ``ssh_dir`` when missing and restrict it to mode 700."""
    path = Path(ssh_dir).expanduser()
    try:
        path.mkdir(mode=SSH_DIR_MODE, parents=True, exist_ok=True)
        os.chmod(path, SSH_DIR_MODE)
    except OSError as exc:
        raise FilesystemError(f"Failed to create {path}: {exc}") from exc
    if not path.is_dir():
        raise FilesystemError(f"Failed to create {path}")
    logger.debug("Using ssh directory %s", path)
    return path


def file_mode(path: Union[str, Path]) -> int:
    return stat.S_IMODE(os.stat(path).st_mode)


def audit_permissions(
    ssh_dir: Union[str, Path],
    files: Sequence[Union[str, Path]],
    logger: logging.Logger = logging.getLogger(__name__),
) -> List[PermissionDrift]:
    """Compare final modes with the expected 700/600.

    Mismatches are logged as warnings and returned; they never abort the run.
    """
    expectations = [(Path(ssh_dir), SSH_DIR_MODE)]
    expectations.extend((Path(f), FILE_MODE) for f in files)
    drifts: List[PermissionDrift] = []
    for path, expected in expectations:
        try:
            actual = file_mode(path)
        except OSError as exc:
            logger.warning("Could not check permissions of %s: %s", path, exc)
            continue
        if actual != expected:
            drift = PermissionDrift(path, expected, actual)
            logger.warning("Permission drift: %s", drift)
            drifts.append(drift)
    return drifts


def ssh_available() -> bool:
    return shutil.which("ssh") is not None


def run_connection_test(
    host: str,
    config_file: Optional[Union[str, Path]] = None,
    connect_timeout: int = 10,
    logger: logging.Logger = logging.getLogger(__name__),
) -> bool:
    """Run ``ssh -T host`` and report whether it exited with status 0.

    Git hosts usually refuse shell sessions after a successful login, so a
    non-zero status only produces a warning.
    """
    command = ["ssh", "-T", "-o", f"ConnectTimeout={connect_timeout}"]
    if config_file is not None:
        command.extend(["-F", str(config_file)])
    command.append(host)
    logger.info("Testing SSH connection: %s", " ".join(command))
    try:
        result = subprocess.run(command, check=False)
    except OSError as exc:
        logger.warning("Could not run ssh: %s", exc)
        return False
    if result.returncode != 0:
        logger.warning(
            "SSH test returned non-zero exit (%d); check host or key.",
            result.returncode,
        )
        return False
    logger.info("SSH connection to %s succeeded", host)
    return True
