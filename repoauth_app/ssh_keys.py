"""Helpers for sanitising, validating and storing private key material."""

import io
import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Union

import paramiko

from .errors import FilesystemError, InvalidInputError

KEY_SUFFIX = ".key"
KEY_MODE = 0o600

BEGIN_MARKER = re.compile(r"BEGIN ([A-Z0-9]+ )*PRIVATE KEY")
END_MARKER = re.compile(r"END ([A-Z0-9]+ )*PRIVATE KEY")
# Characters that would break a ``Host`` token or escape the ssh directory
INVALID_HOST_CHARS = re.compile(r"[\s/\\*?!,]")


class KeyMaterial:
    """Mutable holder for private key text.

    The content lives in a :class:`bytearray` so it can be overwritten once
    the key has been written to disk.  ``repr`` never shows the key.
    """

    def __init__(self, text: str) -> None:
        self._buffer = bytearray(text.encode("utf-8"))

    def __repr__(self) -> str:
        return f"<KeyMaterial {len(self._buffer)} bytes redacted>"

    def __len__(self) -> int:
        return len(self._buffer)

    def __bool__(self) -> bool:
        return bool(self._buffer)

    def as_bytes(self) -> bytes:
        return bytes(self._buffer)

    def as_text(self) -> str:
        return self._buffer.decode("utf-8")

    def clear(self) -> None:
        """Zero the buffer and drop its contents."""
        for index in range(len(self._buffer)):
            self._buffer[index] = 0
        del self._buffer[:]


def validate_host(host: Optional[str]) -> str:
    """Return ``host`` stripped of surrounding whitespace.

    Raises :class:`InvalidInputError` for empty names or names that cannot be
    used as both an ssh ``Host`` token and a file name.
    """
    host = (host or "").strip()
    if not host:
        raise InvalidInputError("Host cannot be empty.")
    if INVALID_HOST_CHARS.search(host) or host.startswith("."):
        raise InvalidInputError(f"Invalid host name: {host!r}")
    return host


def sanitize_key(raw: str) -> str:
    """Strip carriage returns and blank lines from pasted key text.

    The relative order of the remaining lines is preserved.  A non-empty
    result always ends with a single newline.
    """
    lines: List[str] = [
        line for line in raw.replace("\r", "").split("\n") if line.strip()
    ]
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def validate_key(text: str) -> None:
    """Reject sanitised key text that is empty or lacks a marker pair."""
    if not text:
        raise InvalidInputError("No key content received (input empty).")
    begins = list(BEGIN_MARKER.finditer(text))
    ends = list(END_MARKER.finditer(text))
    if not begins:
        raise InvalidInputError("Invalid key: missing BEGIN marker.")
    if not ends:
        raise InvalidInputError("Invalid key: missing END marker.")
    if len(begins) > 1 or len(ends) > 1:
        raise InvalidInputError("Invalid key: input contains more than one key.")
    if ends[0].start() < begins[0].end():
        raise InvalidInputError("Invalid key: END marker precedes BEGIN marker.")


def read_key(raw: str) -> KeyMaterial:
    """Sanitise and validate ``raw`` returning it as :class:`KeyMaterial`."""
    text = sanitize_key(raw)
    validate_key(text)
    return KeyMaterial(text)


def describe_key(
    material: KeyMaterial,
    logger: logging.Logger = logging.getLogger(__name__),
) -> Optional[str]:
    """Return the paramiko key type name for ``material`` if it parses.

    Parsing is informational only.  Encrypted keys and formats paramiko does
    not understand are reported but never rejected.
    """
    key_types = [paramiko.RSAKey]
    if hasattr(paramiko, "ECDSAKey"):
        key_types.append(paramiko.ECDSAKey)
    if hasattr(paramiko, "Ed25519Key"):
        key_types.append(paramiko.Ed25519Key)

    for pkey_cls in key_types:
        try:
            pkey = pkey_cls.from_private_key(io.StringIO(material.as_text()))
        except paramiko.PasswordRequiredException:
            logger.info("Private key is passphrase protected")
            return None
        except Exception as exc:  # malformed input surfaces as assorted errors
            logger.debug("Key did not load as %s: %s", pkey_cls.__name__, exc)
            continue
        logger.info("Private key type: %s", pkey.get_name())
        return pkey.get_name()
    logger.warning("Private key could not be parsed; writing it unchanged")
    return None


def key_path_for_host(ssh_dir: Union[str, Path], host: str) -> Path:
    """Return the file the key for ``host`` is stored in."""
    return Path(ssh_dir) / f"{host}{KEY_SUFFIX}"


def write_key_file(
    path: Union[str, Path],
    material: KeyMaterial,
    logger: logging.Logger = logging.getLogger(__name__),
) -> Path:
    """Write ``material`` to ``path`` with mode 600 and clear the buffer.

    The process umask is tightened for the duration of the write so the
    file is never created with broader permissions.
    """
    path = Path(path)
    old_umask = os.umask(0o077)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, KEY_MODE)
        # An existing file keeps its old mode until changed
        os.fchmod(fd, KEY_MODE)
        with os.fdopen(fd, "wb") as handle:
            handle.write(material.as_bytes())
        os.chmod(path, KEY_MODE)
    except OSError as exc:
        raise FilesystemError(f"Failed to write key file {path}: {exc}") from exc
    finally:
        os.umask(old_umask)
        material.clear()
    logger.info("Private key written to %s", path)
    return path
