"""Utilities for updating the ssh client configuration file.

The file is parsed into a :class:`ConfigDocument`: the lines before the first
``Host``/``Match`` keyword form an unparsed preamble, followed by one
:class:`ConfigBlock` per section.  Blocks keep their raw lines so content the
tool does not touch is written back unchanged.
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Union

import paramiko

from .errors import FilesystemError, UserAbortedError

CONFIG_MODE = 0o600
DEFAULT_USER = "git"
INDENT = "    "

SECTION_RE = re.compile(r"^\s*(host|match)(\s*=\s*|\s+)(\S.*)?$", re.IGNORECASE)
COMMENT_RE = re.compile(r"^\s*#")


@dataclass
class ConfigBlock:
    """One ``Host`` or ``Match`` section.

    ``leading`` holds comment lines written directly above the section
    keyword.  They are kept in place when the block is removed.
    """

    keyword: str
    patterns: List[str]
    lines: List[str]
    leading: List[str] = field(default_factory=list)

    def matches_host(self, host: str) -> bool:
        return (
            self.keyword.lower() == "host"
            and bool(self.patterns)
            and self.patterns[0] == host
        )


@dataclass
class ConfigDocument:
    preamble: List[str] = field(default_factory=list)
    blocks: List[ConfigBlock] = field(default_factory=list)

    @classmethod
    def parse(cls, text: str) -> "ConfigDocument":
        doc = cls()
        current: Optional[ConfigBlock] = None
        for line in text.splitlines():
            match = SECTION_RE.match(line)
            if match is None:
                if current is None:
                    doc.preamble.append(line)
                else:
                    current.lines.append(line)
                continue
            previous = current.lines if current is not None else doc.preamble
            leading: List[str] = []
            while previous and COMMENT_RE.match(previous[-1]):
                leading.insert(0, previous.pop())
            current = ConfigBlock(
                keyword=match.group(1),
                patterns=(match.group(3) or "").split(),
                lines=[line],
                leading=leading,
            )
            doc.blocks.append(current)
        return doc

    def lines(self) -> List[str]:
        result = list(self.preamble)
        for block in self.blocks:
            result.extend(block.leading)
            result.extend(block.lines)
        return result

    def render(self) -> str:
        lines = self.lines()
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    def find_host(self, host: str) -> List[ConfigBlock]:
        return [block for block in self.blocks if block.matches_host(host)]

    def remove_host(self, host: str) -> int:
        """Drop every block for ``host``, returning how many were removed."""
        kept: List[ConfigBlock] = []
        removed = 0
        for block in self.blocks:
            if not block.matches_host(host):
                kept.append(block)
                continue
            removed += 1
            if block.leading:
                # Orphaned comments stay with whatever precedes them
                target = kept[-1].lines if kept else self.preamble
                target.extend(block.leading)
        self.blocks = kept
        return removed

    def append_block(self, block: ConfigBlock) -> None:
        """Append ``block`` after a single blank separator line."""
        tail = self.blocks[-1].lines if self.blocks else self.preamble
        while tail and not tail[-1].strip():
            tail.pop()
        if self.blocks:
            self.blocks[-1].lines.append("")
        else:
            self.preamble.append("")
        self.blocks.append(block)


def quote_value(value: Union[str, Path]) -> str:
    """Double-quote ``value`` when it contains whitespace."""
    text = str(value)
    if re.search(r"\s", text):
        return f'"{text}"'
    return text


def build_host_block(host: str, identity_file: Union[str, Path]) -> ConfigBlock:
    """Return the managed block for ``host`` ending with a blank line."""
    return ConfigBlock(
        keyword="Host",
        patterns=[host],
        lines=[
            f"Host {host}",
            f"{INDENT}HostName {host}",
            f"{INDENT}User {DEFAULT_USER}",
            f"{INDENT}IdentityFile {quote_value(identity_file)}",
            f"{INDENT}IdentitiesOnly yes",
            "",
        ],
    )


def ensure_config_file(
    config_file: Union[str, Path],
    logger: logging.Logger = logging.getLogger(__name__),
) -> Path:
    """Create ``config_file`` if needed and restrict it to mode 600."""
    path = Path(config_file)
    try:
        if not path.exists():
            fd = os.open(path, os.O_WRONLY | os.O_CREAT, CONFIG_MODE)
            os.close(fd)
            logger.info("Created ssh config %s", path)
        os.chmod(path, CONFIG_MODE)
    except OSError as exc:
        raise FilesystemError(f"Failed to prepare ssh config {path}: {exc}") from exc
    return path


def write_config(
    config_file: Union[str, Path],
    text: str,
) -> None:
    """Replace ``config_file`` with ``text`` through a 600-mode temp file.

    A symlinked config is resolved first so the link target is updated.
    """
    path = Path(config_file).resolve()
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.chmod(tmp_name, CONFIG_MODE)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as exc:
        raise FilesystemError(f"Failed to write ssh config {path}: {exc}") from exc


def upsert_host_block(
    host: str,
    identity_file: Union[str, Path],
    config_file: Union[str, Path],
    confirm: Callable[[str], bool],
    logger: logging.Logger = logging.getLogger(__name__),
) -> Path:
    """Add the managed block for ``host`` to ``config_file``.

    Parameters
    ----------
    host: str
        Host name used for the ``Host`` and ``HostName`` entries.
    identity_file: str | Path
        Private key referenced by ``IdentityFile``.
    config_file: str | Path
        ssh client configuration to update.
    confirm: callable
        Asked before an existing block for ``host`` is replaced.  A
        negative answer raises :class:`UserAbortedError` and leaves the file
        untouched.
    logger: logging.Logger, optional
        Logger used for progress output.
    """
    path = ensure_config_file(Path(config_file).resolve(), logger)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(f"Failed to read ssh config {path}: {exc}") from exc

    doc = ConfigDocument.parse(text)
    if doc.find_host(host):
        question = f"An SSH config entry for {host} already exists. Overwrite it?"
        if not confirm(question):
            raise UserAbortedError()
        removed = doc.remove_host(host)
        logger.info("Removed %d old SSH config block(s) for %s", removed, host)

    doc.append_block(build_host_block(host, identity_file))
    write_config(path, doc.render())
    logger.info("Added SSH configuration block for %s", host)
    return path


def verify_resolution(
    config_file: Union[str, Path],
    host: str,
    identity_file: Union[str, Path],
    logger: logging.Logger = logging.getLogger(__name__),
) -> bool:
    """Check that ssh resolves ``host`` to the values the tool wrote.

    ssh uses the first value found for most options, so an earlier
    ``Host *`` section can shadow the managed block.  Problems are logged as
    warnings; the return value tells whether everything matched.
    """
    try:
        options = paramiko.SSHConfig.from_path(str(config_file)).lookup(host)
    except (OSError, ImportError, paramiko.SSHException) as exc:
        # ``Match exec`` sections need the optional invoke package
        logger.warning("Could not parse %s for verification: %s", config_file, exc)
        return False

    ok = True
    if options.get("hostname") != host:
        logger.warning(
            "HostName for %s resolves to %s; an earlier block overrides it",
            host,
            options.get("hostname"),
        )
        ok = False
    if options.get("user") != DEFAULT_USER:
        logger.warning(
            "User for %s resolves to %s; an earlier block overrides it",
            host,
            options.get("user"),
        )
        ok = False
    expected = os.path.expanduser(str(identity_file))
    # Depending on the paramiko release quoted values keep their quotes
    accepted = {expected, quote_value(expected)}
    identities = [os.path.expanduser(p) for p in options.get("identityfile", [])]
    if not accepted.intersection(identities):
        logger.warning("IdentityFile %s is not used for %s", expected, host)
        ok = False
    return ok
