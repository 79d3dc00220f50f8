"""INI configuration for the setup tool.

Values are read from :data:`DEFAULT_CONFIG_FILE` and then from an optional
explicit file; missing files are ignored and built-in defaults apply.
"""

import configparser
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from .system import DEFAULT_CONFIG_NAME, DEFAULT_SSH_DIR

DEFAULT_CONFIG_FILE = Path("~/.config/repoauth/config.ini")
DEFAULT_REQUIRED_COMMANDS = ("ssh",)


@dataclass
class Settings:
    ssh_dir: Path = DEFAULT_SSH_DIR
    config_name: str = DEFAULT_CONFIG_NAME
    required_commands: Tuple[str, ...] = DEFAULT_REQUIRED_COMMANDS
    connect_timeout: int = 10
    log_level: str = "INFO"
    syslog: bool = True
    sources: List[str] = field(default_factory=list)

    @property
    def ssh_dir_path(self) -> Path:
        return Path(self.ssh_dir).expanduser()

    @property
    def config_file(self) -> Path:
        return self.ssh_dir_path / self.config_name

    @property
    def uses_default_config(self) -> bool:
        return self.config_file == (DEFAULT_SSH_DIR / DEFAULT_CONFIG_NAME).expanduser()


def settings_from_config(cfg: configparser.ConfigParser) -> Settings:
    """Build :class:`Settings` from a parsed configuration."""
    commands = cfg.get(
        "ssh", "required_commands", fallback=" ".join(DEFAULT_REQUIRED_COMMANDS)
    )
    return Settings(
        ssh_dir=Path(cfg.get("ssh", "directory", fallback=str(DEFAULT_SSH_DIR))),
        config_name=cfg.get("ssh", "config", fallback=DEFAULT_CONFIG_NAME),
        required_commands=tuple(commands.replace(",", " ").split()),
        connect_timeout=cfg.getint("ssh", "connect_timeout", fallback=10),
        log_level=cfg.get("logging", "level", fallback="INFO"),
        syslog=cfg.getboolean("logging", "syslog", fallback=True),
    )


def load_settings(
    file_path: Optional[Union[str, Path]] = None,
    logger: logging.Logger = logging.getLogger(__name__),
) -> Settings:
    """Read configuration files and return the resulting settings.

    Raises :class:`configparser.Error` when a file exists but is malformed.
    """
    cfg = configparser.ConfigParser(inline_comment_prefixes=(";", "#"))
    candidates = [DEFAULT_CONFIG_FILE.expanduser()]
    if file_path is not None:
        candidates.append(Path(file_path).expanduser())
    read = cfg.read(candidates, encoding="utf-8")
    settings = settings_from_config(cfg)
    settings.sources = list(read)
    logger.debug("Configuration read from %s", read or "defaults")
    return settings
