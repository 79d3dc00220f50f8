"""Logging configuration for the command line tool."""

import logging
import logging.handlers
import os
from typing import List, Optional

PROG = "repoauth"
SYSLOG_ADDRESS = "/dev/log"
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def syslog_handler(
    address: str = SYSLOG_ADDRESS,
    logger: Optional[logging.Logger] = None,
) -> Optional[logging.Handler]:
    """Return a handler mirroring records to the system log, if there is one."""
    if not os.path.exists(address):
        return None
    try:
        handler = logging.handlers.SysLogHandler(address=address)
    except OSError as exc:
        if logger:
            logger.debug("System log at %s unavailable: %s", address, exc)
        return None
    handler.ident = f"{PROG}: "
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    return handler


def setup_logging(
    level: str = "INFO",
    use_syslog: bool = True,
    syslog_address: str = SYSLOG_ADDRESS,
) -> logging.Logger:
    """Configure logging to standard error and, when present, syslog.

    The destination is chosen once here.  The returned logger is handed to
    the setup service which passes it on to each step.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    system = syslog_handler(syslog_address) if use_syslog else None
    if system is not None:
        handlers.append(system)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    logger = logging.getLogger(PROG)
    logger.debug(
        "Logging to stderr%s", " and syslog" if system is not None else ""
    )
    return logger
