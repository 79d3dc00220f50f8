import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TextIO

from ..config import Settings
from ..errors import PermissionDrift
from ..ssh_config import upsert_host_block, verify_resolution
from ..ssh_keys import validate_host
from ..system import (
    audit_permissions,
    check_prerequisites,
    ensure_ssh_dir,
    run_connection_test,
    ssh_available,
)
from .key_service import KeyService


@dataclass
class SetupResult:
    host: str
    key_file: Path
    config_file: Path
    drifts: List[PermissionDrift] = field(default_factory=list)
    resolved: bool = True
    connection_ok: Optional[bool] = None


class SetupService:
    """Run the key setup steps in order.

    Every step raises a :class:`~repoauth_app.errors.RepoAuthError` on fatal
    problems.  Earlier steps are not rolled back when a later one fails.
    """

    def __init__(
        self,
        settings: Settings,
        confirm: Callable[[str], bool],
        logger: logging.Logger = logging.getLogger(__name__),
    ) -> None:
        self.settings = settings
        self.confirm = confirm
        self.logger = logger
        self.keys = KeyService(settings.ssh_dir_path, confirm, logger)

    # ------------------------------------------------------------------
    # Individual steps
    # ------------------------------------------------------------------
    def check_prerequisites(self) -> None:
        check_prerequisites(self.settings.required_commands, self.logger)

    def prepare_ssh_dir(self) -> Path:
        return ensure_ssh_dir(self.settings.ssh_dir_path, self.logger)

    def resolve_host(
        self, host: Optional[str], prompt: Callable[[], str]
    ) -> str:
        if host is None:
            host = prompt()
        return validate_host(host)

    def install_key(self, host: str, stream: TextIO) -> Path:
        material = self.keys.load_key(stream.read())
        return self.keys.store_key(host, material)

    def update_config(self, host: str, key_file: Path) -> Path:
        return upsert_host_block(
            host, key_file, self.settings.config_file, self.confirm, self.logger
        )

    def audit(self, host: str, key_file: Path) -> SetupResult:
        config_file = self.settings.config_file
        drifts = audit_permissions(
            self.settings.ssh_dir_path, [config_file, key_file], self.logger
        )
        resolved = verify_resolution(config_file, host, key_file, self.logger)
        return SetupResult(host, key_file, config_file, drifts, resolved)

    def test_connection(self, host: str, requested: Optional[bool]) -> Optional[bool]:
        """Run the optional connection test.

        ``requested`` of ``None`` asks the user; ``False`` skips the test.
        """
        if requested is False:
            return None
        if not ssh_available():
            self.logger.info("ssh not found; skipping connection test")
            return None
        if requested is None and not self.confirm(
            f"Test SSH connection to {host} now?"
        ):
            return None
        config_file = None if self.settings.uses_default_config else self.settings.config_file
        return run_connection_test(
            host, config_file, self.settings.connect_timeout, self.logger
        )

    # ------------------------------------------------------------------
    # Full pipeline
    # ------------------------------------------------------------------
    def run(
        self,
        host: Optional[str],
        stream: TextIO,
        prompt_host: Callable[[], str],
        before_key: Callable[[], None] = lambda: None,
        test: Optional[bool] = None,
    ) -> SetupResult:
        self.check_prerequisites()
        self.prepare_ssh_dir()
        host = self.resolve_host(host, prompt_host)
        before_key()
        key_file = self.install_key(host, stream)
        self.update_config(host, key_file)
        result = self.audit(host, key_file)
        result.connection_ok = self.test_connection(host, test)
        return result
