import logging
from pathlib import Path
from typing import Callable, Union

from ..errors import UserAbortedError
from ..ssh_keys import (
    KeyMaterial,
    describe_key,
    key_path_for_host,
    read_key,
    write_key_file,
)


class KeyService:
    """Service layer for validating and storing private keys."""

    def __init__(
        self,
        ssh_dir: Union[str, Path],
        confirm: Callable[[str], bool],
        logger: logging.Logger = logging.getLogger(__name__),
    ) -> None:
        self.ssh_dir = Path(ssh_dir)
        self.confirm = confirm
        self.logger = logger

    def key_path(self, host: str) -> Path:
        return key_path_for_host(self.ssh_dir, host)

    def load_key(self, raw: str) -> KeyMaterial:
        material = read_key(raw)
        self.logger.debug("Key input accepted (%d bytes)", len(material))
        describe_key(material, self.logger)
        return material

    def store_key(self, host: str, material: KeyMaterial) -> Path:
        path = self.key_path(host)
        if path.exists():
            if not self.confirm(f"Key for {host} already exists. Overwrite?"):
                material.clear()
                raise UserAbortedError()
            self.logger.info("Overwriting existing key %s", path)
        return write_key_file(path, material, self.logger)
