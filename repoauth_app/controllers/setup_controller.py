import logging
from typing import Callable, Optional, TextIO

from ..config import Settings
from ..prompts import key_instructions, prompt_host
from ..services.setup_service import SetupResult, SetupService


class SetupController:
    """Controller wiring terminal input into the setup service."""

    def __init__(
        self,
        settings: Settings,
        confirm: Callable[[str], bool],
        logger: logging.Logger = logging.getLogger(__name__),
    ) -> None:
        self.service = SetupService(settings, confirm, logger)

    def run(
        self,
        stream: TextIO,
        host: Optional[str] = None,
        test: Optional[bool] = None,
    ) -> SetupResult:
        return self.service.run(
            host,
            stream,
            prompt_host=prompt_host,
            before_key=key_instructions,
            test=test,
        )
