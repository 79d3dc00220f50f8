"""Confirmation providers used before existing files are overwritten.

Standard input is consumed while the key is read, so the terminal provider
re-opens the controlling terminal for later questions.  Prompts are written
to standard error.
"""

import logging
from typing import Iterable, List, Optional, TextIO

import click

TTY_PATH = "/dev/tty"
YES_ANSWERS = ("y", "yes")


class Confirmer:
    """Ask a yes/no question.  The default answer is always "no"."""

    def __call__(self, question: str) -> bool:
        return self.confirm(question)

    def confirm(self, question: str) -> bool:  # pragma: no cover - interface
        raise NotImplementedError


class TerminalConfirmer(Confirmer):
    """Read answers from the controlling terminal."""

    def __init__(
        self,
        tty_path: str = TTY_PATH,
        logger: logging.Logger = logging.getLogger(__name__),
    ) -> None:
        self.tty_path = tty_path
        self.logger = logger
        self._tty: Optional[TextIO] = None

    def _open(self) -> Optional[TextIO]:
        if self._tty is None:
            try:
                self._tty = open(self.tty_path, "r", encoding="utf-8")
            except OSError as exc:
                self.logger.warning(
                    "No terminal available for confirmation (%s); assuming 'no'", exc
                )
                return None
        return self._tty

    def confirm(self, question: str) -> bool:
        click.echo(f"{question} [y/N]: ", nl=False, err=True)
        tty = self._open()
        if tty is None:
            click.echo("", err=True)
            return False
        answer = tty.readline().strip().lower()
        self.logger.debug("Confirmation %r answered %r", question, answer)
        return answer in YES_ANSWERS

    def close(self) -> None:
        if self._tty is not None:
            self._tty.close()
            self._tty = None


class ScriptedConfirmer(Confirmer):
    """Answer questions from a fixed sequence, declining once it runs out."""

    def __init__(self, answers: Iterable[bool] = ()) -> None:
        self.answers: List[bool] = list(answers)
        self.questions: List[str] = []

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        if not self.answers:
            return False
        return self.answers.pop(0)


def prompt_host() -> str:
    """Ask for the Git host on standard error.

    End of input at the prompt counts as an empty answer.
    """
    try:
        return click.prompt(
            "Enter Git host (e.g. github.com, gitlab.com, custom.domain)",
            default="",
            show_default=False,
            err=True,
        )
    except click.Abort:
        click.echo("", err=True)
        return ""


def key_instructions() -> None:
    click.echo(
        "\n".join(
            [
                "",
                "Paste your private SSH key for this host.",
                "When finished, press ENTER then Ctrl+D.",
                "The key won't be displayed and will be saved with 0600 perms.",
                "-" * 64,
            ]
        ),
        err=True,
    )
