"""
Operator checkpoints.

The harvest pauses at three points and waits for the operator:
- continue with a partial crawl result after errors
- delete an existing root download folder
- acknowledge a manual archive extraction
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol


class Prompter(Protocol):
    def confirm(self, message: str) -> bool:
        ...

    def acknowledge(self, message: str) -> None:
        ...


class ConsolePrompter:
    """Blocking prompts on stdin; `confirm` only accepts y or n."""

    def __init__(
        self,
        *,
        input_func: Callable[[str], str] = input,
        print_func: Callable[[str], None] = print,
    ) -> None:
        self._input = input_func
        self._print = print_func

    def confirm(self, message: str) -> bool:
        while True:
            answer = self._input(f"{message} [y/n]: ").strip().lower()
            if answer in ("y", "yes"):
                return True
            if answer in ("n", "no"):
                return False
            self._print("Please answer y or n.")

    def acknowledge(self, message: str) -> None:
        self._input(f"{message} Press Enter to continue...")


class FixedPrompter:
    """
    Non-interactive prompter answering every confirmation the same way.

    Messages are recorded so callers (and tests) can see which checkpoints fired.
    """

    def __init__(self, answer: bool = False, *, answers: Optional[list[bool]] = None) -> None:
        self._answer = answer
        self._answers = list(answers or [])
        self.confirmations: list[str] = []
        self.acknowledgements: list[str] = []

    def confirm(self, message: str) -> bool:
        self.confirmations.append(message)
        if self._answers:
            return self._answers.pop(0)
        return self._answer

    def acknowledge(self, message: str) -> None:
        self.acknowledgements.append(message)
