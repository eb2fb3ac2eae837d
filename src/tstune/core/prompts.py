"""Interactive prompts with answer checkers.

A checker decides whether a response is acceptable. Declining answers
raise PromptDeclined; "skip" raises PromptSkipped; unrecognized answers
make the prompt repeat.
"""

from abc import ABC, abstractmethod

from tstune.core.exceptions import PromptDeclined
from tstune.core.output import Console

PROMPT_YES_NO = "[(y)es/(n)o]: "
PROMPT_SKIP = "[(y)es/(s)kip/(q)uit]: "


class PromptSkipped(Exception):
    """The operator chose to skip the current step."""


def is_yes(response: str) -> bool:
    return response in ("y", "yes")


def is_no(response: str) -> bool:
    return response in ("n", "no")


def is_skip(response: str) -> bool:
    return response in ("s", "skip")


def is_quit(response: str) -> bool:
    return response in ("q", "quit")


class PromptChecker(ABC):
    """Validates a normalized (stripped, lowercased) response."""

    @abstractmethod
    def check(self, response: str) -> bool:
        """Return True when the response is accepted."""
        pass


class YesNoChecker(PromptChecker):
    """Accepts yes; declines with a message on no."""

    def __init__(self, decline_message: str = "") -> None:
        self.decline_message = decline_message

    def check(self, response: str) -> bool:
        if is_no(response):
            raise PromptDeclined(self.decline_message)
        return is_yes(response)


class SkipChecker(PromptChecker):
    """Accepts yes, skips on skip, declines on no or quit."""

    def __init__(self, decline_message: str) -> None:
        self.decline_message = decline_message

    def check(self, response: str) -> bool:
        if is_quit(response) or is_no(response):
            raise PromptDeclined(self.decline_message)
        if is_skip(response):
            raise PromptSkipped()
        return is_yes(response)


class NumberedListChecker(PromptChecker):
    """Accepts a number from 1 to limit; declines on quit.

    The accepted number is stored in ``choice``.
    """

    def __init__(self, limit: int, decline_message: str) -> None:
        self.limit = limit
        self.decline_message = decline_message
        self.choice = 0

    def check(self, response: str) -> bool:
        if is_quit(response):
            raise PromptDeclined(self.decline_message)
        if not response.isdigit():
            return False
        number = int(response)
        if number < 1 or number > self.limit:
            return False
        self.choice = number
        return True


def prompt_until_valid(
    console: Console,
    message: str,
    checker: PromptChecker,
    yes_always: bool = False,
) -> None:
    """Prompt repeatedly until the checker accepts a response.

    Args:
        console: Console used to ask the question
        message: Prompt text, including the answer hint
        checker: Checker deciding on each response
        yes_always: Skip prompting entirely (--yes)

    Raises:
        PromptDeclined: If the response declines, or input ends
        PromptSkipped: If the response asks to skip
    """
    if yes_always:
        return
    while True:
        try:
            response = console.prompt(message)
        except EOFError as e:
            raise PromptDeclined(f"could not parse response: {str(e) or 'end of input'}") from e
        if checker.check(response.strip().lower()):
            return
