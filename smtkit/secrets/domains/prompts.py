"""Interactive prompts: yes/no confirmation and hidden double-entry input."""
import sys
import getpass
import logging
from typing import Callable, Optional, TextIO

from .errors import PromptAbortedError

logger = logging.getLogger(__name__)

PROMPT_YES = ("y", "yes", "ok", "okay", "yep")
PROMPT_NO = ("n", "no", "nope")


def read_line_stderr(prompt: str) -> str:
    """Like input(), but writes the prompt to stderr so stdout stays clean."""
    sys.stderr.write(prompt)
    sys.stderr.flush()
    line = sys.stdin.readline()
    if not line:
        raise EOFError
    return line.rstrip("\r\n")


def binary_prompt(prompt: str, read_line: Callable[[str], str] = read_line_stderr) -> bool:
    """
    Ask a yes/no question until a recognised answer is given.

    Args:
        prompt: Question text; " (y/n) " is appended
        read_line: Input source, called with the prompt text. Must raise
            EOFError when no more input is available.

    Returns:
        True for yes, False for no

    Raises:
        PromptAbortedError: If input ends before an answer is given
    """
    while True:
        try:
            answer = read_line(f"{prompt} (y/n) ")
        except EOFError:
            raise PromptAbortedError("no input given")

        answer = answer.strip().lower()
        if answer in PROMPT_YES:
            return True
        if answer in PROMPT_NO:
            return False


def capture_secret_value(
    read_sensitive: Callable[[str], str] = getpass.getpass,
    err: Optional[TextIO] = None,
) -> str:
    """
    Read a secret value twice with echo disabled until both entries match.

    There is no retry limit; the loop only ends on a match or when the input
    source raises EOFError.

    Raises:
        PromptAbortedError: If input ends before two matching values are read
    """
    if err is None:
        err = sys.stderr

    attempts = 0
    while True:
        attempts += 1
        try:
            first = read_sensitive("Enter secret value: ")
            second = read_sensitive("Enter value again: ")
        except EOFError:
            raise PromptAbortedError("no secret value given")

        if first == second:
            logger.debug(f"Secret value confirmed after {attempts} attempt(s)")
            return first

        print("values do not match; please enter again\n", file=err)
