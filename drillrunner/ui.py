"""Coloured status lines for console output."""

import os

from termcolor import colored


def _no_emoji() -> bool:
    return "NO_EMOJI" in os.environ


def warn(message: str) -> None:
    """Print a red warning line, prefixed by a warning sign."""
    prefix = "!" if _no_emoji() else "⚠️ "
    print(f"{colored(prefix, 'red')} {colored(message, 'red')}")


def success(message: str) -> None:
    """Print a green success line, prefixed by a check mark."""
    prefix = "✓" if _no_emoji() else "✅"
    print(f"{colored(prefix, 'green')} {colored(message, 'green')}")