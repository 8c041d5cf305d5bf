from __future__ import annotations


class DiffError(ValueError):
    """Any problem with the patch text or its fit to the current files."""


class GrammarError(DiffError):
    """The patch text does not follow the patch grammar."""


class ContextError(DiffError):
    """A hunk could not be placed in the current file content."""


class PatchInvariantError(AssertionError):
    """
    Internal consistency violation.
    Signals a bug in the engine or a skipped precondition; never rendered as text.
    """


def check(condition: object, message: str = "") -> None:
    if not condition:
        raise PatchInvariantError(message)
