"""Exceptions raised by sysmon."""


class SysmonError(Exception):
    """Base class for all sysmon errors."""


class SourceUnavailable(SysmonError, OSError):
    """A kernel counter source could not be opened."""

    def __init__(self, path: str, reason: str = "") -> None:
        message = f"source failed to open at {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.path = path
        self.reason = reason

    def __str__(self) -> str:
        return self.args[0]


class MalformedLine(SysmonError, ValueError):
    """A line has fewer tokens than the schema that claimed it requires."""

    def __init__(self, key: str, expected: int, actual: int) -> None:
        super().__init__(f"{key!r}: expected {expected} tokens, got {actual}")
        self.key = key
        self.expected = expected
        self.actual = actual


class UnrecognizedKey(SysmonError, KeyError):
    """A line's leading token matches no schema entry."""

    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key


class UseBeforeInit(SysmonError, RuntimeError):
    """A record store was read before allocate() was called."""
