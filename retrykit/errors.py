"""Exceptions raised while building or parsing retry settings."""

from __future__ import annotations


class RetryConfigError(ValueError):
    """A retry setting is missing or invalid.

    ``path`` names the configuration key the problem belongs to and
    ``message`` describes what is wrong with it.
    """

    def __init__(self, path: str, message: str) -> None:
        super().__init__(path, message)
        self.path = path
        self.message = message

    @classmethod
    def invalid_value(cls, path: str, message: str) -> RetryConfigError:
        """Create an error for an invalid value stored under ``path``."""
        return cls(path, str(message))

    def __str__(self) -> str:
        return f"invalid value for '{self.path}': {self.message}"


class ParseRetryJitterError(ValueError):
    """Jitter text could not be parsed.

    The displayed text is always the same short message; any detail passed
    to the constructor is kept in ``args`` for debugging.
    """

    def __str__(self) -> str:
        return "parse failed."