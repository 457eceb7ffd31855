"""Exceptions raised by the script compiler and the structure builder."""

from __future__ import annotations


class EisenError(ValueError):
    pass


class ScriptError(EisenError):
    """A script could not be compiled.

    ``text`` is the offending substring; ``position`` is its character offset
    in the comment-stripped script when known.
    """

    def __init__(
        self,
        message: str,
        *,
        text: str | None = None,
        position: int | None = None,
        source: str | None = None,
    ) -> None:
        self.text = text
        self.position = position
        if position is not None and source is not None:
            line, column = _line_column(source, position)
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class BuildError(EisenError):
    pass


class ConfigError(EisenError):
    """Invalid criteria overrides passed by the caller."""


def _line_column(source: str, position: int) -> tuple[int, int]:
    line = source.count("\n", 0, position) + 1
    column = position - (source.rfind("\n", 0, position) + 1) + 1
    return line, column


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)
