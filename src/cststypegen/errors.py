from __future__ import annotations

from pathlib import Path


class CsTsTypeGenError(Exception):
    """Base class for generator errors."""


class TypeGrammarError(CsTsTypeGenError, ValueError):
    """Raised when a C# type expression cannot be parsed."""

    def __init__(self, type_expression: str, message: str) -> None:
        super().__init__(f"{message} in type expression {type_expression!r}")
        self.type_expression = type_expression


class SourceParseError(CsTsTypeGenError):
    """Raised when a C# source file cannot be turned into declarations."""

    def __init__(self, source_file: Path | None, message: str) -> None:
        location = str(source_file) if source_file is not None else "<source>"
        super().__init__(f"{location}: {message}")
        self.source_file = source_file
