"""argforge compile error hierarchy and structured error models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from argforge.schema import SourceLocation


class CompileErrorKind(str, Enum):
    ATTRIBUTE_PARSE = "attribute_parse"
    UNSUPPORTED_TYPE = "unsupported_type"
    MISSING_PARSER_FUNCTION = "missing_parser_function"
    DUPLICATE_ARGUMENT = "duplicate_argument"
    MULTIPLE_SUBCOMMANDS = "multiple_subcommands"
    CYCLIC_SCHEMA = "cyclic_schema"


class CompileError(Exception):
    """Base error raised when a schema cannot be compiled.

    Every error names the offending schema item and, when known, the member
    and source location, so a host can point at the declaration at fault.
    """

    kind: CompileErrorKind

    def __init__(
        self,
        message: str,
        code: str,
        *,
        item: str | None = None,
        member: str | None = None,
        location: SourceLocation | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.item = item
        self.member = member
        self.location = location
        self.details = details or {}

    def __str__(self) -> str:
        prefix = f"{self.location}: " if self.location is not None else ""
        scope = ".".join(part for part in (self.item, self.member) if part)
        if scope:
            return f"{prefix}{self.message} (in {scope})"
        return f"{prefix}{self.message}"

    def with_context(self, *, item: str | None = None, member: str | None = None) -> CompileError:
        """Fill in missing item/member context and return ``self``."""
        if self.item is None:
            self.item = item
        if self.member is None:
            self.member = member
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "kind": self.kind.value,
            "item": self.item,
            "member": self.member,
            "location": self.location.model_dump() if self.location else None,
            "details": self.details,
        }


class AttributeParseError(CompileError):
    """E1001: Malformed or unknown attribute."""

    kind = CompileErrorKind.ATTRIBUTE_PARSE

    def __init__(self, message: str, code: str = "E1001", **kwargs: Any) -> None:
        super().__init__(message, code, **kwargs)


class UnsupportedTypeError(CompileError):
    """E1002: Type shape the classifier cannot map to a cardinality."""

    kind = CompileErrorKind.UNSUPPORTED_TYPE

    def __init__(self, message: str, code: str = "E1002", **kwargs: Any) -> None:
        super().__init__(message, code, **kwargs)


class MissingParserFunctionError(CompileError):
    """E1003: Byte-based parser kind declared without a function."""

    kind = CompileErrorKind.MISSING_PARSER_FUNCTION

    def __init__(self, message: str, code: str = "E1003", **kwargs: Any) -> None:
        super().__init__(message, code, **kwargs)


class DuplicateArgumentError(CompileError):
    """E1004: Two arguments (or subcommands) share a name in one scope."""

    kind = CompileErrorKind.DUPLICATE_ARGUMENT

    def __init__(self, message: str, code: str = "E1004", **kwargs: Any) -> None:
        super().__init__(message, code, **kwargs)


class MultipleSubcommandsError(CompileError):
    """E1005: More than one subcommand carrier on a single item."""

    kind = CompileErrorKind.MULTIPLE_SUBCOMMANDS

    def __init__(self, message: str, code: str = "E1005", **kwargs: Any) -> None:
        super().__init__(message, code, **kwargs)


class CyclicSchemaError(CompileError):
    """E1006: A subcommand carrier reaches back to one of its ancestors."""

    kind = CompileErrorKind.CYCLIC_SCHEMA

    def __init__(self, message: str, code: str = "E1006", **kwargs: Any) -> None:
        super().__init__(message, code, **kwargs)
