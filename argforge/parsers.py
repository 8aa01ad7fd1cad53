"""Value-parser resolution and the conversion helpers it refers to."""

from __future__ import annotations

import builtins
import enum
import importlib
import os
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from argforge.attributes import AttributeEntry  # noqa: TC001
from argforge.cardinality import Cardinality
from argforge.errors import AttributeParseError, MissingParserFunctionError
from argforge.schema import TypeRef  # noqa: TC001


# Schema-language primitive names and the Python constructors that parse them.
PRIMITIVE_CONSTRUCTORS: dict[str, tuple[str, str]] = {
    **{name: ("builtins", "int") for name in ("i8", "i16", "i32", "i64", "i128", "isize")},
    **{name: ("builtins", "int") for name in ("u8", "u16", "u32", "u64", "u128", "usize")},
    "f32": ("builtins", "float"),
    "f64": ("builtins", "float"),
    "String": ("builtins", "str"),
    "OsString": ("builtins", "str"),
    "char": ("builtins", "str"),
    "PathBuf": ("pathlib", "Path"),
}


class ParserKind(str, Enum):
    """Conversion contracts a value parser can follow.

    ``from_*`` functions must never fail. ``try_from_*`` functions signal
    failure by raising; the exception text becomes the error message.
    ``*_os_str`` functions receive the raw argument as bytes.
    """

    FROM_STR = "from_str"
    TRY_FROM_STR = "try_from_str"
    FROM_OS_STR = "from_os_str"
    TRY_FROM_OS_STR = "try_from_os_str"

    @property
    def fallible(self) -> bool:
        return self in {ParserKind.TRY_FROM_STR, ParserKind.TRY_FROM_OS_STR}

    @property
    def takes_bytes(self) -> bool:
        return self in {ParserKind.FROM_OS_STR, ParserKind.TRY_FROM_OS_STR}


class FunctionRef(BaseModel):
    """Importable reference to a conversion callable (``module:qualname``)."""

    model_config = ConfigDict(frozen=True)

    module: str = "builtins"
    qualname: str
    target: Any = Field(default=None, exclude=True, repr=False)

    def __str__(self) -> str:
        return f"{self.module}:{self.qualname}"

    @classmethod
    def parse(cls, text: str) -> FunctionRef:
        """Accept ``pkg.mod:func``, ``pkg.mod.func`` or a builtin name."""
        text = text.strip()
        if ":" in text:
            module, qualname = text.split(":", 1)
        elif "." in text:
            module, _, qualname = text.rpartition(".")
        else:
            module, qualname = "builtins", text
        return cls(module=module, qualname=qualname)

    @classmethod
    def from_callable(cls, func: Callable[..., Any]) -> FunctionRef:
        module = getattr(func, "__module__", None) or "builtins"
        qualname = getattr(func, "__qualname__", None) or getattr(func, "__name__", repr(func))
        return cls(module=module, qualname=qualname, target=func)

    @classmethod
    def for_type(cls, ty: TypeRef) -> FunctionRef:
        """The type's own constructor, its standard textual conversion."""
        if ty.module is None and ty.name in PRIMITIVE_CONSTRUCTORS:
            module, qualname = PRIMITIVE_CONSTRUCTORS[ty.name]
            return cls(module=module, qualname=qualname)
        return cls(module=ty.module or "builtins", qualname=ty.name)

    def resolve(self) -> Callable[..., Any]:
        if self.target is not None:
            return self.target
        try:
            value: Any = builtins if self.module == "builtins" else importlib.import_module(self.module)
            for part in self.qualname.split("."):
                value = getattr(value, part)
        except (ImportError, AttributeError) as exc:
            raise RuntimeError(f"Could not resolve parser function '{self}'.") from exc
        if not callable(value):
            raise RuntimeError(f"Parser function '{self}' is not callable.")
        return value


@dataclass(frozen=True)
class ParserSpec:
    kind: ParserKind | None = None
    function: FunctionRef | None = None

    @property
    def validates(self) -> bool:
        """Whether a pre-validation call is emitted (the "try" kinds)."""
        return self.kind is not None and self.kind.fallible


NO_PARSER = ParserSpec()


def resolve_parser(cardinality: Cardinality, base: TypeRef, directive: AttributeEntry | None) -> ParserSpec:
    """Pick the conversion for a member from its base type and ``parse(...)``."""
    if directive is None:
        if cardinality in {Cardinality.FLAG, Cardinality.COUNTER}:
            return NO_PARSER
        return ParserSpec(ParserKind.TRY_FROM_STR, FunctionRef.for_type(base))

    (selected,) = directive.value
    try:
        kind = ParserKind(selected.key)
    except ValueError:
        choices = ", ".join(item.value for item in ParserKind)
        raise AttributeParseError(
            f"Unknown parser kind '{selected.key}' (expected one of {choices})",
            location=selected.location,
        ) from None

    if selected.value is not None:
        return ParserSpec(kind, FunctionRef.parse(selected.value))
    if kind.takes_bytes:
        raise MissingParserFunctionError(
            f"Parser kind '{kind.value}' requires an explicit function",
            location=selected.location or directive.location,
        )
    return ParserSpec(kind, FunctionRef.for_type(base))


def enum_value_name(member: enum.Enum) -> str:
    """Command-line spelling of an enum member: ``DARK_RED`` -> ``dark-red``."""
    return member.name.lower().replace("_", "-")


def enum_by_name(enum_type: type[enum.Enum]) -> Callable[[str], enum.Enum]:
    """Converter selecting an enum member by its command-line name."""
    members = {enum_value_name(member): member for member in enum_type}

    def convert(text: str) -> enum.Enum:
        try:
            return members[text]
        except KeyError:
            raise ValueError(f"'{text}' is not a valid {enum_type.__name__}") from None

    return convert


def bind_parser(kind: ParserKind, function: FunctionRef | Callable[..., Any]) -> Callable[[str], Any]:
    """Return ``text -> value`` applying ``function`` under ``kind``'s contract.

    An enum class converts by member name rather than by value.
    """
    func = function.resolve() if isinstance(function, FunctionRef) else function
    if isinstance(func, type) and issubclass(func, enum.Enum):
        func = enum_by_name(func)
    if kind.takes_bytes:
        return lambda text: func(os.fsencode(text))
    return lambda text: func(text)


def make_validator(kind: ParserKind, function: FunctionRef | Callable[..., Any]) -> Callable[[str], str | None]:
    """Pre-validation for fallible kinds: ``None`` when valid, else the error text.

    The bound function runs here and again when the value is converted, so it
    must be free of side effects.
    """
    parse = bind_parser(kind, function)

    def validate(text: str) -> str | None:
        try:
            parse(text)
        except Exception as exc:
            return str(exc) or exc.__class__.__name__
        return None

    return validate
