"""Type-shape classification into argument cardinalities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from argforge.errors import UnsupportedTypeError
from argforge.schema import TypeRef

BOOL_NAMES = frozenset({"bool"})
COUNTER_NAMES = frozenset({"Count", "u64"})
OPTIONAL_NAMES = frozenset({"Optional", "Option"})
SEQUENCE_NAMES = frozenset({"list", "List", "Sequence", "Vec"})


class Cardinality(str, Enum):
    FLAG = "flag"
    COUNTER = "counter"
    OPTIONAL = "optional"
    LIST = "list"
    REQUIRED = "required"

    @property
    def takes_value(self) -> bool:
        return self not in {Cardinality.FLAG, Cardinality.COUNTER}

    @property
    def multiple(self) -> bool:
        return self in {Cardinality.COUNTER, Cardinality.LIST}


@dataclass(frozen=True)
class Classification:
    cardinality: Cardinality
    base: TypeRef
    """The effective value type: the wrapped type for Optional/List."""


def _single_param(ty: TypeRef) -> TypeRef:
    if len(ty.params) != 1:
        raise UnsupportedTypeError(
            f"'{ty.name}' expects exactly one type parameter, got {len(ty.params)} in '{ty.render()}'",
            details={"type": ty.render()},
        )
    return ty.params[0]


def classify(ty: TypeRef, *, custom_parser: bool = False) -> Classification:
    """Map a declared type to its cardinality.

    With a custom parser, ``bool`` and counter types lose their special
    meaning and are treated like any other value type.
    """
    if not ty.params:
        if not custom_parser and ty.name in BOOL_NAMES:
            return Classification(Cardinality.FLAG, ty)
        if not custom_parser and ty.name in COUNTER_NAMES:
            return Classification(Cardinality.COUNTER, ty)
    if ty.name in OPTIONAL_NAMES:
        return Classification(Cardinality.OPTIONAL, _single_param(ty))
    if ty.name in SEQUENCE_NAMES:
        return Classification(Cardinality.LIST, _single_param(ty))
    if len(ty.params) > 1:
        raise UnsupportedTypeError(
            f"Cannot derive an argument from multi-parameter type '{ty.render()}'",
            details={"type": ty.render()},
        )
    return Classification(Cardinality.REQUIRED, ty)
