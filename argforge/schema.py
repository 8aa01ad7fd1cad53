"""Structural description of an argument schema (compiler input)."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class SourceLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    file: str = "<schema>"
    line: int = Field(default=1, ge=1)
    column: int = Field(default=1, ge=1)

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"

    def shifted(self, offset: int) -> SourceLocation:
        """Location of the character ``offset`` positions after this one."""
        return SourceLocation(file=self.file, line=self.line, column=self.column + offset)


class RawAttribute(BaseModel):
    """Unparsed attribute text, e.g. ``short = "d", long = "debug"``."""

    model_config = ConfigDict(frozen=True)

    text: str
    location: SourceLocation = Field(default_factory=SourceLocation)


_TYPE_TOKEN = re.compile(r"\s*([A-Za-z_][\w.]*(?::[A-Za-z_][\w.]*)?|[\[\]<>,])")


class TypeRef(BaseModel):
    """Structural type descriptor: a name with ordered type parameters.

    ``module`` qualifies the name for non-builtin types, so the pair
    ``(module, name)`` locates the type's constructor.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    params: tuple[TypeRef, ...] = ()
    module: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _from_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return cls.parse(value).model_dump()
        return value

    @property
    def qualname(self) -> str:
        return f"{self.module}:{self.name}" if self.module else self.name

    def render(self) -> str:
        if not self.params:
            return self.name
        return f"{self.name}[{', '.join(param.render() for param in self.params)}]"

    @classmethod
    def parse(cls, text: str) -> TypeRef:
        """Parse ``Optional[list[int]]``, ``Vec<String>`` or ``pathlib:Path``."""
        tokens = _TYPE_TOKEN.findall(text)
        if "".join(tokens) != re.sub(r"\s+", "", text):
            raise ValueError(f"Invalid type signature: {text!r}")
        ref, rest = cls._parse_tokens(tokens, text)
        if rest:
            raise ValueError(f"Unexpected trailing tokens in type signature: {text!r}")
        return ref

    @classmethod
    def _parse_tokens(cls, tokens: list[str], text: str) -> tuple[TypeRef, list[str]]:
        if not tokens or tokens[0] in "[]<>,":
            raise ValueError(f"Expected a type name in {text!r}")
        head, rest = tokens[0], tokens[1:]
        module, _, name = head.rpartition(":")
        params: list[TypeRef] = []
        if rest and rest[0] in "[<":
            closing = "]" if rest[0] == "[" else ">"
            rest = rest[1:]
            while True:
                param, rest = cls._parse_tokens(rest, text)
                params.append(param)
                if not rest:
                    raise ValueError(f"Unclosed type parameters in {text!r}")
                if rest[0] == ",":
                    rest = rest[1:]
                    continue
                if rest[0] != closing:
                    raise ValueError(f"Mismatched brackets in {text!r}")
                rest = rest[1:]
                break
        return cls(name=name, params=tuple(params), module=module or None), rest


def _coerce_attributes(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(RawAttribute(text=item) if isinstance(item, str) else item for item in value)
    if isinstance(value, str):
        return (RawAttribute(text=value),)
    return value


def _coerce_doc(value: Any) -> Any:
    if isinstance(value, str):
        return tuple(value.splitlines())
    return value


class Member(BaseModel):
    """One field of an options bag, or one variant of a command set.

    Fields carry a ``type``; variants carry none and hold their own
    ``fields`` instead.
    """

    model_config = ConfigDict(frozen=True)

    ident: str
    type: TypeRef | None = None
    attributes: tuple[RawAttribute, ...] = ()
    doc: tuple[str, ...] = ()
    fields: tuple[Member, ...] = ()
    location: SourceLocation = Field(default_factory=SourceLocation)

    @field_validator("attributes", mode="before")
    @classmethod
    def _attributes_from_text(cls, value: Any) -> Any:
        return _coerce_attributes(value)

    @field_validator("doc", mode="before")
    @classmethod
    def _doc_from_text(cls, value: Any) -> Any:
        return _coerce_doc(value)


class ItemKind(str, Enum):
    OPTIONS = "options"
    COMMANDS = "commands"


class SchemaItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    kind: ItemKind = ItemKind.OPTIONS
    attributes: tuple[RawAttribute, ...] = ()
    doc: tuple[str, ...] = ()
    members: tuple[Member, ...] = ()
    location: SourceLocation = Field(default_factory=SourceLocation)

    @field_validator("attributes", mode="before")
    @classmethod
    def _attributes_from_text(cls, value: Any) -> Any:
        return _coerce_attributes(value)

    @field_validator("doc", mode="before")
    @classmethod
    def _doc_from_text(cls, value: Any) -> Any:
        return _coerce_doc(value)

    @property
    def is_command_set(self) -> bool:
        return self.kind is ItemKind.COMMANDS


class Schema(BaseModel):
    """A root item plus every item reachable from it, keyed by name."""

    model_config = ConfigDict(frozen=True)

    root: str
    items: tuple[SchemaItem, ...]

    @model_validator(mode="after")
    def _check_items(self) -> Schema:
        names = [item.name for item in self.items]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate schema item names: {', '.join(duplicates)}")
        if self.root not in names:
            raise ValueError(f"Root item '{self.root}' is not defined")
        return self

    @classmethod
    def single(cls, item: SchemaItem) -> Schema:
        return cls(root=item.name, items=(item,))

    def get(self, name: str) -> SchemaItem | None:
        for item in self.items:
            if item.name == name:
                return item
        return None

    @property
    def root_item(self) -> SchemaItem:
        item = self.get(self.root)
        assert item is not None
        return item


TypeRef.model_rebuild()
Member.model_rebuild()
