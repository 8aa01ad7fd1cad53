"""Resolved intermediate representation handed to the emitter."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from argforge.cardinality import Cardinality  # noqa: TC001
from argforge.parsers import ParserSpec  # noqa: TC001
from argforge.schema import SourceLocation, TypeRef  # noqa: TC001


@dataclass
class ArgumentNode:
    name: str
    ident: str
    cardinality: Cardinality
    base: TypeRef
    parser: ParserSpec
    attributes: dict[str, Any] = field(default_factory=dict)
    location: SourceLocation | None = None

    @property
    def has_default(self) -> bool:
        return "default_value" in self.attributes

    @property
    def required(self) -> bool:
        """Derived ``required`` flag; a default value always lifts it."""
        return self.cardinality is Cardinality.REQUIRED and not self.has_default


@dataclass(frozen=True)
class SubcommandLink:
    target: str
    optional: bool = False
    flatten: bool = False


@dataclass
class SubcommandGroup:
    carrier: str | None
    link: SubcommandLink
    attributes: dict[str, Any] = field(default_factory=dict)
    commands: list[CommandNode] = field(default_factory=list)


@dataclass
class CommandNode:
    name: str
    path: tuple[str, ...]
    attributes: dict[str, Any] = field(default_factory=dict)
    arguments: list[ArgumentNode] = field(default_factory=list)
    group: SubcommandGroup | None = None
    group_position: int = 0
    """Number of arguments declared before the subcommand field."""

    @property
    def is_root(self) -> bool:
        return len(self.path) == 1

    def walk(self) -> list[CommandNode]:
        """This command followed by every nested command, depth first."""
        nodes = [self]
        if self.group is not None:
            for command in self.group.commands:
                nodes.extend(command.walk())
        return nodes
