"""Emission of resolved command trees as ordered builder invocations."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from argforge.cardinality import Cardinality
from argforge.ir import ArgumentNode, CommandNode  # noqa: TC001


class CallScope(str, Enum):
    APP = "app"
    ARG = "arg"
    GROUP = "group"


class BuilderCall(BaseModel):
    """One invocation against the parser-builder contract.

    ``path`` addresses the command; ``arg`` names the argument for
    ``scope == "arg"`` calls.
    """

    model_config = ConfigDict(frozen=True)

    scope: CallScope
    path: tuple[str, ...]
    method: str
    args: tuple[Any, ...] = ()
    arg: str | None = None

    def describe(self) -> str:
        target = " ".join(self.path)
        if self.arg is not None:
            target = f"{target} <{self.arg}>"
        rendered = ", ".join(repr(value) if not isinstance(value, BaseModel) else str(value) for value in self.args)
        return f"{self.scope.value:<5} {target}: {self.method}({rendered})"


class GeneratedSpec(BaseModel):
    """Complete, ordered builder invocation list for one schema."""

    model_config = ConfigDict(frozen=True)

    root: str
    calls: tuple[BuilderCall, ...] = Field(default_factory=tuple)

    def calls_for(self, path: tuple[str, ...], *, arg: str | None = None) -> list[BuilderCall]:
        return [call for call in self.calls if call.path == path and call.arg == arg]

    def methods_for(self, path: tuple[str, ...], *, arg: str | None = None) -> list[str]:
        return [call.method for call in self.calls_for(path, arg=arg)]


class Emitter:
    """Walks a command tree in declaration order and records builder calls."""

    def __init__(self) -> None:
        self._calls: list[BuilderCall] = []

    def _app(self, node: CommandNode, method: str, *args: Any) -> None:
        self._calls.append(BuilderCall(scope=CallScope.APP, path=node.path, method=method, args=args))

    def _arg(self, node: CommandNode, argument: ArgumentNode, method: str, *args: Any) -> None:
        self._calls.append(
            BuilderCall(scope=CallScope.ARG, path=node.path, arg=argument.name, method=method, args=args)
        )

    def _group(self, node: CommandNode, method: str, *args: Any) -> None:
        self._calls.append(BuilderCall(scope=CallScope.GROUP, path=node.path, method=method, args=args))

    def emit(self, root: CommandNode) -> GeneratedSpec:
        self._calls = []
        self._command(root)
        return GeneratedSpec(root=root.name, calls=tuple(self._calls))

    def _command(self, node: CommandNode) -> None:
        self._app(node, "new", node.name)
        for key, value in node.attributes.items():
            self._app(node, key, value)
        for index, argument in enumerate(node.arguments):
            if node.group is not None and index == node.group_position:
                self._subcommands(node)
            self._argument(node, argument)
        if node.group is not None and node.group_position >= len(node.arguments):
            self._subcommands(node)

    def _argument(self, node: CommandNode, argument: ArgumentNode) -> None:
        cardinality = argument.cardinality
        self._arg(node, argument, "new", argument.name)
        self._arg(node, argument, "takes_value", cardinality.takes_value)
        self._arg(node, argument, "multiple", cardinality.multiple)
        if cardinality is Cardinality.REQUIRED:
            self._arg(node, argument, "required", argument.required)
        parser = argument.parser
        if parser.kind is not None and parser.function is not None:
            self._arg(node, argument, "parser", parser.kind.value, parser.function)
            if parser.validates:
                self._arg(node, argument, "validator", parser.kind.value, parser.function)
        for key, value in argument.attributes.items():
            if key == "required" and argument.has_default:
                continue
            self._arg(node, argument, key, value)
        self._app(node, "arg", argument.name)

    def _subcommands(self, node: CommandNode) -> None:
        group = node.group
        assert group is not None
        self._group(node, "new")
        self._group(node, "required", not group.link.optional)
        for key, value in group.attributes.items():
            self._group(node, key, value)
        for command in group.commands:
            self._command(command)
            self._group(node, "subcommand", command.name)
        self._app(node, "subcommands")


def emit(root: CommandNode) -> GeneratedSpec:
    return Emitter().emit(root)
