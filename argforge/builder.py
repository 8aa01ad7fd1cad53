"""Parser-builder contract and its click realization.

:class:`App`, :class:`Arg` and :class:`SubcommandGroup` expose exactly the
setter vocabulary the emitter produces. :func:`replay` executes a
:class:`~argforge.emitter.GeneratedSpec` against them, and
:meth:`App.to_click` hands the result to click, which does the actual
argument matching.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

import click

from argforge.emitter import CallScope, GeneratedSpec
from argforge.parsers import FunctionRef, ParserKind, bind_parser, make_validator

logger = logging.getLogger(__name__)

Handler = Callable[[tuple[str, ...], dict[str, Any]], Any]


def _function(value: FunctionRef | Callable[..., Any] | dict[str, Any]) -> FunctionRef | Callable[..., Any]:
    if isinstance(value, dict):
        return FunctionRef.model_validate(value)
    return value


class ConvertedType(click.ParamType):
    """click type running pre-validation, then the authoritative conversion."""

    def __init__(
        self,
        name: str,
        parse: Callable[[str], Any] | None,
        validate: Callable[[str], str | None] | None = None,
        choices: Sequence[str] | None = None,
    ) -> None:
        self.name = name
        self._parse = parse
        self._validate = validate
        self._choices = tuple(choices) if choices is not None else None

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> Any:
        if not isinstance(value, str):
            return value
        if self._choices is not None and value not in self._choices:
            self.fail(f"{value!r} is not one of {', '.join(map(repr, self._choices))}.", param, ctx)
        if self._validate is not None:
            message = self._validate(value)
            if message is not None:
                self.fail(message, param, ctx)
        if self._parse is None:
            return value
        return self._parse(value)


class Arg:
    SETTERS = frozenset(
        {
            "takes_value",
            "multiple",
            "required",
            "parser",
            "validator",
            "short",
            "long",
            "help",
            "long_help",
            "default_value",
            "possible_values",
            "aliases",
            "value_name",
            "env",
            "hidden",
        }
    )

    def __init__(self, name: str) -> None:
        self.name = name
        self.settings: dict[str, Any] = {"takes_value": True, "multiple": False, "required": False}
        self._parse: Callable[[str], Any] | None = None
        self._validate: Callable[[str], str | None] | None = None

    def _set(self, key: str, value: Any) -> Arg:
        self.settings[key] = value
        return self

    def takes_value(self, value: bool) -> Arg:
        return self._set("takes_value", value)

    def multiple(self, value: bool) -> Arg:
        return self._set("multiple", value)

    def required(self, value: bool) -> Arg:
        return self._set("required", value)

    def short(self, value: str) -> Arg:
        return self._set("short", value)

    def long(self, value: str) -> Arg:
        return self._set("long", value)

    def help(self, value: str) -> Arg:
        return self._set("help", value)

    def long_help(self, value: str) -> Arg:
        return self._set("long_help", value)

    def default_value(self, value: str) -> Arg:
        return self._set("default_value", value)

    def possible_values(self, values: Sequence[str]) -> Arg:
        return self._set("possible_values", tuple(values))

    def aliases(self, values: Sequence[str]) -> Arg:
        return self._set("aliases", tuple(values))

    def value_name(self, value: str) -> Arg:
        return self._set("value_name", value)

    def env(self, value: str) -> Arg:
        return self._set("env", value)

    def hidden(self, value: bool) -> Arg:
        return self._set("hidden", value)

    def parser(self, kind: ParserKind | str, function: FunctionRef | Callable[..., Any] | dict[str, Any]) -> Arg:
        self._parse = bind_parser(ParserKind(kind), _function(function))
        return self

    def validator(self, kind: ParserKind | str, function: FunctionRef | Callable[..., Any] | dict[str, Any]) -> Arg:
        self._validate = make_validator(ParserKind(kind), _function(function))
        return self

    @property
    def is_positional(self) -> bool:
        return self.settings["takes_value"] and "short" not in self.settings and "long" not in self.settings

    def to_click(self) -> click.Parameter:
        settings = self.settings
        dest = self.name.replace("-", "_")
        help_text = settings.get("long_help") or settings.get("help")
        default = settings.get("default_value")
        if default is not None and settings["multiple"]:
            default = [default]

        if self.is_positional:
            if settings.get("aliases"):
                logger.warning("Aliases on positional argument '%s' are ignored", self.name)
            return click.Argument(
                [dest],
                type=self._type(),
                required=settings["required"],
                nargs=-1 if settings["multiple"] else 1,
                default=default,
                envvar=settings.get("env"),
            )

        decls: list[str] = []
        if "short" in settings:
            decls.append(f"-{settings['short']}")
        decls.append(f"--{settings.get('long', self.name.replace('_', '-'))}")
        decls.extend(f"--{alias}" for alias in settings.get("aliases", ()))
        decls.append(dest)
        common: dict[str, Any] = {
            "help": help_text,
            "hidden": settings.get("hidden", False),
            "envvar": settings.get("env"),
        }
        if not settings["takes_value"]:
            if settings["multiple"]:
                return click.Option(decls, count=True, **common)
            return click.Option(decls, is_flag=True, default=default if default is not None else False, **common)
        return click.Option(
            decls,
            type=self._type(),
            multiple=settings["multiple"],
            required=settings["required"],
            default=default,
            metavar=settings.get("value_name"),
            **common,
        )

    def _type(self) -> ConvertedType:
        return ConvertedType(
            self.settings.get("value_name") or "VALUE",
            self._parse,
            self._validate,
            self.settings.get("possible_values"),
        )


class SubcommandGroup:
    SETTERS = frozenset({"required", "version", "author", "about", "long_about", "after_help", "aliases", "hidden"})

    def __init__(self) -> None:
        self.commands: list[App] = []
        self.settings: dict[str, Any] = {"required": True}

    def required(self, value: bool) -> SubcommandGroup:
        self.settings["required"] = value
        return self

    def subcommand(self, app: App) -> SubcommandGroup:
        self.commands.append(app)
        return self

    def __getattr__(self, name: str) -> Callable[[Any], SubcommandGroup]:
        if name not in self.SETTERS:
            raise AttributeError(name)

        def setter(value: Any) -> SubcommandGroup:
            self.settings[name] = value
            return self

        return setter


class App:
    SETTERS = frozenset({"version", "author", "about", "long_about", "after_help", "aliases", "hidden"})

    def __init__(self, name: str) -> None:
        self.name = name
        self.settings: dict[str, Any] = {}
        self.args: list[Arg] = []
        self.group: SubcommandGroup | None = None

    def __getattr__(self, name: str) -> Callable[[Any], App]:
        if name not in self.SETTERS:
            raise AttributeError(name)

        def setter(value: Any) -> App:
            self.settings[name] = value
            return self

        return setter

    def arg(self, arg: Arg) -> App:
        self.args.append(arg)
        return self

    def subcommands(self, group: SubcommandGroup) -> App:
        self.group = group
        return self

    def to_click(self, handler: Handler | None = None, *, parent: tuple[str, ...] = ()) -> click.Command:
        """Build the click command tree; ``handler(path, values)`` runs per command."""
        path = (*parent, self.name)
        settings = self.settings

        def callback(**values: Any) -> Any:
            if handler is None:
                return values
            return handler(path, values)

        epilog = [settings["after_help"]] if settings.get("after_help") else []
        if settings.get("author"):
            epilog.append(f"Author: {settings['author']}")
        options: dict[str, Any] = {
            "params": [arg.to_click() for arg in self.args],
            "callback": callback,
            "help": settings.get("long_about") or settings.get("about") or None,
            "hidden": bool(settings.get("hidden", False)),
        }

        command: click.Command
        if self.group is None:
            command = click.Command(self.name, epilog="\n\n".join(epilog) or None, **options)
        else:
            group_settings = self.group.settings
            if group_settings.get("about"):
                epilog.append(str(group_settings["about"]))
            unsupported = sorted(set(group_settings) - {"required", "about"})
            if unsupported:
                logger.warning("Subcommand group settings without a click counterpart: %s", ", ".join(unsupported))
            command = AliasedGroup(
                self.name,
                epilog="\n\n".join(epilog) or None,
                invoke_without_command=not group_settings["required"],
                **options,
            )
            for app in self.group.commands:
                command.add_command(app.to_click(handler, parent=path))
                for alias in app.settings.get("aliases", ()):
                    command.aliases[alias] = app.name

        if settings.get("version"):
            click.version_option(settings["version"], prog_name=self.name)(command)
        return command


class AliasedGroup(click.Group):
    """click group that also resolves subcommand aliases."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.aliases: dict[str, str] = {}

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        name, command, rest = super().resolve_command(ctx, args)
        return (command.name if command is not None else name), command, rest


def _dispatch(target: App | Arg | SubcommandGroup, method: str, args: Sequence[Any]) -> None:
    if method not in target.SETTERS:
        raise ValueError(f"Unknown {type(target).__name__} builder method '{method}'.")
    getattr(target, method)(*args)


def replay(spec: GeneratedSpec) -> App:
    """Execute every call of ``spec`` in order and return the root :class:`App`."""
    apps: dict[tuple[str, ...], App] = {}
    args: dict[tuple[tuple[str, ...], str], Arg] = {}
    groups: dict[tuple[str, ...], SubcommandGroup] = {}

    for call in spec.calls:
        if call.scope is CallScope.APP:
            if call.method == "new":
                apps[call.path] = App(*call.args)
            elif call.method == "arg":
                apps[call.path].arg(args.pop((call.path, call.args[0])))
            elif call.method == "subcommands":
                apps[call.path].subcommands(groups.pop(call.path))
            else:
                _dispatch(apps[call.path], call.method, call.args)
        elif call.scope is CallScope.ARG:
            assert call.arg is not None
            if call.method == "new":
                args[(call.path, call.arg)] = Arg(*call.args)
            else:
                _dispatch(args[(call.path, call.arg)], call.method, call.args)
        elif call.method == "new":
            groups[call.path] = SubcommandGroup()
        elif call.method == "subcommand":
            groups[call.path].subcommand(apps[(*call.path, call.args[0])])
        else:
            _dispatch(groups[call.path], call.method, call.args)

    return apps[(spec.root,)]


def to_click(spec: GeneratedSpec, handler: Handler | None = None) -> click.Command:
    return replay(spec).to_click(handler)
