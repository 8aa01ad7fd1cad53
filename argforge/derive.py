"""Class front end: describe a schema with annotated Python classes.

An options item is a plain class whose annotated attributes are its
arguments. A command set subclasses :class:`Commands`; each nested class is
one variant (subcommand) and its annotations are that subcommand's
arguments::

    @command(name="make-cookie")
    class MakeCookie:
        \"\"\"Bake a cookie.\"\"\"

        verbose: Annotated[Count, Arg(short=True)]
        cmd: Annotated[Optional[Step], Arg(subcommand=True)]

    class Step(Commands):
        class Pound:
            \"\"\"Pound acorns into flour.\"\"\"

            acorns: int

Class docstrings become ``about``, attribute docstrings (a string literal
right after the annotation) become ``help``. Parser functions and enum types
are referenced by import path, so they must live at module level.
"""

from __future__ import annotations

import ast
import enum
import inspect
import json
import textwrap
import types
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Annotated, Any, NewType, Union, get_args, get_origin, get_type_hints

from argforge.parsers import FunctionRef, ParserKind, enum_value_name
from argforge.schema import ItemKind, Member, RawAttribute, Schema, SchemaItem, SourceLocation, TypeRef

Count = NewType("Count", int)
"""Counter-shaped type: the value is the number of occurrences."""


class Commands:
    """Base class marking a command set."""


@dataclass(frozen=True)
class ParseDirective:
    kind: ParserKind
    function: Callable[..., Any] | str | None = None


def parse(kind: ParserKind | str, function: Callable[..., Any] | str | None = None) -> ParseDirective:
    return ParseDirective(ParserKind(kind), function)


@dataclass(frozen=True, init=False)
class Arg:
    """Attribute marker for ``Annotated`` fields."""

    kwargs: dict[str, Any] = field(default_factory=dict)

    def __init__(self, **kwargs: Any) -> None:
        object.__setattr__(self, "kwargs", kwargs)


def command(**attrs: Any) -> Callable[[type], type]:
    """Attach item-level attributes to an options class, command set or variant."""

    def decorator(cls: type) -> type:
        cls.__argforge_attrs__ = dict(attrs)  # type: ignore[attr-defined]
        return cls

    return decorator


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_literal(item) for item in value) + "]"
    raise TypeError(f"Unsupported attribute value: {value!r}")


def _function_text(function: Callable[..., Any] | str) -> str:
    if isinstance(function, str):
        return function
    return str(FunctionRef.from_callable(function))


def render_attributes(attrs: dict[str, Any]) -> str:
    """Lower keyword attributes to attribute text."""
    parts: list[str] = []
    for key, value in attrs.items():
        if isinstance(value, ParseDirective):
            if value.function is None:
                parts.append(f"{key}({value.kind.value})")
            else:
                parts.append(f"{key}({value.kind.value} = {json.dumps(_function_text(value.function))})")
        elif value is True:
            parts.append(key)
        else:
            parts.append(f"{key} = {_literal(value)}")
    return ", ".join(parts)


def _own_attrs(cls: type) -> dict[str, Any]:
    return dict(cls.__dict__.get("__argforge_attrs__", {}))


def _doc_lines(cls: type) -> tuple[str, ...]:
    doc = cls.__dict__.get("__doc__")
    if not doc:
        return ()
    return tuple(inspect.cleandoc(doc).splitlines())


@dataclass
class _Source:
    location: SourceLocation = field(default_factory=SourceLocation)
    docs: dict[str, str] = field(default_factory=dict)
    lines: dict[str, int] = field(default_factory=dict)


def _source(cls: type) -> _Source:
    """Class location plus attribute docstrings, when the source is available."""
    try:
        filename = inspect.getsourcefile(cls) or "<unknown>"
        source_lines, start = inspect.getsourcelines(cls)
    except (OSError, TypeError):
        return _Source()

    info = _Source(location=SourceLocation(file=filename, line=max(start, 1)))
    tree = ast.parse(textwrap.dedent("".join(source_lines)))
    if not tree.body or not isinstance(tree.body[0], ast.ClassDef):
        return info
    body = tree.body[0].body
    for index, node in enumerate(body):
        if not isinstance(node, ast.AnnAssign) or not isinstance(node.target, ast.Name):
            continue
        name = node.target.id
        info.lines[name] = start + node.lineno - 1
        following = body[index + 1] if index + 1 < len(body) else None
        if (
            isinstance(following, ast.Expr)
            and isinstance(following.value, ast.Constant)
            and isinstance(following.value.value, str)
        ):
            info.docs[name] = inspect.cleandoc(following.value.value)
    return info


def _is_command_set(value: Any) -> bool:
    return inspect.isclass(value) and issubclass(value, Commands) and value is not Commands


def _type_ref(hint: Any, found: list[type]) -> TypeRef:
    origin = get_origin(hint)
    if origin is Annotated:
        return _type_ref(get_args(hint)[0], found)
    if origin in {Union, types.UnionType}:
        args = get_args(hint)
        rest = [arg for arg in args if arg is not type(None)]
        if len(rest) == 1 and len(args) == 2:
            return TypeRef(name="Optional", params=(_type_ref(rest[0], found),))
        return TypeRef(name="Union", params=tuple(_type_ref(arg, found) for arg in args))
    if origin is not None:
        name = getattr(origin, "__name__", str(origin))
        return TypeRef(name=name, params=tuple(_type_ref(arg, found) for arg in get_args(hint)))
    if hint is Ellipsis:
        return TypeRef(name="...")
    if _is_command_set(hint):
        found.append(hint)
        return TypeRef(name=hint.__qualname__)
    if hasattr(hint, "__supertype__"):
        return TypeRef(name=hint.__name__)
    if inspect.isclass(hint):
        module = hint.__module__
        return TypeRef(name=hint.__qualname__, module=None if module == "builtins" else module)
    return TypeRef(name=str(hint))


def _base_hint(hint: Any) -> Any:
    while True:
        origin = get_origin(hint)
        if origin is Annotated:
            hint = get_args(hint)[0]
        elif origin in {Union, types.UnionType, list, Sequence}:
            args = [arg for arg in get_args(hint) if arg is not type(None)]
            if len(args) != 1:
                return hint
            hint = args[0]
        else:
            return hint


def _fields(cls: type, found: list[type]) -> tuple[Member, ...]:
    hints = get_type_hints(cls, include_extras=True)
    source = _source(cls)
    members: list[Member] = []
    for name, hint in hints.items():
        if name.startswith("_"):
            continue
        attrs: dict[str, Any] = {}
        if get_origin(hint) is Annotated:
            for extra in get_args(hint)[1:]:
                if isinstance(extra, Arg):
                    attrs.update(extra.kwargs)
        base = _base_hint(hint)
        if inspect.isclass(base) and issubclass(base, enum.Enum) and "possible_values" not in attrs:
            if "parse" not in attrs:
                attrs["possible_values"] = [enum_value_name(item) for item in base]
        location = source.location.model_copy(update={"line": source.lines.get(name, source.location.line)})
        text = render_attributes(attrs)
        members.append(
            Member(
                ident=name,
                type=_type_ref(hint, found),
                attributes=(RawAttribute(text=text, location=location),) if text else (),
                doc=tuple(source.docs[name].splitlines()) if name in source.docs else (),
                location=location,
            )
        )
    return tuple(members)


def _item(cls: type, found: list[type]) -> SchemaItem:
    text = render_attributes(_own_attrs(cls))
    location = _source(cls).location
    attributes = (RawAttribute(text=text, location=location),) if text else ()
    if not _is_command_set(cls):
        return SchemaItem(
            name=cls.__qualname__,
            kind=ItemKind.OPTIONS,
            attributes=attributes,
            doc=_doc_lines(cls),
            members=_fields(cls, found),
            location=location,
        )

    variants: list[Member] = []
    for name, value in vars(cls).items():
        if name.startswith("_") or not inspect.isclass(value):
            continue
        variant_text = render_attributes(_own_attrs(value))
        variant_location = _source(value).location
        variants.append(
            Member(
                ident=name,
                attributes=(RawAttribute(text=variant_text, location=variant_location),) if variant_text else (),
                doc=_doc_lines(value),
                fields=_fields(value, found),
                location=variant_location,
            )
        )
    return SchemaItem(
        name=cls.__qualname__,
        kind=ItemKind.COMMANDS,
        attributes=attributes,
        doc=_doc_lines(cls),
        members=tuple(variants),
        location=location,
    )


def schema_of(cls: type) -> Schema:
    """Describe ``cls`` and every command set it reaches as a :class:`Schema`."""
    items: dict[str, SchemaItem] = {}
    pending: list[type] = [cls]
    while pending:
        current = pending.pop(0)
        if current.__qualname__ in items:
            continue
        found: list[type] = []
        items[current.__qualname__] = _item(current, found)
        pending.extend(found)
    return Schema(root=cls.__qualname__, items=tuple(items.values()))
