"""Tests for subcommand tree construction and its failure modes."""

from __future__ import annotations

from typing import Any

import pytest

from argforge.cardinality import Cardinality
from argforge.compiler import resolve
from argforge.config import PackageEnvironment
from argforge.errors import (
    AttributeParseError,
    CyclicSchemaError,
    DuplicateArgumentError,
    MultipleSubcommandsError,
    UnsupportedTypeError,
)
from argforge.schema import Schema


def _schema(root: str, *items: dict[str, Any]) -> Schema:
    return Schema.model_validate({"root": root, "items": list(items)})


def _options(name: str, *members: dict[str, Any], attributes: str = "") -> dict[str, Any]:
    return {"name": name, "attributes": [attributes] if attributes else [], "members": list(members)}


def _commands(name: str, *variants: dict[str, Any]) -> dict[str, Any]:
    return {"name": name, "kind": "commands", "members": list(variants)}


def _field(ident: str, type_: str, attributes: str = "", **extra: Any) -> dict[str, Any]:
    return {"ident": ident, "type": type_, "attributes": [attributes] if attributes else [], **extra}


def _variant(ident: str, *fields: dict[str, Any], attributes: str = "", **extra: Any) -> dict[str, Any]:
    return {"ident": ident, "fields": list(fields), "attributes": [attributes] if attributes else [], **extra}


def test_options_bag_arguments_keep_declaration_order(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options(
            "Opt",
            _field("verbose", "u64", "short"),
            _field("output", "Option<String>", "long"),
            _field("files", "Vec<String>"),
            _field("mode", "String", 'default_value = "fast"'),
            attributes='name = "tool"',
        ),
    )
    root = resolve(schema, env)

    assert root.name == "tool"
    assert root.path == ("tool",)
    assert [(arg.name, arg.cardinality) for arg in root.arguments] == [
        ("verbose", Cardinality.COUNTER),
        ("output", Cardinality.OPTIONAL),
        ("files", Cardinality.LIST),
        ("mode", Cardinality.REQUIRED),
    ]
    assert root.arguments[0].attributes == {"short": "v"}
    assert root.arguments[3].required is False
    assert root.group is None


def test_explicit_subcommand_names_win_over_identifiers(env: PackageEnvironment) -> None:
    schema = _schema(
        "Git",
        _commands(
            "Git",
            _variant("Add", _field("interactive", "bool", "short"), attributes='name = "stage"'),
            _variant("Fetch", _field("dry_run", "bool", "long"), attributes='name = "pull"'),
            _variant("Commit", _field("amend", "bool", "long"), attributes='name = "record"'),
        ),
    )
    root = resolve(schema, PackageEnvironment(values={"PKG_NAME": "git"}))

    assert root.group is not None
    assert root.group.link.optional is False
    assert [command.name for command in root.group.commands] == ["stage", "pull", "record"]
    assert [command.path for command in root.walk()] == [
        ("git",),
        ("git", "stage"),
        ("git", "pull"),
        ("git", "record"),
    ]


def test_variant_names_default_to_kebab_case(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Step", "subcommand")),
        _commands("Step", _variant("DryRun"), _variant("Go")),
    )
    root = resolve(schema, env)
    assert root.group is not None
    assert [command.name for command in root.group.commands] == ["dry-run", "go"]


def test_optional_carrier_marks_group_optional(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("debug", "bool"), _field("cmd", "Option<Step>", "subcommand"), _field("tail", "String")),
        _commands("Step", _variant("Go")),
    )
    root = resolve(schema, env)

    assert root.group is not None
    assert root.group.link.optional is True
    assert root.group.carrier == "cmd"
    assert root.group_position == 1
    assert [arg.name for arg in root.arguments] == ["debug", "tail"]


def test_variant_may_wrap_an_options_item(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Step", "subcommand")),
        _commands("Step", {"ident": "Pound", "type": "PoundOpts"}),
        _options("PoundOpts", _field("acorns", "u32")),
    )
    root = resolve(schema, env)
    assert root.group is not None
    (pound,) = root.group.commands
    assert pound.name == "pound"
    assert [arg.name for arg in pound.arguments] == ["acorns"]


def test_nested_carriers_build_deep_paths(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Outer", "subcommand")),
        _commands("Outer", _variant("Remote", _field("action", "Inner", "subcommand"))),
        _commands("Inner", _variant("Add", _field("url", "String"))),
    )
    root = resolve(schema, env)
    assert [command.path for command in root.walk()] == [("",), ("", "remote"), ("", "remote", "add")]


def test_command_set_reused_on_sibling_branches(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Top", "subcommand")),
        _commands(
            "Top",
            _variant("A", _field("leaf", "Option<Leaf>", "subcommand")),
            _variant("B", _field("leaf", "Option<Leaf>", "subcommand")),
        ),
        _commands("Leaf", _variant("X")),
    )
    root = resolve(schema, env)
    paths = [command.path for command in root.walk()]
    assert ("", "a", "x") in paths
    assert ("", "b", "x") in paths


def test_multiple_subcommand_carriers(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("first", "Step", "subcommand"), _field("second", "Step", "subcommand")),
        _commands("Step", _variant("Go")),
    )
    with pytest.raises(MultipleSubcommandsError) as exc_info:
        resolve(schema, env)

    error = exc_info.value
    assert error.code == "E1005"
    assert (error.item, error.member) == ("Opt", "second")
    assert error.details == {"fields": ["first", "second"]}


def test_direct_self_reference_is_cyclic(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Step", "subcommand")),
        _commands("Step", _variant("Again", _field("inner", "Step", "subcommand"))),
    )
    with pytest.raises(CyclicSchemaError) as exc_info:
        resolve(schema, env)
    assert exc_info.value.member == "inner"


def test_transitive_self_reference_is_cyclic(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Ping", "subcommand")),
        _commands("Ping", _variant("Go", _field("next", "Option<Pong>", "subcommand"))),
        _commands("Pong", _variant("Back", _field("prev", "Ping", "subcommand"))),
    )
    with pytest.raises(CyclicSchemaError) as exc_info:
        resolve(schema, env)
    assert exc_info.value.details["target"] == "Ping"


def test_wrapped_options_item_cycle(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Step", "subcommand")),
        _commands("Step", {"ident": "Loop", "type": "Opt"}),
    )
    with pytest.raises(CyclicSchemaError):
        resolve(schema, env)


def test_flatten_merges_variant_fields(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("verbose", "bool", "short"), _field("shared", "Common", "subcommand, flatten")),
        _commands(
            "Common",
            _variant("Net", _field("port", "u16", "long")),
            _variant("Disk", _field("path", "String"), _field("nested", "Option<Other>", "subcommand")),
        ),
        _commands("Other", _variant("X")),
    )
    root = resolve(schema, env)
    assert root.group is None
    assert [arg.name for arg in root.arguments] == ["verbose", "port", "path"]


def test_flatten_collision_is_duplicate_argument(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("verbose", "bool"), _field("shared", "Common", "subcommand, flatten")),
        _commands("Common", _variant("Only", _field("verbose", "bool"))),
    )
    with pytest.raises(DuplicateArgumentError) as exc_info:
        resolve(schema, env)
    assert exc_info.value.code == "E1004"
    assert exc_info.value.details["argument"] == "verbose"


def test_flatten_without_subcommand_is_rejected(env: PackageEnvironment) -> None:
    schema = _schema("Opt", _options("Opt", _field("shared", "String", "flatten")))
    with pytest.raises(AttributeParseError, match="only valid together with 'subcommand'"):
        resolve(schema, env)


def test_explicit_name_collision(env: PackageEnvironment) -> None:
    schema = _schema("Opt", _options("Opt", _field("a", "String", 'name = "x"'), _field("b", "String", 'name = "x"')))
    with pytest.raises(DuplicateArgumentError, match="Argument 'x' is already defined"):
        resolve(schema, env)


def test_duplicate_subcommand_names(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Step", "subcommand")),
        _commands("Step", _variant("Go"), _variant("Run", attributes='name = "go"')),
    )
    with pytest.raises(DuplicateArgumentError, match="Subcommand 'go'"):
        resolve(schema, env)


@pytest.mark.parametrize(
    ("carrier_type", "message"),
    [
        ("Missing", "not defined"),
        ("Plain", "an options item"),
        ("Vec<Step>", "Subcommand field type"),
    ],
)
def test_bad_carrier_targets(env: PackageEnvironment, carrier_type: str, message: str) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", carrier_type, "subcommand")),
        _commands("Step", _variant("Go")),
        _options("Plain"),
    )
    with pytest.raises(UnsupportedTypeError, match=message):
        resolve(schema, env)


def test_command_set_field_without_subcommand_marker(env: PackageEnvironment) -> None:
    schema = _schema("Opt", _options("Opt", _field("cmd", "Step")), _commands("Step", _variant("Go")))
    with pytest.raises(UnsupportedTypeError, match="not marked 'subcommand'"):
        resolve(schema, env)


def test_carrier_rejects_argument_attributes(env: PackageEnvironment) -> None:
    schema = _schema(
        "Opt",
        _options("Opt", _field("cmd", "Step", 'subcommand, short = "c"')),
        _commands("Step", _variant("Go")),
    )
    with pytest.raises(AttributeParseError, match="'short' is not supported on a subcommand field"):
        resolve(schema, env)


def test_field_without_type(env: PackageEnvironment) -> None:
    schema = _schema("Opt", _options("Opt", {"ident": "oops"}))
    with pytest.raises(UnsupportedTypeError, match="no declared type"):
        resolve(schema, env)
