"""Tests for the structural schema models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from argforge.schema import ItemKind, Member, RawAttribute, Schema, SchemaItem, SourceLocation, TypeRef


def test_type_ref_parses_both_bracket_styles() -> None:
    python_style = TypeRef.parse("Optional[list[int]]")
    angle_style = TypeRef.parse("Option<Vec<i32>>")

    assert python_style.render() == "Optional[list[int]]"
    assert angle_style.name == "Option"
    assert angle_style.params[0].name == "Vec"
    assert angle_style.params[0].params[0].name == "i32"


def test_type_ref_qualified_name() -> None:
    ref = TypeRef.parse("pathlib:Path")
    assert ref.module == "pathlib"
    assert ref.qualname == "pathlib:Path"


@pytest.mark.parametrize("text", ["", "list[int", "list[int]]", "Vec<int]", "a b", "int?"])
def test_type_ref_rejects_malformed_signatures(text: str) -> None:
    with pytest.raises(ValueError):
        TypeRef.parse(text)


def test_member_accepts_text_shorthands() -> None:
    member = Member.model_validate(
        {"ident": "speed", "type": "Option<f64>", "attributes": 'short = "s"', "doc": "/// Speed\n/// in m/s"}
    )
    assert member.type == TypeRef(name="Option", params=(TypeRef(name="f64"),))
    assert member.attributes == (RawAttribute(text='short = "s"'),)
    assert member.doc == ("/// Speed", "/// in m/s")


def test_schema_round_trips_through_json() -> None:
    schema = Schema(
        root="Opt",
        items=(
            SchemaItem(
                name="Opt",
                attributes=(RawAttribute(text='name = "x"', location=SourceLocation(file="a.rs", line=3)),),
                members=(Member(ident="debug", type=TypeRef(name="bool")),),
            ),
        ),
    )
    assert Schema.model_validate_json(schema.model_dump_json()) == schema


def test_schema_rejects_missing_root_and_duplicates() -> None:
    with pytest.raises(ValidationError, match="Root item 'Nope' is not defined"):
        Schema(root="Nope", items=(SchemaItem(name="Opt"),))
    with pytest.raises(ValidationError, match="Duplicate schema item names: Opt"):
        Schema(root="Opt", items=(SchemaItem(name="Opt"), SchemaItem(name="Opt")))


def test_schema_lookup_helpers() -> None:
    schema = Schema(
        root="Opt",
        items=(SchemaItem(name="Opt"), SchemaItem(name="Step", kind=ItemKind.COMMANDS)),
    )
    assert schema.root_item.name == "Opt"
    assert schema.get("Step").is_command_set  # type: ignore[union-attr]
    assert schema.get("Missing") is None
    assert Schema.single(SchemaItem(name="Solo")).root == "Solo"


def test_source_location_shift_and_format() -> None:
    location = SourceLocation(file="main.rs", line=10, column=4)
    assert str(location.shifted(3)) == "main.rs:10:7"
