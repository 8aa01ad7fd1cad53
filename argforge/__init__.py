"""argforge: compile declarative argument schemas into parser builder calls."""

from __future__ import annotations

from argforge.builder import App, Arg, SubcommandGroup, replay, to_click
from argforge.cardinality import Cardinality, classify
from argforge.compiler import compile, resolve
from argforge.config import PackageEnvironment
from argforge.emitter import BuilderCall, GeneratedSpec
from argforge.errors import (
    AttributeParseError,
    CompileError,
    CyclicSchemaError,
    DuplicateArgumentError,
    MissingParserFunctionError,
    MultipleSubcommandsError,
    UnsupportedTypeError,
)
from argforge.parsers import FunctionRef, ParserKind
from argforge.render import render_python
from argforge.schema import ItemKind, Member, RawAttribute, Schema, SchemaItem, SourceLocation, TypeRef

__version__ = "0.3.0"
__all__ = [
    "App",
    "Arg",
    "AttributeParseError",
    "BuilderCall",
    "Cardinality",
    "CompileError",
    "CyclicSchemaError",
    "DuplicateArgumentError",
    "FunctionRef",
    "GeneratedSpec",
    "ItemKind",
    "Member",
    "MissingParserFunctionError",
    "MultipleSubcommandsError",
    "PackageEnvironment",
    "ParserKind",
    "RawAttribute",
    "Schema",
    "SchemaItem",
    "SourceLocation",
    "SubcommandGroup",
    "TypeRef",
    "UnsupportedTypeError",
    "classify",
    "compile",
    "render_python",
    "replay",
    "resolve",
    "to_click",
]
