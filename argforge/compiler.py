"""Compilation entry point: schema in, builder invocations out."""

from __future__ import annotations

import logging

from argforge.config import PackageEnvironment
from argforge.emitter import GeneratedSpec, emit
from argforge.errors import CompileError
from argforge.ir import CommandNode  # noqa: TC001
from argforge.schema import Schema, SchemaItem
from argforge.tree import TreeBuilder

logger = logging.getLogger(__name__)


def resolve(schema: Schema | SchemaItem, env: PackageEnvironment | None = None) -> CommandNode:
    """Resolve a schema into its command tree without emitting calls."""
    if isinstance(schema, SchemaItem):
        schema = Schema.single(schema)
    return TreeBuilder(schema, env).build()


def compile(schema: Schema | SchemaItem, env: PackageEnvironment | None = None) -> GeneratedSpec:  # noqa: A001
    """Compile ``schema`` into an ordered builder-invocation list.

    The result depends only on the arguments: ``env`` is the only source of
    ambient package metadata. Raises the first :class:`CompileError`
    encountered; nothing is returned for a schema that fails.
    """
    root_name = schema.root if isinstance(schema, Schema) else schema.name
    try:
        tree = resolve(schema, env)
    except CompileError as exc:
        logger.debug("Compilation of %s failed: %s [%s]", root_name, exc, exc.code)
        raise
    spec = emit(tree)
    logger.debug("Compiled %s into %d builder calls", root_name, len(spec.calls))
    return spec
