"""Subcommand tree construction: schema items to resolved command nodes."""

from __future__ import annotations

import logging
from collections.abc import Mapping  # noqa: TC003
from typing import NamedTuple

from argforge.attributes import (
    DIRECTIVE_KEYS,
    AttributeEntry,
    AttrSource,
    attribute_or_environment,
    lookup,
    normalize_identifier,
    ordered,
    resolve_attributes,
)
from argforge.cardinality import Cardinality, classify
from argforge.config import PackageEnvironment
from argforge.errors import (
    AttributeParseError,
    CompileError,
    CyclicSchemaError,
    DuplicateArgumentError,
    MultipleSubcommandsError,
    UnsupportedTypeError,
)
from argforge.ir import ArgumentNode, CommandNode, SubcommandGroup, SubcommandLink
from argforge.parsers import resolve_parser
from argforge.schema import Member, Schema, SchemaItem, TypeRef

logger = logging.getLogger(__name__)

_ROOT_METADATA = ("version", "author", "about")


class _Body(NamedTuple):
    """Argument members of one command scope and the item they belong to."""

    owner: str
    members: tuple[Member, ...]
    ancestors: frozenset[str]


def _flag(entries: list[AttributeEntry], key: str) -> bool:
    entry = lookup(entries, key)
    return bool(entry is not None and entry.value)


class TreeBuilder:
    """Resolves a :class:`Schema` into a :class:`CommandNode` tree.

    ``ancestors`` holds the names of the schema items on the current path, so
    a carrier that points back at one of them is reported instead of
    recursing forever. Items reused on sibling branches are fine.
    """

    def __init__(self, schema: Schema, env: PackageEnvironment | None = None) -> None:
        self.schema = schema
        self.env = env or PackageEnvironment()

    def build(self) -> CommandNode:
        item = self.schema.root_item
        try:
            entries = resolve_attributes(item.attributes, item.doc, AttrSource.ITEM)
        except CompileError as exc:
            exc.with_context(item=item.name)
            raise

        environ: Mapping[str, str] = self.env.lookup()
        name = attribute_or_environment(entries, "name", self.env.name_var, environ)
        env_vars = {
            "version": self.env.version_var,
            "author": self.env.authors_var,
            "about": self.env.description_var,
        }
        attributes: dict[str, object] = {
            key: attribute_or_environment(entries, key, env_vars[key], environ) for key in _ROOT_METADATA
        }
        attributes.update(ordered(entries, exclude={"name", *_ROOT_METADATA}))

        root = CommandNode(name=name, path=(name,), attributes=attributes)
        self._expand(root, item, frozenset())
        return root

    def _expand(self, node: CommandNode, item: SchemaItem, ancestors: frozenset[str]) -> None:
        ancestors = ancestors | {item.name}
        if item.is_command_set:
            link = SubcommandLink(target=item.name)
            node.group = self._group(node, None, link, item, ancestors, attributes={})
        else:
            self._populate(node, _Body(item.name, item.members, ancestors))

    def _target(self, ty: TypeRef) -> SchemaItem | None:
        return self.schema.get(ty.name)

    def _populate(self, node: CommandNode, body: _Body) -> None:
        carrier: Member | None = None
        for member in body.members:
            try:
                entries = resolve_attributes(member.attributes, member.doc, AttrSource.MEMBER, ident=member.ident)
                if member.type is None:
                    raise UnsupportedTypeError(f"Field '{member.ident}' has no declared type", location=member.location)
                if _flag(entries, "subcommand"):
                    if carrier is not None:
                        raise MultipleSubcommandsError(
                            f"'{body.owner}' declares more than one subcommand field "
                            f"('{carrier.ident}' and '{member.ident}')",
                            location=member.location,
                            details={"fields": [carrier.ident, member.ident]},
                        )
                    carrier = member
                    self._link(node, member, entries, body.ancestors)
                    continue
                if _flag(entries, "flatten"):
                    flatten = lookup(entries, "flatten")
                    raise AttributeParseError(
                        "'flatten' is only valid together with 'subcommand'",
                        location=flatten.location if flatten else member.location,
                    )
                self._add_argument(node, self._argument(member, entries))
            except CompileError as exc:
                exc.with_context(item=body.owner, member=member.ident)
                raise

    def _argument(self, member: Member, entries: list[AttributeEntry]) -> ArgumentNode:
        assert member.type is not None
        directive = lookup(entries, "parse")
        shape = classify(member.type, custom_parser=directive is not None)
        target = self._target(shape.base)
        if target is not None and target.is_command_set:
            raise UnsupportedTypeError(
                f"Field '{member.ident}' refers to command set '{target.name}' but is not marked 'subcommand'",
                location=member.location,
            )
        parser = resolve_parser(shape.cardinality, shape.base, directive)
        name_entry = lookup(entries, "name")
        argument = ArgumentNode(
            name=str(name_entry.value) if name_entry else member.ident,
            ident=member.ident,
            cardinality=shape.cardinality,
            base=shape.base,
            parser=parser,
            attributes=ordered(entries, exclude=DIRECTIVE_KEYS | {"name"}),
            location=member.location,
        )
        logger.debug(
            "Resolved argument %s as %s (parser=%s)",
            argument.name,
            argument.cardinality.value,
            parser.kind.value if parser.kind else "none",
        )
        return argument

    def _add_argument(self, node: CommandNode, argument: ArgumentNode) -> None:
        for existing in node.arguments:
            if existing.name == argument.name:
                raise DuplicateArgumentError(
                    f"Argument '{argument.name}' is already defined on '{' '.join(node.path)}'",
                    location=argument.location,
                    details={"argument": argument.name, "command": list(node.path)},
                )
        node.arguments.append(argument)

    def _link(
        self,
        node: CommandNode,
        member: Member,
        entries: list[AttributeEntry],
        ancestors: frozenset[str],
    ) -> None:
        explicit = [entry.key for entry in entries if entry.location is not None and entry.key not in DIRECTIVE_KEYS]
        if explicit:
            raise AttributeParseError(
                f"Attribute '{explicit[0]}' is not supported on a subcommand field",
                location=lookup(entries, explicit[0]).location,  # type: ignore[union-attr]
            )
        if lookup(entries, "parse") is not None:
            raise AttributeParseError("A subcommand field cannot declare a parser", location=member.location)

        assert member.type is not None
        shape = classify(member.type)
        if shape.cardinality not in {Cardinality.REQUIRED, Cardinality.OPTIONAL} or shape.base.params:
            raise UnsupportedTypeError(
                f"Subcommand field type must be a command set or an optional command set, "
                f"got '{member.type.render()}'",
                location=member.location,
            )
        target = self._target(shape.base)
        if target is None or not target.is_command_set:
            raise UnsupportedTypeError(
                f"Subcommand field '{member.ident}' must refer to a command set, "
                f"'{shape.base.name}' is {'not defined' if target is None else 'an options item'}",
                location=member.location,
            )
        if target.name in ancestors:
            raise CyclicSchemaError(
                f"Subcommand '{target.name}' refers back to itself through '{member.ident}'",
                location=member.location,
                details={"path": sorted(ancestors), "target": target.name},
            )

        link = SubcommandLink(
            target=target.name,
            optional=shape.cardinality is Cardinality.OPTIONAL,
            flatten=_flag(entries, "flatten"),
        )
        nested = ancestors | {target.name}
        if link.flatten:
            for variant in target.members:
                body = self._variant_body(target, variant, nested)
                for field in body.members:
                    try:
                        field_entries = resolve_attributes(
                            field.attributes, field.doc, AttrSource.MEMBER, ident=field.ident
                        )
                        if _flag(field_entries, "subcommand"):
                            continue
                        if field.type is None:
                            raise UnsupportedTypeError(
                                f"Field '{field.ident}' has no declared type", location=field.location
                            )
                        self._add_argument(node, self._argument(field, field_entries))
                    except CompileError as exc:
                        exc.with_context(item=body.owner, member=field.ident)
                        raise
            logger.debug("Flattened %s into %s", target.name, " ".join(node.path))
            return

        target_entries = resolve_attributes(target.attributes, target.doc, AttrSource.ITEM)
        node.group_position = len(node.arguments)
        node.group = self._group(
            node,
            member.ident,
            link,
            target,
            nested,
            attributes=ordered(target_entries, exclude={"name"}),
        )

    def _variant_body(self, command_set: SchemaItem, variant: Member, ancestors: frozenset[str]) -> _Body:
        owner = f"{command_set.name}.{variant.ident}"
        if variant.type is None:
            return _Body(owner, variant.fields, ancestors)
        if variant.fields:
            raise UnsupportedTypeError(
                f"Variant '{variant.ident}' cannot declare both a type and fields", location=variant.location
            )
        target = self._target(variant.type)
        if target is None or target.is_command_set or variant.type.params:
            raise UnsupportedTypeError(
                f"Variant '{variant.ident}' must wrap an options item, got '{variant.type.render()}'",
                location=variant.location,
            )
        if target.name in ancestors:
            raise CyclicSchemaError(
                f"Variant '{variant.ident}' refers back to '{target.name}'",
                location=variant.location,
                details={"path": sorted(ancestors), "target": target.name},
            )
        return _Body(target.name, target.members, ancestors | {target.name})

    def _group(
        self,
        node: CommandNode,
        carrier: str | None,
        link: SubcommandLink,
        command_set: SchemaItem,
        ancestors: frozenset[str],
        *,
        attributes: dict[str, object],
    ) -> SubcommandGroup:
        group = SubcommandGroup(carrier=carrier, link=link, attributes=attributes)
        for variant in command_set.members:
            try:
                entries = resolve_attributes(variant.attributes, variant.doc, AttrSource.ITEM, ident=variant.ident)
                body = self._variant_body(command_set, variant, ancestors)
            except CompileError as exc:
                exc.with_context(item=command_set.name, member=variant.ident)
                raise
            name_entry = lookup(entries, "name")
            name = str(name_entry.value) if name_entry else normalize_identifier(variant.ident)
            for existing in group.commands:
                if existing.name == name:
                    raise DuplicateArgumentError(
                        f"Subcommand '{name}' is already defined on '{' '.join(node.path)}'",
                        item=command_set.name,
                        member=variant.ident,
                        location=variant.location,
                    )
            command = CommandNode(name=name, path=(*node.path, name), attributes=ordered(entries, exclude={"name"}))
            self._populate(command, body)
            logger.debug("Resolved subcommand %s", " ".join(command.path))
            group.commands.append(command)
        return group
