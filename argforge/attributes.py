"""Attribute parsing and multi-source attribute resolution.

Raw attribute text looks like the body of an ``arg(...)`` annotation::

    short = "d", long = "debug", parse(try_from_str = "mypkg.hex:parse_hex")

Each item is a ``key = literal`` pair, a bare ``key`` (the boolean ``true``),
or a nested ``key(...)`` list. Doc-comment text is folded in front of the
explicit entries as ``about`` (item level) or ``help`` (member level), so an
explicit entry with the same key takes precedence on lookup.
"""

from __future__ import annotations

import ast
import re
from collections.abc import Mapping, Sequence  # noqa: TC003
from dataclasses import dataclass
from enum import Enum
from typing import Any

from argforge.errors import AttributeParseError
from argforge.schema import RawAttribute, SourceLocation


class AttrSource(str, Enum):
    ITEM = "item"
    MEMBER = "member"


@dataclass(frozen=True)
class AttributeEntry:
    """One resolved ``(key, literal value)`` pair.

    Nested lists such as ``parse(...)`` hold a tuple of entries as value.
    """

    key: str
    value: Any
    location: SourceLocation | None = None


_BARE = object()
_LIST = object()

# Setter vocabulary accepted per source. ``_BARE`` marks keys that may also be
# written without a value.
ITEM_KEYS: dict[str, tuple[Any, ...]] = {
    "name": (str,),
    "version": (str,),
    "author": (str,),
    "about": (str,),
    "long_about": (str,),
    "after_help": (str,),
    "aliases": (_LIST,),
    "hidden": (bool, _BARE),
}

MEMBER_KEYS: dict[str, tuple[Any, ...]] = {
    "name": (str,),
    "short": (str, _BARE),
    "long": (str, _BARE),
    "help": (str,),
    "long_help": (str,),
    "default_value": (str, int),
    "possible_values": (_LIST,),
    "aliases": (_LIST,),
    "value_name": (str,),
    "env": (str,),
    "hidden": (bool, _BARE),
    "required": (bool,),
    "parse": (tuple,),
    "subcommand": (bool, _BARE),
    "flatten": (bool, _BARE),
}

DIRECTIVE_KEYS = frozenset({"parse", "subcommand", "flatten"})

_DOC_MARKERS = ("///", "//!", "/**", "/*!", "*/", "#:", "#")

_TOKEN = re.compile(
    r"""\s*(?:
        (?P<ident>[A-Za-z_]\w*)
      | (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
      | (?P<int>-?\d+)
      | (?P<punct>[=,()\[\]])
      | (?P<error>\S)
    )""",
    re.VERBOSE,
)


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    offset: int


def _tokenize(raw: RawAttribute) -> list[_Token]:
    tokens: list[_Token] = []
    position = 0
    text = raw.text
    while position < len(text):
        match = _TOKEN.match(text, position)
        if match is None:
            break
        kind = match.lastgroup or "error"
        value = match.group(kind)
        if kind == "error":
            raise AttributeParseError(
                f"Unexpected character {value!r} in attribute",
                location=raw.location.shifted(match.start(kind)),
            )
        tokens.append(_Token(kind, value, match.start(kind)))
        position = match.end()
    return tokens


class _AttributeParser:
    """Recursive-descent parser over the tokens of one raw attribute."""

    def __init__(self, raw: RawAttribute) -> None:
        self.raw = raw
        self.tokens = _tokenize(raw)
        self.index = 0

    def _location(self, token: _Token | None = None) -> SourceLocation:
        if token is None:
            return self.raw.location.shifted(len(self.raw.text))
        return self.raw.location.shifted(token.offset)

    def _peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _next(self, expected: str) -> _Token:
        token = self._peek()
        if token is None:
            raise AttributeParseError(f"Expected {expected}, found end of attribute", location=self._location())
        self.index += 1
        return token

    def _expect_punct(self, char: str) -> None:
        token = self._next(repr(char))
        if token.kind != "punct" or token.text != char:
            raise AttributeParseError(f"Expected {char!r}, found {token.text!r}", location=self._location(token))

    def parse(self) -> list[AttributeEntry]:
        entries = self._items(closing=None)
        trailing = self._peek()
        if trailing is not None:
            raise AttributeParseError(f"Unexpected {trailing.text!r}", location=self._location(trailing))
        return entries

    def _items(self, closing: str | None) -> list[AttributeEntry]:
        entries: list[AttributeEntry] = []
        while True:
            token = self._peek()
            if token is None or (token.kind == "punct" and token.text == closing):
                return entries
            entries.append(self._item())
            token = self._peek()
            if token is None or (token.kind == "punct" and token.text == closing):
                return entries
            self._expect_punct(",")

    def _item(self) -> AttributeEntry:
        token = self._next("an attribute name")
        if token.kind != "ident":
            raise AttributeParseError(f"Expected an attribute name, found {token.text!r}", location=self._location(token))
        location = self._location(token)
        following = self._peek()
        if following is not None and following.kind == "punct" and following.text == "=":
            self.index += 1
            return AttributeEntry(token.text, self._literal(), location)
        if following is not None and following.kind == "punct" and following.text == "(":
            self.index += 1
            nested = self._items(closing=")")
            self._expect_punct(")")
            return AttributeEntry(token.text, tuple(nested), location)
        return AttributeEntry(token.text, _BARE, location)

    def _literal(self) -> Any:
        token = self._next("a literal value")
        if token.kind == "string":
            try:
                return ast.literal_eval(token.text)
            except (SyntaxError, ValueError):
                raise AttributeParseError(
                    f"Malformed string literal {token.text}",
                    location=self._location(token),
                ) from None
        if token.kind == "int":
            return int(token.text)
        if token.kind == "ident" and token.text in {"true", "false"}:
            return token.text == "true"
        if token.kind == "punct" and token.text == "[":
            values: list[Any] = []
            while True:
                following = self._peek()
                if following is not None and following.kind == "punct" and following.text == "]":
                    self.index += 1
                    return tuple(values)
                values.append(self._literal())
                following = self._peek()
                if following is None or following.kind != "punct" or following.text != "]":
                    self._expect_punct(",")
        raise AttributeParseError(f"Expected a literal value, found {token.text!r}", location=self._location(token))


def parse_attribute(raw: RawAttribute) -> list[AttributeEntry]:
    """Parse one raw attribute into entries, without vocabulary checks."""
    return _AttributeParser(raw).parse()


def _kebab(ident: str) -> str:
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "-", ident.strip("_"))
    return spaced.replace("_", "-").lower()


def normalize_identifier(ident: str) -> str:
    """``DryRun`` / ``dry_run`` -> ``dry-run``."""
    return _kebab(ident)


def _check_entry(entry: AttributeEntry, source: AttrSource, ident: str | None) -> AttributeEntry:
    vocabulary = ITEM_KEYS if source is AttrSource.ITEM else MEMBER_KEYS
    allowed = vocabulary.get(entry.key)
    if allowed is None:
        raise AttributeParseError(f"Unknown {source.value}-level attribute '{entry.key}'", location=entry.location)

    value = entry.value
    if value is _BARE:
        if _BARE not in allowed:
            raise AttributeParseError(f"Attribute '{entry.key}' requires a value", location=entry.location)
        if entry.key == "short":
            if not ident:
                raise AttributeParseError("Bare 'short' needs a member identifier", location=entry.location)
            value = ident.lstrip("_")[:1]
        elif entry.key == "long":
            if not ident:
                raise AttributeParseError("Bare 'long' needs a member identifier", location=entry.location)
            value = _kebab(ident)
        else:
            value = True
    elif isinstance(value, tuple) and tuple in allowed:
        if len(value) != 1 or not isinstance(value[0], AttributeEntry):
            raise AttributeParseError(f"Attribute '{entry.key}(...)' takes exactly one entry", location=entry.location)
        nested = value[0]
        if nested.value is not _BARE and not isinstance(nested.value, str):
            raise AttributeParseError(
                f"'{entry.key}({nested.key} = ...)' expects a function name string", location=nested.location
            )
        value = (AttributeEntry(nested.key, None if nested.value is _BARE else nested.value, nested.location),)
    elif _LIST in allowed:
        if not isinstance(value, tuple) or not all(isinstance(item, str) for item in value):
            raise AttributeParseError(f"Attribute '{entry.key}' expects a list of strings", location=entry.location)
    elif isinstance(value, bool):
        if bool not in allowed:
            raise AttributeParseError(f"Attribute '{entry.key}' does not take a boolean", location=entry.location)
    elif isinstance(value, int):
        if int not in allowed:
            raise AttributeParseError(f"Attribute '{entry.key}' does not take an integer", location=entry.location)
        value = str(value)
    elif isinstance(value, str):
        if str not in allowed:
            raise AttributeParseError(f"Attribute '{entry.key}' does not take a string", location=entry.location)
        if entry.key == "short" and len(value) != 1:
            raise AttributeParseError("Attribute 'short' must be a single character", location=entry.location)
    else:
        raise AttributeParseError(f"Attribute '{entry.key}' has an unsupported value", location=entry.location)
    return AttributeEntry(entry.key, value, entry.location)


def doc_text(lines: Sequence[str]) -> str:
    """Join doc-comment lines with single spaces, comment markers stripped."""
    parts: list[str] = []
    for line in lines:
        text = line.strip()
        for marker in _DOC_MARKERS:
            if text.startswith(marker):
                text = text[len(marker):]
                break
        if text.endswith("*/"):
            text = text[:-2]
        text = text.strip()
        if text:
            parts.append(text)
    return " ".join(parts)


def resolve_attributes(
    raw: Sequence[RawAttribute],
    doc: Sequence[str],
    source: AttrSource,
    *,
    ident: str | None = None,
) -> list[AttributeEntry]:
    """Build the ordered entry list for one item or member.

    The doc-derived ``about``/``help`` entry comes first, explicit entries
    follow in declaration order.
    """
    entries: list[AttributeEntry] = []
    text = doc_text(doc)
    if text:
        entries.append(AttributeEntry("about" if source is AttrSource.ITEM else "help", text))
    for attribute in raw:
        for entry in parse_attribute(attribute):
            entries.append(_check_entry(entry, source, ident))
    return entries


def lookup(entries: Sequence[AttributeEntry], key: str) -> AttributeEntry | None:
    """Return the last entry for ``key`` (last write wins)."""
    found: AttributeEntry | None = None
    for entry in entries:
        if entry.key == key:
            found = entry
    return found


def ordered(entries: Sequence[AttributeEntry], *, exclude: frozenset[str] | set[str] = frozenset()) -> dict[str, Any]:
    """Ordered-map view: first position of each key, last value wins."""
    result: dict[str, Any] = {}
    for entry in entries:
        if entry.key in exclude:
            continue
        result[entry.key] = entry.value
    return result


def attribute_or_environment(
    entries: Sequence[AttributeEntry],
    key: str,
    env_var: str,
    environ: Mapping[str, str],
) -> str:
    """Explicit or doc-derived value, then the environment, then ``""``."""
    entry = lookup(entries, key)
    if entry is not None:
        return str(entry.value)
    return environ.get(env_var, "")
