"""Render a generated spec as Python parser-construction code."""

from __future__ import annotations

import keyword
from typing import Any

from argforge.emitter import BuilderCall, CallScope, GeneratedSpec
from argforge.parsers import FunctionRef


def _sanitize_identifier(name: str) -> str:
    value = "".join(ch if ch.isalnum() or ch == "_" else "_" for ch in name.replace("-", "_"))
    if not value:
        value = "root"
    if value[0].isdigit():
        value = f"cmd_{value}"
    if keyword.iskeyword(value):
        value = f"{value}_"
    return value


def _variable(call: BuilderCall) -> str:
    parts = [_sanitize_identifier(part) for part in call.path]
    if call.scope is CallScope.ARG:
        assert call.arg is not None
        return "arg_" + "__".join([*parts, _sanitize_identifier(call.arg)])
    return f"{call.scope.value}_" + "__".join(parts)


class _Imports:
    def __init__(self) -> None:
        self.modules: set[str] = set()
        self.needs_function_ref = False

    def function(self, ref: FunctionRef) -> str:
        if "<" in ref.qualname:
            self.needs_function_ref = True
            return f"FunctionRef.parse({str(ref)!r})"
        if ref.module == "builtins":
            return ref.qualname
        self.modules.add(ref.module)
        return f"{ref.module}.{ref.qualname}"


def _render_value(value: Any, imports: _Imports) -> str:
    if isinstance(value, FunctionRef):
        return imports.function(value)
    if isinstance(value, dict) and "qualname" in value:
        return imports.function(FunctionRef.model_validate(value))
    if isinstance(value, tuple):
        return "[" + ", ".join(_render_value(item, imports) for item in value) + "]"
    return repr(value)


def _statement(call: BuilderCall, variables: dict[tuple[Any, ...], str], imports: _Imports) -> tuple[str, str]:
    """Return (target variable, expression) for one call."""
    key = (call.scope, call.path, call.arg)
    variable = variables.setdefault(key, _variable(call))
    args = ", ".join(_render_value(value, imports) for value in call.args)

    if call.method == "new":
        constructor = {CallScope.APP: "App", CallScope.ARG: "Arg", CallScope.GROUP: "SubcommandGroup"}[call.scope]
        return variable, f"{constructor}({args})"
    if call.scope is CallScope.APP and call.method == "arg":
        return variable, f".arg({variables[(CallScope.ARG, call.path, call.args[0])]})"
    if call.scope is CallScope.APP and call.method == "subcommands":
        return variable, f".subcommands({variables[(CallScope.GROUP, call.path, None)]})"
    if call.scope is CallScope.GROUP and call.method == "subcommand":
        return variable, f".subcommand({variables[(CallScope.APP, (*call.path, call.args[0]), None)]})"
    return variable, f".{call.method}({args})"


def render_python(spec: GeneratedSpec) -> str:
    """Render ``spec`` as a module exposing ``build()`` and ``main()``.

    Consecutive calls on the same builder are folded into one chained
    expression; call order is otherwise preserved.
    """
    imports = _Imports()
    variables: dict[tuple[Any, ...], str] = {}
    blocks: list[tuple[str, bool, list[str]]] = []

    for call in spec.calls:
        variable, expression = _statement(call, variables, imports)
        if expression.startswith("."):
            if blocks and blocks[-1][0] == variable:
                blocks[-1][2].append(expression)
            else:
                blocks.append((variable, False, [expression]))
        else:
            blocks.append((variable, True, [expression]))

    body: list[str] = []
    for variable, creates, parts in blocks:
        if creates and len(parts) == 1:
            body.append(f"    {variable} = {parts[0]}")
            continue
        head = f"    {variable} = (" if creates else "    ("
        body.append(head)
        if creates:
            body.append(f"        {parts[0]}")
            parts = parts[1:]
        else:
            body.append(f"        {variable}")
        body.extend(f"        {part}" for part in parts)
        body.append("    )")

    root = variables.get((CallScope.APP, (spec.root,), None), "app_root")
    lines = [
        f'"""Parser construction for {spec.root or "<unnamed>"}.',
        "",
        f"Generated by argforge from {len(spec.calls)} builder calls.",
        '"""',
        "",
        "from __future__ import annotations",
        "",
    ]
    lines.extend(f"import {module}" for module in sorted(imports.modules))
    if imports.modules:
        lines.append("")
    lines.append("from argforge.builder import App, Arg, SubcommandGroup")
    if imports.needs_function_ref:
        lines.append("from argforge.parsers import FunctionRef")
    lines.extend(["", "", "def build() -> App:"])
    lines.extend(body or ["    pass"])
    lines.append(f"    return {root}")
    lines.extend(
        [
            "",
            "",
            "def main() -> None:",
            "    build().to_click()()",
            "",
            "",
            'if __name__ == "__main__":',
            "    main()",
            "",
        ]
    )
    return "\n".join(lines)
