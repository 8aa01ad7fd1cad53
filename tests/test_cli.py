"""Tests for the argforge launcher."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from argforge.cli import cli
from argforge.schema import Schema


def _write_schema(tmp_path, schema: Schema, name: str = "schema.json"):
    path = tmp_path / name
    path.write_text(schema.model_dump_json(), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path) -> None:
    monkeypatch.chdir(tmp_path)
    for key in ("PKG_NAME", "PKG_VERSION", "PKG_AUTHORS", "PKG_DESCRIPTION", "ARGFORGE_FORMAT"):
        monkeypatch.delenv(key, raising=False)


def test_compile_json_schema_prints_calls(runner: CliRunner, tmp_path, basic_schema: Schema) -> None:
    path = _write_schema(tmp_path, basic_schema)

    result = runner.invoke(cli, ["compile", str(path)], prog_name="argforge")

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["root"] == "basic"
    assert payload["calls"][0] == {"scope": "app", "path": ["basic"], "method": "new", "args": ["basic"], "arg": None}
    parser = next(call for call in payload["calls"] if call["method"] == "parser")
    assert parser["args"] == ["try_from_str", {"module": "builtins", "qualname": "float"}]


def test_compile_calls_and_python_formats(runner: CliRunner, tmp_path, basic_schema: Schema) -> None:
    path = _write_schema(tmp_path, basic_schema)

    calls = runner.invoke(cli, ["compile", str(path), "--format", "calls"], prog_name="argforge")
    assert calls.exit_code == 0
    assert calls.output.splitlines()[0] == "app   basic: new('basic')"

    output = tmp_path / "basic_parser.py"
    python = runner.invoke(cli, ["compile", str(path), "--format", "python", "-o", str(output)], prog_name="argforge")
    assert python.exit_code == 0
    assert "def build() -> App:" in output.read_text(encoding="utf-8")


def test_compile_uses_package_environment(runner: CliRunner, tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("PKG_NAME", "from-env")
    monkeypatch.setenv("PKG_VERSION", "3.2.1")
    path = _write_schema(tmp_path, Schema.model_validate({"root": "Opt", "items": [{"name": "Opt"}]}))

    result = runner.invoke(cli, ["compile", str(path)], prog_name="argforge")
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["root"] == "from-env"
    assert payload["calls"][1]["args"] == ["3.2.1"]


def test_compile_default_format_comes_from_pyproject(runner: CliRunner, tmp_path, basic_schema: Schema) -> None:
    (tmp_path / "pyproject.toml").write_text('[tool.argforge]\nformat = "calls"\n', encoding="utf-8")
    path = _write_schema(tmp_path, basic_schema)

    result = runner.invoke(cli, ["compile", str(path)], prog_name="argforge")
    assert result.exit_code == 0
    assert result.output.startswith("app   basic: new('basic')")


def test_compile_python_module_with_class_selector(runner: CliRunner, tmp_path) -> None:
    module_path = tmp_path / "cookie_cli.py"
    module_path.write_text(
        '''
from typing import Annotated

from argforge.derive import Arg, command


@command(name="cookie")
class Cookie:
    """Bake one cookie."""

    debug: Annotated[bool, Arg(short=True)]


@command(name="other")
class Other:
    quiet: bool
''',
        encoding="utf-8",
    )

    ambiguous = runner.invoke(cli, ["compile", str(module_path)], prog_name="argforge")
    assert ambiguous.exit_code == 20
    assert "multiple command classes" in ambiguous.output

    result = runner.invoke(cli, ["compile", f"{module_path}:Cookie", "--format", "calls"], prog_name="argforge")
    assert result.exit_code == 0, result.output
    assert "app   cookie: new('cookie')" in result.output
    assert "arg   cookie <debug>: short('d')" in result.output


def test_missing_source_exits_20(runner: CliRunner, tmp_path) -> None:
    result = runner.invoke(cli, ["compile", str(tmp_path / "missing.json")], prog_name="argforge")
    assert result.exit_code == 20
    assert "Schema file not found" in result.output


def test_invalid_schema_exits_2(runner: CliRunner, tmp_path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"root": "Nope", "items": [{"name": "Opt"}]}), encoding="utf-8")

    result = runner.invoke(cli, ["compile", str(path)], prog_name="argforge")
    assert result.exit_code == 2
    assert "Invalid schema" in result.output


def test_compile_error_exits_65_with_structured_error(runner: CliRunner, tmp_path) -> None:
    schema = Schema.model_validate(
        {
            "root": "Opt",
            "items": [
                {
                    "name": "Opt",
                    "members": [
                        {"ident": "path", "type": "Path", "attributes": ["parse(from_os_str)"]},
                    ],
                }
            ],
        }
    )
    path = _write_schema(tmp_path, schema)

    result = runner.invoke(cli, ["compile", str(path)], prog_name="argforge")
    assert result.exit_code == 65
    assert '"code": "E1003"' in result.output
    assert '"member": "path"' in result.output


def test_unknown_format_is_rejected(runner: CliRunner, tmp_path, basic_schema: Schema) -> None:
    path = _write_schema(tmp_path, basic_schema)
    result = runner.invoke(cli, ["compile", str(path), "--format", "yaml"], prog_name="argforge")
    assert result.exit_code == 2
    assert "yaml" in result.output


def test_unknown_configured_format_is_rejected(runner: CliRunner, tmp_path, basic_schema: Schema) -> None:
    (tmp_path / "pyproject.toml").write_text('[tool.argforge]\nformat = "yaml"\n', encoding="utf-8")
    path = _write_schema(tmp_path, basic_schema)

    result = runner.invoke(cli, ["compile", str(path)], prog_name="argforge")
    assert result.exit_code == 2
    assert "Configured format" in result.output


def test_check_reports_summary_and_errors(runner: CliRunner, tmp_path, basic_schema: Schema) -> None:
    ok = runner.invoke(cli, ["check", str(_write_schema(tmp_path, basic_schema))], prog_name="argforge")
    assert ok.exit_code == 0
    assert ok.output.startswith("ok: basic (1 command(s), ")

    broken = Schema.model_validate(
        {
            "root": "Opt",
            "items": [{"name": "Opt", "members": [{"ident": "flag", "type": "dict[str, int]"}]}],
        }
    )
    failed = runner.invoke(cli, ["check", str(_write_schema(tmp_path, broken, "broken.json"))], prog_name="argforge")
    assert failed.exit_code == 65
    assert "error[E1002]" in failed.output


def test_module_that_fails_on_import_exits_70(runner: CliRunner, tmp_path) -> None:
    module_path = tmp_path / "exploding_cli.py"
    module_path.write_text('raise ValueError("boom")\n', encoding="utf-8")

    result = runner.invoke(cli, ["check", str(module_path)], prog_name="argforge")
    assert result.exit_code == 70
    assert "Internal error: ValueError: boom" in result.output


def test_missing_module_and_missing_dependency_are_distinguished(runner: CliRunner, tmp_path, monkeypatch) -> None:
    monkeypatch.syspath_prepend(str(tmp_path))
    (tmp_path / "needs_dependency_cli.py").write_text("import argforge_absent_dependency\n", encoding="utf-8")

    missing_file = runner.invoke(cli, ["check", str(tmp_path / "absent_cli.py")], prog_name="argforge")
    assert missing_file.exit_code == 20
    assert "Schema module not found" in missing_file.output

    missing_module = runner.invoke(cli, ["check", "absent_cli_module"], prog_name="argforge")
    assert missing_module.exit_code == 20
    assert "Could not import module 'absent_cli_module'" in missing_module.output

    broken = runner.invoke(cli, ["check", "needs_dependency_cli"], prog_name="argforge")
    assert broken.exit_code == 70
    assert "No module named 'argforge_absent_dependency'" in broken.output
