"""Tests for the bundled example apps."""

from __future__ import annotations

from pathlib import Path

import pytest

from argforge.compiler import compile as compile_schema
from argforge.config import PackageEnvironment
from argforge.derive import schema_of
from argforge.testing import SpecTestClient
from examples.git.app import Git
from examples.make_cookie.app import Flavor, MakeCookie, parse_grams


@pytest.fixture
def cookie() -> SpecTestClient:
    return SpecTestClient(compile_schema(schema_of(MakeCookie), PackageEnvironment()))


@pytest.fixture
def git() -> SpecTestClient:
    return SpecTestClient(compile_schema(schema_of(Git), PackageEnvironment()))


def test_parse_grams() -> None:
    assert parse_grams("250g") == 250
    assert parse_grams("0.5kg") == 500
    with pytest.raises(ValueError, match="must be positive"):
        parse_grams("0")


def test_make_cookie_subcommands(cookie: SpecTestClient) -> None:
    cookie.assert_exit_code(cookie.invoke(["-vv", "sparkle", "--sugar", "0.5kg"]), 0)
    assert cookie.values() == {"verbose": 2, "supervisor": None}
    assert cookie.values("sparkle") == {"color": Flavor.GINGER, "sugar": 500}

    cookie.assert_exit_code(cookie.invoke(["done", "-t", "5", "nuts", "chips"]), 0)
    assert cookie.values("finish") == {"time": 5, "toppings": ("nuts", "chips")}


def test_make_cookie_without_step(cookie: SpecTestClient) -> None:
    cookie.assert_exit_code(cookie.invoke(["--supervisor", "Ada"]), 0)
    assert cookie.values() == {"verbose": 0, "supervisor": "Ada"}


def test_make_cookie_rejects_bad_weight(cookie: SpecTestClient) -> None:
    result = cookie.invoke(["sparkle", "--sugar", "-5"])
    cookie.assert_exit_code(result, 2)
    assert "weight must be positive" in result.output


def test_git_flattened_and_nested_commands(git: SpecTestClient) -> None:
    git.assert_exit_code(git.invoke(["pull", "--depth", "3", "-q", "origin"]), 0)
    assert git.values("pull") == {"dry_run": False, "depth": 3, "quiet": True, "repository": "origin"}

    git.assert_exit_code(git.invoke(["add", "a.txt"]), 0)
    assert git.values("stage") == {"interactive": False, "paths": (Path("a.txt"),)}

    git.assert_exit_code(git.invoke(["remote", "-v", "rm", "origin"]), 0)
    assert git.values("remote") == {"verbose": True}
    assert git.values("remote", "remove") == {"name": "origin"}


def test_git_requires_a_command(git: SpecTestClient) -> None:
    version = git.invoke(["--version"])
    git.assert_exit_code(version, 0)
    assert "git, version 2.44.0" in version.output

    git.assert_exit_code(git.invoke(["record"]), 2)
