"""Shared test fixtures for argforge tests."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from argforge.config import PackageEnvironment
from argforge.schema import Schema


@pytest.fixture
def runner() -> CliRunner:
    """Provide a CLI test runner."""
    return CliRunner()


@pytest.fixture
def env() -> PackageEnvironment:
    """Empty package environment, so compilation never sees the real one."""
    return PackageEnvironment()


@pytest.fixture
def basic_schema() -> Schema:
    """``basic`` options bag: a ``-d`` flag and a ``-s`` float defaulting to 42."""
    return Schema.model_validate(
        {
            "root": "Opt",
            "items": [
                {
                    "name": "Opt",
                    "attributes": ['name = "basic"'],
                    "doc": ["/// A basic example"],
                    "members": [
                        {
                            "ident": "debug",
                            "type": "bool",
                            "attributes": ['short = "d"'],
                            "doc": ["/// Activate debug mode"],
                        },
                        {
                            "ident": "speed",
                            "type": "float",
                            "attributes": ['short = "s", long = "speed", default_value = "42"'],
                            "doc": ["/// Set speed"],
                        },
                    ],
                }
            ],
        }
    )
