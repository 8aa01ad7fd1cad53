"""Configuration for argforge: launcher settings and the package environment."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

try:
    import tomllib  # type: ignore[import-not-found]
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found, no-redef]

ENV_PREFIX = "ARGFORGE_"
TRUE_VALUES = frozenset({"true", "1", "yes"})
FALSE_VALUES = frozenset({"false", "0", "no"})


@dataclass(frozen=True)
class PackageEnvironment:
    """Read-only snapshot of the package metadata the compiler may consult.

    ``compile()`` never reads ``os.environ`` itself; callers take a snapshot
    with :meth:`from_environ` (or build one by hand in tests).
    """

    values: Mapping[str, str] = field(default_factory=dict)
    prefix: str = "PKG_"

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None, *, prefix: str = "PKG_") -> PackageEnvironment:
        source = os.environ if environ is None else environ
        return cls(values={key: value for key, value in source.items() if key.startswith(prefix)}, prefix=prefix)

    @property
    def name_var(self) -> str:
        return f"{self.prefix}NAME"

    @property
    def version_var(self) -> str:
        return f"{self.prefix}VERSION"

    @property
    def authors_var(self) -> str:
        return f"{self.prefix}AUTHORS"

    @property
    def description_var(self) -> str:
        return f"{self.prefix}DESCRIPTION"

    def lookup(self) -> Mapping[str, str]:
        """Environment view with the author list rendered comma separated."""
        values = dict(self.values)
        if self.authors_var in values:
            authors = [part.strip() for part in values[self.authors_var].split(":")]
            values[self.authors_var] = ", ".join(part for part in authors if part)
        return values


class ArgforgeConfig:
    """Resolves launcher configuration through the precedence chain.

    Defaults, then ``[tool.argforge]`` in ``pyproject.toml``, then
    ``ARGFORGE_*`` environment variables.
    """

    def __init__(self, project_dir: Path | None = None, environ: Mapping[str, str] | None = None) -> None:
        self.project_dir = project_dir or Path.cwd()
        self._environ = os.environ if environ is None else environ
        self._config: dict[str, Any] = {}
        self._load_defaults()
        self._load_project_config()
        self._load_env_vars()

    def _load_defaults(self) -> None:
        self._config = {
            "format": "json",
            "log_level": "WARNING",
            "env_prefix": "PKG_",
        }

    def _load_project_config(self) -> None:
        """Load from pyproject.toml [tool.argforge]"""
        path = self.project_dir / "pyproject.toml"
        if not path.exists():
            return
        with open(path, "rb") as f:
            data = tomllib.load(f)
        self._config.update(data.get("tool", {}).get("argforge", {}))

    def _load_env_vars(self) -> None:
        """Load from ARGFORGE_* environment variables.

        Keys whose default is a string keep the raw text, so ``ARGFORGE_ENV_PREFIX=1``
        stays ``"1"``. Other keys accept the usual boolean spellings.
        """
        for key, value in self._environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            config_key = key.removeprefix(ENV_PREFIX).lower()
            if isinstance(self._config.get(config_key), str):
                self._config[config_key] = value
            elif value.lower() in TRUE_VALUES:
                self._config[config_key] = True
            elif value.lower() in FALSE_VALUES:
                self._config[config_key] = False
            else:
                self._config[config_key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def package_environment(self) -> PackageEnvironment:
        return PackageEnvironment.from_environ(self._environ, prefix=str(self.get("env_prefix", "PKG_")))
