"""Test utilities for generated parser specifications."""

from __future__ import annotations

from typing import Any

from click.testing import CliRunner, Result

from argforge.builder import to_click
from argforge.emitter import GeneratedSpec  # noqa: TC001


class SpecTestClient:
    """Replays a spec onto click and records which commands ran with what."""

    def __init__(self, spec: GeneratedSpec) -> None:
        self.spec = spec
        self.runner = CliRunner()
        self.calls: list[tuple[tuple[str, ...], dict[str, Any]]] = []
        self.command = to_click(spec, self._record)

    def _record(self, path: tuple[str, ...], values: dict[str, Any]) -> None:
        self.calls.append((path, values))

    def invoke(self, args: list[str], **kwargs: Any) -> Result:
        self.calls = []
        return self.runner.invoke(self.command, args, prog_name=self.spec.root or "app", **kwargs)

    def values(self, *path: str) -> dict[str, Any]:
        """Values recorded for the command at ``path`` (root when empty)."""
        wanted = (self.spec.root, *path)
        for recorded, values in self.calls:
            if recorded == wanted:
                return values
        raise AssertionError(f"Command {' '.join(wanted)!r} did not run. Recorded: {[p for p, _ in self.calls]}")

    def assert_exit_code(self, result: Result, expected_code: int) -> None:
        """Verify exit code."""
        assert result.exit_code == expected_code, (
            f"Expected exit code {expected_code}, got {result.exit_code}. Output: {result.output}"
        )
