"""Git-style example app.

Showcases: a command set as the root item, explicit subcommand names and
aliases, nested subcommands and a flattened shared option group.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated, Any, Optional

from argforge.builder import to_click
from argforge.compiler import compile as compile_schema
from argforge.config import PackageEnvironment
from argforge.derive import Arg, Commands, command, schema_of


@command(name="git", version="2.44.0")
class Git(Commands):
    """The stupid content tracker."""

    @command(name="stage", aliases=["add"])
    class Add:
        """Add file contents to the index."""

        interactive: Annotated[bool, Arg(short=True, long=True)]
        paths: list[Path]

    @command(name="pull")
    class Fetch:
        """Download objects and refs from another repository."""

        dry_run: Annotated[bool, Arg(long=True)]
        shared: Annotated[Common, Arg(subcommand=True, flatten=True)]
        repository: Optional[str]

    @command(name="record")
    class Commit:
        """Record changes to the repository."""

        message: Annotated[str, Arg(short=True, long=True)]
        amend: Annotated[bool, Arg(long=True)]

    class Remote:
        """Manage tracked repositories."""

        verbose: Annotated[bool, Arg(short=True, long=True)]
        action: Annotated[Optional[RemoteAction], Arg(subcommand=True)]


class RemoteAction(Commands):
    class Add:
        """Add a remote."""

        name: str
        url: str

    @command(aliases=["rm"])
    class Remove:
        """Remove a remote."""

        name: str


class Common(Commands):
    """Options shared by network commands."""

    class Network:
        depth: Annotated[Optional[int], Arg(long=True)]
        quiet: Annotated[bool, Arg(short=True, long=True)]


def run(path: tuple[str, ...], values: dict[str, Any]) -> None:
    print(f"{' '.join(path)}: {values}")


def main(argv: list[str] | None = None) -> None:
    spec = compile_schema(schema_of(Git), PackageEnvironment.from_environ())
    to_click(spec, run)(args=argv if argv is not None else sys.argv[1:], prog_name=spec.root)


if __name__ == "__main__":
    main()
