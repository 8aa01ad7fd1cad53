"""Cookie baking example app.

Showcases: counters, optional subcommands, attribute docstrings as help,
enum-backed possible values and a custom fallible parser.

Compile it with ``argforge compile examples/make_cookie/app.py --format calls``
or run it directly.
"""

from __future__ import annotations

import enum
import sys
from typing import Annotated, Any, Optional

from argforge.builder import to_click
from argforge.compiler import compile as compile_schema
from argforge.config import PackageEnvironment
from argforge.derive import Arg, Commands, Count, command, parse, schema_of


class Flavor(enum.Enum):
    CHOCOLATE = "chocolate"
    OATMEAL = "oatmeal"
    GINGER = "ginger"


def parse_grams(text: str) -> int:
    """``250g`` / ``0.5kg`` -> grams."""
    value = text.strip().lower()
    if value.endswith("kg"):
        grams = int(float(value[:-2]) * 1000)
    else:
        grams = int(value.removesuffix("g"))
    if grams <= 0:
        raise ValueError(f"weight must be positive, got {text!r}")
    return grams


@command(name="make-cookie", author="The Bakers")
class MakeCookie:
    """Bake cookies from scratch."""

    verbose: Annotated[Count, Arg(short=True, long=True)]
    """Print more progress output (repeatable)."""

    supervisor: Annotated[Optional[str], Arg(short="s", long=True, env="COOKIE_SUPERVISOR")]
    """Who checks the oven."""

    cmd: Annotated[Optional[Step], Arg(subcommand=True)]


class Step(Commands):
    """Individual baking steps."""

    class Pound:
        """Pound acorns into flour for cookie dough."""

        acorns: int

    class Sparkle:
        """Add magical sparkles."""

        color: Annotated[Flavor, Arg(short=True, long=True, default_value="ginger")]
        sugar: Annotated[int, Arg(long=True, default_value="100", parse=parse("try_from_str", parse_grams))]
        """Sugar to sprinkle, e.g. 250g or 0.5kg."""

    @command(aliases=["done"])
    class Finish:
        """Take the cookies out."""

        time: Annotated[int, Arg(short=True, long=True, default_value=10)]
        toppings: list[str]


def run(path: tuple[str, ...], values: dict[str, Any]) -> None:
    print(f"{' '.join(path)}: {values}")


def main(argv: list[str] | None = None) -> None:
    spec = compile_schema(schema_of(MakeCookie), PackageEnvironment.from_environ())
    to_click(spec, run)(args=argv if argv is not None else sys.argv[1:], prog_name=spec.root)


if __name__ == "__main__":
    main()
