"""Central exit-code taxonomy for the argforge launcher."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes used by ``argforge`` commands."""

    SUCCESS = 0
    INVALID_INPUT = 2
    INPUT_MISSING = 20
    COMPILE_ERROR = 65
    INTERNAL_ERROR = 70
