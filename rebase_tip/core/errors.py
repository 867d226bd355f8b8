"""Process exit codes.

The values are part of the command-line contract and must stay stable:
- 0: Success
- 1: Fatal error (bad arguments, missing dependency, conflict left for the operator)
- 2: Unexpected internal exit (safety net for uncaught exceptions)
- 3: Operator interrupt (Ctrl-C)
"""

from enum import IntEnum

__all__ = ["ExitCode"]


class ExitCode(IntEnum):
    """Exit codes for both entry points."""

    OK = 0
    FATAL = 1
    INTERNAL = 2
    INTERRUPTED = 3

    def __str__(self) -> str:
        return self.name.lower()
