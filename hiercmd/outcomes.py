"""
Tri-state result of parsing or selecting at one command level.

- Success(value): continue with the parsed Arguments or the resolved Selection.
- HelpRequested: usage text was printed to stdout; the caller returns success
  without running any handler logic.
- Fatal(fault): a user-facing fault; the caller reports it (usage text plus
  "ERROR: <message>" on stderr) and the process exits with status 1.

Callers branch with ordinary conditionals or a match statement:

    match level.parse():
        case Success(arguments):
            ...
        case HelpRequested():
            return
        case Fatal(fault):
            trigger(fault, usage=level.gen_usage())
"""
from typing import NamedTuple

from .faults import CommandException


class Success(NamedTuple):
    value: object


class HelpRequested(NamedTuple):
    pass


class Fatal(NamedTuple):
    fault: CommandException

    @property
    def message(self):
        return self.fault.message


__all__ = (
    "Success",
    "HelpRequested",
    "Fatal",
)
