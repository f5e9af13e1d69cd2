"""
hiercmd faults (user-facing errors, internal errors) and reporting.

Scope
- FaultCode: stable numeric identifiers for every fault, grouped by domain so
  logs stay searchable.
- CommandException: base type for user-facing faults. Each carries a one-line
  message plus options (usage text, shell mode) and knows how to report itself:
  usage text followed by "ERROR: <message>" on stderr, then exit status 1.
- ConfigurationError / SchemaViolationError: programmer mistakes in the way a
  command tree or a table was built. They are ordinary exceptions and propagate
  to the process entry point.
- trigger(): central entry point to surface a user-facing fault.

Integration
- Levels never raise user-facing faults directly: parse()/select() return a
  Fatal outcome wrapping the fault, and the args()/sel()/no_args() helpers call
  trigger(fault, usage=..., shell=...).
- With shell=False the fault is raised instead of printed, which lets a host
  application (or a test) handle it.
"""
import logging
import sys
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console

from .utils import Unset, coalesce

log = logging.getLogger(__name__)

console = Console(stderr=True, highlight=False)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - configuration (101xx): DUPLICATE_COMMAND, NO_COMMANDS, CONSUMED_LEVEL,
      UNDECLARED_OPTION, DUPLICATE_OPTION
    - routing (111xx): UNRESOLVED_COMMAND, NO_COMMAND_CHOSEN
    - options (112xx): ARGUMENT_SYNTAX, MISSING_REQUIRED_OPTION, MUTUALLY_EXCLUSIVE
    - positionals (113xx): UNEXPECTED_ARGUMENTS, BAD_ARGUMENTS
    - columns (114xx): INVALID_COLUMN
    - table schema (131xx): HETEROGENEOUS_COLUMN, MISSING_VALUE
    """
    # --- configuration errors (10xxx) ---
    DUPLICATE_COMMAND       = 10101
    NO_COMMANDS             = 10102
    CONSUMED_LEVEL          = 10103
    UNDECLARED_OPTION       = 10104
    DUPLICATE_OPTION        = 10105

    # --- routing errors (11xxx) ---
    UNRESOLVED_COMMAND      = 11101
    NO_COMMAND_CHOSEN       = 11102

    # --- option errors (11xxx) ---
    ARGUMENT_SYNTAX         = 11201
    MISSING_REQUIRED_OPTION = 11202
    MUTUALLY_EXCLUSIVE      = 11203

    # --- positional errors (11xxx) ---
    UNEXPECTED_ARGUMENTS    = 11301
    BAD_ARGUMENTS           = 11302

    # --- column errors (11xxx) ---
    INVALID_COLUMN          = 11401

    # --- table schema errors (13xxx) ---
    HETEROGENEOUS_COLUMN    = 13101
    MISSING_VALUE           = 13102

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels.
        """
        return str(getattr(sys.modules.get("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    """
    User-facing fault: bad input on the command line.

    Options recognised when reporting
    - usage: usage text of the level the fault belongs to (printed first).
    - shell: when True (default) print and exit with status 1; otherwise raise.
    """
    code = FaultCode.BAD_ARGUMENTS

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = coalesce(message, "")
        self.options = MappingProxyType(options)
        super().__init__(self.message)

    def __str__(self):
        return self.message

    def __trigger__(self):
        log.info("fault %s: %s", self.code.normalize(), self.message)
        if not self.options.get("shell", True):
            raise self
        if usage := self.options.get("usage"):
            console.out(usage, end="")
        console.out("ERROR: %s" % self.message)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ArgumentSyntaxError(CommandException):
    code = FaultCode.ARGUMENT_SYNTAX


class MissingRequiredOptionError(CommandException):
    code = FaultCode.MISSING_REQUIRED_OPTION


class MutuallyExclusiveError(CommandException):
    code = FaultCode.MUTUALLY_EXCLUSIVE


class UnresolvedCommandError(CommandException):
    code = FaultCode.UNRESOLVED_COMMAND


class NoCommandChosenError(CommandException):
    code = FaultCode.NO_COMMAND_CHOSEN


class InvalidColumnError(CommandException):
    code = FaultCode.INVALID_COLUMN


class UnexpectedArgumentsError(CommandException):
    code = FaultCode.UNEXPECTED_ARGUMENTS


class BadArgumentsError(CommandException):
    code = FaultCode.BAD_ARGUMENTS


class ConfigurationError(Exception):
    """
    The command tree was built incorrectly (a bug in the consumer, not bad input).
    """
    code = FaultCode.NO_COMMANDS

    def __init__(self, message, /, code=Unset):
        super().__init__(message)
        self.code = coalesce(code, type(self).code)


class DuplicateCommandError(ConfigurationError):
    code = FaultCode.DUPLICATE_COMMAND


class SchemaViolationError(Exception):
    """
    A row does not honour the table schema: a referenced value is missing, or
    one column holds values of different kinds.
    """
    code = FaultCode.MISSING_VALUE

    def __init__(self, message, /, code=Unset):
        super().__init__(message)
        self.code = coalesce(code, type(self).code)


def trigger(fault, /, **options):
    """
    surface a user-facing fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode the fault is printed and the process exits; otherwise it is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "FaultCode",
    "CommandException",
    "ArgumentSyntaxError",
    "MissingRequiredOptionError",
    "MutuallyExclusiveError",
    "UnresolvedCommandError",
    "NoCommandChosenError",
    "InvalidColumnError",
    "UnexpectedArgumentsError",
    "BadArgumentsError",
    "ConfigurationError",
    "DuplicateCommandError",
    "SchemaViolationError",
    "trigger",
)
