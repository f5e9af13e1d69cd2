"""
hiercmd command levels: build, parse, resolve and delegate.

What this module provides
- Level: one node of the command tree, bound to a slice of the argument vector.
  It owns an OptionSchema, the registered child commands, an optional table
  schema, a usage-args hint and a caller-supplied context value.
- Selection: a resolved (level, chosen command, remaining arguments) binding.
  Selection.run() builds the child Level and awaits the chosen handler.
- Arguments: the parsed options and positional arguments of a leaf level, plus
  the configured table builder when the level declared columns.
- args() / sel() / no_args() / bad_args(): unwrap the tri-state outcome of
  parse()/select(). They return the value, return None when help was shown
  (the caller simply returns), and report user-facing faults (usage text and
  "ERROR: <message>" on stderr, exit status 1).
- dispatch() / main(): run a level's selection, and run the whole tree under
  asyncio.

Core ideas
- Flag parsing stops at the first free argument; that argument names the next
  command and everything after it belongs to the child level.
- A Level is consumed by parse() or select(); each transition produces a new
  object. The context value has exactly one owner at a time: select() moves it
  into the Selection and run() moves it into the child Level.
- Exactly one handler is active at a time; the await chain mirrors the
  command path.

Quick start
    from hiercmd import Level, Row, args, dispatch, main

    async def do_list(level):
        level.add_column("name", 16, True)
        level.usage_args(None)
        if (a := args(level)) is None:
            return
        table = a.table()
        table.add_row(Row().add_str("name", "thing one"))
        print(table.output(), end="")

    async def root():
        level = Level("tool")
        level.cmd("list", "list things", do_list)
        await dispatch(level)

    if __name__ == "__main__":
        main(root())
"""
import asyncio
import inspect
import logging
import sys
from typing import Generic, TypeVar

from rich.console import Console

from .faults import (
    CommandException,
    ArgumentSyntaxError,
    NoCommandChosenError,
    UnresolvedCommandError,
    InvalidColumnError,
    UnexpectedArgumentsError,
    BadArgumentsError,
    ConfigurationError,
    DuplicateCommandError,
    FaultCode,
    trigger,
)
from .faults import console as stderr
from .options import OptionSchema
from .outcomes import Success, HelpRequested, Fatal
from .tables import TableBuilder

C = TypeVar("C")

log = logging.getLogger(__name__)

stdout = Console(highlight=False)

DEFAULT_USAGE_ARGS = "[ARGS...]"

# Width of the command name column in usage text.
COMMAND_COLUMN = 19


class CommandInfo:
    """
    A registered child command.

    - name: unique key within its level.
    - alias: optional secondary key, resolved after all names.
    - descr: shown in usage text.
    - visible: hidden commands are left out of usage text but still resolve.
    - handler: callable taking the child Level; may return an awaitable.
    """
    __slots__ = ("name", "alias", "descr", "visible", "handler")

    def __init__(self, name, alias, descr, visible, handler):
        if not isinstance(name, str) or not name.strip() or name != name.strip():
            raise ValueError("command name must be a non-empty string without surrounding blanks")
        if alias is not None and (not isinstance(alias, str) or not alias.strip()):
            raise ValueError("command alias must be a non-empty string")
        if not callable(handler):
            raise TypeError("command %r handler must be callable" % name)
        self.name = name
        self.alias = alias
        if descr is not None and not isinstance(descr, str):
            raise TypeError("command %r description must be a string" % name)
        self.descr = descr or ""
        self.visible = bool(visible)
        self.handler = handler

    @property
    def label(self):
        return self.name if self.alias is None else "%s (%s)" % (self.name, self.alias)

    def __repr__(self):
        return "command-info(name=%r, alias=%r, visible=%r)" % (self.name, self.alias, self.visible)


class Level(Generic[C]):
    """
    One node in the command tree.

    Lifecycle
    - The root Level is created once by the entry point and parses sys.argv[1:].
    - Every other Level is created by Selection.run() and parses the positional
      arguments that followed its command name.
    - parse()/select() may be called once; usage text stays available after.

    Runtime flags
    - shell: when True (default) user-facing faults are printed and the process
      exits with status 1; when False they are raised. Children inherit it.
    """

    def __init__(self, name, context=None, /, *, shell=True):
        self._setup((name,), context, None, shell)

    @classmethod
    def _nested(cls, names, context, argv, shell):
        self = super().__new__(cls)
        self._setup(tuple(names), context, list(argv), shell)
        return self

    def _setup(self, names, context, argv, shell):
        if not names or not all(isinstance(name, str) and name for name in names):
            raise ValueError("level names must be non-empty strings")
        self._names = names
        self._context = context
        self._argv = argv
        self._shell = bool(shell)
        self._usage_args = DEFAULT_USAGE_ARGS
        self._usage_opts = False
        self._commands = []
        self._options = OptionSchema()
        self._options.declare("flag", "", "help", "usage information")
        self._table = None
        self._legacy_tabs = False
        self._consumed = False

    @property
    def names(self):
        return self._names

    @property
    def route(self):
        return " ".join(self._names)

    @property
    def shell(self):
        return self._shell

    @property
    def commands(self):
        return list(self._commands)

    @property
    def options(self):
        return self._options

    @property
    def context(self):
        """
        The consumer-provided context passed from level to level. After
        select() it has moved to the Selection and this returns None.
        """
        return self._context

    @context.setter
    def context(self, context):
        self._context = context

    def discard_logger(self):
        """
        A logger that drops every record, for handlers that want to log
        unconditionally without configuring anything.
        """
        logger = logging.getLogger("hiercmd.discard")
        logger.propagate = False
        logger.disabled = True
        return logger

    def register(self, name, descr, handler, *, alias=None, visible=True):
        """
        Add a handler for a next-level sub-command.

        Raises
        - DuplicateCommandError when the name is already registered here.
        """
        if any(command.name == name for command in self._commands):
            raise DuplicateCommandError('duplicate command "%s"' % name)
        command = CommandInfo(name, alias, descr, visible, handler)
        self._commands.append(command)
        log.debug("registered command %r under %r", name, self.route)
        return command

    def cmd(self, name, descr, handler):
        return self.register(name, descr, handler)

    def cmda(self, name, alias, descr, handler):
        """
        Register a sub-command that also answers to a short alias.
        """
        return self.register(name, descr, handler, alias=alias)

    def hcmd(self, name, descr, handler):
        """
        Register a sub-command that is not shown in usage text.
        """
        return self.register(name, descr, handler, visible=False)

    def resolve(self, token):
        """
        Find the command named token, trying every name before any alias.
        """
        for command in self._commands:
            if command.name == token:
                return command
        for command in self._commands:
            if command.alias is not None and command.alias == token:
                return command
        return None

    def usage_args(self, snippet):
        """
        Describe the positional arguments in the usage synopsis. None omits the
        hint; the default is "[ARGS...]".
        """
        if snippet is not None and not isinstance(snippet, str):
            raise TypeError("usage_args() argument must be a string or None")
        self._usage_args = snippet

    def declare_option(self, kind, short, long, descr, hint=None):
        self._options.declare(kind, short, long, descr, hint)
        self._usage_opts = True

    def declare_required_option(self, short, long, descr, hint=None):
        self._options.declare_required(short, long, descr, hint)
        self._usage_opts = True

    def declare_mutually_exclusive(self, pairs):
        self._options.declare_mutually_exclusive(pairs)

    def optflag(self, short, long, descr):
        self.declare_option("flag", short, long, descr)

    def optflagmulti(self, short, long, descr):
        self.declare_option("flagmulti", short, long, descr)

    def optopt(self, short, long, descr, hint):
        self.declare_option("opt", short, long, descr, hint)

    def optmulti(self, short, long, descr, hint):
        self.declare_option("multi", short, long, descr, hint)

    def reqopt(self, short, long, descr, hint):
        self.declare_required_option(short, long, descr, hint)

    def mutually_exclusive(self, pairs):
        self.declare_mutually_exclusive(pairs)

    def _ensure_table(self):
        if self._table is None:
            self._table = TableBuilder()
            # standard formatting options, applied to the table after parsing
            self._options.declare("opt", "s", "", "sort by column list (asc)", "COLUMNS")
            self._options.declare("opt", "S", "", "sort by column list (desc)", "COLUMNS")
            self._options.declare("opt", "o", "", "output column list", "COLUMNS")
            self._options.declare("flag", "H", "", "no header")
            self._options.declare("flag", "p", "", "print numbers in parseable (exact) format")
            self._usage_opts = True
        return self._table

    def add_column(self, name, width, default):
        """
        Add a column to this level's table. The first call activates table mode
        and the -o/-s/-S/-H/-p options.
        """
        self._ensure_table().add_column(name, width, default)

    def lazy_column_validation(self, lazy):
        """
        Defer column-name checks from parse() to Arguments.table(), for tables
        whose columns are only known once the data has been fetched.
        """
        self._ensure_table().lazy_columns(lazy)

    def legacy_header_tabs(self, enabled):
        """
        Make -H also switch the table to tab-separated output.
        """
        self._ensure_table()
        self._legacy_tabs = bool(enabled)

    def _consume(self, method):
        if self._consumed:
            raise ConfigurationError("level %r was already consumed by %s()" % (self.route, method), FaultCode.CONSUMED_LEVEL)
        self._consumed = True

    def parse(self):
        """
        Parse this level's argument slice.

        Returns
        - Success(Arguments) with the positional arguments and configured table.
        - HelpRequested() after printing usage text to stdout for --help.
        - Fatal(fault) for a syntax error, missing required options, an
          exclusive-group conflict or invalid column names.
        """
        self._consume("parse")
        argv = self._argv if self._argv is not None else sys.argv[1:]
        log.debug("parsing %r: %r", self.route, argv)

        try:
            matches = self._options.tokenize(argv)
        except ArgumentSyntaxError as fault:
            return Fatal(fault)

        if matches.opt_present("help"):
            self.usage()
            return HelpRequested()

        try:
            self._options.check(matches)
        except CommandException as fault:
            return Fatal(fault)

        if (table := self._table) is not None:
            table.output_from_list(matches.opt_str("o"))
            table.sort_from_list_asc(matches.opt_str("s"))
            table.sort_from_list_desc(matches.opt_str("S"))
            table.disable_header(matches.opt_present("H"))
            if self._legacy_tabs:
                table.tab_separated(matches.opt_present("H"))
            if matches.opt_present("p"):
                table.parseable(True)

            if not table.lazy and (missing := table.missing_column_names()):
                return Fatal(InvalidColumnError("invalid column names: %s" % ", ".join(missing)))

        return Success(Arguments(self, matches, table))

    def select(self):
        """
        Parse options for this level and resolve the next command from the
        first positional argument.

        Raises
        - ConfigurationError when no commands were registered.

        Returns
        - Success(Selection), HelpRequested() or Fatal(fault).
        """
        if not self._commands:
            raise ConfigurationError("no commands provided by consumer", FaultCode.NO_COMMANDS)

        outcome = self.parse()
        if not isinstance(outcome, Success):
            return outcome
        arguments = outcome.value

        if not arguments.args():
            return Fatal(NoCommandChosenError("choose a command"))

        want = arguments.args()[0]
        if (command := self.resolve(want)) is None:
            return Fatal(UnresolvedCommandError('command "%s" not understood' % want))

        log.debug("resolved %r under %r to %r", want, self.route, command.name)
        context, self._context = self._context, None
        return Success(Selection(self._names, context, command, arguments.opts(), self._shell))

    def usage(self):
        stdout.out(self.gen_usage(), end="")

    def usage_error(self, message):
        """
        Print usage text and "ERROR: <message>" to stderr without exiting.
        """
        stderr.out(self.gen_usage(), end="")
        stderr.out("ERROR: %s" % message)

    def gen_usage(self):
        names = list(self._names)
        if prog := getattr(sys.modules.get("__main__"), "__prog__", None):
            names[0] = str(prog)

        out = "Usage: " + " ".join(names)
        if self._usage_opts:
            out += " [OPTS]"
        if self._commands:
            out += " COMMAND"
        if self._usage_args is not None:
            out += " " + self._usage_args
        out += "\n"

        if self._commands:
            out += "\nCommands:\n"
            for command in self._commands:
                if not command.visible:
                    continue
                out += ("    %s %s" % (command.label.ljust(COMMAND_COLUMN), command.descr)).rstrip() + "\n"

        out = self._options.usage(out)

        if self._table is not None and (columns := self._table.column_names()):
            out += "\nColumns:\n" + "".join("    %s\n" % name for name in columns)
        return out

    def __repr__(self):
        return "level(route=%r, commands=%r, consumed=%r)" % (
            self.route, [command.name for command in self._commands], self._consumed
        )


class Selection(Generic[C]):
    """
    A resolved command, ready to build the child Level and run its handler.
    """

    def __init__(self, names, context, command, matches, shell):
        self._names = tuple(names)
        self._context = context
        self._command = command
        self._matches = matches
        self._shell = shell
        self._ran = False

    @property
    def names(self):
        return self._names + (self._command.name,)

    @property
    def command(self):
        return self._command

    @property
    def context(self):
        return self._context

    @context.setter
    def context(self, context):
        self._context = context

    def opts(self):
        """
        Options parsed at the selecting level (e.g. a global "-x" flag).
        """
        return self._matches

    def args(self):
        """
        Positional arguments for the child level (after the command name).
        """
        return list(self._matches.free[1:])

    async def run(self):
        """
        Build the child Level and run the chosen handler, awaiting it when it
        returns an awaitable.
        """
        if self._ran:
            raise ConfigurationError("selection %r was already run" % " ".join(self.names), FaultCode.CONSUMED_LEVEL)
        self._ran = True

        context, self._context = self._context, None
        level = Level._nested(self.names, context, self.args(), self._shell)
        log.debug("running %r with %r", level.route, self.args())

        result = self._command.handler(level)
        if inspect.isawaitable(result):
            result = await result
        return result


class Arguments:
    """
    Parsed arguments of one level.
    """

    def __init__(self, level, matches, table):
        self._level = level
        self._matches = matches
        self._table = table

    def opts(self):
        return self._matches

    def args(self):
        return list(self._matches.free)

    def _builder(self):
        if self._table is None:
            raise ConfigurationError("level %r has no table columns" % self._level.route)
        return self._table

    def add_column(self, name, width, default):
        self._builder().add_column(name, width, default)

    def set_column_default(self, name, default):
        self._builder().set_column_default(name, default)

    def table(self):
        """
        Build the Table for this invocation. Under lazy column validation this
        is where unknown -o/-s/-S column names are reported.
        """
        builder = self._builder()
        if builder.lazy and (missing := builder.missing_column_names()):
            trigger(
                InvalidColumnError("invalid column names: %s" % ", ".join(missing)),
                usage=self._level.gen_usage(),
                shell=self._level.shell,
            )
        return builder.build()


def _unwrap(level, outcome):
    match outcome:
        case Success(value):
            return value
        case HelpRequested():
            return None
        case Fatal(fault):
            trigger(fault, usage=level.gen_usage(), shell=level.shell)
    raise RuntimeError("unreachable")


def args(level):
    """
    Parse a terminal level. Returns Arguments, or None when help was shown.
    """
    return _unwrap(level, level.parse())


def sel(level):
    """
    Parse a dispatching level and resolve its command. Returns a Selection, or
    None when help was shown.
    """
    return _unwrap(level, level.select())


def no_args(level):
    """
    Parse a terminal level that takes no positional arguments.
    """
    level.usage_args(None)
    if (arguments := args(level)) is None:
        return None
    if arguments.args():
        trigger(UnexpectedArgumentsError("unexpected arguments"), usage=level.gen_usage(), shell=level.shell)
    return arguments


def bad_args(level, message, /, *params):
    """
    Report a problem with the arguments a handler received, with usage text.
    """
    trigger(BadArgumentsError(message % params if params else message), usage=level.gen_usage(), shell=level.shell)


async def dispatch(level):
    """
    Select the next command at level and run it; a no-op when help was shown.
    """
    if (selection := sel(level)) is None:
        return None
    return await selection.run()


def main(root, /):
    """
    Run the command tree: root is the coroutine (or coroutine function) that
    builds the root Level and dispatches it.
    """
    if inspect.iscoroutinefunction(root):
        root = root()
    if not inspect.iscoroutine(root):
        raise TypeError("main() argument must be a coroutine or a coroutine function")
    return asyncio.run(root)


__all__ = (
    "CommandInfo",
    "Level",
    "Selection",
    "Arguments",
    "args",
    "sel",
    "no_args",
    "bad_args",
    "dispatch",
    "main",
)
