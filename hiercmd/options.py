"""
hiercmd option schema: per-level flag/option declarations and validation.

Overview
- OptionPair: the (short, long) identity of one logical option, used to express
  required-option and mutually-exclusive constraints.
- OptionSchema: the declarations of one level. Tokenizing is delegated to the
  standard library getopt module in POSIX mode, so option parsing stops at the
  first free (non-option) argument: flags after a sub-command name belong to the
  sub-command. The schema owns the validation policy applied afterwards:
  duplicated single-use options, required options, mutually exclusive groups.
- Matches: the structured result of tokenizing (option values plus free
  arguments), queried by either the short or the long name of an option.

Declaration kinds
- "flag":      presence-only, at most once
- "flagmulti": presence-only, may repeat (see Matches.opt_count)
- "opt":       takes a value, at most once
- "multi":     takes a value, may repeat (see Matches.opt_strs)

Names are given without dashes: short names are a single character, long names
a word such as "dry-run". Either may be empty, not both.
"""
import getopt
import re
from typing import NamedTuple

from .faults import (
    ArgumentSyntaxError,
    MissingRequiredOptionError,
    MutuallyExclusiveError,
    ConfigurationError,
    FaultCode,
)

KINDS = ("flag", "flagmulti", "opt", "multi")

# Column at which option descriptions start in usage text.
DESCRIPTION_COLUMN = 24


class OptionPair:
    """
    One logical option identified by its short and/or long name.

    Renders as "--long" (no short form), "-s" (no long form) or "-s (--long)".
    """
    __slots__ = ("short", "long")

    def __init__(self, short="", long=""):
        if not isinstance(short, str) or not isinstance(long, str):
            raise TypeError("option pair names must be strings")
        if not short and not long:
            raise ValueError("option pair must have a short or a long name")
        self.short = short
        self.long = long

    def has_short(self):
        return bool(self.short)

    def has_long(self):
        return bool(self.long)

    def __str__(self):
        if not self.has_short():
            return "--%s" % self.long
        if not self.has_long():
            return "-%s" % self.short
        return "-%s (--%s)" % (self.short, self.long)

    def __repr__(self):
        return "option-pair(short=%r, long=%r)" % (self.short, self.long)

    def __eq__(self, other):
        if not isinstance(other, OptionPair):
            return NotImplemented
        return (self.short, self.long) == (other.short, other.long)

    def __hash__(self):
        return hash((self.short, self.long))


class OptionSpec(NamedTuple):
    short: str
    long: str
    kind: str
    descr: str
    hint: str | None

    @property
    def takes_value(self):
        return self.kind in ("opt", "multi")

    @property
    def repeatable(self):
        return self.kind in ("flagmulti", "multi")

    @property
    def pair(self):
        return OptionPair(self.short, self.long)


class Matches:
    """
    Result of tokenizing one argument slice against an OptionSchema.

    Attributes
    - free: list of free (positional) arguments, in order. Everything after the
      first free argument is free as well.
    """

    def __init__(self, specs, values, free):
        self._specs = tuple(specs)
        self._values = values
        self.free = list(free)

    def _find(self, name):
        for index, spec in enumerate(self._specs):
            if name and name in (spec.short, spec.long):
                return index
        raise ConfigurationError("no option %r declared" % name, FaultCode.UNDECLARED_OPTION)

    def opt_present(self, name):
        return bool(self._values.get(self._find(name)))

    def opt_count(self, name):
        return len(self._values.get(self._find(name), ()))

    def opt_str(self, name):
        """
        First value given for a value-bearing option, or None when absent.
        """
        values = self._values.get(self._find(name), ())
        return values[0] if values else None

    def opt_strs(self, name):
        return list(self._values.get(self._find(name), ()))

    def pair_present(self, pair):
        """
        True when the option is present under its short or its long form.
        """
        return (
            (pair.has_short() and self.opt_present(pair.short)) or
            (pair.has_long() and self.opt_present(pair.long))
        )

    def __repr__(self):
        return "matches(options=%r, free=%r)" % (
            {str(self._specs[index].pair): values for index, values in self._values.items()},
            self.free,
        )


class OptionSchema:
    """
    Flag/option declarations for one command level.
    """

    def __init__(self):
        self._specs = []
        self._required = []
        self._exclusive = []

    @property
    def specs(self):
        return tuple(self._specs)

    @property
    def required(self):
        return tuple(self._required)

    @property
    def exclusive(self):
        return tuple(tuple(group) for group in self._exclusive)

    def declare(self, kind, short, long, descr, hint=None):
        """
        Record a flag or option.

        Raises
        - ValueError/TypeError for malformed names or an unknown kind.
        - ConfigurationError when a name is already declared on this schema.
        """
        if kind not in KINDS:
            raise ValueError("option kind must be one of %s" % ", ".join(map(repr, KINDS)))
        if not isinstance(short, str) or not isinstance(long, str):
            raise TypeError("option names must be strings")
        if not short and not long:
            raise ValueError("option must have a short or a long name")
        if short and not re.fullmatch(r"[^\W_]", short):
            raise ValueError("short option name %r must be a single letter or digit" % short)
        if long and not re.fullmatch(r"[^\W_](-?[^\W_]+)*", long):
            raise ValueError("long option name %r is not a valid option name" % long)
        for name in (short, long):
            if name and any(name in (spec.short, spec.long) for spec in self._specs):
                raise ConfigurationError("option %r is already declared" % name, FaultCode.DUPLICATE_OPTION)
        if kind in ("opt", "multi") and not hint:
            hint = "VALUE"
        self._specs.append(OptionSpec(short, long, kind, descr, hint if kind in ("opt", "multi") else None))

    def declare_required(self, short, long, descr, hint=None):
        """
        Record a value-bearing option that must be present after tokenizing.
        """
        self.declare("opt", short, long, descr, hint)
        self._required.append(OptionPair(short, long))

    def declare_mutually_exclusive(self, pairs):
        """
        Record a group of options of which at most one may be present.

        pairs: iterable of OptionPair or (short, long) tuples.
        """
        group = []
        for pair in pairs:
            if not isinstance(pair, OptionPair):
                short, long = pair
                pair = OptionPair(short, long)
            group.append(pair)
        self._exclusive.append(group)

    def tokenize(self, argv):
        """
        Split argv into option values and free arguments.

        Raises
        - ArgumentSyntaxError when getopt rejects the input (unknown option,
          missing value) or a single-use option is given more than once.
        """
        shortopts = "".join(spec.short + (":" if spec.takes_value else "") for spec in self._specs if spec.short)
        longopts = [spec.long + ("=" if spec.takes_value else "") for spec in self._specs if spec.long]

        self._check_long_names(argv)

        try:
            pairs, free = getopt.getopt(list(argv), shortopts, longopts)
        except getopt.GetoptError as error:
            raise ArgumentSyntaxError(str(error)) from None

        values = {}
        for token, value in pairs:
            index = self._lookup(token)
            spec = self._specs[index]
            bucket = values.setdefault(index, [])
            if bucket and not spec.repeatable:
                raise ArgumentSyntaxError("option %r given more than once" % token.lstrip("-"))
            bucket.append(value if spec.takes_value else None)

        return Matches(self._specs, values, free)

    def _check_long_names(self, argv):
        """
        Reject long options that are not spelled out in full. getopt accepts
        any unique prefix ("--he" for "--help"); long names here match exactly.
        """
        longs = {spec.long: spec for spec in self._specs if spec.long}
        shorts = {spec.short: spec for spec in self._specs if spec.short}
        tokens = iter(argv)
        for token in tokens:
            if token == "--" or not token.startswith("-") or token == "-":
                return
            if token.startswith("--"):
                name, eq, _ = token[2:].partition("=")
                if (spec := longs.get(name)) is None:
                    raise ArgumentSyntaxError("option --%s not recognized" % name)
                if spec.takes_value and not eq:
                    next(tokens, None)
                continue
            for index, char in enumerate(token[1:], 1):
                if (spec := shorts.get(char)) is None:
                    # unknown short options are reported by getopt
                    return
                if spec.takes_value:
                    if index == len(token) - 1:
                        next(tokens, None)
                    break

    def _lookup(self, token):
        name = token[2:] if token.startswith("--") else token[1:]
        for index, spec in enumerate(self._specs):
            if token.startswith("--") and spec.long == name:
                return index
            if not token.startswith("--") and spec.short == name:
                return index
        # getopt only hands back tokens built from our own declarations
        raise RuntimeError("unreachable")

    def check(self, matches):
        """
        Enforce required options and mutually exclusive groups.

        Raises
        - MissingRequiredOptionError naming every missing option, comma separated.
        - MutuallyExclusiveError naming the conflicting options of the first
          offending group, joined by " and ".
        """
        missing = [str(pair) for pair in self._required if not matches.pair_present(pair)]
        if missing:
            raise MissingRequiredOptionError("required options missing: %s" % ", ".join(missing))

        for group in self._exclusive:
            conflicts = [str(pair) for pair in group if matches.pair_present(pair)]
            if len(conflicts) > 1:
                raise MutuallyExclusiveError("%s are mutually exclusive" % " and ".join(conflicts))

    def usage(self, brief):
        """
        Append the "Options:" block to the brief usage text.
        """
        shorts = any(spec.short for spec in self._specs)
        rows = []
        for spec in self._specs:
            row = "    "
            if spec.short:
                row += "-" + spec.short + (", " if spec.long else " ")
            elif shorts:
                row += "    "
            if spec.long:
                row += "--" + spec.long + " "
            if spec.takes_value:
                row += spec.hint
            if len(row) < DESCRIPTION_COLUMN:
                row = row.ljust(DESCRIPTION_COLUMN)
            else:
                row = row.rstrip() + "\n" + " " * DESCRIPTION_COLUMN
            rows.append((row + spec.descr).rstrip())
        return "%s\nOptions:\n%s\n" % (brief, "\n".join(rows))


__all__ = (
    "OptionPair",
    "OptionSchema",
    "Matches",
)
