"""
hiercmd table engine: typed rows rendered as line-oriented text.

Overview
- Values
  • Kind: TEXT, UNSIGNED, BYTES, AGE. A Value is a (kind, datum) pair; BYTES and
    AGE are humanized at render time unless the table is in parseable mode.
- Rows
  • Row: sparse mapping from (lower-cased) column name to Value. A row need not
    fill every declared column, but every column a render or a sort touches must
    be present.
- Schema
  • Column: name, display width, default visibility.
  • TableBuilder: columns, output filter (-o), sort order (-s/-S) and render
    flags (header, tab separation, parseable numbers). Setters return the
    builder so calls chain.
  • Table: a snapshot of the builder plus the rows appended to it.

Rendering (Table.output)
1. sort: stable, lexicographic over the configured (column, ascending) keys;
   both rows must hold the same kind of value for a key.
2. columns: the output filter in its own order, or every default-visible
   column in declaration order.
3. header: upper-cased names, unless disabled.
4. data: one line per row; fixed-width lines are padded to each column width
   plus a space and right-trimmed, tab-separated lines replace embedded tabs.

Quick example:
    >>> table = TableBuilder().add_column("name", 12, True).add_column("size", 8, True).build()
    >>> table.add_row(Row().add_str("name", "core").add_bytes("size", 2048))
    >>> print(table.output(), end="")
    NAME         SIZE
    core         2.00K
"""
import datetime
import functools
from enum import IntEnum
from typing import NamedTuple

from .faults import SchemaViolationError, InvalidColumnError, ConfigurationError, FaultCode
from .utils import split_list

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
MONTH = 30 * DAY
YEAR = 365 * DAY

# Ages from this many days up to a year are shown as months and days.
MONTHS_THRESHOLD = 99 * DAY


class Kind(IntEnum):
    TEXT = 1
    UNSIGNED = 2
    BYTES = 3
    AGE = 4


class Value(NamedTuple):
    kind: Kind
    datum: str | int


def humanize_bytes(count, parseable=False):
    """
    Render a byte count with a binary magnitude suffix.

    >>> humanize_bytes(1023), humanize_bytes(1024), humanize_bytes(1536 * 1024)
    ('1023', '1.00K', '1.50M')
    """
    if parseable:
        return str(count)
    if count >= GIB:
        return "%.2fG" % (count / GIB)
    if count >= MIB:
        return "%.2fM" % (count / MIB)
    if count >= KIB:
        return "%.2fK" % (count / KIB)
    return str(count)


def humanize_age(seconds, parseable=False):
    """
    Render a duration in seconds as its two most significant units.

    >>> humanize_age(47), humanize_age(803), humanize_age(277200)
    ('47s', '13m23s', '3d07h')
    """
    if parseable:
        return str(seconds)
    if seconds >= YEAR:
        years, rest = divmod(seconds, YEAR)
        # days 360-364 of a year still count as month 11
        return "%dy%02dM" % (years, min(rest // MONTH, 11))
    if seconds >= MONTHS_THRESHOLD:
        months, rest = divmod(seconds, MONTH)
        return "%dM%02dd" % (months, rest // DAY)
    if seconds >= DAY:
        days, rest = divmod(seconds, DAY)
        return "%dd%02dh" % (days, rest // HOUR)
    if seconds >= HOUR:
        hours, rest = divmod(seconds, HOUR)
        return "%dh%02dm" % (hours, rest // MINUTE)
    if seconds >= MINUTE:
        minutes, rest = divmod(seconds, MINUTE)
        return "%dm%02ds" % (minutes, rest)
    return "%ds" % seconds


def _unsigned(name, value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("value for column %r must be an integer" % name)
    if value < 0:
        raise ValueError("value for column %r must not be negative" % name)
    return value


class Column:
    __slots__ = ("name", "width", "default")

    def __init__(self, name, width, default):
        if not isinstance(name, str) or not (name := name.strip()):
            raise ValueError("column name must be a non-empty string")
        if isinstance(width, bool) or not isinstance(width, int) or width < 0:
            raise ValueError("column %r width must be a non-negative integer" % name)
        self.name = name.lower()
        self.width = width
        self.default = bool(default)

    def __repr__(self):
        return "column(name=%r, width=%r, default=%r)" % (self.name, self.width, self.default)


class Row:
    """
    One table row: a sparse mapping from column name to a typed Value.

    The add_* methods return the row so a row can be built in one expression.
    Adding a value for a name that is already present replaces it.
    """

    def __init__(self):
        self._data = {}

    def add_str(self, name, value):
        self._data[name.lower()] = Value(Kind.TEXT, str(value))
        return self

    def add_u64(self, name, value):
        self._data[name.lower()] = Value(Kind.UNSIGNED, _unsigned(name, value))
        return self

    def add_bytes(self, name, value):
        self._data[name.lower()] = Value(Kind.BYTES, _unsigned(name, value))
        return self

    def add_age(self, name, value):
        """
        Store a duration; value is whole seconds or a datetime.timedelta.
        """
        if isinstance(value, datetime.timedelta):
            value = int(value.total_seconds())
        self._data[name.lower()] = Value(Kind.AGE, _unsigned(name, value))
        return self

    def get(self, name):
        return self._data.get(name.lower())

    def __contains__(self, name):
        return name.lower() in self._data

    def __len__(self):
        return len(self._data)

    def __repr__(self):
        return "row(%s)" % ", ".join("%s=%r" % (name, value.datum) for name, value in self._data.items())


class SortOrder(NamedTuple):
    column: str
    ascending: bool


class TableBuilder:
    """
    Mutable table schema and render configuration.

    Defaults: header shown, fixed-width layout, humanized numbers, no output
    filter (default-visible columns) and no sort order (insertion order).
    """

    def __init__(self):
        self._header = True
        self._tabsep = False
        self._parseable = False
        self._lazy = False
        self._outputs = []
        self._output_filter = None
        self._sort_order = None

    @property
    def columns(self):
        return tuple(self._outputs)

    @property
    def output_filter(self):
        return None if self._output_filter is None else tuple(self._output_filter)

    @property
    def sort_order(self):
        return None if self._sort_order is None else tuple(self._sort_order)

    @property
    def lazy(self):
        return self._lazy

    def _column(self, name):
        name = name.strip().lower()
        for column in self._outputs:
            if column.name == name:
                return column
        return None

    def add_column(self, name, width, default):
        """
        Add a possible column with its display width. Without an output filter
        the order of add_column() calls decides the displayed order. Adding a
        name again updates the existing column in place.
        """
        column = Column(name, width, default)
        if existing := self._column(column.name):
            existing.width = column.width
            existing.default = column.default
        else:
            self._outputs.append(column)
        return self

    def set_column_default(self, name, default):
        if not (column := self._column(name)):
            raise ConfigurationError("no column %r declared" % name, FaultCode.INVALID_COLUMN)
        column.default = bool(default)
        return self

    def output_from_list(self, text):
        """
        Columns to display, and their order, from a "-o" value such as
        "name,size,colour". None leaves the current filter untouched.
        """
        if text is not None:
            self._output_filter = split_list(text)
        return self

    def sort_from_list_asc(self, text):
        """
        Ascending sort keys from a "-s" value such as "id,name".
        """
        if text is not None:
            self._sort_order = [SortOrder(name, True) for name in split_list(text)]
        return self

    def sort_from_list_desc(self, text):
        """
        Descending sort keys from a "-S" value such as "size,name".
        """
        if text is not None:
            self._sort_order = [SortOrder(name, False) for name in split_list(text)]
        return self

    def show_header(self, show):
        self._header = bool(show)
        return self

    def disable_header(self, disable):
        if disable:
            self._header = False
        return self

    def tab_separated(self, tabsep):
        self._tabsep = bool(tabsep)
        return self

    def parseable(self, parseable):
        self._parseable = bool(parseable)
        return self

    def lazy_columns(self, lazy):
        self._lazy = bool(lazy)
        return self

    def column_names(self):
        return sorted(column.name for column in self._outputs)

    def missing_column_names(self):
        """
        Sorted names used by the output filter or the sort order that do not
        match any declared column.
        """
        wanted = set(self._output_filter or ())
        wanted.update(order.column for order in self._sort_order or ())
        return sorted(name for name in wanted if not self._column(name))

    def build(self):
        """
        Snapshot the configuration into an empty Table.
        """
        return Table(
            header=self._header,
            tabsep=self._tabsep,
            parseable=self._parseable,
            outputs=[Column(column.name, column.width, column.default) for column in self._outputs],
            output_filter=self.output_filter,
            sort_order=self.sort_order,
        )


class Table:
    """
    Built table: fixed schema, growing list of rows.
    """

    def __init__(self, *, header, tabsep, parseable, outputs, output_filter, sort_order):
        self._header = header
        self._tabsep = tabsep
        self._parseable = parseable
        self._outputs = tuple(outputs)
        self._output_filter = output_filter
        self._sort_order = sort_order
        self._data = []

    @property
    def rows(self):
        return tuple(self._data)

    def add_row(self, row):
        if not isinstance(row, Row):
            raise TypeError("add_row() argument must be a row")
        self._data.append(row)

    def _compare(self, left, right):
        for order in self._sort_order:
            a, b = left.get(order.column), right.get(order.column)
            if a is None or b is None:
                raise SchemaViolationError("missing sort value for column %r" % order.column, FaultCode.MISSING_VALUE)
            if a.kind is not b.kind:
                raise SchemaViolationError(
                    "values in column %r must all be of the same kind" % order.column,
                    FaultCode.HETEROGENEOUS_COLUMN,
                )
            if a.datum == b.datum:
                continue
            result = -1 if a.datum < b.datum else 1
            return result if order.ascending else -result
        return 0

    def _selected(self):
        if self._output_filter is None:
            return [column for column in self._outputs if column.default]
        columns = {column.name: column for column in self._outputs}
        if missing := sorted({name for name in self._output_filter if name not in columns}):
            raise InvalidColumnError("invalid column names: %s" % ", ".join(missing))
        return [columns[name] for name in self._output_filter]

    def _format(self, value):
        match value.kind:
            case Kind.TEXT:
                return value.datum
            case Kind.UNSIGNED:
                return str(value.datum)
            case Kind.BYTES:
                return humanize_bytes(value.datum, self._parseable)
            case Kind.AGE:
                return humanize_age(value.datum, self._parseable)
        raise RuntimeError("unreachable")

    def _line(self, columns, cells):
        if self._tabsep:
            return "\t".join(cells)
        return "".join(cell.ljust(column.width) + " " for column, cell in zip(columns, cells)).rstrip()

    def output(self):
        """
        Render the table as text, one newline-terminated line per row.

        Raises
        - SchemaViolationError when a row lacks a sorted or displayed value, or a
          sort column mixes kinds of values.
        - InvalidColumnError when the output filter names an undeclared column.
        """
        rows = list(self._data)
        if self._sort_order:
            rows.sort(key=functools.cmp_to_key(self._compare))

        columns = self._selected()
        lines = []

        if self._header:
            lines.append(self._line(columns, [column.name.upper() for column in columns]))

        for row in rows:
            cells = []
            for column in columns:
                if (value := row.get(column.name)) is None:
                    raise SchemaViolationError("missing output value for column %r" % column.name, FaultCode.MISSING_VALUE)
                cell = self._format(value)
                cells.append(cell.replace("\t", " ") if self._tabsep else cell)
            lines.append(self._line(columns, cells))

        return "".join(line + "\n" for line in lines)


__all__ = (
    "Kind",
    "Value",
    "Column",
    "Row",
    "SortOrder",
    "TableBuilder",
    "Table",
    "humanize_bytes",
    "humanize_age",
)
