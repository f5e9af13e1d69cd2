"""
hiercmd utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the option schema, the table engine and the
  command levels.

Overview
- UnsetType / Unset
  • Singleton sentinel meaning "not provided", distinct from None (a fault
    message or code that was not given at all).
- coalesce(value, default=None)
  • Replace Unset with a concrete default; falsey values such as None/0/"" are kept.
- split_list(text)
  • Comma-separated column list parsing shared by the table flags.
"""
import functools
from typing import final


@final
class UnsetType:
    """
    Sentinel type for a value that was not provided.

    Characteristics
    - Boolean-false, but distinct from None.
    - repr() is "Unset".
    - A single instance per process; the type cannot be subclassed.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    Examples
    - coalesce("[ARGS...]", None) -> "[ARGS...]"
    - coalesce(Unset, "[ARGS...]") -> "[ARGS...]"
    - coalesce(None, "[ARGS...]")  -> None
    """
    return object if object is not Unset else default


def split_list(text, /):
    """
    Split a comma-separated column list into trimmed, lower-cased names.

    >>> split_list(" Name ,SIZE")
    ['name', 'size']
    """
    if not isinstance(text, str):
        raise TypeError("split_list() argument must be a string")
    return [part.strip().lower() for part in text.split(",")]


__all__ = (
    "UnsetType",
    "Unset",
    "coalesce",
    "split_list",
)
