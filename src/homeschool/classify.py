"""Core/non-core and home/off-site classification of hour log entries.

Both the totals path and the breakdown path of the reports call into this one
module, and the set of core subjects is always handed in by the caller.
"""

from __future__ import annotations

from typing import FrozenSet, Iterable, Iterator, Optional, Tuple

from .exceptions import InvalidInputError
from .models import Location

_OFFSITE_ALIASES = {"offsite", "off-site", "off site", "away"}


def normalize_label(value: Optional[str]) -> str:
    """Trim, collapse inner whitespace and casefold ``value``."""

    if value is None:
        return ""
    return " ".join(str(value).split()).casefold()


class CoreSubjectSet:
    """Immutable set of canonical core subject names."""

    __slots__ = ("_names", "_keys")

    def __init__(self, names: Iterable[str]) -> None:
        display: list[str] = []
        keys: set[str] = set()
        for name in names:
            key = normalize_label(name)
            if not key or key in keys:
                continue
            keys.add(key)
            display.append(" ".join(str(name).split()))
        self._names: Tuple[str, ...] = tuple(display)
        self._keys: FrozenSet[str] = frozenset(keys)

    @classmethod
    def parse(cls, raw: str) -> "CoreSubjectSet":
        """Build a set from a comma separated list such as ``"Math, Science"``."""

        subjects = cls(part for part in (raw or "").split(","))
        if not subjects:
            raise InvalidInputError("The core subject list must name at least one subject.")
        return subjects

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    def __contains__(self, subject: object) -> bool:
        if not isinstance(subject, str):
            return False
        return normalize_label(subject) in self._keys

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoreSubjectSet):
            return NotImplemented
        return self._keys == other._keys

    def __hash__(self) -> int:
        return hash(self._keys)

    def __repr__(self) -> str:
        return f"CoreSubjectSet({list(self._names)!r})"


def is_core(subject: Optional[str], core_set: CoreSubjectSet) -> bool:
    key = normalize_label(subject)
    if not key:
        return False
    return key in core_set


def is_core_at_home(subject: Optional[str], location: Optional[str], core_set: CoreSubjectSet) -> bool:
    return is_core(subject, core_set) and normalize_label(location) == Location.HOME.value


def normalize_location(value: Optional[str]) -> Location:
    """Map user supplied location text onto :class:`Location`.

    Used when logs are written; reading paths stay lenient and simply treat
    anything other than ``home`` as not-at-home.
    """

    key = normalize_label(value)
    if key == Location.HOME.value:
        return Location.HOME
    if key in _OFFSITE_ALIASES:
        return Location.OFFSITE
    raise InvalidInputError(f"Location must be 'home' or 'offsite', got {value!r}.")


__all__ = [
    "CoreSubjectSet",
    "is_core",
    "is_core_at_home",
    "normalize_label",
    "normalize_location",
]
