"""
Comparison engine for extupgrade.

Every value taken from a catalog snapshot is a Comparable: it can compare
itself with a peer of the same kind and describe its own content. The
comparison of two values returns None when they are identical, or a single
diff node (see extupgrade.diff) otherwise.

Value kinds:
- Scalar / String: terminal values
- Nullable / NotApplicable: present or absent values
- OrderedList: order-significant sequences
- KeyedCollection: identity-keyed, order-insignificant collections
- Composite: named records made of comparable fields
"""

import difflib
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import (
    Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple,
)

from .diff import (
    AbsentDiff,
    CompositeDiff,
    DiffNode,
    DiffSource,
    KeyedCollectionDiff,
    NamedValueDiff,
    SequenceDiff,
    UnifiedTextDiff,
    ValueDiff,
)
from .errors import CatalogError, ContractViolation


class Comparable(ABC):
    """A value that can be compared with a peer of the same kind."""

    __slots__ = ()

    @abstractmethod
    def compare(self, other: "Comparable") -> Optional[DiffNode]:
        """
        Compare with *other*, self being the installed side.

        Returns None if both values are identical, otherwise a diff node.
        """

    def describe(self) -> str:
        """Render the value, for diffs where the other side has no value."""
        raise ContractViolation(
            f"describe() is not supported by {type(self).__name__}"
        )

    def _check_peer(self, other: "Comparable") -> None:
        if type(other) is not type(self):
            raise ContractViolation(
                f"Cannot compare {type(self).__name__} with {type(other).__name__}"
            )


# ---------------------------------------------------------------------------
# Terminal values
# ---------------------------------------------------------------------------

class Scalar(Comparable):
    """A terminal value compared by equality."""

    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def compare(self, other: Comparable) -> Optional[DiffNode]:
        self._check_peer(other)
        if self.value == other.value:  # type: ignore[attr-defined]
            return None
        return ValueDiff(self.describe(), other.describe())

    def describe(self) -> str:
        return str(self.value)

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and self.value == other.value  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.value))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class String(Scalar):
    """
    A string value.

    Multi-line strings (function bodies, rule and view definitions) are
    reported as a unified diff rather than as two whole values.
    """

    __slots__ = ()

    def compare(self, other: Comparable) -> Optional[DiffNode]:
        self._check_peer(other)
        if self.value == other.value:  # type: ignore[attr-defined]
            return None
        if "\n" in self.value or "\n" in other.value:  # type: ignore[attr-defined]
            return text_diff(self.value, other.value)  # type: ignore[attr-defined]
        return ValueDiff(self.describe(), other.describe())


def text_diff(
    installed: str,
    upgraded: str,
    label: Optional[str] = None,
) -> Optional[UnifiedTextDiff]:
    """
    Build a line-based diff between two texts.

    Texts are split on line feeds only: any other character, like a
    carriage return or a form feed, is part of a line and shows up in the
    diff.

    Args:
        installed: Text from the installed snapshot
        upgraded: Text from the upgraded snapshot
        label: Optional context shown above the patch

    Returns:
        UnifiedTextDiff holding the hunks, or None if there is no hunk
    """
    lines = difflib.unified_diff(
        installed.split("\n"),
        upgraded.split("\n"),
        lineterm="",
    )
    # Drop the ---/+++ header, the renderer writes its own.
    hunks = tuple(lines)[2:]
    if not hunks:
        return None
    return UnifiedTextDiff(patch=hunks, label=label)


# ---------------------------------------------------------------------------
# Optional values
# ---------------------------------------------------------------------------

class Nullable(Comparable):
    """A value that may be absent (SQL NULL)."""

    __slots__ = ("value",)

    def __init__(self, value: Optional[Comparable] = None):
        self.value = value

    @property
    def is_present(self) -> bool:
        return self.value is not None

    def compare(self, other: Comparable) -> Optional[DiffNode]:
        if not isinstance(other, Nullable):
            raise ContractViolation(
                f"Cannot compare {type(self).__name__} with {type(other).__name__}"
            )

        if self.value is None and other.value is None:
            return None
        if self.value is None:
            return AbsentDiff(DiffSource.INSTALLED, other.describe())
        if other.value is None:
            return AbsentDiff(DiffSource.UPGRADED, self.describe())

        return self.value.compare(other.value)

    def describe(self) -> str:
        if self.value is None:
            raise ContractViolation("describe() called on an absent value")
        return self.value.describe()

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Nullable) and self.value == other.value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class NotApplicable(Nullable):
    """
    Placeholder for a field that doesn't exist in the server version.

    *kind* is the value kind the field would have had.
    """

    __slots__ = ("kind",)

    def __init__(self, kind: Any):
        super().__init__(None)
        self.kind = kind

    def compare(self, other: Comparable) -> Optional[DiffNode]:
        if isinstance(other, NotApplicable) and other.kind is not self.kind:
            raise ContractViolation(
                f"Cannot compare placeholders for {self.kind!r} and {other.kind!r}"
            )
        return super().compare(other)

    def __repr__(self) -> str:
        return f"NotApplicable({getattr(self.kind, '__name__', self.kind)!r})"


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

class OrderedList(Comparable):
    """A sequence where element positions matter."""

    __slots__ = ("items",)

    def __init__(self, items: Iterable[Comparable] = ()):
        self.items: List[Comparable] = list(items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Comparable]:
        return iter(self.items)

    def __getitem__(self, index: int) -> Comparable:
        return self.items[index]

    def compare(self, other: Comparable) -> Optional[DiffNode]:
        self._check_peer(other)
        theirs: List[Comparable] = other.items  # type: ignore[attr-defined]

        diffs: List[Tuple[int, DiffNode]] = []
        shared = min(len(self.items), len(theirs))

        for i in range(shared):
            sub = self.items[i].compare(theirs[i])
            if sub is not None:
                diffs.append((i + 1, sub))

        # Elements only found on the longer side
        for i in range(shared, len(self.items)):
            diffs.append((i + 1, AbsentDiff(DiffSource.UPGRADED, self.items[i].describe())))
        for i in range(shared, len(theirs)):
            diffs.append((i + 1, AbsentDiff(DiffSource.INSTALLED, theirs[i].describe())))

        if not diffs:
            return None
        return SequenceDiff(len(self.items), len(theirs), tuple(diffs))

    def describe(self) -> str:
        return "{" + ",".join(item.describe() for item in self.items) + "}"

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and self.items == other.items  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"OrderedList({self.items!r})"


EntryComparator = Callable[[str, str, Comparable, Comparable], Optional[DiffNode]]


def compare_entry(
    typname: str, key: str, mine: Comparable, theirs: Comparable
) -> Optional[DiffNode]:
    """
    Compare two entries of a keyed collection.

    Only record diffs carry an identity of their own. Other diffs get the
    entry key attached, so the report names the entry that differs.
    """
    sub = mine.compare(theirs)
    if sub is None or isinstance(sub, CompositeDiff):
        return sub
    if isinstance(sub, ValueDiff):
        return NamedValueDiff(key, sub.installed, sub.upgraded)
    if isinstance(sub, UnifiedTextDiff) and sub.label is None:
        return replace(sub, label=key)
    return CompositeDiff(typname, key, ((None, sub),))


def compare_map(
    self_map: Mapping[str, Comparable],
    other_map: Mapping[str, Comparable],
    typname: str,
    compare_values: Optional[EntryComparator] = compare_entry,
) -> Optional[KeyedCollectionDiff]:
    """
    Compare two identity-keyed mappings.

    Keys are always walked in sorted order, whatever the mappings'
    iteration order, so the same inputs always give the same diff.

    Args:
        self_map: Installed side
        other_map: Upgraded side
        typname: Human-readable name of the element type
        compare_values: Comparator for entries found on both sides, or None
            to only compare the key sets

    Returns:
        KeyedCollectionDiff, or None if both mappings are identical
    """
    missing: List[Tuple[DiffSource, Tuple[str, ...]]] = []
    diffs: List[DiffNode] = []

    missing_installed = tuple(sorted(k for k in other_map if k not in self_map))
    if missing_installed:
        missing.append((DiffSource.INSTALLED, missing_installed))

    missing_upgraded: List[str] = []
    for key in sorted(self_map):
        if key not in other_map:
            missing_upgraded.append(key)
            continue
        if compare_values is not None:
            sub = compare_values(typname, key, self_map[key], other_map[key])
            if sub is not None:
                diffs.append(sub)

    if missing_upgraded:
        missing.append((DiffSource.UPGRADED, tuple(missing_upgraded)))

    if not missing and not diffs:
        return None

    return KeyedCollectionDiff(
        installed_len=len(self_map),
        upgraded_len=len(other_map),
        typname=typname,
        missing=tuple(missing),
        diffs=tuple(diffs),
    )


class KeyedCollection(Comparable):
    """
    Comparable values keyed by their identity.

    *typname* names the element type in reports (e.g. "Relation").
    """

    __slots__ = ("typname", "_items")

    def __init__(self, typname: str, items: Optional[Mapping[str, Comparable]] = None):
        self.typname = typname
        self._items: Dict[str, Comparable] = dict(items or {})

    @classmethod
    def of(cls, typname: str, values: Iterable["Composite"]) -> "KeyedCollection":
        """Build a collection keyed by each value's identity."""
        collection = cls(typname)
        for value in values:
            collection.add(value.ident, value)
        return collection

    def add(self, key: str, value: Comparable) -> None:
        if key in self._items:
            raise CatalogError(f"Duplicate {self.typname} found: {key}")
        self._items[key] = value

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __getitem__(self, key: str) -> Comparable:
        return self._items[key]

    def keys(self) -> List[str]:
        return sorted(self._items)

    def items(self) -> List[Tuple[str, Comparable]]:
        return [(key, self._items[key]) for key in self.keys()]

    def compare(self, other: Comparable) -> Optional[DiffNode]:
        self._check_peer(other)
        return compare_map(self._items, other._items, self.typname)  # type: ignore[attr-defined]

    def describe(self) -> str:
        return "{" + ",".join(
            f"{key}={value.describe()}" for key, value in self.items()
        ) + "}"

    def __eq__(self, other: object) -> bool:
        return (
            type(other) is type(self)
            and self.typname == other.typname  # type: ignore[attr-defined]
            and self._items == other._items  # type: ignore[attr-defined]
        )

    def __repr__(self) -> str:
        return f"KeyedCollection({self.typname!r}, {self.keys()!r})"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class Composite(Comparable):
    """
    A named record made of comparable fields.

    Subclasses either list their attributes in COMPONENTS, as
    ``(name, embedded)`` pairs, or override fields(). Diffs of an embedded
    record are merged into the parent's diff, so that reports show the
    actual field path only.
    """

    TYPNAME = ""
    COMPONENTS: Tuple[Tuple[str, bool], ...] = ()

    @property
    @abstractmethod
    def ident(self) -> str:
        """Human-readable identity, used for diff attribution only."""

    def fields(self) -> Iterator[Tuple[str, Comparable, bool]]:
        """Yield ``(name, value, embedded)`` for each field, in order."""
        for name, embedded in self.COMPONENTS:
            yield name, getattr(self, name), embedded

    def compare(self, other: Comparable) -> Optional[DiffNode]:
        self._check_peer(other)

        entries: List[Tuple[Optional[str], DiffNode]] = []
        for (name, mine, embedded), (_, theirs, _) in zip(
            self.fields(), other.fields()  # type: ignore[attr-defined]
        ):
            sub = mine.compare(theirs)
            if sub is None:
                continue

            if not embedded:
                entries.append((name, sub))
            elif isinstance(sub, CompositeDiff):
                entries.extend(sub.fields)
            else:
                entries.append((None, sub))

        if not entries:
            return None
        return CompositeDiff(self.TYPNAME, self.ident, tuple(entries))

    def describe(self) -> str:
        return f"{self.TYPNAME} {self.ident}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.ident}>"
