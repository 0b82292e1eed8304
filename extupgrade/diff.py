"""
Diff tree for extupgrade.

A comparison never produces text directly. It produces one of the node
types below, describing where and how the installed and upgraded snapshots
differ, and extupgrade.rendering turns that tree into the report.

The set of node types is closed: the renderer handles every one of them and
nothing else.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union


class DiffSource(str, Enum):
    """Which snapshot a diff entry is attributed to."""
    INSTALLED = "installed"
    UPGRADED = "upgraded"

    @property
    def other(self) -> "DiffSource":
        if self is DiffSource.INSTALLED:
            return DiffSource.UPGRADED
        return DiffSource.INSTALLED


@dataclass(frozen=True)
class ValueDiff:
    """A terminal value differs."""
    installed: str
    upgraded: str


@dataclass(frozen=True)
class NamedValueDiff:
    """A key of a keyed set of primitives (options, privileges) differs."""
    name: str
    installed: str
    upgraded: str


@dataclass(frozen=True)
class AbsentDiff:
    """
    One side has no value while the other has.

    ``missing`` is the side without a value, ``value`` the rendered value
    of the other side.
    """
    missing: DiffSource
    value: str

    @property
    def present(self) -> DiffSource:
        return self.missing.other


@dataclass(frozen=True)
class SequenceDiff:
    """
    Ordered elements differ.

    ``diffs`` holds ``(position, diff)`` pairs, positions being 1-based.
    """
    installed_len: int
    upgraded_len: int
    diffs: Tuple[Tuple[int, "DiffNode"], ...]


@dataclass(frozen=True)
class KeyedCollectionDiff:
    """
    Identity-keyed elements differ.

    ``missing`` holds ``(side, keys)`` groups, ``side`` being the snapshot
    that lacks the keys. ``diffs`` holds the diffs of elements present on
    both sides, in key order.
    """
    installed_len: int
    upgraded_len: int
    typname: str
    missing: Tuple[Tuple[DiffSource, Tuple[str, ...]], ...]
    diffs: Tuple["DiffNode", ...]


@dataclass(frozen=True)
class CompositeDiff:
    """
    Fields of a composite differ.

    A ``None`` label means the diff comes from an embedded record and is
    rendered without a field wrapper.
    """
    typname: str
    ident: str
    fields: Tuple[Tuple[Optional[str], "DiffNode"], ...]


@dataclass(frozen=True)
class UnifiedTextDiff:
    """Multi-line text differs; ``patch`` holds unified diff lines."""
    patch: Tuple[str, ...]
    label: Optional[str] = None


@dataclass(frozen=True)
class ConfigurationDiff:
    """Settings changed by an extension script and left changed."""
    version: str
    changes: Tuple[Tuple[str, str], ...]


DiffNode = Union[
    ValueDiff,
    NamedValueDiff,
    AbsentDiff,
    SequenceDiff,
    KeyedCollectionDiff,
    CompositeDiff,
    UnifiedTextDiff,
    ConfigurationDiff,
]


def count_differences(nodes: List[DiffNode]) -> int:
    """Count terminal differences in a list of diff trees."""
    total = 0
    for node in nodes:
        if isinstance(node, SequenceDiff):
            total += count_differences([d for _, d in node.diffs])
        elif isinstance(node, KeyedCollectionDiff):
            total += sum(len(keys) for _, keys in node.missing)
            total += count_differences(list(node.diffs))
        elif isinstance(node, CompositeDiff):
            total += count_differences([d for _, d in node.fields])
        elif isinstance(node, ConfigurationDiff):
            total += len(node.changes)
        else:
            total += 1
    return total
