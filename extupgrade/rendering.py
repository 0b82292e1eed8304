"""
Text rendering of diff trees.

render() is a pure function of a diff node and an indentation level. Each
node type has a fixed template; the report of a run is the concatenation
of its rendered diffs, so the same diffs always give the same text.
"""

from typing import Iterable, List

from .diff import (
    AbsentDiff,
    CompositeDiff,
    ConfigurationDiff,
    DiffNode,
    DiffSource,
    KeyedCollectionDiff,
    NamedValueDiff,
    SequenceDiff,
    UnifiedTextDiff,
    ValueDiff,
)
from .errors import ContractViolation


INDENT = "  "


def indent(level: int) -> str:
    return INDENT * level


def _size_mismatch(installed_len: int, upgraded_len: int) -> tuple:
    """Return ``(bigger side, difference, bigger len, smaller side, smaller len)``."""
    if installed_len > upgraded_len:
        return (DiffSource.INSTALLED, installed_len - upgraded_len,
                installed_len, DiffSource.UPGRADED, upgraded_len)
    return (DiffSource.UPGRADED, upgraded_len - installed_len,
            upgraded_len, DiffSource.INSTALLED, installed_len)


def _render_value(node: ValueDiff, level: int) -> str:
    i = indent(level)
    return f"{i}- {node.installed}\n{i}+ {node.upgraded}\n\n"


def _render_named_value(node: NamedValueDiff, level: int) -> str:
    i = indent(level)
    return (
        f"{i}- {node.name}: {node.installed}\n"
        f"{i}+ {node.name}: {node.upgraded}\n\n"
    )


def _render_absent(node: AbsentDiff, level: int) -> str:
    return (
        f"{indent(level)}- {node.missing.value} has no value, "
        f"while {node.present.value} has\n"
        f"{indent(level + 1)}+ {node.value}\n\n"
    )


def _render_sequence(node: SequenceDiff, level: int) -> str:
    i = indent(level)
    res = ""

    if node.installed_len != node.upgraded_len:
        big, count, big_len, small, small_len = _size_mismatch(
            node.installed_len, node.upgraded_len
        )
        res += (
            f"{i}- {big.value} has {count} more elements ({big_len}) "
            f"than {small.value} ({small_len})\n"
        )

    for position, sub in node.diffs:
        res += f"{i}- mismatch for elem #{position}:\n"
        res += render(sub, level + 1)

    return res


def _render_keyed_collection(node: KeyedCollectionDiff, level: int) -> str:
    i = indent(level)
    i1 = indent(level + 1)
    i2 = indent(level + 2)
    res = ""

    if node.installed_len == node.upgraded_len:
        res += (
            f"{i}{DiffSource.INSTALLED.value} and {DiffSource.UPGRADED.value} "
            f"both have {node.installed_len} {node.typname} "
            f"but some mismatch in them:\n"
        )
    else:
        big, count, big_len, small, small_len = _size_mismatch(
            node.installed_len, node.upgraded_len
        )
        res += (
            f"{i}{big.value} has {count} more {node.typname} ({big_len}) "
            f"than {small.value} ({small_len})\n"
        )

    for side, keys in node.missing:
        res += f"{i1}Missing {node.typname}: {len(keys)} in {side.value}\n"
        for key in keys:
            res += f"{i2}- {key}\n"
        res += "\n"

    for sub in node.diffs:
        res += render(sub, level + 1)

    return res


def _render_composite(node: CompositeDiff, level: int) -> str:
    res = f"{indent(level)}- mismatch found for {node.typname} {node.ident}:\n"

    for label, sub in node.fields:
        if label is None:
            res += render(sub, level + 1)
        else:
            res += f"{indent(level + 1)}- in {label}:\n"
            res += render(sub, level + 2)

    return res


def patch_lines(node: UnifiedTextDiff) -> List[str]:
    """The full patch, with installed/upgraded as file names."""
    return [
        f"--- {DiffSource.INSTALLED.value}",
        f"+++ {DiffSource.UPGRADED.value}",
    ] + list(node.patch)


def _render_unified_text(node: UnifiedTextDiff, level: int) -> str:
    res = ""
    if node.label is not None:
        res += f"{indent(level)}- {node.label}:\n"
        level += 1

    i = indent(level)
    for line in patch_lines(node):
        res += f"{i}{line}\n"
    return res + "\n"


def _render_configuration(node: ConfigurationDiff, level: int) -> str:
    res = (
        f"{indent(level)}Some GUC changes leaked the script for version "
        f"{node.version}:\n"
    )
    for name, value in node.changes:
        res += f"{indent(level + 1)}- {name} changed to: {value}\n"
    return res + "\n"


_RENDERERS = {
    ValueDiff: _render_value,
    NamedValueDiff: _render_named_value,
    AbsentDiff: _render_absent,
    SequenceDiff: _render_sequence,
    KeyedCollectionDiff: _render_keyed_collection,
    CompositeDiff: _render_composite,
    UnifiedTextDiff: _render_unified_text,
    ConfigurationDiff: _render_configuration,
}


def render(node: DiffNode, level: int = 0) -> str:
    """
    Render a diff node as indented text.

    Args:
        node: Diff tree to render
        level: Indentation level of the node

    Returns:
        The rendered text, ending with a newline
    """
    renderer = _RENDERERS.get(type(node))
    if renderer is None:
        raise ContractViolation(f"Unknown diff node: {node!r}")
    return renderer(node, level)  # type: ignore[operator]


def render_report(nodes: Iterable[DiffNode]) -> str:
    """Render every diff of a run, in order."""
    return "".join(render(node) for node in nodes)
