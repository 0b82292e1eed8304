"""
User-provided queries, run against both snapshots.

Some extension state isn't visible in the catalogs, like the content of
configuration tables. Each query result is turned into text and both texts
are compared line by line.
"""

from typing import Any, Dict, List, Optional, Sequence

from .compare import text_diff
from .diff import UnifiedTextDiff


def format_result(rows: Sequence[Dict[str, Any]], columns: Sequence[str]) -> str:
    """
    Format a result set as text.

    The first line holds the column names, then one line per row, values
    separated by a ``|``. NULL is shown as an empty value.
    """
    lines = ["|".join(columns)]
    for row in rows:
        lines.append("|".join(
            "" if row[col] is None else str(row[col]) for col in columns
        ))
    return "\n".join(lines) + "\n"


def run_query(db, query: str) -> str:
    columns, rows = db.fetch_result(query)
    return format_result(rows, columns)


def run_queries(db, queries: Sequence[str]) -> List[str]:
    """Run each query and return the formatted results, in order."""
    return [run_query(db, query) for query in queries]


def compare_results(
    queries: Sequence[str],
    installed: Sequence[str],
    upgraded: Sequence[str],
) -> List[UnifiedTextDiff]:
    """Diff the formatted results of each query, for both snapshots."""
    diffs: List[UnifiedTextDiff] = []
    for query, mine, theirs in zip(queries, installed, upgraded):
        diff: Optional[UnifiedTextDiff] = text_diff(
            mine, theirs, label=f'extra query "{query}"'
        )
        if diff is not None:
            diffs.append(diff)
    return diffs
