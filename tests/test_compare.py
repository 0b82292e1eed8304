"""
Test the comparison engine.

Covers:
- Scalar and string comparison, multi-line strings as unified diffs
- Nullable state table and version placeholders
- OrderedList positions and extra elements
- KeyedCollection missing groups and deterministic ordering
- Composite field labelling and embedded record flattening
- Contract violations (mismatched peers, describe on absent values)
"""

from __future__ import annotations

import pytest

from extupgrade.compare import (
    Composite,
    KeyedCollection,
    NotApplicable,
    Nullable,
    OrderedList,
    Scalar,
    compare_map,
    text_diff,
)
from extupgrade.diff import (
    AbsentDiff,
    CompositeDiff,
    DiffSource,
    KeyedCollectionDiff,
    NamedValueDiff,
    SequenceDiff,
    UnifiedTextDiff,
    ValueDiff,
    count_differences,
)
from extupgrade.errors import CatalogError, ContractViolation
from extupgrade.pgtypes import Bool, Integer, Text


class Point(Composite):
    TYPNAME = "Point"
    COMPONENTS = (("x", False), ("y", False))

    def __init__(self, name: str, x: int, y: int):
        self.name = name
        self.x = Integer(x)
        self.y = Integer(y)

    @property
    def ident(self) -> str:
        return self.name


class Header(Composite):
    TYPNAME = "Header"
    COMPONENTS = (("title", False),)

    def __init__(self, name: str, title: str):
        self.name = name
        self.title = Text(title)

    @property
    def ident(self) -> str:
        return self.name


class Document(Composite):
    TYPNAME = "Document"
    COMPONENTS = (("header", True), ("body", False))

    def __init__(self, header: Header, body: str):
        self.header = header
        self.body = Text(body)

    @property
    def ident(self) -> str:
        return self.header.ident


# ---------------------------------------------------------------------------
# Terminal values
# ---------------------------------------------------------------------------

class TestScalar:
    """Terminal values compare by equality."""

    def test_equal_values(self):
        assert Integer(1).compare(Integer(1)) is None

    def test_different_values(self):
        assert Integer(1).compare(Integer(2)) == ValueDiff("1", "2")

    def test_bool_description(self):
        assert Bool(True).compare(Bool(False)) == ValueDiff("true", "false")

    def test_mismatched_kinds_violate_contract(self):
        with pytest.raises(ContractViolation):
            Integer(1).compare(Text("1"))

    def test_hashable(self):
        assert len({Text("a"), Text("a"), Text("b")}) == 2


class TestString:
    """Strings, with multi-line values reported as unified diffs."""

    def test_single_line(self):
        assert Text("a").compare(Text("b")) == ValueDiff("a", "b")

    def test_multi_line_gives_unified_diff(self):
        mine = Text("BEGIN\n  RETURN 1;\nEND")
        theirs = Text("BEGIN\n  RETURN 2;\nEND")

        diff = mine.compare(theirs)

        assert isinstance(diff, UnifiedTextDiff)
        assert "-  RETURN 1;" in diff.patch
        assert "+  RETURN 2;" in diff.patch
        assert diff.label is None

    def test_multi_line_on_one_side_only(self):
        diff = Text("a").compare(Text("a\nb"))
        assert isinstance(diff, UnifiedTextDiff)

    def test_text_diff_keeps_context_lines(self):
        installed = "\n".join(f"line {i}" for i in range(10))
        upgraded = installed.replace("line 5", "line five")

        diff = text_diff(installed, upgraded)

        assert diff is not None
        assert diff.patch[0].startswith("@@")
        assert " line 4" in diff.patch
        assert " line 6" in diff.patch
        # Lines far from the change are not part of the hunk
        assert " line 0" not in diff.patch

    def test_text_diff_identical_texts(self):
        assert text_diff("a\nb\n", "a\nb\n") is None

    def test_text_diff_trailing_newline(self):
        assert text_diff("a\nb\n", "a\nb") is not None

    @pytest.mark.parametrize("separator", ["\x0b", "\x0c", "\x1c", "\x85", "\u2028", "\r"])
    def test_only_line_feeds_split_lines(self, separator: str):
        diff = Text(f"a\nb{separator}c").compare(Text("a\nb\nc"))

        assert isinstance(diff, UnifiedTextDiff)
        assert f"-b{separator}c" in diff.patch


# ---------------------------------------------------------------------------
# Optional values
# ---------------------------------------------------------------------------

class TestNullable:
    """State table of optional values."""

    def test_both_absent(self):
        assert Nullable().compare(Nullable()) is None

    def test_both_present_and_equal(self):
        assert Nullable(Text("a")).compare(Nullable(Text("a"))) is None

    def test_both_present_and_different(self):
        assert Nullable(Text("a")).compare(Nullable(Text("b"))) == ValueDiff("a", "b")

    def test_absent_in_installed(self):
        diff = Nullable().compare(Nullable(Text("a")))
        assert diff == AbsentDiff(DiffSource.INSTALLED, "a")
        assert diff.present is DiffSource.UPGRADED

    def test_absent_in_upgraded(self):
        diff = Nullable(Text("a")).compare(Nullable())
        assert diff == AbsentDiff(DiffSource.UPGRADED, "a")
        assert diff.present is DiffSource.INSTALLED

    def test_describe_absent_violates_contract(self):
        with pytest.raises(ContractViolation):
            Nullable().describe()

    def test_compare_with_non_nullable_violates_contract(self):
        with pytest.raises(ContractViolation):
            Nullable(Text("a")).compare(Text("a"))


class TestNotApplicable:
    """Placeholders for fields a server version doesn't have."""

    def test_two_placeholders_are_equal(self):
        assert NotApplicable(Text).compare(NotApplicable(Text)) is None

    def test_placeholder_against_present_value(self):
        diff = NotApplicable(Text).compare(Nullable(Text("x")))
        assert diff == AbsentDiff(DiffSource.INSTALLED, "x")

    def test_present_value_against_placeholder(self):
        diff = Nullable(Text("x")).compare(NotApplicable(Text))
        assert diff == AbsentDiff(DiffSource.UPGRADED, "x")

    def test_placeholders_of_different_kinds_violate_contract(self):
        with pytest.raises(ContractViolation):
            NotApplicable(Text).compare(NotApplicable(Bool))


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

class TestOrderedList:
    """Order-significant sequences."""

    def test_identical(self):
        items = [Text("a"), Text("b")]
        assert OrderedList(items).compare(OrderedList(items)) is None

    def test_element_mismatch_is_one_based(self):
        diff = OrderedList([Text("a"), Text("b")]).compare(
            OrderedList([Text("a"), Text("c")])
        )
        assert diff == SequenceDiff(2, 2, ((2, ValueDiff("b", "c")),))

    def test_upgraded_has_more_elements(self):
        diff = OrderedList([Text("a")]).compare(
            OrderedList([Text("a"), Text("b"), Text("c")])
        )
        assert diff == SequenceDiff(1, 3, (
            (2, AbsentDiff(DiffSource.INSTALLED, "b")),
            (3, AbsentDiff(DiffSource.INSTALLED, "c")),
        ))

    def test_installed_has_more_elements(self):
        diff = OrderedList([Text("a"), Text("b")]).compare(OrderedList([Text("a")]))
        assert diff == SequenceDiff(2, 1, ((2, AbsentDiff(DiffSource.UPGRADED, "b")),))

    def test_empty_against_non_empty(self):
        diff = OrderedList().compare(OrderedList([Integer(7)]))
        assert diff == SequenceDiff(0, 1, ((1, AbsentDiff(DiffSource.INSTALLED, "7")),))

    def test_describe(self):
        assert OrderedList([Text("a"), Text("b")]).describe() == "{a,b}"


class TestKeyedCollection:
    """Identity-keyed collections."""

    def test_identical(self):
        mine = KeyedCollection("thing", {"a": Text("1")})
        theirs = KeyedCollection("thing", {"a": Text("1")})
        assert mine.compare(theirs) is None

    def test_missing_groups(self):
        mine = KeyedCollection("thing", {"a": Text("1"), "b": Text("2")})
        theirs = KeyedCollection("thing", {"b": Text("2"), "c": Text("3"), "d": Text("4")})

        diff = mine.compare(theirs)

        assert diff == KeyedCollectionDiff(
            installed_len=2,
            upgraded_len=3,
            typname="thing",
            missing=(
                (DiffSource.INSTALLED, ("c", "d")),
                (DiffSource.UPGRADED, ("a",)),
            ),
            diffs=(),
        )

    def test_value_diffs_get_the_key(self):
        mine = KeyedCollection("option", {"fillfactor": Text("70")})
        theirs = KeyedCollection("option", {"fillfactor": Text("80")})

        diff = mine.compare(theirs)

        assert diff.diffs == (NamedValueDiff("fillfactor", "70", "80"),)

    def test_text_diffs_get_the_key(self):
        mine = KeyedCollection("configuration table", {
            "public.cfg": Text("WHERE a\nAND b"),
            "public.other": Text("x"),
        })
        theirs = KeyedCollection("configuration table", {
            "public.cfg": Text("WHERE a\nAND c"),
            "public.other": Text("x"),
        })

        (sub,) = mine.compare(theirs).diffs

        assert isinstance(sub, UnifiedTextDiff)
        assert sub.label == "public.cfg"
        assert "+AND c" in sub.patch

    def test_other_diffs_are_wrapped_with_the_key(self):
        mine = KeyedCollection("setting", {"a": Nullable()})
        theirs = KeyedCollection("setting", {"a": Nullable(Text("on"))})

        (sub,) = mine.compare(theirs).diffs

        assert sub == CompositeDiff(
            "setting", "a", ((None, AbsentDiff(DiffSource.INSTALLED, "on")),)
        )

    def test_record_diffs_are_kept(self):
        mine = KeyedCollection.of("Point", [Point("p", 1, 2)])
        theirs = KeyedCollection.of("Point", [Point("p", 1, 3)])

        (sub,) = mine.compare(theirs).diffs

        assert sub == CompositeDiff("Point", "p", (("y", ValueDiff("2", "3")),))

    def test_ordering_ignores_insertion_order(self):
        first = KeyedCollection("thing")
        for key in ("z", "a", "m"):
            first.add(key, Text(key))
        second = KeyedCollection("thing")
        for key in ("m", "z", "a"):
            second.add(key, Text(key + "!"))

        diff = first.compare(second)

        assert [d.name for d in diff.diffs] == ["a", "m", "z"]
        assert first.keys() == ["a", "m", "z"]

    def test_duplicate_key(self):
        collection = KeyedCollection("thing", {"a": Text("1")})
        with pytest.raises(CatalogError, match="Duplicate thing found: a"):
            collection.add("a", Text("2"))

    def test_compare_map_keys_only(self):
        diff = compare_map({"a": Text("1")}, {"a": Text("2")}, "thing", compare_values=None)
        assert diff is None

    def test_describe(self):
        collection = KeyedCollection("option", {"b": Text("2"), "a": Text("1")})
        assert collection.describe() == "{a=1,b=2}"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class TestComposite:
    """Named records and embedded record flattening."""

    def test_identical(self):
        assert Point("p", 1, 2).compare(Point("p", 1, 2)) is None

    def test_field_labels(self):
        diff = Point("p", 1, 2).compare(Point("p", 1, 3))
        assert diff == CompositeDiff("Point", "p", (("y", ValueDiff("2", "3")),))

    def test_embedded_record_is_flattened(self):
        diff = Document(Header("doc", "Old"), "body").compare(
            Document(Header("doc", "New"), "other body")
        )

        assert diff == CompositeDiff("Document", "doc", (
            ("title", ValueDiff("Old", "New")),
            ("body", ValueDiff("body", "other body")),
        ))

    def test_only_body_differs(self):
        diff = Document(Header("doc", "T"), "a").compare(Document(Header("doc", "T"), "b"))
        assert diff.fields == (("body", ValueDiff("a", "b")),)

    def test_different_record_types_violate_contract(self):
        with pytest.raises(ContractViolation):
            Point("p", 1, 2).compare(Header("p", "x"))

    def test_describe(self):
        assert Point("origin", 0, 0).describe() == "Point origin"

    def test_reflexive(self):
        doc = Document(Header("doc", "T"), "line 1\nline 2")
        assert doc.compare(doc) is None


class TestCountDifferences:
    """Summary count of a diff tree."""

    def test_counts_leaves_and_missing_keys(self):
        mine = KeyedCollection("thing", {"a": Text("1"), "b": Text("2")})
        theirs = KeyedCollection("thing", {"b": Text("3"), "c": Text("4")})

        diff = mine.compare(theirs)

        # a missing, c missing, b differs
        assert count_differences([diff]) == 3

    def test_scalar(self):
        assert count_differences([Scalar(1).compare(Scalar(2))]) == 1
