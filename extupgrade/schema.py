"""
Version-gated catalog schemas.

A catalog record type is declared as a table of Field descriptors. The same
table drives both the SQL target list of the lookup query and the decoding
of the resulting row, for any server version:

- a field whose version range includes the server version selects its real
  expression
- any other field selects a typed NULL and is materialized as a
  NotApplicable placeholder, never as a spurious mismatch
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .compare import Comparable, Composite, KeyedCollection, NotApplicable, Nullable
from .errors import CatalogError


# server_version_num of the major versions that matter for catalog columns
PG_9_3 = 90300
PG_9_4 = 90400
PG_9_5 = 90500
PG_9_6 = 90600
PG_10 = 100000
PG_11 = 110000
PG_12 = 120000
PG_13 = 130000
PG_14 = 140000
PG_15 = 150000
PG_16 = 160000
PG_17 = 170000


def proc_prototype(expr: str) -> str:
    """SQL expression giving the ``name(args)`` prototype of a function oid."""
    return (
        f"{expr}::regproc::text || '(' || "
        f"pg_get_function_arguments({expr}) || ')'"
    )


def opr_prototype(alias: str) -> str:
    """SQL expression giving the ``name(left,right)`` prototype of an operator."""
    return (
        f"{alias}.oid::regoper::text || '(' || "
        f"{alias}.oprleft::regtype::text || ',' || "
        f"{alias}.oprright::regtype::text || ')'"
    )


class Field:
    """
    A column of a catalog record.

    Args:
        name: Field name, also the column alias in the lookup query
        kind: Value kind (see extupgrade.pgtypes)
        expr: SQL expression, defaults to the bare column *name*
        nullable: Whether SQL NULL is a legal value
        min_version: First server_version_num having the field (inclusive)
        max_version: First server_version_num without the field (exclusive)
    """

    __slots__ = ("name", "kind", "expr", "nullable", "min_version", "max_version")

    def __init__(
        self,
        name: str,
        kind: Any,
        expr: Optional[str] = None,
        nullable: bool = False,
        min_version: Optional[int] = None,
        max_version: Optional[int] = None,
    ):
        self.name = name
        self.kind = kind
        self.expr = expr
        self.nullable = nullable
        self.min_version = min_version
        self.max_version = max_version

    @property
    def gated(self) -> bool:
        return self.min_version is not None or self.max_version is not None

    def applies_to(self, server_version_num: int) -> bool:
        if self.min_version is not None and server_version_num < self.min_version:
            return False
        if self.max_version is not None and server_version_num >= self.max_version:
            return False
        return True

    def select(self, server_version_num: int) -> str:
        """Target list entry for this field."""
        if not self.applies_to(server_version_num):
            return f"NULL::{self.kind.SQL_TYPE} AS {self.name}"
        if self.expr is None:
            return self.name
        return f"{self.expr} AS {self.name}"

    def decode(self, row: Mapping[str, Any], server_version_num: int) -> Comparable:
        """
        Materialize this field from a result row.

        Raises:
            CatalogError: if the column is missing or unexpectedly NULL
        """
        if not self.applies_to(server_version_num):
            return NotApplicable(self.kind)

        if self.name not in row:
            raise CatalogError(f"column {self.name} is missing")

        raw = row[self.name]
        if raw is None:
            if self.nullable:
                return Nullable()
            raise CatalogError(f"column {self.name} is NULL")

        value = self.kind.from_sql(raw)
        if self.nullable or self.gated:
            return Nullable(value)
        return value

    def __repr__(self) -> str:
        return f"Field({self.name!r})"


class CatalogStruct(Composite):
    """
    A record read from a catalog table.

    Subclasses declare:
        TYPNAME: name used in reports
        IDENT: field holding the record's identity
        FIELDS: the Field descriptors, in report order
        FROM: FROM clause of the lookup query
        OID_COLUMN: column matched against member oids, for snapshot_oids()
    """

    IDENT = ""
    FIELDS: Tuple[Field, ...] = ()
    FROM = ""
    OID_COLUMN = ""

    def __init__(self, ident: str, values: Dict[str, Comparable]):
        self._ident = ident
        self.values = values

    @property
    def ident(self) -> str:
        return self._ident

    def __getitem__(self, name: str) -> Comparable:
        return self.values[name]

    def get(self, name: str) -> Any:
        """Plain Python value of a field, None if absent."""
        value = self.values[name]
        if isinstance(value, Nullable):
            value = value.value
        if value is None:
            return None
        return getattr(value, "value", value)

    def fields(self) -> Iterator[Tuple[str, Comparable, bool]]:
        for field in self.FIELDS:
            yield field.name, self.values[field.name], False

    @classmethod
    def target_list(cls, server_version_num: int) -> List[str]:
        return [field.select(server_version_num) for field in cls.FIELDS]

    @classmethod
    def query(
        cls,
        server_version_num: int,
        where: str,
        extra: Sequence[str] = (),
        order_by: Optional[str] = None,
    ) -> str:
        """Build the lookup query for this record type."""
        tlist = cls.target_list(server_version_num) + list(extra)
        sql = f"SELECT {', '.join(tlist)} FROM {cls.FROM} WHERE {where}"
        if order_by:
            sql += f" ORDER BY {order_by}"
        return sql

    @classmethod
    def from_row(cls, row: Mapping[str, Any], server_version_num: int) -> "CatalogStruct":
        """
        Decode a result row.

        Raises:
            CatalogError: if the row doesn't match the declared fields
        """
        ident = row.get(cls.IDENT)
        if ident is None:
            raise CatalogError(
                f"Could not import {cls.TYPNAME} row: no value for {cls.IDENT}"
            )

        values: Dict[str, Comparable] = {}
        for field in cls.FIELDS:
            try:
                values[field.name] = field.decode(row, server_version_num)
            except CatalogError as e:
                raise CatalogError(
                    f"Could not import {cls.TYPNAME} row\n"
                    f"{cls.IDENT}: {ident}\n"
                    f"column: {field.name}\n"
                    f"Error: {e}"
                ) from e

        return cls(str(ident), values)

    @classmethod
    def fetch(
        cls,
        ctx: "SnapshotContext",
        where: str,
        params: Optional[tuple] = None,
        order_by: Optional[str] = None,
    ) -> List["CatalogStruct"]:
        """Run the lookup query and decode every row."""
        v = ctx.server_version_num
        rows = ctx.db.fetchall(cls.query(v, where, order_by=order_by), params)
        return [cls.from_row(row, v) for row in rows]

    @classmethod
    def fetch_collection(
        cls,
        ctx: "SnapshotContext",
        where: str,
        params: Optional[tuple] = None,
    ) -> KeyedCollection:
        return KeyedCollection.of(cls.TYPNAME, cls.fetch(ctx, where, params))

    @classmethod
    def snapshot_oids(cls, ctx: "SnapshotContext", oids: Sequence[int]) -> KeyedCollection:
        """
        Snapshot the records for a list of extension member oids.

        Raises:
            CatalogError: if some oid has no matching record
        """
        records = cls.fetch(ctx, f"{cls.OID_COLUMN} = ANY(%s::oid[])", (list(oids),))
        if len(records) != len(set(oids)):
            raise CatalogError(
                f"Expected {len(set(oids))} {cls.TYPNAME} records, found {len(records)}"
            )
        return KeyedCollection.of(cls.TYPNAME, records)


@dataclass
class SnapshotContext:
    """What every catalog snapshot function needs."""
    db: Any  # DatabaseConnection
    server_version_num: int
    reporter: Any  # Reporter

    def at_least(self, version: int) -> bool:
        return self.server_version_num >= version
