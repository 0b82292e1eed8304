"""
Types (pg_type), with the relation of composite types and the range
definition of range types.
"""

from typing import Optional, Sequence

from ..compare import Composite, KeyedCollection, Nullable
from ..errors import CatalogError
from ..pgtypes import AclList, Bool, Char, Integer, Name, Smallint, Text, TextArray
from ..schema import PG_14, CatalogStruct, Field, SnapshotContext, proc_prototype
from . import relations


class PgType(CatalogStruct):
    TYPNAME = "Type"
    IDENT = "typname"
    FROM = """pg_type t
        JOIN pg_roles r ON r.oid = t.typowner
        LEFT JOIN pg_collation c ON c.oid = t.typcollation"""
    FIELDS = (
        Field("typname", Text, "t.oid::regtype::text"),
        Field("typowner", Name, "r.rolname"),
        Field("typlen", Smallint, "t.typlen"),
        Field("typbyval", Bool, "t.typbyval"),
        Field("typtype", Char, "t.typtype"),
        Field("typcategory", Char, "t.typcategory"),
        Field("typispreferred", Bool, "t.typispreferred"),
        Field("typisdefined", Bool, "t.typisdefined"),
        Field("typdelim", Char, "t.typdelim"),
        Field("typrelid", Text, "t.typrelid::regclass::text"),
        Field("typsubscript", Text, proc_prototype("t.typsubscript"),
              nullable=True, min_version=PG_14),
        Field("typelem", Text, "t.typelem::regtype::text"),
        Field("typarray", Text, "t.typarray::regtype::text"),
        Field("typinput", Text, proc_prototype("t.typinput")),
        Field("typoutput", Text, proc_prototype("t.typoutput")),
        Field("typreceive", Text, proc_prototype("t.typreceive"), nullable=True),
        Field("typsend", Text, proc_prototype("t.typsend"), nullable=True),
        Field("typmodin", Text, proc_prototype("t.typmodin"), nullable=True),
        Field("typmodout", Text, proc_prototype("t.typmodout"), nullable=True),
        Field("typanalyze", Text, proc_prototype("t.typanalyze"), nullable=True),
        Field("typalign", Char, "t.typalign"),
        Field("typstorage", Char, "t.typstorage"),
        Field("typnotnull", Bool, "t.typnotnull"),
        Field("typndims", Integer, "t.typndims"),
        Field("typcollation", Name, "c.collname", nullable=True),
        Field("typdefault", Text, "t.typdefault", nullable=True),
        Field("typacl", AclList, "t.typacl::text[]", nullable=True),
        Field("typenum", TextArray,
              "(SELECT array_agg(e.enumlabel || '=' || e.enumsortorder "
              "ORDER BY e.enumsortorder) "
              "FROM pg_enum e WHERE e.enumtypid = t.oid)",
              nullable=True),
        Field("comment", Text, "obj_description(t.oid, 'pg_type')", nullable=True),
    )


class Range(CatalogStruct):
    TYPNAME = "Range"
    IDENT = "rngtypid"
    FROM = """pg_range rg
        JOIN pg_opclass opc ON opc.oid = rg.rngsubopc
        LEFT JOIN pg_collation c ON c.oid = rg.rngcollation"""
    FIELDS = (
        Field("rngtypid", Text, "rg.rngtypid::regtype::text"),
        Field("rngsubtype", Text, "rg.rngsubtype::regtype::text"),
        Field("rngmultitypid", Text, "rg.rngmultitypid::regtype::text", min_version=PG_14),
        Field("rngcollation", Name, "c.collname", nullable=True),
        Field("rngsubopc", Name, "opc.opcname"),
        Field("rngcanonical", Text, proc_prototype("rg.rngcanonical"), nullable=True),
        Field("rngsubdiff", Text, proc_prototype("rg.rngsubdiff"), nullable=True),
    )


class Type(Composite):
    TYPNAME = "Type"
    COMPONENTS = (
        ("typ", True),
        ("relation", False),
        ("range", False),
    )

    def __init__(
        self,
        typ: PgType,
        relation: Optional[relations.Relation] = None,
        range: Optional[Range] = None,
    ):
        self.typ = typ
        self.relation = Nullable(relation)
        self.range = Nullable(range)

    @property
    def ident(self) -> str:
        return self.typ.ident


def is_shell(typ: PgType) -> bool:
    return (typ.get("typinput").startswith("shell_in")
            or typ.get("typoutput").startswith("shell_out"))


def snapshot_one(ctx: SnapshotContext, oid: int) -> Optional[Type]:
    """
    Snapshot a type, returning None if there's no such type.

    Raises:
        CatalogError: if the relation of a composite type can't be found
    """
    v = ctx.server_version_num
    rows = ctx.db.fetchall(
        PgType.query(v, "t.oid = %s", extra=["t.typrelid AS typrelid_oid"]),
        (oid,),
    )
    if not rows:
        return None
    typ = PgType.from_row(rows[0], v)

    # Shell types are most likely not what the extension author wants
    if is_shell(typ):
        ctx.reporter.warning(f"Shell type found for type {typ.ident}")

    relation = None
    typrelid = rows[0]["typrelid_oid"]
    if typrelid:
        relation = relations.snapshot_one(ctx, typrelid, frozenset("c"))
        if relation is None:
            raise CatalogError(f"Could not find relation for type {typ.ident}")

    ranges = Range.fetch(ctx, "rg.rngtypid = %s", (oid,))

    return Type(typ, relation, ranges[0] if ranges else None)


def snapshot(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    """Snapshot the pg_type members of an extension."""
    types = KeyedCollection(Type.TYPNAME)

    for oid in oids:
        typ = snapshot_one(ctx, oid)
        if typ is None:
            ctx.reporter.warning(f"Could not find pg_type entry for oid {oid}")
            continue
        types.add(typ.ident, typ)

    return types
