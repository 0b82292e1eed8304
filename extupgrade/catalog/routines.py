"""
Routines (pg_proc), with their aggregate definition when there's one.
"""

from typing import Optional, Sequence

from ..compare import Composite, KeyedCollection, Nullable
from ..pgtypes import AclList, Bool, Char, ClassOptions, Integer, Name, Real, Smallint, Text
from ..schema import (
    PG_11, PG_12, PG_14, PG_9_4, PG_9_6,
    CatalogStruct, Field, SnapshotContext, opr_prototype, proc_prototype,
)


class PgRoutine(CatalogStruct):
    TYPNAME = "Routine"
    IDENT = "signature"
    FROM = """pg_proc p
        JOIN pg_roles r ON r.oid = p.proowner
        JOIN pg_language l ON l.oid = p.prolang"""
    FIELDS = (
        Field("signature", Text, proc_prototype("p.oid")),
        Field("proowner", Name, "r.rolname"),
        Field("prolang", Name, "l.lanname"),
        Field("procost", Real, "p.procost"),
        Field("prorows", Real, "p.prorows"),
        Field("prosupport", Text, proc_prototype("p.prosupport"),
              nullable=True, min_version=PG_12),
        Field("prokind", Char, "p.prokind", min_version=PG_11),
        Field("proisagg", Bool, "p.proisagg", max_version=PG_11),
        Field("proiswindow", Bool, "p.proiswindow", max_version=PG_11),
        Field("prosecdef", Bool, "p.prosecdef"),
        Field("proleakproof", Bool, "p.proleakproof"),
        Field("proisstrict", Bool, "p.proisstrict"),
        Field("proretset", Bool, "p.proretset"),
        Field("provolatile", Char, "p.provolatile"),
        Field("proparallel", Char, "p.proparallel", min_version=PG_9_6),
        Field("prorettype", Text, "pg_get_function_result(p.oid)", nullable=True),
        Field("prosrc", Text, "p.prosrc"),
        Field("prosqlbody", Text, "pg_get_function_sqlbody(p.oid)",
              nullable=True, min_version=PG_14),
        Field("proconfig", ClassOptions, "p.proconfig", nullable=True),
        Field("proacl", AclList, "p.proacl::text[]", nullable=True),
        Field("probin", Text, "p.probin", nullable=True),
        Field("comment", Text, "obj_description(p.oid, 'pg_proc')", nullable=True),
    )


class Aggregate(CatalogStruct):
    TYPNAME = "Aggregate"
    IDENT = "aggname"
    FROM = """pg_aggregate a
        LEFT JOIN pg_operator o ON o.oid = a.aggsortop"""
    FIELDS = (
        Field("aggname", Text, proc_prototype("a.aggfnoid")),
        Field("aggkind", Char, "a.aggkind", min_version=PG_9_4),
        Field("aggnumdirectargs", Smallint, "a.aggnumdirectargs", min_version=PG_9_4),
        Field("aggtransfn", Text, proc_prototype("a.aggtransfn")),
        Field("aggfinalfn", Text, proc_prototype("a.aggfinalfn"), nullable=True),
        Field("aggcombinefn", Text, proc_prototype("a.aggcombinefn"),
              nullable=True, min_version=PG_9_6),
        Field("aggserialfn", Text, proc_prototype("a.aggserialfn"),
              nullable=True, min_version=PG_9_6),
        Field("aggdeserialfn", Text, proc_prototype("a.aggdeserialfn"),
              nullable=True, min_version=PG_9_6),
        Field("aggmtransfn", Text, proc_prototype("a.aggmtransfn"),
              nullable=True, min_version=PG_9_4),
        Field("aggminvtransfn", Text, proc_prototype("a.aggminvtransfn"),
              nullable=True, min_version=PG_9_4),
        Field("aggmfinalfn", Text, proc_prototype("a.aggmfinalfn"),
              nullable=True, min_version=PG_9_4),
        Field("aggfinalextra", Bool, "a.aggfinalextra", min_version=PG_9_4),
        Field("aggmfinalextra", Bool, "a.aggmfinalextra", min_version=PG_9_4),
        Field("aggfinalmodify", Char, "a.aggfinalmodify", min_version=PG_11),
        Field("aggmfinalmodify", Char, "a.aggmfinalmodify", min_version=PG_11),
        Field("aggsortop", Text, opr_prototype("o"), nullable=True),
        Field("aggtranstype", Text, "a.aggtranstype::regtype::text"),
        Field("aggtransspace", Integer, "a.aggtransspace", min_version=PG_9_4),
        Field("aggmtranstype", Text, "NULLIF(a.aggmtranstype, 0)::regtype::text",
              nullable=True, min_version=PG_9_4),
        Field("aggmtransspace", Integer, "a.aggmtransspace", min_version=PG_9_4),
        Field("agginitval", Text, "a.agginitval", nullable=True),
        Field("aggminitval", Text, "a.aggminitval", nullable=True, min_version=PG_9_4),
    )


class Routine(Composite):
    TYPNAME = "Routine"
    COMPONENTS = (
        ("routine", True),
        ("aggregate", False),
    )

    def __init__(self, routine: PgRoutine, aggregate: Optional[Aggregate] = None):
        self.routine = routine
        self.aggregate = Nullable(aggregate)

    @property
    def ident(self) -> str:
        return self.routine.ident


def snapshot_aggregate(ctx: SnapshotContext, oid: int) -> Optional[Aggregate]:
    records = Aggregate.fetch(ctx, "a.aggfnoid = %s", (oid,))
    return records[0] if records else None


def snapshot(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    """Snapshot the pg_proc members of an extension, keyed by prototype."""
    routines = KeyedCollection(Routine.TYPNAME)

    for oid in oids:
        records = PgRoutine.fetch(ctx, "p.oid = %s", (oid,))
        if not records:
            ctx.reporter.warning(f"Could not find pg_proc entry for oid {oid}")
            continue
        routine = Routine(records[0], snapshot_aggregate(ctx, oid))
        routines.add(routine.ident, routine)

    return routines
