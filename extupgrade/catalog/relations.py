"""
Relations (pg_class) and the objects attached to them.

A Relation is its pg_class record plus its columns, in order, and its
indexes, constraints, triggers, rules, policies and extended statistics,
keyed by name.
"""

from typing import List, Optional, Sequence

from ..compare import Composite, KeyedCollection, OrderedList
from ..errors import CatalogError
from ..pgtypes import AclList, Bool, Char, CharArray, ClassOptions, Integer, Name, NameArray, Text
from ..schema import (
    PG_10, PG_12, PG_13, PG_14, PG_9_4, PG_9_5,
    CatalogStruct, Field, SnapshotContext,
)


# Relation kinds that can be extension members
MEMBER_RELKINDS = frozenset("rvmSfp")


class PgClass(CatalogStruct):
    TYPNAME = "Relation"
    IDENT = "relname"
    FROM = """pg_class c
        JOIN pg_roles r ON r.oid = c.relowner
        LEFT JOIN pg_am am ON am.oid = c.relam"""
    FIELDS = (
        Field("relname", Text, "c.oid::regclass::text"),
        Field("relowner", Name, "r.rolname"),
        Field("relkind", Char, "c.relkind"),
        Field("relpersistence", Char, "c.relpersistence"),
        Field("relam", Name, "am.amname", nullable=True, min_version=PG_12),
        Field("relrowsecurity", Bool, "c.relrowsecurity", min_version=PG_9_5),
        Field("relforcerowsecurity", Bool, "c.relforcerowsecurity", min_version=PG_9_5),
        Field("relispartition", Bool, "c.relispartition", min_version=PG_10),
        Field("relpartbound", Text, "pg_get_expr(c.relpartbound, c.oid)",
              nullable=True, min_version=PG_10),
        Field("partkeydef", Text, "pg_get_partkeydef(c.oid)",
              nullable=True, min_version=PG_10),
        Field("reloptions", ClassOptions, "c.reloptions", nullable=True),
        Field("relacl", AclList, "c.relacl::text[]", nullable=True),
        Field("viewdef", Text,
              "CASE WHEN c.relkind IN ('v', 'm') "
              "THEN pg_get_viewdef(c.oid, true) END",
              nullable=True),
        Field("comment", Text, "obj_description(c.oid, 'pg_class')", nullable=True),
    )


class Attribute(CatalogStruct):
    TYPNAME = "Attribute"
    IDENT = "attname"
    FROM = """pg_attribute a
        LEFT JOIN pg_attrdef d ON d.adrelid = a.attrelid AND d.adnum = a.attnum
        LEFT JOIN pg_collation co ON co.oid = a.attcollation"""
    FIELDS = (
        Field("attname", Name, "a.attname"),
        Field("atttype", Text, "format_type(a.atttypid, a.atttypmod)"),
        Field("attnotnull", Bool, "a.attnotnull"),
        Field("attdefault", Text, "pg_get_expr(d.adbin, d.adrelid)", nullable=True),
        Field("attidentity", Char, "a.attidentity", min_version=PG_10),
        Field("attgenerated", Char, "a.attgenerated", min_version=PG_12),
        Field("attcollation", Name, "co.collname", nullable=True),
        Field("attoptions", ClassOptions, "a.attoptions", nullable=True),
        Field("attacl", AclList, "a.attacl::text[]", nullable=True),
        Field("comment", Text, "col_description(a.attrelid, a.attnum)", nullable=True),
    )


class Index(CatalogStruct):
    TYPNAME = "Index"
    IDENT = "indname"
    FROM = "pg_index i"
    FIELDS = (
        Field("indname", Name, "i.indexrelid::regclass::text"),
        Field("inddef", Text, "pg_get_indexdef(i.indexrelid)"),
        Field("indisclustered", Bool, "i.indisclustered"),
        Field("indisreplident", Bool, "i.indisreplident", min_version=PG_9_4),
        Field("comment", Text, "obj_description(i.indexrelid, 'pg_class')", nullable=True),
    )


class Constraint(CatalogStruct):
    TYPNAME = "Constraint"
    IDENT = "conname"
    FROM = """pg_constraint c
        JOIN pg_namespace n ON n.oid = c.connamespace"""
    FIELDS = (
        Field("conname", Name, "n.nspname || '.' || c.conname"),
        Field("condef", Text, "pg_get_constraintdef(c.oid)"),
        Field("comment", Text, "obj_description(c.oid, 'pg_constraint')", nullable=True),
    )


class Trigger(CatalogStruct):
    TYPNAME = "Trigger"
    IDENT = "tgname"
    FROM = "pg_trigger t"
    FIELDS = (
        Field("tgname", Name, "t.tgname"),
        Field("tgdef", Text, "pg_get_triggerdef(t.oid)"),
        Field("tgenabled", Char, "t.tgenabled"),
        Field("comment", Text, "obj_description(t.oid, 'pg_trigger')", nullable=True),
    )


class Rule(CatalogStruct):
    TYPNAME = "Rule"
    IDENT = "rulename"
    FROM = "pg_rewrite rw"
    FIELDS = (
        Field("rulename", Name, "rw.rulename"),
        Field("ev_enabled", Char, "rw.ev_enabled"),
        Field("ruledef", Text, "pg_get_ruledef(rw.oid, true)"),
        Field("comment", Text, "obj_description(rw.oid, 'pg_rewrite')", nullable=True),
    )


class Policy(CatalogStruct):
    TYPNAME = "Policy"
    IDENT = "polname"
    FROM = "pg_policy p"
    FIELDS = (
        Field("polname", Name, "p.polname"),
        Field("polcmd", Char, "p.polcmd"),
        Field("polpermissive", Bool, "p.polpermissive", min_version=PG_10),
        Field("polroles", NameArray,
              "CASE WHEN p.polroles = '{0}'::oid[] "
              "THEN ARRAY['public']::name[] "
              "ELSE ARRAY(SELECT rolname FROM pg_roles "
              "WHERE oid = ANY (p.polroles) ORDER BY rolname) END"),
        Field("polqual", Text, "pg_get_expr(p.polqual, p.polrelid)", nullable=True),
        Field("polwithcheck", Text, "pg_get_expr(p.polwithcheck, p.polrelid)", nullable=True),
        Field("comment", Text, "obj_description(p.oid, 'pg_policy')", nullable=True),
    )


class ExtendedStatistic(CatalogStruct):
    TYPNAME = "Extended statistic"
    IDENT = "stxname"
    FROM = """pg_statistic_ext s
        JOIN pg_roles r ON r.oid = s.stxowner"""
    FIELDS = (
        Field("stxname", Name, "s.stxnamespace::regnamespace::text || '.' || s.stxname"),
        Field("stxowner", Name, "r.rolname"),
        Field("columns", Text, "pg_get_statisticsobjdef_columns(s.oid)",
              min_version=PG_14),
        Field("stxkeys", NameArray,
              "(SELECT array_agg(a.attname ORDER BY u.ord) "
              "FROM unnest(s.stxkeys) WITH ORDINALITY AS u(attnum, ord) "
              "JOIN pg_attribute a ON a.attrelid = s.stxrelid "
              "AND a.attnum = u.attnum AND NOT a.attisdropped)",
              max_version=PG_14),
        Field("stxkind", CharArray, "s.stxkind"),
        Field("stxstattarget", Integer, "s.stxstattarget::integer",
              nullable=True, min_version=PG_13),
        Field("comment", Text, "obj_description(s.oid, 'pg_statistic_ext')", nullable=True),
    )


class Relation(Composite):
    TYPNAME = "Relation"
    COMPONENTS = (
        ("relation", True),
        ("attributes", False),
        ("indexes", False),
        ("constraints", False),
        ("triggers", False),
        ("rules", False),
        ("policies", False),
        ("statistics", False),
    )

    def __init__(
        self,
        relation: PgClass,
        attributes: Optional[OrderedList] = None,
        indexes: Optional[KeyedCollection] = None,
        constraints: Optional[KeyedCollection] = None,
        triggers: Optional[KeyedCollection] = None,
        rules: Optional[KeyedCollection] = None,
        policies: Optional[KeyedCollection] = None,
        statistics: Optional[KeyedCollection] = None,
    ):
        self.relation = relation
        self.attributes = attributes if attributes is not None else OrderedList()
        self.indexes = indexes if indexes is not None else KeyedCollection(Index.TYPNAME)
        self.constraints = (constraints if constraints is not None
                            else KeyedCollection(Constraint.TYPNAME))
        self.triggers = triggers if triggers is not None else KeyedCollection(Trigger.TYPNAME)
        self.rules = rules if rules is not None else KeyedCollection(Rule.TYPNAME)
        self.policies = policies if policies is not None else KeyedCollection(Policy.TYPNAME)
        self.statistics = (statistics if statistics is not None
                           else KeyedCollection(ExtendedStatistic.TYPNAME))

    @property
    def ident(self) -> str:
        return self.relation.ident


def snapshot_attributes(ctx: SnapshotContext, relid: int) -> OrderedList:
    return OrderedList(Attribute.fetch(
        ctx,
        "a.attrelid = %s AND a.attnum > 0 AND NOT a.attisdropped",
        (relid,),
        order_by="a.attnum",
    ))


def snapshot_one(ctx: SnapshotContext, oid: int,
                 allowed_relkinds: frozenset = MEMBER_RELKINDS) -> Optional[Relation]:
    """
    Snapshot a relation and everything attached to it.

    Returns None if there's no such relation.

    Raises:
        CatalogError: if the relation kind is not one of *allowed_relkinds*
    """
    records = PgClass.fetch(ctx, "c.oid = %s", (oid,))
    if not records:
        return None
    pgclass = records[0]

    relkind = pgclass.get("relkind")
    if relkind not in allowed_relkinds:
        raise CatalogError(
            f'Unexpected relation kind "{relkind}" for {pgclass.ident}'
        )

    relation = Relation(
        pgclass,
        attributes=snapshot_attributes(ctx, oid),
        indexes=Index.fetch_collection(ctx, "i.indrelid = %s", (oid,)),
        constraints=Constraint.fetch_collection(ctx, "c.conrelid = %s", (oid,)),
        triggers=Trigger.fetch_collection(
            ctx, "NOT t.tgisinternal AND t.tgrelid = %s", (oid,)
        ),
        rules=Rule.fetch_collection(ctx, "rw.ev_class = %s", (oid,)),
    )
    if ctx.at_least(PG_9_5):
        relation.policies = Policy.fetch_collection(ctx, "p.polrelid = %s", (oid,))
    if ctx.at_least(PG_10):
        relation.statistics = ExtendedStatistic.fetch_collection(
            ctx, "s.stxrelid = %s", (oid,)
        )
    return relation


def snapshot(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    """Snapshot the pg_class members of an extension."""
    relations: List[Relation] = []
    for oid in oids:
        relation = snapshot_one(ctx, oid)
        if relation is None:
            ctx.reporter.warning(f"Could not find pg_class entry for oid {oid}")
            continue
        relations.append(relation)

    return KeyedCollection.of(Relation.TYPNAME, relations)
