"""
Standalone extension members: schemas, casts, event triggers and foreign
data wrappers.
"""

from typing import Sequence

from ..compare import KeyedCollection
from ..pgtypes import AclList, Char, ClassOptions, Name, Text, TextArray
from ..schema import CatalogStruct, Field, SnapshotContext, proc_prototype


class Namespace(CatalogStruct):
    TYPNAME = "Namespace"
    IDENT = "nspname"
    FROM = """pg_namespace nsp
        JOIN pg_roles r ON r.oid = nsp.nspowner"""
    OID_COLUMN = "nsp.oid"
    FIELDS = (
        Field("nspname", Text, "nsp.nspname"),
        Field("nspowner", Name, "r.rolname"),
        Field("nspacl", AclList, "nsp.nspacl::text[]", nullable=True),
        Field("comment", Text, "obj_description(nsp.oid, 'pg_namespace')", nullable=True),
    )


class Cast(CatalogStruct):
    TYPNAME = "Cast"
    IDENT = "castname"
    FROM = "pg_cast ca"
    OID_COLUMN = "ca.oid"
    FIELDS = (
        Field("castname", Text,
              "ca.castsource::regtype::text || ' -> ' || ca.casttarget::regtype::text"),
        Field("castfunc", Text, proc_prototype("ca.castfunc"), nullable=True),
        Field("castcontext", Char, "ca.castcontext"),
        Field("castmethod", Char, "ca.castmethod"),
        Field("comment", Text, "obj_description(ca.oid, 'pg_cast')", nullable=True),
    )


class EventTrigger(CatalogStruct):
    TYPNAME = "Event trigger"
    IDENT = "evtname"
    FROM = """pg_event_trigger t
        JOIN pg_roles r ON r.oid = t.evtowner"""
    OID_COLUMN = "t.oid"
    FIELDS = (
        Field("evtname", Name, "t.evtname"),
        Field("evtevent", Name, "t.evtevent"),
        Field("evtowner", Name, "r.rolname"),
        Field("evtfoid", Text, proc_prototype("t.evtfoid")),
        Field("evtenabled", Char, "t.evtenabled"),
        Field("evttags", TextArray, "t.evttags", nullable=True),
        Field("comment", Text, "obj_description(t.oid, 'pg_event_trigger')", nullable=True),
    )


class ForeignDataWrapper(CatalogStruct):
    TYPNAME = "Foreign data wrapper"
    IDENT = "fdwname"
    FROM = """pg_foreign_data_wrapper fdw
        JOIN pg_roles r ON r.oid = fdw.fdwowner"""
    OID_COLUMN = "fdw.oid"
    FIELDS = (
        Field("fdwname", Text, "fdw.fdwname"),
        Field("fdwowner", Name, "r.rolname"),
        Field("fdwhandler", Text, proc_prototype("fdw.fdwhandler"), nullable=True),
        Field("fdwvalidator", Text, proc_prototype("fdw.fdwvalidator"), nullable=True),
        Field("fdwacl", AclList, "fdw.fdwacl::text[]", nullable=True),
        Field("fdwoptions", ClassOptions, "fdw.fdwoptions", nullable=True),
        Field("comment", Text,
              "obj_description(fdw.oid, 'pg_foreign_data_wrapper')", nullable=True),
    )


def snapshot_namespaces(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    return Namespace.snapshot_oids(ctx, oids)


def snapshot_casts(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    return Cast.snapshot_oids(ctx, oids)


def snapshot_event_triggers(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    return EventTrigger.snapshot_oids(ctx, oids)


def snapshot_foreign_data_wrappers(ctx: SnapshotContext,
                                   oids: Sequence[int]) -> KeyedCollection:
    return ForeignDataWrapper.snapshot_oids(ctx, oids)
