"""
Operators (pg_operator), operator classes (pg_opclass) and operator
families (pg_opfamily).
"""

from typing import Sequence

from ..compare import KeyedCollection
from ..pgtypes import Bool, Char, Name, Text
from ..schema import CatalogStruct, Field, SnapshotContext, opr_prototype, proc_prototype


class Operator(CatalogStruct):
    TYPNAME = "Operator"
    IDENT = "oprname"
    FROM = """pg_operator o
        JOIN pg_roles r ON r.oid = o.oprowner"""
    OID_COLUMN = "o.oid"
    FIELDS = (
        Field("oprname", Text, opr_prototype("o")),
        Field("oprowner", Name, "r.rolname"),
        Field("oprkind", Char, "o.oprkind"),
        Field("oprcanmerge", Bool, "o.oprcanmerge"),
        Field("oprcanhash", Bool, "o.oprcanhash"),
        Field("oprleft", Name, "NULLIF(o.oprleft, 0)::regtype::text", nullable=True),
        Field("oprright", Name, "o.oprright::regtype::text"),
        # Zero for shell operators
        Field("oprresult", Name, "NULLIF(o.oprresult, 0)::regtype::text", nullable=True),
        Field("oprcom", Name, "NULLIF(o.oprcom, 0)::regoper::text", nullable=True),
        Field("oprnegate", Name, "NULLIF(o.oprnegate, 0)::regoper::text", nullable=True),
        Field("oprcode", Text, proc_prototype("o.oprcode"), nullable=True),
        Field("oprrest", Text, proc_prototype("o.oprrest"), nullable=True),
        Field("oprjoin", Text, proc_prototype("o.oprjoin"), nullable=True),
        Field("comment", Text, "obj_description(o.oid, 'pg_operator')", nullable=True),
    )


class OpClass(CatalogStruct):
    TYPNAME = "Operator class"
    IDENT = "opcname"
    FROM = """pg_opclass opc
        JOIN pg_namespace n ON n.oid = opc.opcnamespace
        JOIN pg_am am ON am.oid = opc.opcmethod
        JOIN pg_opfamily opf ON opf.oid = opc.opcfamily
        JOIN pg_namespace opfn ON opfn.oid = opf.opfnamespace
        JOIN pg_roles r ON r.oid = opc.opcowner"""
    OID_COLUMN = "opc.oid"
    FIELDS = (
        Field("opcname", Text, "n.nspname || '.' || opc.opcname || ' USING ' || am.amname"),
        Field("opcmethod", Name, "am.amname"),
        Field("opcowner", Name, "r.rolname"),
        Field("opcfamily", Name, "opfn.nspname || '.' || opf.opfname"),
        Field("opcintype", Name, "opc.opcintype::regtype::text"),
        Field("opcdefault", Bool, "opc.opcdefault"),
        Field("opckeytype", Name, "NULLIF(opc.opckeytype, 0)::regtype::text", nullable=True),
        Field("comment", Text, "obj_description(opc.oid, 'pg_opclass')", nullable=True),
    )


class OpFamily(CatalogStruct):
    TYPNAME = "Operator family"
    IDENT = "opfname"
    FROM = """pg_opfamily opf
        JOIN pg_namespace n ON n.oid = opf.opfnamespace
        JOIN pg_am am ON am.oid = opf.opfmethod
        JOIN pg_roles r ON r.oid = opf.opfowner"""
    OID_COLUMN = "opf.oid"
    FIELDS = (
        Field("opfname", Text, "n.nspname || '.' || opf.opfname || ' USING ' || am.amname"),
        Field("opfmethod", Name, "am.amname"),
        Field("opfowner", Name, "r.rolname"),
        Field("comment", Text, "obj_description(opf.oid, 'pg_opfamily')", nullable=True),
    )


def snapshot(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    """Snapshot the pg_operator members of an extension."""
    operators = Operator.snapshot_oids(ctx, oids)

    for name, operator in operators.items():
        # Shell operators are most likely not what the extension author wants
        if operator.get("oprresult") is None or operator.get("oprcode") is None:
            ctx.reporter.warning(f"Shell type found for operator {name}")

    return operators


def snapshot_opclasses(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    return OpClass.snapshot_oids(ctx, oids)


def snapshot_opfamilies(ctx: SnapshotContext, oids: Sequence[int]) -> KeyedCollection:
    return OpFamily.snapshot_oids(ctx, oids)
