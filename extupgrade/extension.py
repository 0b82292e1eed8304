"""
Snapshot of a whole extension.

The members of an extension are the objects having an 'e' dependency on its
pg_extension row. They are grouped by catalog, and each group is handed to
the snapshot function of that catalog.
"""

from typing import Callable, Dict, Optional, Sequence, Tuple

from .compare import Composite, KeyedCollection
from .errors import CatalogError
from .pgtypes import Bool, ConfigTables, Name, Text
from .schema import PG_9_3, CatalogStruct, Field, SnapshotContext
from .catalog import objects, operators, relations, routines, types


class PgExtension(CatalogStruct):
    TYPNAME = "Extension"
    IDENT = "extname"
    FROM = """pg_extension e
        JOIN pg_roles r ON r.oid = e.extowner
        JOIN pg_namespace n ON n.oid = e.extnamespace"""
    FIELDS = (
        Field("extname", Name, "e.extname"),
        Field("extowner", Name, "r.rolname"),
        Field("extnamespace", Name, "n.nspname"),
        Field("extrelocatable", Bool, "e.extrelocatable"),
        Field("extversion", Text, "e.extversion"),
        Field("extconfig", ConfigTables,
              "(SELECT array_agg(u.tbl::regclass::text || '=' || coalesce(u.cond, '')) "
              "FROM unnest(e.extconfig, e.extcondition) AS u(tbl, cond))",
              nullable=True),
        Field("comment", Text, "obj_description(e.oid, 'pg_extension')", nullable=True),
    )


Snapshotter = Callable[[SnapshotContext, Sequence[int]], KeyedCollection]

# Extension member collection filled by each handled catalog
CATALOGS: Dict[str, Tuple[str, Snapshotter]] = {
    "pg_namespace": ("namespaces", objects.snapshot_namespaces),
    "pg_class": ("relations", relations.snapshot),
    "pg_proc": ("routines", routines.snapshot),
    "pg_type": ("types", types.snapshot),
    "pg_operator": ("operators", operators.snapshot),
    "pg_opclass": ("opclasses", operators.snapshot_opclasses),
    "pg_opfamily": ("opfamilies", operators.snapshot_opfamilies),
    "pg_cast": ("casts", objects.snapshot_casts),
    "pg_event_trigger": ("event_triggers", objects.snapshot_event_triggers),
    "pg_foreign_data_wrapper": ("foreign_data_wrappers",
                                objects.snapshot_foreign_data_wrappers),
}

TYPNAMES: Dict[str, str] = {
    "namespaces": objects.Namespace.TYPNAME,
    "relations": relations.Relation.TYPNAME,
    "routines": routines.Routine.TYPNAME,
    "types": types.Type.TYPNAME,
    "operators": operators.Operator.TYPNAME,
    "opclasses": operators.OpClass.TYPNAME,
    "opfamilies": operators.OpFamily.TYPNAME,
    "casts": objects.Cast.TYPNAME,
    "event_triggers": objects.EventTrigger.TYPNAME,
    "foreign_data_wrappers": objects.ForeignDataWrapper.TYPNAME,
}


class Extension(Composite):
    """
    Everything an extension is made of.

    Member collections are always there, empty when the extension has no
    member in the matching catalog.
    """

    TYPNAME = "Extension"
    COMPONENTS = (("extension", True),) + tuple(
        (name, False) for name in TYPNAMES
    )

    def __init__(self, extension: PgExtension,
                 **members: Optional[KeyedCollection]):
        self.extension = extension
        unknown = set(members) - set(TYPNAMES)
        if unknown:
            raise TypeError(f"Unknown extension members: {', '.join(sorted(unknown))}")
        for name, typname in TYPNAMES.items():
            collection = members.get(name)
            setattr(self, name, collection if collection is not None
                    else KeyedCollection(typname))

    @property
    def ident(self) -> str:
        return self.extension.ident


MEMBERS_QUERY = """
    SELECT d.classid::regclass::text AS classid,
        array_agg(d.objid ORDER BY d.objid) AS objids
    FROM pg_depend d
    JOIN pg_extension e ON e.oid = d.refobjid
    WHERE d.refclassid = 'pg_extension'::regclass
    AND d.deptype = 'e'
    AND e.extname = %s
    GROUP BY 1
    ORDER BY 1
"""


def snapshot(ctx: SnapshotContext, extname: str) -> Extension:
    """
    Snapshot an installed extension and all of its members.

    The search_path is restricted to pg_catalog while the catalogs are read,
    so that every object name in the snapshot is schema-qualified. An error
    leaves it set, the enclosing transaction is rolled back anyway.

    Raises:
        CatalogError: if the extension is not installed, or a member can't
            be read
    """
    ctx.db.execute("SET search_path TO pg_catalog")

    records = PgExtension.fetch(ctx, "e.extname = %s", (extname,))
    if not records:
        raise CatalogError(f'Extension "{extname}" is not installed')
    ext = Extension(records[0])

    for row in ctx.db.fetchall(MEMBERS_QUERY, (extname,)):
        classid = row["classid"]
        if classid not in CATALOGS:
            ctx.reporter.warning(f'Classid "{classid}" not handled')
            continue
        if classid == "pg_event_trigger" and not ctx.at_least(PG_9_3):
            raise CatalogError("Event triggers were introduced in PostgreSQL 9.3")

        member, snapshotter = CATALOGS[classid]
        setattr(ext, member, snapshotter(ctx, list(row["objids"])))

    ctx.db.execute("RESET search_path")

    return ext
