"""
Catalog snapshots of extension members.

One module per group of catalogs. Each declares the CatalogStruct types
read from its catalogs and snapshot functions building keyed collections
out of member oids.
"""

from . import objects, operators, relations, routines, types

__all__ = ["objects", "operators", "relations", "routines", "types"]
