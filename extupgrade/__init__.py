"""
extupgrade - PostgreSQL extension upgrade validator

Checks that upgrading an extension from one version to another gives the
same result as installing the new version directly.
"""

from .compare import Comparable, Composite, KeyedCollection, Nullable, OrderedList
from .diff import DiffNode, DiffSource
from .errors import CatalogError, ConfigError, ContractViolation, DatabaseError, ExtUpgradeError
from .models import RunConfig
from .rendering import render, render_report

__version__ = "0.1.0"
__all__ = [
    "Comparable", "Composite", "KeyedCollection", "Nullable", "OrderedList",
    "DiffNode", "DiffSource",
    "CatalogError", "ConfigError", "ContractViolation", "DatabaseError", "ExtUpgradeError",
    "RunConfig", "render", "render_report",
]
