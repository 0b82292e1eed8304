"""
Exceptions for extupgrade.

Everything deriving from ExtUpgradeError aborts a validation run and is
reported by the CLI. ContractViolation is a comparator bug and is never
caught.
"""


class ExtUpgradeError(Exception):
    """Base class for fatal, reportable errors."""
    pass


class DatabaseError(ExtUpgradeError):
    """Exception raised for database-related errors."""
    pass


class CatalogError(ExtUpgradeError):
    """A catalog row did not have the expected shape."""
    pass


class ConfigError(ExtUpgradeError):
    """Invalid command line or config file settings."""
    pass


class ContractViolation(RuntimeError):
    """The comparison engine was used in a way that can't happen with valid data."""
    pass
