"""
Detection of configuration changes leaked by extension scripts.

An extension script should never leave a setting changed behind it (a
forgotten SET, a set_config() without is_local...). Settings are read
before and after each script and compared.
"""

from typing import Dict, Mapping, Optional

from .diff import ConfigurationDiff

GUC_QUERY = "SELECT name, current_setting(name) AS value FROM pg_settings"


def snapshot_gucs(db) -> Dict[str, str]:
    """Current value of every setting, keyed by name."""
    return {row["name"]: row["value"] for row in db.fetchall(GUC_QUERY)}


def compare_gucs(
    before: Mapping[str, str],
    after: Mapping[str, str],
    version: str,
) -> Optional[ConfigurationDiff]:
    """
    List the settings changed by the script of *version*.

    Settings that only exist after the script, like the custom settings of
    a library it loaded, are not changes.

    Returns:
        ConfigurationDiff sorted by setting name, or None if nothing changed
    """
    changes = tuple(
        (name, after[name])
        for name in sorted(before)
        if name in after and after[name] != before[name]
    )
    if not changes:
        return None
    return ConfigurationDiff(version=version, changes=changes)
