"""
Configuration files for extupgrade.

A run can be described in a TOML or JSON file, using the same names as the
command line options:

    extname = "myext"
    from = "1.0"
    to = "1.1"
    dbname = "postgres"
    extra_queries = ["SELECT * FROM myext_config ORDER BY 1"]

Command line values always win over file values.
"""

import json
import tomllib
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import ConfigError
from .models import RunConfig

# File key -> RunConfig attribute
CONFIG_KEYS = {
    "extname": "extname",
    "from": "from_version",
    "to": "to_version",
    "host": "host",
    "port": "port",
    "user": "user",
    "dbname": "dbname",
    "extra_queries": "extra_queries",
    "no_color": "no_color",
    "quiet": "quiet",
}


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Read a .toml or .json configuration file.

    Returns:
        The settings, keyed by RunConfig attribute name

    Raises:
        ConfigError: if the file can't be read or has unknown settings
    """
    try:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        elif path.suffix == ".json":
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        else:
            raise ConfigError(
                f"Unsupported configuration file {path}: expected .toml or .json"
            )
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
        raise ConfigError(f"Invalid configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Invalid configuration file {path}: expected a table")

    unknown = sorted(set(data) - set(CONFIG_KEYS))
    if unknown:
        raise ConfigError(f"Unknown settings in {path}: {', '.join(unknown)}")

    return {CONFIG_KEYS[key]: value for key, value in data.items()}


def _check_types(values: Mapping[str, Any]) -> None:
    for key in ("extname", "from_version", "to_version", "host", "user", "dbname"):
        value = values.get(key)
        if value is not None and not isinstance(value, str):
            # Versions like 1.0 are easily written as floats in TOML
            raise ConfigError(f"{key} must be a string, got {value!r}")

    port = values.get("port")
    if port is not None and (isinstance(port, bool) or not isinstance(port, int)):
        raise ConfigError(f"port must be an integer, got {port!r}")

    queries = values.get("extra_queries")
    if queries is not None and (
        not isinstance(queries, list) or not all(isinstance(q, str) for q in queries)
    ):
        raise ConfigError("extra_queries must be a list of strings")


def build_run_config(
    file_values: Optional[Mapping[str, Any]] = None,
    **cli_values: Any,
) -> RunConfig:
    """
    Merge configuration file values and command line values.

    Command line values that are None (option not given) don't override the
    file.

    Raises:
        ConfigError: if a mandatory setting is missing or the versions are
            the same
    """
    values: Dict[str, Any] = dict(file_values or {})
    for key, value in cli_values.items():
        if key not in CONFIG_KEYS.values():
            raise ConfigError(f"Unknown setting: {key}")
        if value is not None:
            values[key] = value

    _check_types(values)

    missing = [
        option for option, key in (
            ("--extname", "extname"),
            ("--from", "from_version"),
            ("--to", "to_version"),
        )
        if not values.get(key)
    ]
    if missing:
        raise ConfigError(f"Missing required setting(s): {', '.join(missing)}")

    if values["from_version"] == values["to_version"]:
        raise ConfigError("--from and --to must be different versions")

    return RunConfig(
        extname=values["extname"],
        from_version=values["from_version"],
        to_version=values["to_version"],
        host=values.get("host"),
        port=values.get("port"),
        user=values.get("user"),
        dbname=values.get("dbname"),
        extra_queries=list(values.get("extra_queries") or []),
        no_color=bool(values.get("no_color", False)),
        quiet=bool(values.get("quiet", False)),
    )
