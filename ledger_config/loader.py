"""
Settings Loader (``ledger_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a ``LedgerSettings`` frozen
dataclass.  The single public entry point for runtime settings is
``ledger_config.get_active_settings()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or values of the wrong type  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import LedgerSettings

_FIELD_TYPES: dict[str, type] = {
    "database_url": str,
    "echo": bool,
    "pool_size": int,
    "max_overflow": int,
    "default_currency": str,
    "write_timeout_seconds": float,
    "read_timeout_seconds": float,
    "top_n": int,
    "unknown_vendor_label": str,
    "unknown_item_label": str,
    "default_unit": str,
    "retry_max_attempts": int,
    "retry_base_delay_seconds": float,
    "retry_max_delay_seconds": float,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def _coerce(key: str, value: Any) -> Any:
    expected = _FIELD_TYPES[key]
    # bool is an int subclass; keep the two apart
    if expected is bool:
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be a boolean, got {value!r}")
        return value
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer, got {value!r}")
        return value
    if expected is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number, got {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    return value


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse a ``LedgerSettings`` from a dict.

    Keys not present fall back to the dataclass defaults.

    Raises:
        ValueError: on unknown keys, wrong value types, or values the
            dataclass rejects.
    """
    known = {f.name for f in fields(LedgerSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown settings keys: {', '.join(unknown)}")

    values = {key: _coerce(key, value) for key, value in data.items()}
    if "default_currency" in values:
        values["default_currency"] = values["default_currency"].upper()
    return LedgerSettings(**values)


def load_settings_file(path: Path) -> LedgerSettings:
    """Load and parse one YAML settings file."""
    return parse_settings(load_yaml_file(path))
