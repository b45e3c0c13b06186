"""
ledger_config: single public entrypoint for purchase ledger settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads settings files or
    environment variables directly.

Resolution order:
    1. ``path`` argument, if given.
    2. The file named by ``PURCHASE_LEDGER_CONFIG``.
    3. ``ledger_config/sets/default.yaml``.
    ``PURCHASE_LEDGER_DATABASE_URL``, when set, replaces ``database_url``
    from whichever file was loaded.

Failure modes:
    - ``FileNotFoundError`` -- the selected settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from ledger_config.loader import load_settings_file, parse_settings
from ledger_config.schema import LedgerSettings

_logger = logging.getLogger("purchase_ledger.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "PURCHASE_LEDGER_CONFIG"
DATABASE_URL_ENV = "PURCHASE_LEDGER_DATABASE_URL"


def get_active_settings(path: Path | str | None = None) -> LedgerSettings:
    """The ONLY public settings entrypoint.

    Args:
        path: Optional explicit settings file.

    Returns:
        Validated, frozen ``LedgerSettings``.
    """
    if path is None:
        path = os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_SETTINGS_FILE
    settings_path = Path(path)

    settings = load_settings_file(settings_path)

    url_override = os.environ.get(DATABASE_URL_ENV)
    if url_override:
        settings = replace(settings, database_url=url_override)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "settings_file": str(settings_path),
            "default_currency": settings.default_currency,
            "write_timeout_seconds": settings.write_timeout_seconds,
            "read_timeout_seconds": settings.read_timeout_seconds,
            "database_url_overridden": bool(url_override),
        },
    )
    return settings


__all__ = [
    "LedgerSettings",
    "get_active_settings",
    "load_settings_file",
    "parse_settings",
]
