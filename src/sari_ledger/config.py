# SARI Ledger - Spreadsheet bookkeeping & analytics for small shops
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SARI Ledger.

This module is responsible for:
- loading the application configuration from a TOML file,
- applying defaults for every missing setting,
- exposing typed dataclasses used by the rest of the application.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .classifier import DEFAULT_FALLBACK_NAME
from .db import DatabaseConfig
from .ingest import WORKER_MODES

DEFAULT_CONFIG_FILENAME = "sari_ledger_config.toml"
DEFAULT_DB_PATH = "data/db/sari_ledger.sqlite"
DEFAULT_KNOWN_COMPANIES = ("General Customer", "Supplier A", "Supplier B")


@dataclass(frozen=True)
class StoreProfile:
    """Shop identity and the currency used for manual entries."""

    name: str = "SARI Store"
    phone: str = ""
    address: str = ""
    currency_symbol: str = "IQD"
    known_companies: tuple[str, ...] = DEFAULT_KNOWN_COMPANIES

    @property
    def currency(self) -> str:
        """Currency of manual entries: "$" means USD, anything else IQD."""
        return "USD" if self.currency_symbol == "$" else "IQD"


@dataclass(frozen=True)
class ImportConfig:
    """Spreadsheet import options."""

    worker: str = "process"
    fallback_item_name: str = DEFAULT_FALLBACK_NAME
    timeout_seconds: Optional[float] = None


@dataclass(frozen=True)
class DisplayConfig:
    """Console display options."""

    items_per_page: int = 10
    inventory_alerts: bool = True
    decimals: int = 2


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SARI Ledger.

    This aggregates:
    - the store profile (name, contact, currency, known companies),
    - the database configuration (where transactions and inventory live),
    - import options (worker mode, fallback label, timeout),
    - display options,
    - the logging level.
    """

    store: StoreProfile
    database: DatabaseConfig
    import_options: ImportConfig = field(default_factory=ImportConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    log_level: Optional[str] = None


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Invalid [{name}] section, expected a table.")
    return value


def _parse_store(section: Mapping[str, Any]) -> StoreProfile:
    companies_raw = section.get("known_companies")
    if companies_raw is None:
        companies = DEFAULT_KNOWN_COMPANIES
    elif isinstance(companies_raw, list):
        companies = tuple(str(c) for c in companies_raw if str(c).strip())
    else:
        raise ValueError("[store].known_companies must be a list of strings.")

    return StoreProfile(
        name=str(section.get("name") or "SARI Store"),
        phone=str(section.get("phone") or ""),
        address=str(section.get("address") or ""),
        currency_symbol=str(section.get("currency_symbol") or "IQD"),
        known_companies=companies,
    )


def _parse_import(section: Mapping[str, Any]) -> ImportConfig:
    worker = str(section.get("worker") or "process")
    if worker not in WORKER_MODES:
        raise ValueError(
            f"Invalid [import].worker {worker!r}, expected one of {WORKER_MODES}."
        )

    raw_timeout = section.get("timeout_seconds")
    timeout: Optional[float]
    if raw_timeout is None:
        timeout = None
    else:
        try:
            timeout = float(raw_timeout)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                "Invalid value for 'import.timeout_seconds'. Expected a number."
            ) from exc
        if timeout <= 0:
            raise ValueError(
                "Invalid value for 'import.timeout_seconds'. Expected > 0."
            )

    return ImportConfig(
        worker=worker,
        fallback_item_name=str(
            section.get("fallback_item_name") or DEFAULT_FALLBACK_NAME
        ),
        timeout_seconds=timeout,
    )


def _parse_int(
    section: Mapping[str, Any], key: str, default: int, minimum: int
) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(
            f"Invalid value for 'display.{key}'. Expected an integer, got {value!r}."
        )
    if value < minimum:
        raise ValueError(
            f"Invalid value for 'display.{key}'. Expected at least {minimum}."
        )
    return value


def _parse_display(section: Mapping[str, Any]) -> DisplayConfig:
    alerts = section.get("inventory_alerts", True)
    if not isinstance(alerts, bool):
        raise ValueError(
            "Invalid value for 'display.inventory_alerts'. Expected true or false."
        )

    return DisplayConfig(
        items_per_page=_parse_int(section, "items_per_page", 10, 1),
        inventory_alerts=alerts,
        decimals=_parse_int(section, "decimals", 2, 0),
    )


def default_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """Configuration used when no config file is present."""
    base = base_dir or Path.cwd()
    return AppConfig(
        store=StoreProfile(),
        database=DatabaseConfig(
            engine="sqlite", path=(base / DEFAULT_DB_PATH).resolve()
        ),
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SARI Ledger configuration from a TOML file.

    Expected sections (all optional)
    --------------------------------
    [store]
        name, phone, address, currency_symbol ("IQD" or "$"),
        known_companies (list of strings).

    [database]
        engine ("sqlite") and path of the SQLite file.

    [import]
        worker ("process" or "thread"), fallback_item_name, timeout_seconds.

    [display]
        items_per_page, inventory_alerts, decimals.

    [logging]
        level (e.g. "INFO", "DEBUG").

    Notes
    -----
    - When ``config_path`` is None and ``sari_ledger_config.toml`` does not
      exist in the current directory, built-in defaults are used.
    - An explicit ``config_path`` that does not exist is an error.
    - Relative paths are resolved against the directory of the TOML file.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILENAME).resolve()
        if not config_file.is_file():
            return default_app_config()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    store = _parse_store(_section(raw, "store"))

    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or DEFAULT_DB_PATH
    database = DatabaseConfig(
        engine=db_engine, path=(base_dir / str(db_path_raw)).resolve()
    )

    logging_section = _section(raw, "logging")
    raw_level = logging_section.get("level")
    log_level = str(raw_level) if raw_level else None

    return AppConfig(
        store=store,
        database=database,
        import_options=_parse_import(_section(raw, "import")),
        display=_parse_display(_section(raw, "display")),
        log_level=log_level,
    )
