"""Field role classification from declarative keyword tables.

The tables live in ``field_roles.yaml`` next to this module. ``guess_fields`` is a pure
function of the catalog and the tables: it performs no I/O once the tables are loaded
and always returns the same guesses for the same catalog.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .constants import TOP_TEXT_FIELDS
from .models import FieldCatalog, GuessedFields

__all__ = [
    "RoleRule",
    "RoleTables",
    "load_role_tables",
    "guess_fields",
    "find_by",
    "prioritize",
]

DEFAULT_TABLES_PATH = Path(__file__).parent / "field_roles.yaml"

type SourceKind = Literal["text", "numeric", "date", "boolean"]

_SOURCE_ARRAYS: dict[str, str] = {
    "text": "text_fields",
    "numeric": "number_fields",
    "date": "date_fields",
    "boolean": "bool_fields",
}


class RoleRule(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    source: SourceKind
    keywords: tuple[str, ...]


class RoleTables(BaseModel):
    """Role -> keyword lookups plus the text field priority list."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: int = 1
    roles: dict[str, RoleRule]
    text_priority: tuple[str, ...] = ()
    top_text_fields: int = Field(default=TOP_TEXT_FIELDS, ge=0)


@lru_cache(maxsize=8)
def load_role_tables(path: str | None = None) -> RoleTables:
    """Load and validate a keyword table document (cached per path)."""
    filepath = Path(path) if path else DEFAULT_TABLES_PATH
    if not filepath.exists():
        raise FileNotFoundError(f"Field role tables not found: {filepath}")

    with open(filepath, encoding="utf-8") as f:
        tables = RoleTables.model_validate(yaml.safe_load(f))
    logger.debug(f"Loaded {len(tables.roles)} field role tables from {filepath}")
    return tables


def find_by(names: list[str], keywords: tuple[str, ...] | list[str]) -> str:
    """Return the first name containing any keyword (case-insensitive), or ''."""
    lowered = [k.lower() for k in keywords]
    for name in names:
        ln = name.lower()
        if any(k in ln for k in lowered):
            return name
    return ""


def prioritize(names: list[str], prefs: tuple[str, ...] | list[str]) -> list[str]:
    """Reorder names: matches of each preference in turn, then the rest in order."""
    out: list[str] = []
    seen: set[str] = set()
    for pref in prefs:
        p = pref.lower()
        for name in names:
            if name not in seen and p in name.lower():
                out.append(name)
                seen.add(name)
    out.extend(name for name in names if name not in seen)
    return out


def guess_fields(catalog: FieldCatalog, tables: RoleTables | None = None) -> GuessedFields:
    """Infer price/date/brand/category/in-stock fields and the default text field."""
    tables = tables or load_role_tables()

    guesses: dict[str, str] = {}
    for role, rule in tables.roles.items():
        candidates = getattr(catalog, _SOURCE_ARRAYS[rule.source])
        guesses[role] = find_by(candidates, rule.keywords)

    prior = prioritize(catalog.text_fields, tables.text_priority)
    if not prior:
        prior = list(catalog.text_fields)

    return GuessedFields(
        price=guesses.get("price", ""),
        date=guesses.get("date", ""),
        brand=guesses.get("brand", ""),
        category=guesses.get("category", ""),
        in_stock=guesses.get("in_stock", ""),
        default_df=prior[0] if prior else "",
        text_top_n=prior[: tables.top_text_fields],
    )
