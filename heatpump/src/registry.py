"""
Category -> table registry -- single source of truth for the snapshot schema.

Maps every known heat-pump content category (and the two subcategories of
``Energiemonitor``) to a fixed SQLite table, and every table column to the
raw field it is read from plus the column type that decides its coercion:

- ``REAL`` / ``INTEGER`` columns are coerced with :func:`coerce`.
- ``TEXT`` columns store the raw string verbatim.

``Abschaltungen`` is positional: its five slots take the first five field
values of the category in document order, regardless of field names.

CHANGELOG:
- 2026-10-13: Add lookup by registry key for the latest-readings query
- 2026-10-10: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from heatpump.src.coerce import coerce

_COLUMN_TYPES = frozenset({"REAL", "INTEGER", "TEXT"})

MULTI_SUBCATEGORY_CATEGORY = "Energiemonitor"
"""The one category whose named subsections are stored as separate tables."""

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnDef:
    """Definition of a single table column.

    Attributes:
        column: SQL column name.
        field: Raw field name in the flattened category map.  ``None`` for
            positional columns.
        col_type: SQL type -- one of ``"REAL"``, ``"INTEGER"``, ``"TEXT"``.
    """

    column: str
    field: str | None
    col_type: str = "REAL"

    def __post_init__(self) -> None:  # noqa: D105
        if self.col_type not in _COLUMN_TYPES:
            msg = f"Column '{self.column}': unsupported type '{self.col_type}'"
            raise ValueError(msg)

    def convert(self, raw: Any) -> float | str | None:
        """Convert a raw field value according to the column type."""
        if self.col_type == "TEXT":
            if raw is None or raw == "":
                return None
            return str(raw)
        return coerce(raw)


@dataclass(frozen=True, slots=True)
class TableDef:
    """A snapshot table and the category data it is filled from.

    Attributes:
        table: SQL table name.
        key: Lookup key accepted by queries (e.g. ``"Temperaturen"``,
            ``"Energiemonitor_Waermemenge"``).
        category: Top-level content category name.
        subcategory: Subsection name within *category*, or ``None``.
        columns: Ordered data columns (``id`` and ``timestamp`` excluded).
        positional: Fill columns from field values by position.
    """

    table: str
    key: str
    category: str
    subcategory: str | None
    columns: tuple[ColumnDef, ...]
    positional: bool = False

    @property
    def column_names(self) -> list[str]:
        return [col.column for col in self.columns]

    def build_row(self, fields: Mapping[str, Any]) -> list[float | str | None]:
        """Convert a flat field map into column values in column order.

        Missing fields become ``None``.
        """
        if self.positional:
            raw_values = list(fields.values())
            return [
                col.convert(raw_values[idx] if idx < len(raw_values) else None)
                for idx, col in enumerate(self.columns)
            ]
        return [col.convert(fields.get(col.field)) for col in self.columns]


# ---------------------------------------------------------------------------
# Table definitions
# ---------------------------------------------------------------------------

TEMPERATUREN = TableDef(
    table="temperaturen",
    key="Temperaturen",
    category="Temperaturen",
    subcategory=None,
    columns=(
        ColumnDef("vorlauf", "Vorlauf"),
        ColumnDef("ruecklauf", "Rücklauf"),
        ColumnDef("ruecklauf_soll", "Rückl.-Soll"),
        ColumnDef("heissgas", "Heissgas"),
        ColumnDef("aussentemperatur", "Außentemperatur"),
        ColumnDef("mitteltemperatur", "Mitteltemperatur"),
        ColumnDef("warmwasser_ist", "Warmwasser-Ist"),
        ColumnDef("warmwasser_soll", "Warmwasser-Soll"),
        ColumnDef("waermequelle_ein", "Wärmequelle-Ein"),
        ColumnDef("waermequelle_aus", "Wärmequelle-Aus"),
        ColumnDef("mischkreis1_vorlauf", "Mischkreis1-Vorlauf"),
        ColumnDef("mischkreis1_vl_soll", "Mischkreis1 VL-Soll"),
        ColumnDef("vorlauf_max", "Vorlauf max."),
        ColumnDef("ansaug_vd", "Ansaug VD"),
        ColumnDef("vd_heizung", "VD-Heizung"),
        ColumnDef("ueberhitzung", "Überhitzung"),
    ),
)

EINGAENGE = TableDef(
    table="eingaenge",
    key="Eingänge",
    category="Eingänge",
    subcategory=None,
    columns=(
        ColumnDef("asd", "ASD", "TEXT"),
        ColumnDef("evu", "EVU", "TEXT"),
        ColumnDef("hd_status", "HD", "TEXT"),
        ColumnDef("mot", "MOT", "TEXT"),
        ColumnDef("pex", "PEX", "TEXT"),
        # HD carries both a switch state and a pressure reading
        ColumnDef("hd_bar", "HD"),
        ColumnDef("nd_bar", "ND"),
        ColumnDef("durchfluss", "Durchfluss"),
    ),
)

AUSGAENGE = TableDef(
    table="ausgaenge",
    key="Ausgänge",
    category="Ausgänge",
    subcategory=None,
    columns=(
        ColumnDef("bup", "BUP", "TEXT"),
        ColumnDef("fup_1", "FUP 1", "TEXT"),
        ColumnDef("hup", "HUP", "TEXT"),
        ColumnDef("mischer_1_auf", "Mischer 1 Auf", "TEXT"),
        ColumnDef("mischer_1_zu", "Mischer 1 Zu", "TEXT"),
        ColumnDef("ventil_bosup", "Ventil.-BOSUP", "TEXT"),
        ColumnDef("verdichter", "Verdichter", "TEXT"),
        ColumnDef("zip", "ZIP", "TEXT"),
        ColumnDef("zup", "ZUP", "TEXT"),
        ColumnDef("zwe_1", "ZWE 1", "TEXT"),
        ColumnDef("zwe_2_sst", "ZWE 2 - SST", "TEXT"),
        ColumnDef("vd_heizung", "VD-Heizung", "TEXT"),
        ColumnDef("freq_sollwert", "Freq. Sollwert"),
        ColumnDef("freq_aktuell", "Freq. aktuell"),
        ColumnDef("ventil_bosup_percent", "Ventil.-BOSUP"),
        ColumnDef("hup_percent", "HUP"),
    ),
)

ABSCHALTUNGEN = TableDef(
    table="abschaltungen",
    key="Abschaltungen",
    category="Abschaltungen",
    subcategory=None,
    columns=tuple(
        ColumnDef(f"abschaltung_{slot}", None, "TEXT") for slot in range(1, 6)
    ),
    positional=True,
)

ANLAGENSTATUS = TableDef(
    table="anlagenstatus",
    key="Anlagenstatus",
    category="Anlagenstatus",
    subcategory=None,
    columns=(
        ColumnDef("bivalenz_stufe", "Bivalenz Stufe", "INTEGER"),
        ColumnDef("heizleistung_ist", "Heizleistung Ist"),
        ColumnDef("leistungsaufnahme", "Leistungsaufnahme"),
    ),
)


def _energy_columns() -> tuple[ColumnDef, ...]:
    return (
        ColumnDef("heizung", "Heizung"),
        ColumnDef("warmwasser", "Warmwasser"),
        ColumnDef("kuehlung", "Kühlung"),
        ColumnDef("gesamt", "Gesamt"),
    )


ENERGIEMONITOR_WAERMEMENGE = TableDef(
    table="energiemonitor_waermemenge",
    key="Energiemonitor_Waermemenge",
    category=MULTI_SUBCATEGORY_CATEGORY,
    subcategory="Wärmemenge",
    columns=_energy_columns(),
)

ENERGIEMONITOR_LEISTUNGSAUFNAHME = TableDef(
    table="energiemonitor_leistungsaufnahme",
    key="Energiemonitor_Leistungsaufnahme",
    category=MULTI_SUBCATEGORY_CATEGORY,
    subcategory="Leistungsaufnahme",
    columns=_energy_columns(),
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

ALL_TABLES: tuple[TableDef, ...] = (
    TEMPERATUREN,
    EINGAENGE,
    AUSGAENGE,
    ABSCHALTUNGEN,
    ANLAGENSTATUS,
    ENERGIEMONITOR_WAERMEMENGE,
    ENERGIEMONITOR_LEISTUNGSAUFNAHME,
)
"""All snapshot tables in insert order."""

CATEGORY_KEYS: tuple[str, ...] = tuple(
    dict.fromkeys(table.category for table in ALL_TABLES)
)
"""Known top-level content categories, in table order."""

TABLES_BY_CATEGORY: dict[str, tuple[TableDef, ...]] = {
    category: tuple(t for t in ALL_TABLES if t.category == category)
    for category in CATEGORY_KEYS
}
"""Tables filled from each top-level category."""


def lookup_table(name: str) -> TableDef | None:
    """Find a table by SQL table name or registry key."""
    for table in ALL_TABLES:
        if name in (table.table, table.key):
            return table
    return None
