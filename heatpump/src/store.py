"""
Snapshot store: async SQLite persistence for category snapshots.

One table per category (see :mod:`heatpump.src.registry`).  Every tick is
written with a single shared Unix timestamp inside one transaction, so a
failing insert never leaves a partial tick behind.

Operations:
- save_snapshot(categories): INSERT one row per known category, atomically.
- purge_older_than(horizon_s): DELETE rows older than now - horizon.
- latest(category, limit): SELECT the most recent rows per table.
- table_stats(): SELECT COUNT(*) per table.
- close(): Close the underlying database connection.

Supports async context manager protocol for clean resource management.

CHANGELOG:
- 2026-10-19: Serialise transactions on the shared connection with a lock
- 2026-10-15: Add table_stats for the reporting view
- 2026-10-13: Run each tick in one transaction and roll back on error
- 2026-10-12: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import aiosqlite

from heatpump.src.models import SaveResult
from heatpump.src.registry import ALL_TABLES, TABLES_BY_CATEGORY, TableDef, lookup_table

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_S: int = 3 * 365 * 24 * 60 * 60
"""Default retention horizon: three years in seconds."""

DEFAULT_LATEST_LIMIT: int = 100


def _create_table_sql(table: TableDef) -> str:
    columns = ",\n    ".join(f"{col.column} {col.col_type}" for col in table.columns)
    return (
        f"CREATE TABLE IF NOT EXISTS {table.table} (\n"
        "    id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
        "    timestamp INTEGER NOT NULL,\n"
        f"    {columns}\n"
        ");"
    )


def _create_index_sql(table: TableDef) -> str:
    return (
        f"CREATE INDEX IF NOT EXISTS idx_{table.table}_timestamp "
        f"ON {table.table}(timestamp);"
    )


def _insert_sql(table: TableDef) -> str:
    names = ", ".join(["timestamp", *table.column_names])
    placeholders = ", ".join("?" for _ in range(len(table.columns) + 1))
    return f"INSERT INTO {table.table} ({names}) VALUES ({placeholders});"  # noqa: S608


_INSERT_SQL: dict[str, str] = {table.table: _insert_sql(table) for table in ALL_TABLES}


class SnapshotStore:
    """Async SQLite store for per-category heat-pump snapshots.

    Args:
        path: Filesystem path for the SQLite database file.
              Accepts ``str`` or ``pathlib.Path``.

    Usage::

        async with SnapshotStore(path="energy.db") as store:
            result = await store.save_snapshot({"Temperaturen": {"Vorlauf": "45.3"}})
            rows = await store.latest("temperaturen", limit=1)
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._db: aiosqlite.Connection | None = None
        # One transaction at a time on the shared connection.
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        """Open the SQLite connection and create every snapshot table.

        Errors propagate: the logger cannot run without its schema.
        """
        self._db = await aiosqlite.connect(str(self._path))
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA journal_mode=WAL;")
        for table in ALL_TABLES:
            await self._db.execute(_create_table_sql(table))
            await self._db.execute(_create_index_sql(table))
        await self._db.commit()

    async def close(self) -> None:
        """Close the underlying SQLite connection.  Safe to call twice."""
        async with self._lock:
            if self._db is not None:
                await self._db.close()
                self._db = None

    async def __aenter__(self) -> SnapshotStore:
        """Enter async context manager: open the database."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context manager: close the database."""
        await self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def save_snapshot(
        self,
        categories: Mapping[str, Mapping[str, Any]],
        *,
        ts: int | None = None,
    ) -> SaveResult:
        """Insert one row per known category, all stamped with one timestamp.

        Unknown categories are ignored.  ``Energiemonitor`` subcategories
        are written to their own tables when present.  On any error the
        whole tick is rolled back and reported as ``SaveResult(0, 0)``.

        Args:
            categories: Category name -> flat field map.
            ts: Tick timestamp in Unix seconds (defaults to now).

        Returns:
            Snapshots written (0 or 1) and category rows written.
        """
        assert self._db is not None, "Store not opened. Call open() or use async with."
        timestamp = int(time.time()) if ts is None else ts
        written = 0

        async with self._lock:
            try:
                for category, data in categories.items():
                    for table in TABLES_BY_CATEGORY.get(category, ()):
                        fields = data.get(table.subcategory) if table.subcategory else data
                        if not fields and table.subcategory:
                            continue
                        await self._db.execute(
                            _INSERT_SQL[table.table],
                            [timestamp, *table.build_row(fields or {})],
                        )
                        written += 1
                await self._db.commit()
            except Exception:
                logger.error("Error saving snapshot data, tick rolled back", exc_info=True)
                await self._rollback()
                return SaveResult(snapshots=0, categories=0)

        return SaveResult(snapshots=1 if written > 0 else 0, categories=written)

    async def purge_older_than(
        self,
        horizon_s: int = DEFAULT_RETENTION_S,
        *,
        now: int | None = None,
    ) -> int:
        """Delete rows whose timestamp is older than ``now - horizon_s``.

        Args:
            horizon_s: Retention horizon in seconds.
            now: Reference Unix time (defaults to now).

        Returns:
            Total rows deleted across all tables.
        """
        assert self._db is not None, "Store not opened. Call open() or use async with."
        reference = int(time.time()) if now is None else now
        cutoff = reference - horizon_s
        deleted = 0

        async with self._lock:
            try:
                for table in ALL_TABLES:
                    cursor = await self._db.execute(
                        f"DELETE FROM {table.table} WHERE timestamp < ?;",  # noqa: S608
                        (cutoff,),
                    )
                    deleted += cursor.rowcount
                await self._db.commit()
            except Exception:
                await self._rollback()
                raise

        return deleted

    async def latest(
        self,
        category: str | None = None,
        limit: int = DEFAULT_LATEST_LIMIT,
    ) -> list[dict[str, Any]] | dict[str, list[dict[str, Any]]]:
        """Return the most recent rows, newest first.

        Args:
            category: Table name or registry key (e.g. ``"temperaturen"``,
                ``"Energiemonitor_Waermemenge"``).  ``None`` queries every
                table.
            limit: Maximum rows per table.

        Returns:
            A list of row dicts for one table, or ``{table: rows}`` for all.

        Raises:
            ValueError: If *category* names no known table.
        """
        assert self._db is not None, "Store not opened. Call open() or use async with."
        if category is not None:
            table = lookup_table(category)
            if table is None:
                raise ValueError(f"Unknown category: {category!r}")
            async with self._lock:
                return await self._select_latest(table, limit)

        async with self._lock:
            return {table.table: await self._select_latest(table, limit) for table in ALL_TABLES}

    async def table_stats(self) -> dict[str, int]:
        """Return the row count of every snapshot table."""
        assert self._db is not None, "Store not opened. Call open() or use async with."
        stats: dict[str, int] = {}
        async with self._lock:
            for table in ALL_TABLES:
                cursor = await self._db.execute(
                    f"SELECT COUNT(*) FROM {table.table};"  # noqa: S608
                )
                row = await cursor.fetchone()
                stats[table.table] = row[0]
        return stats

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _select_latest(self, table: TableDef, limit: int) -> list[dict[str, Any]]:
        if limit < 1:
            return []
        cursor = await self._db.execute(  # type: ignore[union-attr]
            f"SELECT * FROM {table.table} ORDER BY timestamp DESC, id DESC LIMIT ?;",  # noqa: S608
            (limit,),
        )
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def _rollback(self) -> None:
        if self._db is None:
            return
        try:
            await self._db.rollback()
        except Exception:
            logger.warning("Rollback failed", exc_info=True)
