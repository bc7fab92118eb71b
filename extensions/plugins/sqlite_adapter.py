#!/usr/bin/env python3
"""
Uma Reload SQLite Adapter - source catalog reader

Reads a game database snapshot (``master.mdb`` or ``meta``):
- table records and their creation scripts
- explicit index creation scripts
- per-table column descriptors
- every row of every table, materialized in memory

Any failure here ends the run, so errors surface as CatalogReadError.

Usage:
    with SQLiteAdapter('master/master.mdb') as source:
        catalog = source.read_catalog()
"""

import sqlite3
import logging
import time
from pathlib import Path
from typing import List, Optional

from core.errors import CatalogReadError
from core.models import ColumnDescriptor, IndexRecord, SourceCatalog, TableRecord, TableSnapshot

logger = logging.getLogger(__name__)

# Internal statistics table created by ANALYZE
EXCLUDED_TABLES = {'sqlite_stat1'}


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class SQLiteAdapter:
    """Read-only view of one SQLite source database."""

    def __init__(
        self,
        database: str = ':memory:',
        timeout: float = 30.0,
        read_only: bool = True
    ):
        """
        Initialize SQLite adapter.

        Args:
            database: Path to SQLite database file or ':memory:' for in-memory
            timeout: Connection timeout in seconds
            read_only: Open file databases in read-only mode
        """
        self.database = str(database)
        self.timeout = timeout
        self.read_only = read_only
        self._connection: Optional[sqlite3.Connection] = None
        self._connect()
        logger.info(f"SQLite adapter initialized for {self.database}")

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            if self.read_only and self.database != ':memory:':
                self._connection = sqlite3.connect(
                    Path(self.database).resolve().as_uri() + "?mode=ro",
                    timeout=self.timeout,
                    uri=True
                )
            else:
                self._connection = sqlite3.connect(self.database, timeout=self.timeout)
            logger.debug(f"Connected to SQLite database: {self.database}")
        except sqlite3.Error as e:
            raise CatalogReadError(f"Failed to open {self.database}: {e}", {'database': self.database}) from e

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("SQLite adapter closed")

    def __enter__(self) -> 'SQLiteAdapter':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _fetch(self, sql: str, params: tuple = ()) -> list:
        try:
            cursor = self._connection.execute(sql, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            raise CatalogReadError(f"Failed to read {self.database}: {e}",
                                   {'database': self.database, 'sql': sql}) from e

    def get_table_records(self) -> List[TableRecord]:
        """Every table with its creation script, ordered by name."""
        rows = self._fetch(
            "SELECT tbl_name, sql FROM sqlite_master WHERE type = 'table' ORDER BY tbl_name"
        )
        return [TableRecord(name, sql or '') for name, sql in rows if name not in EXCLUDED_TABLES]

    def get_index_records(self) -> List[IndexRecord]:
        """Explicit indexes only; automatic ones carry no script."""
        rows = self._fetch(
            "SELECT tbl_name, sql FROM sqlite_master "
            "WHERE type = 'index' AND sql IS NOT NULL ORDER BY tbl_name, name"
        )
        return [IndexRecord(table_name, sql) for table_name, sql in rows]

    def resolve_columns(self, table_name: str) -> Optional[List[ColumnDescriptor]]:
        """
        Column descriptors in declaration order.

        Returns:
            None when the table does not exist
        """
        rows = self._fetch('SELECT name, type, "notnull" FROM pragma_table_info(?)', (table_name,))
        if not rows:
            return None
        return [ColumnDescriptor(name, data_type or '', not notnull) for name, data_type, notnull in rows]

    def load_snapshot(self, table_name: str) -> TableSnapshot:
        """Read every row of one table."""
        columns = self.resolve_columns(table_name)
        if columns is None:
            raise CatalogReadError(f"Table {table_name} not found in {self.database}",
                                   {'database': self.database, 'table': table_name})

        select_list = ", ".join(quote_identifier(c.name) for c in columns)
        rows = self._fetch(f"SELECT {select_list} FROM {quote_identifier(table_name)}")
        return TableSnapshot(table_name, columns, rows)

    def read_catalog(self) -> SourceCatalog:
        """Tables, indexes and full snapshots of every table."""
        start_time = time.time()
        tables = self.get_table_records()
        indexes = self.get_index_records()
        snapshots = [self.load_snapshot(table.name) for table in tables]

        total_rows = sum(len(s) for s in snapshots)
        logger.info(f"Read {len(tables)} tables ({total_rows} rows) from {self.database} "
                    f"in {time.time() - start_time:.2f}s")
        return SourceCatalog(tables, indexes, snapshots)
