#!/usr/bin/env python3
"""
Uma Reload Database Manager - Destination Backends

This module provides the interface every destination engine implements and
the manager that builds one adapter per configured destination.

Supported destinations:
- MySQL / MariaDB (PyMySQL, LOAD DATA LOCAL INFILE)
- SQL Server (pymssql, bulk copy)

Usage:
    manager = DatabaseManager(config={'backends': {'mysql': {'type': 'mysql', 'url': url}}})
    destination = manager.get('mysql')
    tables = destination.list_tables()
"""

import logging
import os
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Any, Optional, Tuple
from urllib.parse import urlparse

from core.errors import ColumnMappingError, DestinationError
from core.models import ColumnDescriptor, TableSnapshot

# Configure logging
logger = logging.getLogger(__name__)

class BackendType(Enum):
    """Supported destination families"""
    MYSQL = "mysql"
    MSSQL = "mssql"

    @classmethod
    def from_url(cls, url: str) -> 'BackendType':
        scheme = urlparse(url).scheme.split('+')[0].lower()
        if scheme in ('mysql', 'mariadb'):
            return cls.MYSQL
        if scheme in ('mssql', 'sqlserver'):
            return cls.MSSQL
        raise ValueError(f"Unsupported destination scheme: {scheme or url}")

@dataclass
class DatabaseResult:
    """Unified database result object"""
    success: bool
    data: List[Dict[str, Any]]
    rows_affected: int
    execution_time: float
    backend: str
    sql_executed: str
    error_message: Optional[str] = None

class DestinationAdapter:
    """Base class for destination adapters.

    The capability set the reload pipeline relies on is ``list_tables``,
    ``resolve_columns``, ``truncate`` and ``bulk_load``. One adapter owns a
    single connection which is used by one table operation at a time.
    """

    backend_type: Optional[BackendType] = None

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.name = config.get('name') or (self.backend_type.value if self.backend_type else 'unknown')
        # Schema holding the game tables ('' means the connection's database)
        self.raw_data_schema = config.get('raw_data_schema', '')
        # Schema holding the translation table
        self.translation_schema = config.get('translation_schema', '')

    @property
    def label(self) -> str:
        return self.name

    def quote_identifier(self, identifier: str) -> str:
        return f'"{identifier}"'

    def qualify(self, table_name: str, schema: Optional[str] = None) -> str:
        """Schema-qualified, quoted table name"""
        schema = self.raw_data_schema if schema is None else schema
        if schema:
            return f"{self.quote_identifier(schema)}.{self.quote_identifier(table_name)}"
        return self.quote_identifier(table_name)

    def execute_query(self, sql: str, params: Optional[tuple] = None) -> DatabaseResult:
        """Execute a query - to be implemented by subclasses"""
        raise NotImplementedError("Subclasses must implement execute_query")

    def list_tables(self) -> List[str]:
        """Names of every table in the game-data schema"""
        raise NotImplementedError("Subclasses must implement list_tables")

    def resolve_columns(self, table_name: str, schema: Optional[str] = None) -> Optional[List[ColumnDescriptor]]:
        """Column descriptors in destination order, None if the table does not exist"""
        raise NotImplementedError("Subclasses must implement resolve_columns")

    def write_rows(self, qualified_name: str, column_names: Optional[List[str]],
                   column_positions: Optional[List[int]], rows: List[Tuple[Any, ...]]) -> int:
        """Set-based write of already aligned rows - to be implemented by subclasses"""
        raise NotImplementedError("Subclasses must implement write_rows")

    def is_bulk_load_misconfigured(self, error: Exception) -> bool:
        """True when the driver refuses bulk loading outright"""
        return False

    def truncate(self, table_name: str, schema: Optional[str] = None):
        """Empty a destination table"""
        sql = f"TRUNCATE TABLE {self.qualify(table_name, schema)}"
        result = self.execute_query(sql)
        if not result.success:
            raise DestinationError(f"Failed to truncate {table_name}: {result.error_message}",
                                   {'sql': sql, 'backend': self.name})

    def add_column_statement(self, table_name: str, column: ColumnDescriptor, column_type: str) -> str:
        null_clause = "NULL" if column.nullable else "NOT NULL"
        return (f"ALTER TABLE {self.qualify(table_name)} "
                f"ADD {self.quote_identifier(column.name)} {column_type} {null_clause}")

    def align_rows(self, snapshot: TableSnapshot,
                   destination_columns: List[ColumnDescriptor]) -> Tuple[List[str], List[int], List[Tuple[Any, ...]]]:
        """Reorder snapshot rows into the destination's column order.

        Returns the destination column names written, their 1-based ordinal
        positions and the reordered rows. Destination columns the snapshot does
        not carry are left to their defaults.
        """
        known = {c.name for c in destination_columns}
        unmapped = [name for name in snapshot.column_names if name not in known]
        if unmapped:
            raise ColumnMappingError(
                "The given ColumnMapping does not match up with any column in the source or destination: "
                + ", ".join(unmapped),
                unmapped
            )

        index = {name: i for i, name in enumerate(snapshot.column_names)}
        ordered = [(position, column.name)
                   for position, column in enumerate(destination_columns, start=1)
                   if column.name in index]
        rows = [tuple(row[index[name]] for _, name in ordered) for row in snapshot.rows]
        return [name for _, name in ordered], [position for position, _ in ordered], rows

    def bulk_load(self, table_name: str, snapshot: TableSnapshot,
                  schema: Optional[str] = None, positional: bool = False) -> int:
        """Write every snapshot row into the table with a single bulk primitive.

        Rows are aligned by column name against the destination unless
        ``positional`` is set. Driver errors propagate to the caller.
        """
        qualified = self.qualify(table_name, schema)
        if positional:
            return self.write_rows(qualified, None, None, list(snapshot.rows))

        destination_columns = self.resolve_columns(table_name, schema)
        if destination_columns is None:
            raise DestinationError(f"Destination table {qualified} does not exist",
                                   {'backend': self.name})
        column_names, positions, rows = self.align_rows(snapshot, destination_columns)
        return self.write_rows(qualified, column_names, positions, rows)

    def close(self):
        """Close connections - to be implemented by subclasses"""
        pass

    def get_statistics(self) -> Dict[str, Any]:
        """Get adapter statistics - to be implemented by subclasses"""
        return {}

class DatabaseManager:
    """
    Builds and owns one destination adapter per configured backend

    Config layout:
        {'backends': {'mysql': {'type': 'mysql', 'url': 'mysql://...'}}}
    """

    # Keys to redact from backend config to prevent credential leakage
    _SECRET_KEYS = {'password', 'passwd', 'pwd', 'secret', 'token', 'url'}

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize database manager"""
        self.config = self._resolve_environment_variables(config or {'backends': {}})
        self.adapters: Dict[str, DestinationAdapter] = {}
        self._lock = threading.RLock()

    @classmethod
    def from_urls(cls, urls: List[Optional[str]]) -> 'DatabaseManager':
        """Build a manager from destination URLs, skipping empty or 'N/A' entries"""
        backends = {}
        for url in urls:
            if not url or url.strip().upper() == 'N/A':
                continue
            backend_type = BackendType.from_url(url)
            backends[backend_type.value] = {'type': backend_type.value, 'url': url}
        return cls(config={'backends': backends})

    def _resolve_environment_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Resolve ${VAR} and ${VAR:default} references in configuration"""

        def resolve_value(value):
            if isinstance(value, str):
                pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

                def replace_env_var(match):
                    var_name = match.group(1)
                    default_value = match.group(2) if match.group(2) is not None else ''
                    return os.environ.get(var_name, default_value)

                return re.sub(pattern, replace_env_var, value)
            elif isinstance(value, dict):
                return {k: resolve_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [resolve_value(item) for item in value]
            else:
                return value

        return resolve_value(config)

    def get_available_backends(self) -> List[str]:
        """Get list of configured backends"""
        return list(self.config.get('backends', {}).keys())

    def _initialize_backend(self, backend_name: str) -> DestinationAdapter:
        """Initialize a destination backend"""
        backend_config = self.config.get('backends', {}).get(backend_name)
        if not backend_config:
            raise ValueError(f"No configuration found for backend: {backend_name}")

        backend_type = BackendType(backend_config.get('type'))
        backend_config = dict(backend_config, name=backend_name)

        with self._lock:
            if backend_type == BackendType.MYSQL:
                from extensions.plugins.mysql_adapter import MySQLAdapter
                adapter = MySQLAdapter.from_config(backend_config)
            elif backend_type == BackendType.MSSQL:
                from extensions.plugins.mssql_adapter import MSSQLAdapter
                adapter = MSSQLAdapter.from_config(backend_config)
            else:
                raise ValueError(f"Unsupported backend type: {backend_type}")

            self.adapters[backend_name] = adapter
            logger.info(f"Initialized backend: {backend_name} ({backend_type.value})")
            return adapter

    def get(self, backend_name: str) -> DestinationAdapter:
        """Adapter for a backend, connecting on first use"""
        if backend_name not in self.adapters:
            return self._initialize_backend(backend_name)
        return self.adapters[backend_name]

    def get_backend_info(self, backend_name: str) -> Dict[str, Any]:
        """Get information about a backend (secrets redacted)"""
        backend_config = self.config.get('backends', {}).get(backend_name, {})
        safe_config = {k: ('***REDACTED***' if k.lower() in self._SECRET_KEYS else v)
                       for k, v in backend_config.items()}
        info = {
            'name': backend_name,
            'type': backend_config.get('type', 'unknown'),
            'initialized': backend_name in self.adapters,
            'config': safe_config
        }
        if backend_name in self.adapters:
            info['statistics'] = self.adapters[backend_name].get_statistics()
        return info

    def close_all(self):
        """Close all database connections"""
        logger.info("Closing all destination connections")

        with self._lock:
            for backend_name, adapter in self.adapters.items():
                try:
                    adapter.close()
                    logger.info(f"Closed backend: {backend_name}")
                except Exception as e:
                    logger.error(f"Error closing backend {backend_name}: {e}")

            self.adapters.clear()
