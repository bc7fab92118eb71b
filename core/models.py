#!/usr/bin/env python3
"""
Run-scoped data model for the table reloader.

Records and snapshots are produced once per run by the catalog reader,
consumed by the reconciler and loader, and discarded when the run ends.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class TableRecord:
    """A source table and the script that created it"""
    name: str
    create_script: str


@dataclass(frozen=True)
class IndexRecord:
    """A source index and the table it belongs to"""
    table_name: str
    create_script: str


@dataclass(frozen=True)
class ColumnDescriptor:
    """One column of a source or destination table.

    Drift detection compares ``name`` only; ``data_type`` and ``nullable``
    feed DDL synthesis.
    """
    name: str
    data_type: str
    nullable: bool = True


@dataclass
class TableSnapshot:
    """Every row of one source table, materialized in memory"""
    name: str
    columns: List[ColumnDescriptor]
    rows: List[Tuple[Any, ...]] = field(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def __len__(self) -> int:
        return len(self.rows)


@dataclass
class SourceCatalog:
    """Everything read from one source database"""
    tables: List[TableRecord]
    indexes: List[IndexRecord]
    snapshots: List[TableSnapshot]

    def indexes_for(self, table_name: str) -> List[IndexRecord]:
        return [i for i in self.indexes if i.table_name == table_name]


class ReconciliationStatus(Enum):
    UP_TO_DATE = "up_to_date"
    COLUMNS_ADDED = "columns_added"
    UNRESOLVED = "unresolved"


@dataclass
class ReconciliationOutcome:
    """Result of healing one destination table's columns"""
    table: str
    status: ReconciliationStatus
    columns_added: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    failed_statements: List[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.failed_statements)


@dataclass
class TableLoadResult:
    """Final state of one destination table after the reload"""
    destination: str
    table: str
    loaded: bool
    attempts: int = 1
    rows: int = 0
    reconciliation: Optional[ReconciliationOutcome] = None

    @property
    def had_error(self) -> bool:
        if not self.loaded:
            return True
        return self.reconciliation is not None and self.reconciliation.has_errors


@dataclass
class RunSummary:
    """Fold of every table outcome in a run"""
    results: List[TableLoadResult] = field(default_factory=list)
    destination_failures: List[str] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)

    def extend(self, results: Sequence[TableLoadResult]):
        self.results.extend(results)

    @property
    def had_bulk_insert_error(self) -> bool:
        return bool(self.destination_failures) or any(r.had_error for r in self.results)

    @property
    def failed_tables(self) -> List[str]:
        return [f"{r.destination}:{r.table}" for r in self.results if r.had_error]

    @property
    def status_line(self) -> str:
        if self.had_bulk_insert_error:
            return "WARNING: Table reload successful, but has bulk insert errors."
        return "SUCCESS: Table reload successful!"
