#!/usr/bin/env python3
"""
Schema reconciliation between a source catalog and one destination.

Two jobs:
- partition the source tables into those the destination already has and
  those it lacks (the latter are reported with their creation scripts and
  never loaded)
- add source columns missing from an existing destination table

Usage:
    reconciler = SchemaReconciler(source)
    snapshots, new_tables = reconciler.partition(catalog, destination)
    outcome = reconciler.reconcile_columns(destination, 'card_data')
"""

import logging
from typing import List, Tuple

from core.database_manager import DestinationAdapter
from core.errors import UnhandledColumnTypeError
from core.models import (ReconciliationOutcome, ReconciliationStatus, SourceCatalog,
                         TableRecord, TableSnapshot)
from core.type_registry import TypeRegistry

logger = logging.getLogger(__name__)


class SchemaReconciler:
    """Aligns destination tables with one source database"""

    def __init__(self, source, source_dialect: str = 'sqlite', table_prefix: str = ''):
        self.source = source
        self.source_dialect = source_dialect
        # Destination names are table_prefix + source name
        self.table_prefix = table_prefix

    def destination_name(self, table_name: str) -> str:
        return f"{self.table_prefix}{table_name}"

    def partition(self, catalog: SourceCatalog,
                  destination: DestinationAdapter) -> Tuple[List[TableSnapshot], List[TableRecord]]:
        """
        Split the catalog for one destination.

        Returns:
            (snapshots to load in name order, tables the destination lacks)
        """
        existing = set(destination.list_tables())
        new_tables = [t for t in catalog.tables if self.destination_name(t.name) not in existing]
        new_names = {t.name for t in new_tables}

        snapshots = sorted((s for s in catalog.snapshots if s.name not in new_names),
                           key=lambda s: s.name)

        if new_tables:
            self.print_new_tables(catalog, new_tables, destination)

        return snapshots, new_tables

    def print_new_tables(self, catalog: SourceCatalog, new_tables: List[TableRecord],
                         destination: DestinationAdapter):
        """Print creation scripts so the new tables can be added by hand"""
        print(f"\nWARNING: {len(new_tables)} new table(s) found that do not exist in "
              f"the {destination.label} database. Create them and rerun to load their data.\n")
        for table in new_tables:
            print(f"{table.create_script};")
            for index in catalog.indexes_for(table.name):
                print(f"{index.create_script};")
            print()

        print(", ".join(self.destination_name(t.name) for t in new_tables))
        print()

    def reconcile_columns(self, destination: DestinationAdapter, table_name: str) -> ReconciliationOutcome:
        """Add every source column the destination table lacks, in source order"""
        destination_table = self.destination_name(table_name)

        source_columns = self.source.resolve_columns(table_name)
        destination_columns = destination.resolve_columns(destination_table)
        if source_columns is None or destination_columns is None:
            side = "source" if source_columns is None else destination.label
            reason = f"Table {destination_table} not found in {side}"
            logger.warning(f"{reason}; skipping column reconciliation")
            return ReconciliationOutcome(destination_table, ReconciliationStatus.UNRESOLVED, reason=reason)

        existing = {c.name for c in destination_columns}
        missing = [c for c in source_columns if c.name not in existing]
        if not missing:
            logger.debug(f"{destination_table}: no missing columns on {destination.label}")
            return ReconciliationOutcome(destination_table, ReconciliationStatus.UP_TO_DATE)

        outcome = ReconciliationOutcome(destination_table, ReconciliationStatus.COLUMNS_ADDED)
        target_dialect = destination.backend_type.value
        for column in missing:
            column_type = TypeRegistry.map_column_type(self.source_dialect, column.data_type, target_dialect)
            if column_type is None:
                raise UnhandledColumnTypeError(
                    f"Unable to handle SQLite datatype: {column.data_type or '(none)'} "
                    f"for column {destination_table}.{column.name}",
                    table=destination_table, column=column.name, data_type=column.data_type
                )

            statement = destination.add_column_statement(destination_table, column, column_type)
            result = destination.execute_query(statement)
            if result.success:
                logger.info(f"Added column {column.name} ({column_type}) to {destination_table} "
                            f"on {destination.label}")
                outcome.columns_added.append(column.name)
            else:
                logger.error(f"Failed to add column {column.name} to {destination_table} "
                             f"on {destination.label}: {result.error_message}")
                print(f"{statement};")
                outcome.failed_statements.append(statement)

        if outcome.failed_statements:
            outcome.status = ReconciliationStatus.UNRESOLVED
            outcome.reason = f"{len(outcome.failed_statements)} column add(s) failed"
        return outcome
