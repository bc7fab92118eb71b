#!/usr/bin/env python3
"""
Truncate-and-load of one table snapshot into one destination.

A first attempt fails quietly so the caller can reconcile columns and retry;
a second attempt reports everything it knows.
"""

import logging
from typing import Optional

from core.database_manager import DestinationAdapter
from core.errors import BulkLoadConfigurationError, ColumnMappingError, FatalError
from core.models import TableSnapshot

logger = logging.getLogger(__name__)

# Driver message for a snapshot column the destination does not have
COLUMN_MAPPING_SIGNATURE = "The given ColumnMapping does not match up with any column in the source or destination"


def is_column_mapping_error(error: Exception) -> bool:
    return isinstance(error, ColumnMappingError) or COLUMN_MAPPING_SIGNATURE in str(error)


class BulkLoader:
    """Loads snapshots with the destination's bulk primitive"""

    def load(self, destination: DestinationAdapter, table_name: str, snapshot: TableSnapshot,
             schema: Optional[str] = None, first_attempt: bool = True, positional: bool = False) -> bool:
        """
        Replace the contents of a destination table with the snapshot.

        Args:
            destination: Destination adapter
            table_name: Destination table name (already prefixed)
            snapshot: Rows to write
            schema: Destination schema, None for the game-data schema
            first_attempt: Stay quiet on failure
            positional: Write columns in snapshot order without name alignment

        Returns:
            True when every row was written
        """
        try:
            destination.truncate(table_name, schema)
            count = destination.bulk_load(table_name, snapshot, schema=schema, positional=positional)
        except FatalError:
            raise
        except Exception as e:
            if destination.is_bulk_load_misconfigured(e):
                raise BulkLoadConfigurationError(
                    f"{destination.label} refused the bulk load: {e}. "
                    "Enable local_infile on both the server and the connection URL.",
                    {'backend': destination.label, 'table': table_name}
                ) from e

            if first_attempt:
                logger.debug(f"First load of {table_name} into {destination.label} failed: {e}")
            else:
                self.report_failure(destination, table_name, snapshot, e)
            return False

        logger.info(f"Loaded {count} rows into {table_name} on {destination.label}")
        return True

    def report_failure(self, destination: DestinationAdapter, table_name: str,
                       snapshot: TableSnapshot, error: Exception):
        logger.error(f"Could not bulk insert for the table {table_name} on {destination.label}: {error}")

        if is_column_mapping_error(error):
            print(f"\nColumns of source table {snapshot.name}:")
            for column in snapshot.columns:
                nullability = "NULL" if column.nullable else "NOT NULL"
                print(f"  {column.name} ({column.data_type or 'none'}, {nullability})")
            print()
        else:
            logger.error("Bulk insert traceback:", exc_info=error)
