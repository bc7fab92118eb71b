#!/usr/bin/env python3
"""
Uma Reload Core Package
Exports the main components for clean imports
"""

from core.errors import (ReloadError, FatalError, SourceMissingError, CatalogReadError,
                         UnhandledColumnTypeError, BulkLoadConfigurationError,
                         ColumnMappingError, DestinationError)
from core.models import (TableRecord, IndexRecord, ColumnDescriptor, TableSnapshot, SourceCatalog,
                         ReconciliationStatus, ReconciliationOutcome, TableLoadResult, RunSummary)

__all__ = [
    'ReloadError', 'FatalError', 'SourceMissingError', 'CatalogReadError',
    'UnhandledColumnTypeError', 'BulkLoadConfigurationError', 'ColumnMappingError', 'DestinationError',
    'TableRecord', 'IndexRecord', 'ColumnDescriptor', 'TableSnapshot', 'SourceCatalog',
    'ReconciliationStatus', 'ReconciliationOutcome', 'TableLoadResult', 'RunSummary',
]
