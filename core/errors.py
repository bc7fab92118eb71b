#!/usr/bin/env python3
"""
Uma Reload Error Hierarchy
Canonical exception classes for the table reloader.

FatalError subclasses end the run; only the CLI turns them into an exit code.
"""

from enum import Enum

class ErrorCode(Enum):
    UNKNOWN = "UNKNOWN_ERROR"
    SOURCE_MISSING = "SOURCE_MISSING"
    CATALOG_READ = "CATALOG_READ_ERROR"
    UNHANDLED_COLUMN_TYPE = "UNHANDLED_COLUMN_TYPE"
    BULK_LOAD_CONFIGURATION = "BULK_LOAD_CONFIGURATION"
    COLUMN_MAPPING = "COLUMN_MAPPING"
    DESTINATION_ERROR = "DESTINATION_ERROR"

class ReloadError(Exception):
    """Base class for all reloader exceptions"""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

class FatalError(ReloadError):
    """Raised when the run cannot continue"""

class SourceMissingError(FatalError):
    """Raised when a source database file is absent after the fetch step"""
    def __init__(self, message: str, path: str = None):
        super().__init__(message, ErrorCode.SOURCE_MISSING, {'path': path})

class CatalogReadError(FatalError):
    """Raised when the source catalog cannot be read"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.CATALOG_READ, details)

class UnhandledColumnTypeError(FatalError):
    """Raised when a missing column has a source type with no destination mapping"""
    def __init__(self, message: str, table: str = None, column: str = None, data_type: str = None):
        details = {'table': table, 'column': column, 'data_type': data_type}
        super().__init__(message, ErrorCode.UNHANDLED_COLUMN_TYPE, details)

class BulkLoadConfigurationError(FatalError):
    """Raised when the destination driver refuses the bulk load primitive"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.BULK_LOAD_CONFIGURATION, details)

class ColumnMappingError(ReloadError):
    """Raised when snapshot columns cannot be mapped onto the destination table"""
    def __init__(self, message: str, unmapped: list = None):
        super().__init__(message, ErrorCode.COLUMN_MAPPING, {'unmapped': unmapped or []})

class DestinationError(ReloadError):
    """Raised when a destination query fails"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, ErrorCode.DESTINATION_ERROR, details)
