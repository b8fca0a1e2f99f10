"""Exception classes for tableshape."""

from typing import Optional

__all__ = [
    "TableshapeError",
    "ValidationError",
    "InvalidIdentifierError",
    "ConfigurationError",
    "IntegrityDefectError",
    "MissingMetadataError",
    "DatabaseError",
    "DatabaseExecutionError",
    "DatabaseConnectionError",
    "SchemaLoadError",
    "ConfigError",
]


class TableshapeError(Exception):
    """Base exception for tableshape."""


class ValidationError(TableshapeError):
    """Column or table definition misuse, raised before any DDL runs."""


class InvalidIdentifierError(ValidationError):
    """Identifier cannot be safely quoted into a statement."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Invalid identifier: {identifier!r}")


class ConfigurationError(TableshapeError):
    """Foreign key settings that cannot be applied."""


class IntegrityDefectError(TableshapeError):
    """Live schema is ambiguous in a way that must be fixed by hand."""


class MissingMetadataError(TableshapeError):
    """Introspection expected a column or detail that is not there."""


class DatabaseError(TableshapeError):
    """Base error raised by the database client."""


class DatabaseExecutionError(DatabaseError):
    """The connection rejected a statement."""

    def __init__(self, message: str, statement: Optional[str] = None):
        self.statement = statement
        super().__init__(message)


class DatabaseConnectionError(DatabaseError):
    """Connection could not be established."""


class SchemaLoadError(TableshapeError):
    """Error loading YAML table declarations."""


class ConfigError(TableshapeError):
    """Missing or invalid connection configuration."""
