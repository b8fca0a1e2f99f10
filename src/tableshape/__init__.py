"""Declarative table reconciliation for MySQL and MariaDB."""

from tableshape.schema import (
    Entity,
    SchemaCapability,
    SchemaIntrospector,
    SchemaReconciler,
    TableDefinition,
)
from tableshape.types import ColumnType, RelationAction

__version__ = "0.1.0"

__all__ = [
    "ColumnType",
    "Entity",
    "RelationAction",
    "SchemaCapability",
    "SchemaIntrospector",
    "SchemaReconciler",
    "TableDefinition",
]
