"""Table declaration, introspection and reconciliation modules."""

from tableshape.schema.builder import ColumnBuilder
from tableshape.schema.capability import Entity, SchemaCapability
from tableshape.schema.introspect import LiveColumn, LiveIndex, SchemaIntrospector
from tableshape.schema.loader import DeclaredTable, load_declared_tables
from tableshape.schema.models import ColumnDefinition, ForeignKeySpec
from tableshape.schema.reconciler import SchemaReconciler
from tableshape.schema.table import TableDefinition

__all__ = [
    "ColumnBuilder",
    "ColumnDefinition",
    "DeclaredTable",
    "Entity",
    "ForeignKeySpec",
    "LiveColumn",
    "LiveIndex",
    "SchemaCapability",
    "SchemaIntrospector",
    "SchemaReconciler",
    "TableDefinition",
    "load_declared_tables",
]
