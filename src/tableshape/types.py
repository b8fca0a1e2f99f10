"""Core type definitions for tableshape."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, TypeAlias

TableName: TypeAlias = str
DefaultValue: TypeAlias = str | int | bool | None

CURRENT_TIMESTAMP = "current_timestamp()"

__all__ = [
    "TableName",
    "DefaultValue",
    "CURRENT_TIMESTAMP",
    "ColumnType",
    "RelationAction",
    "ChangeType",
    "SchemaChange",
]


class ColumnType(Enum):
    """Column types supported by the reconciler, keyed by their SQL base name."""

    STRING = "varchar"
    INT = "int"
    TINYINT = "tinyint"
    BIGINT = "bigint"
    TEXT = "text"
    DATE = "date"
    DATETIME = "datetime"
    DECIMAL = "decimal"

    @property
    def is_numeric(self) -> bool:
        return self in _NUMERIC_TYPES

    @property
    def is_temporal(self) -> bool:
        return self in _TEMPORAL_TYPES

    def render(
        self,
        length: Optional[int] = None,
        precision: Optional[int] = None,
        unsigned: bool = False,
    ) -> str:
        """Render the native type string, e.g. ``int(11) unsigned``."""
        if self is ColumnType.DECIMAL:
            rendered = f"decimal({length},{precision})"
        elif self in (ColumnType.TEXT, ColumnType.DATE, ColumnType.DATETIME):
            rendered = self.value
        else:
            rendered = f"{self.value}({length})"
        if unsigned and self.is_numeric:
            rendered += " unsigned"
        return rendered

    @classmethod
    def from_name(cls, name: str) -> "ColumnType":
        """Look up a type by member name or SQL name (case-insensitive)."""
        key = name.strip().lower()
        for member in cls:
            if key in (member.name.lower(), member.value):
                return member
        raise ValueError(f"Unknown column type: {name}")


_NUMERIC_TYPES = frozenset(
    {ColumnType.INT, ColumnType.TINYINT, ColumnType.BIGINT, ColumnType.DECIMAL}
)
_TEMPORAL_TYPES = frozenset({ColumnType.DATE, ColumnType.DATETIME})


class RelationAction(Enum):
    """Referential actions for ``ON UPDATE`` / ``ON DELETE``."""

    RESTRICT = "RESTRICT"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    NO_ACTION = "NO ACTION"

    @classmethod
    def from_name(cls, name: str) -> "RelationAction":
        """Accept ``set_null``, ``SET NULL`` or ``SetNull`` spellings."""
        key = name.strip().upper().replace("_", "").replace(" ", "")
        for member in cls:
            if key == member.name.replace("_", ""):
                return member
        raise ValueError(f"Unknown relation action: {name}")


class ChangeType(Enum):
    """Kinds of DDL steps the reconciler can record."""

    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"
    MODIFY_COLUMN = "modify_column"
    DROP_COLUMN = "drop_column"
    RENAME_COLUMN = "rename_column"
    ADD_INDEX = "add_index"
    ADD_UNIQUE_INDEX = "add_unique_index"
    DROP_INDEX = "drop_index"
    ADD_FOREIGN_KEY = "add_foreign_key"
    DROP_FOREIGN_KEY = "drop_foreign_key"


@dataclass
class SchemaChange:
    """A single DDL step applied during reconciliation."""

    change_type: ChangeType
    table_name: TableName
    message: str
    details: dict[str, Any] = field(default_factory=dict)
