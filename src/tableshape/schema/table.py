"""Declared shape of one table."""

from __future__ import annotations

from typing import Iterable, Optional

from tableshape.schema.builder import ColumnBuilder
from tableshape.schema.models import ColumnDefinition
from tableshape.types import ColumnType, RelationAction


class TableDefinition:
    """Ordered column definitions plus pending drops and renames.

    Column order is the desired physical order. Redeclaring a name replaces
    the earlier definition at its original position.
    """

    def __init__(self) -> None:
        self._columns: dict[str, ColumnDefinition] = {}
        self._dropped: list[str] = []
        self._renamed: dict[str, str] = {}

    @property
    def columns(self) -> list[ColumnDefinition]:
        return list(self._columns.values())

    @property
    def dropped_columns(self) -> list[str]:
        return list(self._dropped)

    @property
    def renamed_columns(self) -> dict[str, str]:
        return dict(self._renamed)

    def get_column(self, name: str) -> Optional[ColumnDefinition]:
        return self._columns.get(name)

    def drop(self, names: str | Iterable[str]) -> None:
        """Schedule one or more columns for removal."""
        if isinstance(names, str):
            names = [names]
        for name in names:
            self._columns.pop(name, None)
            self._renamed.pop(name, None)
            self._dropped.append(name)

    def rename(self, current_name: str, new_name: str) -> None:
        self._renamed[current_name] = new_name

    def add(self, column: ColumnDefinition) -> ColumnBuilder:
        """Register a column and return a builder bound to it."""
        self._columns[column.name] = column
        return ColumnBuilder(column)

    def string(self, name: str, length: int = 255) -> ColumnBuilder:
        return self.add(ColumnDefinition(name, ColumnType.STRING, length))

    def int(self, name: str, length: int = 11) -> ColumnBuilder:
        return self.add(ColumnDefinition(name, ColumnType.INT, length))

    def bigint(self, name: str, length: int = 20) -> ColumnBuilder:
        return self.add(ColumnDefinition(name, ColumnType.BIGINT, length))

    def decimal(self, name: str, length: int = 11, precision: int = 2) -> ColumnBuilder:
        return self.add(ColumnDefinition(name, ColumnType.DECIMAL, length, precision))

    float = decimal

    def boolean(self, name: str, default_active: bool = False) -> ColumnBuilder:
        column = ColumnDefinition(name, ColumnType.TINYINT, 1)
        return self.add(column).default_value("1" if default_active else "0")

    def text(self, name: str) -> ColumnBuilder:
        return self.add(ColumnDefinition(name, ColumnType.TEXT))

    def date(self, name: str) -> ColumnBuilder:
        return self.add(ColumnDefinition(name, ColumnType.DATE))

    def datetime(self, name: str) -> ColumnBuilder:
        return self.add(ColumnDefinition(name, ColumnType.DATETIME))

    def foreign(
        self,
        name: str,
        target: object,
        column: Optional[str] = None,
        on_delete: Optional[RelationAction] = None,
        on_update: Optional[RelationAction] = None,
    ) -> ColumnBuilder:
        """Integer column referencing another schema capability."""
        builder = self.add(ColumnDefinition(name, ColumnType.INT, 11))
        return builder.foreign(target, column, on_delete, on_update)

    def timestamps(self) -> None:
        """Add ``created_at`` and ``updated_at`` maintained by the database."""
        self.datetime("created_at").current_timestamp()
        self.datetime("updated_at").current_timestamp().on_update_timestamp()

    def soft_delete(self) -> None:
        self.datetime("deleted_at")

    def email(self, name: str) -> ColumnBuilder:
        return self.string(name, 80)

    def password(self, name: str) -> ColumnBuilder:
        return self.string(name, 80)

    def token(self, name: str) -> ColumnBuilder:
        return self.string(name, 64)
