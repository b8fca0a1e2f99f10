"""Fluent attribute builder for column definitions."""

from typing import Optional

from tableshape.exceptions import ValidationError
from tableshape.schema.capability import resolve_reference
from tableshape.schema.models import CURRENT_TIMESTAMP, ColumnDefinition, ForeignKeySpec
from tableshape.types import DefaultValue, RelationAction


class ColumnBuilder:
    """Mutates one column definition in place; every mutator returns ``self``."""

    def __init__(self, column: ColumnDefinition) -> None:
        self._column = column

    @property
    def column(self) -> ColumnDefinition:
        return self._column

    def unsigned(self) -> "ColumnBuilder":
        """Mark a numeric column unsigned."""
        if not self._column.type.is_numeric:
            raise ValidationError(
                f"Cannot set unsigned on non-numeric column '{self._column.name}' "
                f"({self._column.type.value})"
            )
        self._column.unsigned = True
        return self

    def required(self) -> "ColumnBuilder":
        self._column.allow_null = False
        return self

    def default_value(self, value: DefaultValue) -> "ColumnBuilder":
        self._column.default_value = value
        return self

    def index(self) -> "ColumnBuilder":
        self._column.indexed = True
        return self

    def unique_index(self) -> "ColumnBuilder":
        self._column.unique = True
        return self

    def on_update_timestamp(self) -> "ColumnBuilder":
        """Refresh a date column to the current timestamp on every update."""
        self._require_temporal("on_update_timestamp")
        self._column.auto_update_timestamp = True
        return self

    def current_timestamp(self) -> "ColumnBuilder":
        """Default a date column to the current timestamp."""
        self._require_temporal("current_timestamp")
        return self.default_value(CURRENT_TIMESTAMP)

    def foreign(
        self,
        target: object,
        column: Optional[str] = None,
        on_delete: Optional[RelationAction] = None,
        on_update: Optional[RelationAction] = None,
    ) -> "ColumnBuilder":
        """Reference another schema capability's table.

        The referenced column defaults to the target's primary key. Foreign
        keys are assumed to point at unsigned integer keys, so the column is
        marked unsigned as well.
        """
        table_name, primary_key = resolve_reference(target)
        self._column.foreign_key = ForeignKeySpec(
            target_table=table_name,
            target_column=column or primary_key,
            on_delete=on_delete or RelationAction.SET_NULL,
            on_update=on_update or RelationAction.CASCADE,
        )
        return self.unsigned()

    def _require_temporal(self, attribute: str) -> None:
        if not self._column.type.is_temporal:
            raise ValidationError(
                f"Cannot set {attribute} on non-date column '{self._column.name}' "
                f"({self._column.type.value})"
            )
