"""Converge a live table to the shape declared by a schema capability."""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from tableshape.exceptions import ConfigurationError, MissingMetadataError
from tableshape.schema.capability import SchemaCapability
from tableshape.schema.introspect import LiveColumn, SchemaIntrospector
from tableshape.schema.models import ColumnDefinition, is_current_timestamp
from tableshape.schema.table import TableDefinition
from tableshape.types import ChangeType, RelationAction, SchemaChange

__all__ = ["SchemaReconciler", "constraint_name", "types_match"]

logger = logging.getLogger(__name__)

_DISPLAY_WIDTH = re.compile(r"^(tinyint|int|bigint)\(\d+\)")


def constraint_name(table: str, column: str) -> str:
    """Deterministic foreign key name for a column."""
    return f"fk_{table}_{column}"


def types_match(declared: str, live: str) -> bool:
    """Compare type strings, ignoring integer display widths the engine omits."""
    declared = declared.strip().lower()
    live = live.strip().lower()
    if declared == live:
        return True
    if _DISPLAY_WIDTH.match(live):
        return False
    return _DISPLAY_WIDTH.sub(r"\1", declared) == live


def defaults_match(column: ColumnDefinition, live_default: Optional[str]) -> bool:
    """Compare defaults, allowing for the engine padding numbers to the column scale."""
    declared = column.default_text
    if is_current_timestamp(declared) and is_current_timestamp(live_default):
        return True
    if declared == live_default:
        return True
    if column.type.is_numeric and declared is not None and live_default is not None:
        try:
            return Decimal(declared) == Decimal(live_default)
        except InvalidOperation:
            return False
    return False


def _extra_updates_timestamp(extra: str) -> bool:
    return "current_timestamp" in extra.lower()


def _line_has_action(line: str, event: str, action: RelationAction) -> bool:
    """Check a constraint line for ``ON <event> <action>``.

    The engine leaves out clauses that match its default behaviour, so a
    missing clause stands for RESTRICT or NO ACTION.
    """
    if f"{event} {action.value}" in line:
        return True
    return (
        action in (RelationAction.RESTRICT, RelationAction.NO_ACTION)
        and f"ON {event}" not in line
    )


class SchemaReconciler:
    """
    Apply the minimal DDL needed for a live table to match its declaration.

    Steps run in a fixed order: ensure the table, drop columns, rename
    columns, then create or modify each declared column followed by its
    index and foreign key. Every check reads live state first, so a second
    run against an unchanged declaration applies nothing.

    DDL is not transactional. A failure stops the run immediately and the
    steps already applied stay applied; ``report`` keeps what was recorded
    up to that point and a re-run resumes from there.
    """

    def __init__(self, introspector: SchemaIntrospector) -> None:
        self._schema = introspector
        self._changes: list[SchemaChange] = []

    @property
    def changes(self) -> list[SchemaChange]:
        return list(self._changes)

    @property
    def report(self) -> list[str]:
        return [change.message for change in self._changes]

    def reconcile(self, capability: SchemaCapability) -> list[str]:
        """Converge the capability's table and return the ordered action log."""
        self._changes = []

        table = capability.table_name()
        definition = TableDefinition()
        capability.populate(definition)

        self._ensure_table(table, capability.primary_key_name())
        self._apply_drops(table, definition)
        self._apply_renames(table, definition)

        previous: Optional[ColumnDefinition] = None
        for column in definition.columns:
            previous_name = previous.name if previous else None
            if self._schema.column_exists(table, column.name):
                self._update_modified_column(table, column, previous_name)
            else:
                self._schema.create_column(table, column, previous_name)
                self._record(
                    ChangeType.ADD_COLUMN,
                    table,
                    f"Created column «{table}.{column.name}»",
                    column=column.name,
                    after=previous_name,
                )
            previous = column
            self._reconcile_index(table, column)
            self._reconcile_foreign_key(table, column)

        if not self._changes:
            logger.debug(f"Table {table} is up to date")
        return self.report

    def _record(
        self, change_type: ChangeType, table: str, message: str, **details: Any
    ) -> None:
        logger.info(message)
        self._changes.append(
            SchemaChange(
                change_type=change_type,
                table_name=table,
                message=message,
                details=details,
            )
        )

    def _ensure_table(self, table: str, primary_key: str) -> None:
        if self._schema.table_exists(table):
            return
        self._schema.create_table(table, primary_key)
        self._record(
            ChangeType.CREATE_TABLE,
            table,
            f"Created table {table}",
            primary_key=primary_key,
        )

    def _apply_drops(self, table: str, definition: TableDefinition) -> None:
        for column in definition.dropped_columns:
            if not self._schema.column_exists(table, column):
                continue
            name = constraint_name(table, column)
            if self._schema.foreign_key_exists(table, name):
                self._schema.drop_foreign_key(table, name)
                self._record(
                    ChangeType.DROP_FOREIGN_KEY,
                    table,
                    f"Dropped foreign key {name} for column «{table}.{column}»",
                    column=column,
                    constraint=name,
                )
            self._schema.drop_column(table, column)
            self._record(
                ChangeType.DROP_COLUMN,
                table,
                f"Removed column {column} from {table}",
                column=column,
            )

    def _apply_renames(self, table: str, definition: TableDefinition) -> None:
        for current, new in definition.renamed_columns.items():
            if not self._schema.column_exists(table, current):
                continue
            self._schema.rename_column(table, current, new)
            self._record(
                ChangeType.RENAME_COLUMN,
                table,
                f"Renamed column {current} in {table} to {new}",
                column=current,
                new_name=new,
            )

    def _update_modified_column(
        self, table: str, column: ColumnDefinition, previous: Optional[str]
    ) -> None:
        live = self._schema.column_details(table, column.name)
        if live is None:
            raise MissingMetadataError(
                f"Unable to get column details for «{table}.{column.name}»"
            )

        reasons = self._detect_modifications(table, column, live, previous)
        if not reasons:
            return

        self._schema.modify_column(table, column, previous)
        label = f"«{table}.{column.name}»"
        self._record(
            ChangeType.MODIFY_COLUMN,
            table,
            f"Modified column {label}: {'; '.join(reasons)}",
            column=column.name,
            reasons=reasons,
            after=previous,
        )

    def _detect_modifications(
        self,
        table: str,
        column: ColumnDefinition,
        live: LiveColumn,
        previous: Optional[str],
    ) -> list[str]:
        """Describe every difference between the declared and live column."""
        reasons: list[str] = []

        if not types_match(column.field_type, live.type):
            reasons.append(f"type changed to {column.field_type}")

        if column.allow_null and not live.nullable:
            reasons.append("no longer required")

        if not column.allow_null and live.nullable:
            reasons.append("now required")

        if not column.has_default and live.default is not None:
            reasons.append("default value is now NULL")

        if column.has_default and not defaults_match(column, live.default):
            reasons.append(f"default value is now {column.default_text}")

        updates_timestamp = _extra_updates_timestamp(live.extra)
        if column.auto_update_timestamp and not updates_timestamp:
            reasons.append("now sets current timestamp on update")

        if not column.auto_update_timestamp and updates_timestamp:
            reasons.append("no longer sets current timestamp on update")

        if previous and not self._schema.column_is_immediately_after(
            table, column.name, previous
        ):
            reasons.append(f"moved after column {previous}")

        return reasons

    def _reconcile_index(self, table: str, column: ColumnDefinition) -> None:
        if not column.indexed and not column.unique:
            return

        name = column.name
        index = self._schema.index_by_name(table, name)
        want_unique = column.unique

        if index is not None and index.non_unique == want_unique:
            self._schema.drop_index(table, name)
            self._record(
                ChangeType.DROP_INDEX,
                table,
                f"Dropped index for modification for «{table}.{name}»",
                index=name,
            )
            index = None

        if index is not None:
            return

        if want_unique:
            self._schema.create_unique_index(table, name)
            self._record(
                ChangeType.ADD_UNIQUE_INDEX,
                table,
                f"Created unique index for «{table}.{name}»",
                index=name,
            )
        else:
            self._schema.create_index(table, name)
            self._record(
                ChangeType.ADD_INDEX,
                table,
                f"Created index for «{table}.{name}»",
                index=name,
            )

    def _reconcile_foreign_key(self, table: str, column: ColumnDefinition) -> None:
        foreign_key = column.foreign_key
        if foreign_key is None:
            return

        label = f"«{table}.{column.name}»"
        if not foreign_key.target_column:
            raise ConfigurationError(f"Foreign column is missing for {label}")
        if foreign_key.on_delete is None or foreign_key.on_update is None:
            raise ConfigurationError(
                f"On delete or update action for foreign key {label} is not set"
            )
        if foreign_key.on_delete is RelationAction.SET_NULL and not column.allow_null:
            raise ConfigurationError(
                f"Cannot use ON DELETE SET NULL for foreign key {label} "
                "while the column does not allow null"
            )

        name = constraint_name(table, column.name)
        line = self._schema.constraint_line(table, name)

        if line is not None and not (
            _line_has_action(line, "UPDATE", foreign_key.on_update)
            and _line_has_action(line, "DELETE", foreign_key.on_delete)
        ):
            self._schema.drop_foreign_key(table, name)
            self._record(
                ChangeType.DROP_FOREIGN_KEY,
                table,
                f"Dropped foreign key {name} for modification of {label}",
                column=column.name,
                constraint=name,
            )
            line = None

        if line is None:
            self._schema.create_foreign_key(table, name, column.name, foreign_key)
            self._record(
                ChangeType.ADD_FOREIGN_KEY,
                table,
                f"Created foreign key {name} for {label} referencing "
                f"{foreign_key.target_table}.{foreign_key.target_column}",
                column=column.name,
                constraint=name,
            )
