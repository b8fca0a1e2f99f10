"""Schema introspection and DDL execution against a MySQL/MariaDB database."""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence

from tableshape.exceptions import IntegrityDefectError, MissingMetadataError
from tableshape.schema.models import ColumnDefinition, ForeignKeySpec

logger = logging.getLogger(__name__)


class SQLClient(Protocol):
    """Protocol for the query-execution wrapper used by the introspector."""

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None: ...

    def fetch_one(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> Optional[dict[str, Any]]: ...

    def fetch_all(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> list[dict[str, Any]]: ...

    def quote_identifier(self, name: str) -> str: ...


@dataclass
class LiveColumn:
    """Column as reported by ``SHOW COLUMNS``."""

    name: str
    type: str
    nullable: bool
    default: Optional[str] = None
    extra: str = ""


@dataclass
class LiveIndex:
    """Index row as reported by ``SHOW INDEX``."""

    name: str
    column: Optional[str]
    non_unique: bool


class SchemaIntrospector:
    """Read live table metadata and apply single-statement DDL changes."""

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    def _q(self, name: str) -> str:
        return self._client.quote_identifier(name)

    def _run(self, sql: str) -> None:
        logger.debug(sql)
        self._client.execute(sql)

    # Reads

    def table_exists(self, table: str) -> bool:
        row = self._client.fetch_one(
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = DATABASE() AND table_name = %s",
            (table,),
        )
        return row is not None

    def column_exists(self, table: str, column: str) -> bool:
        return self._fetch_column_row(table, column) is not None

    def column_details(self, table: str, column: str) -> Optional[LiveColumn]:
        """Return type/null/default/extra for a column, or None if absent."""
        row = self._fetch_column_row(table, column)
        if row is None:
            return None
        return LiveColumn(
            name=row["Field"],
            type=str(row["Type"]),
            nullable=row.get("Null") == "YES",
            default=None if row.get("Default") is None else str(row["Default"]),
            extra=row.get("Extra") or "",
        )

    def column_names(self, table: str) -> list[str]:
        """Live column names in physical order."""
        rows = self._client.fetch_all(f"SHOW COLUMNS FROM {self._q(table)}")
        names = []
        for row in rows:
            if "Field" not in row:
                raise MissingMetadataError(
                    f"SHOW COLUMNS for '{table}' returned a row without 'Field'"
                )
            names.append(row["Field"])
        return names

    def column_is_immediately_after(
        self, table: str, column: str, previous: str
    ) -> bool:
        names = self.column_names(table)
        if previous not in names:
            raise MissingMetadataError(
                f"Previous column '{previous}' not found in table '{table}'"
            )
        if column not in names:
            raise MissingMetadataError(
                f"Column '{column}' not found in table '{table}'"
            )
        return names.index(column) == names.index(previous) + 1

    def index_by_name(self, table: str, name: str) -> Optional[LiveIndex]:
        row = self._client.fetch_one(
            f"SHOW INDEX FROM {self._q(table)} WHERE Key_name = %s", (name,)
        )
        if row is None:
            return None
        return LiveIndex(
            name=row["Key_name"],
            column=row.get("Column_name"),
            non_unique=int(row["Non_unique"]) == 1,
        )

    def create_table_statement(self, table: str) -> Optional[str]:
        row = self._client.fetch_one(f"SHOW CREATE TABLE {self._q(table)}")
        if row is None or not row.get("Create Table"):
            return None
        return str(row["Create Table"])

    def constraint_line(self, table: str, constraint_name: str) -> Optional[str]:
        """Find the ``CONSTRAINT`` line naming ``constraint_name``.

        The name is matched in its backtick-quoted form, so ``fk_t_user``
        does not match ``fk_t_user_id``. A line that mentions the quoted name
        anywhere else (for example a referenced column with the same name)
        still matches. Returns None when no line matches; more than one match
        means the table definition is ambiguous and is never resolved
        automatically.
        """
        statement = self.create_table_statement(table)
        if statement is None:
            raise MissingMetadataError(
                f"Unable to read CREATE TABLE statement for '{table}'"
            )
        quoted = f"`{constraint_name}`"
        matches = [
            line
            for line in statement.splitlines()
            if "CONSTRAINT" in line and quoted in line
        ]
        if len(matches) > 1:
            raise IntegrityDefectError(
                f"Multiple constraint lines match '{constraint_name}' in table '{table}'"
            )
        return matches[0].strip() if matches else None

    def foreign_key_exists(self, table: str, constraint_name: str) -> bool:
        return self.constraint_line(table, constraint_name) is not None

    def _fetch_column_row(self, table: str, column: str) -> Optional[dict[str, Any]]:
        return self._client.fetch_one(
            f"SHOW COLUMNS FROM {self._q(table)} WHERE Field = %s", (column,)
        )

    # Mutations

    def create_table(self, table: str, primary_key: str) -> None:
        self._run(
            f"CREATE TABLE IF NOT EXISTS {self._q(table)} "
            f"({self._q(primary_key)} INT UNSIGNED AUTO_INCREMENT PRIMARY KEY)"
        )

    def drop_table(self, table: str) -> None:
        if self.table_exists(table):
            self._run(f"DROP TABLE {self._q(table)}")

    def rename_table(self, old_table: str, new_table: str) -> None:
        if self.table_exists(old_table):
            self._run(f"ALTER TABLE {self._q(old_table)} RENAME {self._q(new_table)}")

    def create_column(
        self, table: str, column: ColumnDefinition, previous: Optional[str] = None
    ) -> None:
        sql = f"ALTER TABLE {self._q(table)} ADD COLUMN {self.column_sql(column)}"
        self._run(self._with_position(sql, previous))

    def modify_column(
        self, table: str, column: ColumnDefinition, previous: Optional[str] = None
    ) -> None:
        sql = f"ALTER TABLE {self._q(table)} MODIFY COLUMN {self.column_sql(column)}"
        self._run(self._with_position(sql, previous))

    def drop_column(self, table: str, column: str) -> None:
        self._run(f"ALTER TABLE {self._q(table)} DROP COLUMN {self._q(column)}")

    def rename_column(self, table: str, old_column: str, new_column: str) -> None:
        self._run(
            f"ALTER TABLE {self._q(table)} "
            f"RENAME COLUMN {self._q(old_column)} TO {self._q(new_column)}"
        )

    def create_index(self, table: str, column: str) -> None:
        self._run(
            f"CREATE INDEX {self._q(column)} ON {self._q(table)} ({self._q(column)})"
        )

    def create_unique_index(self, table: str, column: str) -> None:
        self._run(
            f"CREATE UNIQUE INDEX {self._q(column)} "
            f"ON {self._q(table)} ({self._q(column)})"
        )

    def drop_index(self, table: str, name: str) -> None:
        self._run(f"DROP INDEX {self._q(name)} ON {self._q(table)}")

    def create_foreign_key(
        self, table: str, name: str, column: str, foreign_key: ForeignKeySpec
    ) -> None:
        self._run(
            f"ALTER TABLE {self._q(table)} "
            f"ADD CONSTRAINT {self._q(name)} FOREIGN KEY ({self._q(column)}) "
            f"REFERENCES {self._q(foreign_key.target_table)} "
            f"({self._q(foreign_key.target_column)}) "
            f"ON UPDATE {foreign_key.on_update.value} "
            f"ON DELETE {foreign_key.on_delete.value}"
        )

    def drop_foreign_key(self, table: str, name: str) -> None:
        self._run(f"ALTER TABLE {self._q(table)} DROP FOREIGN KEY {self._q(name)}")

    def column_sql(self, column: ColumnDefinition) -> str:
        """Render a column definition for ADD/MODIFY COLUMN."""
        parts = [self._q(column.name), column.field_type]
        if not column.has_default:
            if column.allow_null:
                parts.append("DEFAULT NULL")
        elif column.defaults_to_current_timestamp:
            parts.append("DEFAULT current_timestamp()")
        else:
            parts.append(f"DEFAULT '{_escape_sql_string(column.default_text)}'")
        parts.append("NULL" if column.allow_null else "NOT NULL")
        if column.auto_update_timestamp:
            parts.append("on update current_timestamp()")
        return " ".join(parts)

    def _with_position(self, sql: str, previous: Optional[str]) -> str:
        if previous:
            return f"{sql} AFTER {self._q(previous)}"
        return sql


def _escape_sql_string(value: str) -> str:
    """Escape single quotes for SQL string literals."""
    return value.replace("'", "''")
