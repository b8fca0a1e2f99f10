"""Shared test helpers for tableshape tests."""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional
from unittest.mock import MagicMock

from tableshape.config import Config
from tableshape.exceptions import DatabaseExecutionError
from tableshape.mysql.client import quote_identifier
from tableshape.schema.capability import Entity


def make_test_config(
    host: str = "localhost",
    user: str = "tester",
    database: str = "test_db",
) -> Config:
    """Create a Config for tests with sensible defaults."""
    return Config(host=host, user=user, database=database)


def make_mock_client(
    columns: dict[str, list[dict]] | None = None,
    create_statements: dict[str, str] | None = None,
    indexes: dict[str, list[dict]] | None = None,
) -> MagicMock:
    """Create a mock SQL client answering metadata queries from static data.

    Args:
        columns: Dict mapping table_name -> SHOW COLUMNS rows
        create_statements: Dict mapping table_name -> SHOW CREATE TABLE text
        indexes: Dict mapping table_name -> SHOW INDEX rows
    """
    client = MagicMock()
    columns = columns or {}
    create_statements = create_statements or {}
    indexes = indexes or {}

    client.quote_identifier.side_effect = quote_identifier

    def table_of(sql: str) -> Optional[str]:
        match = re.search(r"(?:FROM|TABLE) `(\w+)`", sql)
        return match.group(1) if match else None

    def fetch_one_side_effect(sql: str, params=None):
        if "information_schema.tables" in sql:
            return {"1": 1} if params[0] in columns else None
        table = table_of(sql)
        if sql.startswith("SHOW COLUMNS"):
            for row in columns.get(table, []):
                if row["Field"] == params[0]:
                    return row
            return None
        if sql.startswith("SHOW INDEX"):
            for row in indexes.get(table, []):
                if row["Key_name"] == params[0]:
                    return row
            return None
        if sql.startswith("SHOW CREATE TABLE"):
            if table not in create_statements:
                return None
            return {"Table": table, "Create Table": create_statements[table]}
        return None

    def fetch_all_side_effect(sql: str, params=None):
        if sql.startswith("SHOW COLUMNS"):
            return list(columns.get(table_of(sql), []))
        return []

    client.fetch_one.side_effect = fetch_one_side_effect
    client.fetch_all.side_effect = fetch_all_side_effect
    return client


def column_row(
    name: str,
    type_: str,
    nullable: bool = True,
    default: Optional[str] = None,
    extra: str = "",
) -> dict:
    """Build a SHOW COLUMNS row."""
    return {
        "Field": name,
        "Type": type_,
        "Null": "YES" if nullable else "NO",
        "Key": "",
        "Default": default,
        "Extra": extra,
    }


_COLUMN_DEF = re.compile(
    r"^`(?P<name>\w+)` (?P<type>.+?)"
    r"(?: DEFAULT (?P<default>NULL|current_timestamp\(\)|'(?P<literal>(?:[^']|'')*)'))?"
    r" (?P<null>NULL|NOT NULL)"
    r"(?P<extra> on update current_timestamp\(\))?$"
)
_DISPLAY_WIDTH = re.compile(r"^(tinyint|int|bigint)\(\d+\)")
_DECIMAL_SCALE = re.compile(r"^decimal\(\d+,(\d+)\)")


@dataclass
class FakeTable:
    name: str
    columns: list[dict] = field(default_factory=list)
    primary_key: Optional[str] = None
    indexes: dict[str, dict] = field(default_factory=dict)
    constraints: dict[str, dict] = field(default_factory=dict)

    def column(self, name: str) -> Optional[dict]:
        for row in self.columns:
            if row["Field"] == name:
                return row
        return None

    def position(self, name: str) -> int:
        return [row["Field"] for row in self.columns].index(name)


class FakeMySQL:
    """In-memory MySQL/MariaDB stand-in that understands the statements the
    introspector emits.

    ``modern_metadata`` mimics MySQL 8 reporting: integer display widths are
    dropped and timestamp defaults are reported as ``CURRENT_TIMESTAMP``.
    Decimal defaults are always stored padded to the column scale.
    """

    def __init__(self, modern_metadata: bool = False) -> None:
        self.tables: dict[str, FakeTable] = {}
        self.statements: list[str] = []
        self.modern_metadata = modern_metadata
        self.fail_on: Optional[str] = None

    # SQLClient protocol

    def quote_identifier(self, name: str) -> str:
        return quote_identifier(name)

    def fetch_one(self, sql: str, params=None) -> Optional[dict[str, Any]]:
        if "information_schema.tables" in sql:
            return {"1": 1} if params[0] in self.tables else None

        match = re.match(r"SHOW COLUMNS FROM `(\w+)` WHERE Field = %s$", sql)
        if match:
            row = self._table(match.group(1)).column(params[0])
            return self._report_column(row) if row else None

        match = re.match(r"SHOW INDEX FROM `(\w+)` WHERE Key_name = %s$", sql)
        if match:
            index = self._table(match.group(1)).indexes.get(params[0])
            if index is None:
                return None
            return {
                "Key_name": params[0],
                "Column_name": index["column"],
                "Non_unique": 0 if index["unique"] else 1,
            }

        match = re.match(r"SHOW CREATE TABLE `(\w+)`$", sql)
        if match:
            table = self._table(match.group(1))
            return {"Table": table.name, "Create Table": self.create_table_text(table)}

        raise AssertionError(f"Unexpected query: {sql}")

    def fetch_all(self, sql: str, params=None) -> list[dict[str, Any]]:
        match = re.match(r"SHOW COLUMNS FROM `(\w+)`$", sql)
        if match:
            return [self._report_column(row) for row in self._table(match.group(1)).columns]
        raise AssertionError(f"Unexpected query: {sql}")

    def execute(self, sql: str, params=None) -> None:
        if self.fail_on and self.fail_on in sql:
            raise DatabaseExecutionError("Simulated failure", statement=sql)
        self.statements.append(sql)
        for pattern, handler in self._handlers():
            match = re.match(pattern, sql)
            if match:
                handler(*match.groups())
                return
        raise AssertionError(f"Unexpected statement: {sql}")

    # Test conveniences

    def column_names(self, table: str) -> list[str]:
        return [row["Field"] for row in self._table(table).columns]

    def ddl_count(self) -> int:
        return len(self.statements)

    def create_table_text(self, table: FakeTable) -> str:
        lines = []
        for row in table.columns:
            line = f"  `{row['Field']}` {row['Type']}"
            line += " NOT NULL" if row["Null"] == "NO" else ""
            if row["Default"] is not None:
                line += f" DEFAULT {row['Default']}"
            elif row["Null"] == "YES":
                line += " DEFAULT NULL"
            if row["Extra"]:
                line += f" {row['Extra']}"
            lines.append(line)
        if table.primary_key:
            lines.append(f"  PRIMARY KEY (`{table.primary_key}`)")
        for name, index in table.indexes.items():
            prefix = "UNIQUE KEY" if index["unique"] else "KEY"
            lines.append(f"  {prefix} `{name}` (`{index['column']}`)")
        for name, fk in table.constraints.items():
            line = (
                f"  CONSTRAINT `{name}` FOREIGN KEY (`{fk['column']}`) "
                f"REFERENCES `{fk['ref_table']}` (`{fk['ref_column']}`)"
            )
            # The engine leaves out clauses for its default action.
            if fk["on_delete"] != "RESTRICT":
                line += f" ON DELETE {fk['on_delete']}"
            if fk["on_update"] != "RESTRICT":
                line += f" ON UPDATE {fk['on_update']}"
            lines.append(line)
        body = ",\n".join(lines)
        return f"CREATE TABLE `{table.name}` (\n{body}\n) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4"

    # Statement handlers

    def _handlers(self):
        return [
            (
                r"CREATE TABLE IF NOT EXISTS `(\w+)` \(`(\w+)` INT UNSIGNED AUTO_INCREMENT PRIMARY KEY\)$",
                self._create_table,
            ),
            (r"DROP TABLE `(\w+)`$", self._drop_table),
            (r"ALTER TABLE `(\w+)` RENAME `(\w+)`$", self._rename_table),
            (r"ALTER TABLE `(\w+)` ADD COLUMN (.+?)(?: AFTER `(\w+)`)?$", self._add_column),
            (r"ALTER TABLE `(\w+)` MODIFY COLUMN (.+?)(?: AFTER `(\w+)`)?$", self._modify_column),
            (r"ALTER TABLE `(\w+)` DROP COLUMN `(\w+)`$", self._drop_column),
            (r"ALTER TABLE `(\w+)` RENAME COLUMN `(\w+)` TO `(\w+)`$", self._rename_column),
            (r"CREATE INDEX `(\w+)` ON `(\w+)` \(`(\w+)`\)$", self._create_index),
            (r"CREATE UNIQUE INDEX `(\w+)` ON `(\w+)` \(`(\w+)`\)$", self._create_unique_index),
            (r"DROP INDEX `(\w+)` ON `(\w+)`$", self._drop_index),
            (
                r"ALTER TABLE `(\w+)` ADD CONSTRAINT `(\w+)` FOREIGN KEY \(`(\w+)`\) "
                r"REFERENCES `(\w+)` \(`(\w+)`\) ON UPDATE (.+?) ON DELETE (.+)$",
                self._add_foreign_key,
            ),
            (r"ALTER TABLE `(\w+)` DROP FOREIGN KEY `(\w+)`$", self._drop_foreign_key),
        ]

    def _table(self, name: str) -> FakeTable:
        if name not in self.tables:
            raise DatabaseExecutionError(f"Table '{name}' doesn't exist")
        return self.tables[name]

    def _report_column(self, row: dict) -> dict:
        row = dict(row)
        if self.modern_metadata:
            row["Type"] = _DISPLAY_WIDTH.sub(r"\1", row["Type"])
            if row["Default"] == "current_timestamp()":
                row["Default"] = "CURRENT_TIMESTAMP"
            row["Extra"] = row["Extra"].replace(
                "on update current_timestamp()", "DEFAULT_GENERATED on update CURRENT_TIMESTAMP"
            )
        return row

    def _create_table(self, name: str, primary_key: str) -> None:
        if name in self.tables:
            return
        self.tables[name] = FakeTable(
            name=name,
            columns=[
                {
                    "Field": primary_key,
                    "Type": "int(10) unsigned",
                    "Null": "NO",
                    "Key": "PRI",
                    "Default": None,
                    "Extra": "auto_increment",
                }
            ],
            primary_key=primary_key,
        )

    def _drop_table(self, name: str) -> None:
        self._table(name)
        del self.tables[name]

    def _rename_table(self, old: str, new: str) -> None:
        table = self._table(old)
        table.name = new
        self.tables[new] = self.tables.pop(old)

    def _parse_column(self, definition: str) -> dict:
        match = _COLUMN_DEF.match(definition)
        if not match:
            raise DatabaseExecutionError(f"Syntax error near {definition!r}")
        default = match.group("default")
        if default == "NULL":
            default = None
        elif match.group("literal") is not None:
            default = match.group("literal").replace("''", "'")
        scale = _DECIMAL_SCALE.match(match.group("type"))
        if scale and default is not None:
            # Both engines store numeric defaults padded to the column scale.
            default = str(Decimal(default).quantize(Decimal(1).scaleb(-int(scale.group(1)))))
        return {
            "Field": match.group("name"),
            "Type": match.group("type"),
            "Null": "NO" if match.group("null") == "NOT NULL" else "YES",
            "Key": "",
            "Default": default,
            "Extra": match.group("extra").strip() if match.group("extra") else "",
        }

    def _insert_after(self, table: FakeTable, row: dict, after: Optional[str]) -> None:
        if after is None:
            table.columns.append(row)
            return
        if table.column(after) is None:
            raise DatabaseExecutionError(f"Unknown column '{after}' in '{table.name}'")
        table.columns.insert(table.position(after) + 1, row)

    def _add_column(self, name: str, definition: str, after: Optional[str]) -> None:
        table = self._table(name)
        row = self._parse_column(definition)
        if table.column(row["Field"]) is not None:
            raise DatabaseExecutionError(f"Duplicate column name '{row['Field']}'")
        self._insert_after(table, row, after)

    def _modify_column(self, name: str, definition: str, after: Optional[str]) -> None:
        table = self._table(name)
        row = self._parse_column(definition)
        existing = table.column(row["Field"])
        if existing is None:
            raise DatabaseExecutionError(f"Unknown column '{row['Field']}'")
        if after is None:
            existing.update(row)
            return
        table.columns.remove(existing)
        self._insert_after(table, row, after)

    def _drop_column(self, name: str, column: str) -> None:
        table = self._table(name)
        row = table.column(column)
        if row is None:
            raise DatabaseExecutionError(f"Can't DROP '{column}'; check that it exists")
        for constraint, fk in table.constraints.items():
            if fk["column"] == column:
                raise DatabaseExecutionError(
                    f"Cannot drop column '{column}': needed in a foreign key constraint '{constraint}'"
                )
        table.columns.remove(row)
        table.indexes = {k: v for k, v in table.indexes.items() if v["column"] != column}

    def _rename_column(self, name: str, old: str, new: str) -> None:
        table = self._table(name)
        row = table.column(old)
        if row is None:
            raise DatabaseExecutionError(f"Unknown column '{old}'")
        row["Field"] = new
        for index in table.indexes.values():
            if index["column"] == old:
                index["column"] = new

    def _create_index(self, index: str, name: str, column: str, unique: bool = False) -> None:
        table = self._table(name)
        if index in table.indexes:
            raise DatabaseExecutionError(f"Duplicate key name '{index}'")
        if table.column(column) is None:
            raise DatabaseExecutionError(f"Key column '{column}' doesn't exist in table")
        table.indexes[index] = {"column": column, "unique": unique}

    def _create_unique_index(self, index: str, name: str, column: str) -> None:
        self._create_index(index, name, column, unique=True)

    def _drop_index(self, index: str, name: str) -> None:
        table = self._table(name)
        if index not in table.indexes:
            raise DatabaseExecutionError(f"Can't DROP '{index}'; check that it exists")
        del table.indexes[index]

    def _add_foreign_key(
        self,
        name: str,
        constraint: str,
        column: str,
        ref_table: str,
        ref_column: str,
        on_update: str,
        on_delete: str,
    ) -> None:
        table = self._table(name)
        if constraint in table.constraints:
            raise DatabaseExecutionError(f"Duplicate foreign key constraint name '{constraint}'")
        target = self._table(ref_table)
        if target.column(ref_column) is None:
            raise DatabaseExecutionError(f"Failed to open the referenced table '{ref_table}'")
        row = table.column(column)
        if row is None:
            raise DatabaseExecutionError(f"Key column '{column}' doesn't exist in table")
        if on_delete == "SET NULL" and row["Null"] == "NO":
            raise DatabaseExecutionError(f"Column '{column}' cannot be NOT NULL: needed in a foreign key constraint SET NULL")
        table.constraints[constraint] = {
            "column": column,
            "ref_table": ref_table,
            "ref_column": ref_column,
            "on_update": on_update,
            "on_delete": on_delete,
        }

    def _drop_foreign_key(self, name: str, constraint: str) -> None:
        table = self._table(name)
        if constraint not in table.constraints:
            raise DatabaseExecutionError(f"Can't DROP FOREIGN KEY `{constraint}`; check that it exists")
        del table.constraints[constraint]


class DeclaredEntity:
    """Schema capability wrapping a populate callback, for one-off test tables."""

    def __init__(self, table: str, populate, primary_key: Optional[str] = None):
        self._table = table
        self._populate = populate
        self._primary_key = primary_key

    def table_name(self) -> str:
        return self._table

    def primary_key_name(self) -> str:
        return self._primary_key or f"{self._table}_id"

    def populate(self, table) -> None:
        self._populate(table)


class Customers(Entity):
    __table__ = "customers"

    def populate(self, table) -> None:
        table.string("name", 100).required()
        table.email("email").unique_index()
        table.boolean("active", default_active=True)
        table.timestamps()


def connected_to(fake: FakeMySQL) -> MagicMock:
    """Stand-in for MySQLClient whose context manager yields ``fake``."""
    client_class = MagicMock()
    client = client_class.from_config.return_value
    client.__enter__.return_value = fake
    client.__exit__.return_value = False
    return client_class
