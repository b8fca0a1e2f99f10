"""Load table declarations from YAML files."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from tableshape.exceptions import SchemaLoadError, ValidationError
from tableshape.schema.models import ColumnDefinition
from tableshape.schema.table import TableDefinition
from tableshape.types import ColumnType, RelationAction

VALID_TABLE_FIELDS = {
    "table",
    "primary_key",
    "columns",
    "drop",
    "rename",
    "timestamps",
    "soft_delete",
}

VALID_COLUMN_FIELDS = {
    "name",
    "type",
    "length",
    "precision",
    "unsigned",
    "nullable",
    "default",
    "index",
    "unique",
    "current_timestamp",
    "on_update_timestamp",
    "foreign_key",
}

VALID_FOREIGN_KEY_FIELDS = {"table", "column", "on_delete", "on_update"}

DEFAULT_LENGTHS = {
    ColumnType.STRING: 255,
    ColumnType.INT: 11,
    ColumnType.TINYINT: 4,
    ColumnType.BIGINT: 20,
    ColumnType.DECIMAL: 11,
}

DEFAULT_PRECISION = 2


@dataclass
class TableReference:
    """Foreign key target that is not declared in the loaded files."""

    name: str
    primary_key: Optional[str] = None

    def table_name(self) -> str:
        return self.name

    def primary_key_name(self) -> str:
        return self.primary_key or f"{self.name}_id"

    def populate(self, table: TableDefinition) -> None:
        pass


@dataclass
class ForeignKeyDeclaration:
    """Foreign key as written in YAML, resolved when the table is populated."""

    table: str
    column: Optional[str] = None
    on_delete: Optional[RelationAction] = None
    on_update: Optional[RelationAction] = None


@dataclass
class ColumnDeclaration:
    """Column as written in YAML."""

    name: str
    type: ColumnType
    length: Optional[int] = None
    precision: Optional[int] = None
    unsigned: bool = False
    nullable: bool = True
    default: Any = None
    index: bool = False
    unique: bool = False
    current_timestamp: bool = False
    on_update_timestamp: bool = False
    foreign_key: Optional[ForeignKeyDeclaration] = None


@dataclass
class DeclaredTable:
    """Schema capability backed by a YAML table declaration."""

    name: str
    columns: list[ColumnDeclaration] = field(default_factory=list)
    primary_key: Optional[str] = None
    dropped: list[str] = field(default_factory=list)
    renamed: dict[str, str] = field(default_factory=dict)
    timestamps: bool = False
    soft_delete: bool = False
    registry: dict[str, "DeclaredTable"] = field(
        default_factory=dict, repr=False, compare=False
    )

    def table_name(self) -> str:
        return self.name

    def primary_key_name(self) -> str:
        return self.primary_key or f"{self.name}_id"

    def populate(self, table: TableDefinition) -> None:
        for decl in self.columns:
            builder = table.add(
                ColumnDefinition(decl.name, decl.type, decl.length, decl.precision)
            )
            if decl.unsigned:
                builder.unsigned()
            if not decl.nullable:
                builder.required()
            if decl.default is not None:
                builder.default_value(decl.default)
            if decl.current_timestamp:
                builder.current_timestamp()
            if decl.on_update_timestamp:
                builder.on_update_timestamp()
            if decl.index:
                builder.index()
            if decl.unique:
                builder.unique_index()
            if decl.foreign_key:
                fk = decl.foreign_key
                builder.foreign(
                    self._resolve_target(fk),
                    fk.column,
                    fk.on_delete,
                    fk.on_update,
                )
        if self.timestamps:
            table.timestamps()
        if self.soft_delete:
            table.soft_delete()
        if self.dropped:
            table.drop(self.dropped)
        for current, new in self.renamed.items():
            table.rename(current, new)

    def referenced_tables(self) -> set[str]:
        return {
            c.foreign_key.table
            for c in self.columns
            if c.foreign_key and c.foreign_key.table != self.name
        }

    def _resolve_target(self, fk: ForeignKeyDeclaration) -> object:
        if fk.table == self.name:
            return self
        return self.registry.get(fk.table) or TableReference(fk.table)


def load_declared_tables(schema_path: Path) -> list[DeclaredTable]:
    """Load declarations from a YAML file or directory.

    Tables come back ordered so that every table appears after the tables
    its foreign keys reference.
    """
    if schema_path.is_file():
        documents = _load_documents(schema_path)
    elif schema_path.is_dir():
        documents = []
        for yaml_file in sorted(schema_path.glob("*.yaml")):
            documents.extend(_load_documents(yaml_file))
    else:
        raise SchemaLoadError(f"Schema path does not exist: {schema_path}")

    registry: dict[str, DeclaredTable] = {}
    for data in documents:
        table = _parse_table_dict(data)
        if table.name in registry:
            raise SchemaLoadError(f"Duplicate table name '{table.name}'")
        table.registry = registry
        registry[table.name] = table

    for table in registry.values():
        try:
            table.populate(TableDefinition())
        except ValidationError as e:
            raise SchemaLoadError(f"Invalid declaration for table '{table.name}': {e}") from e

    return _order_by_dependencies(registry)


def _load_documents(file_path: Path) -> list[dict]:
    with open(file_path) as f:
        data = yaml.safe_load(f)

    if data is None:
        raise SchemaLoadError(f"Empty YAML file: {file_path}")
    if not isinstance(data, dict):
        raise SchemaLoadError(f"Expected a mapping at the top of {file_path}")

    if "tables" in data:
        return list(data.get("tables") or [])
    return [data]


def _parse_table_dict(data: dict) -> DeclaredTable:
    """Parse a table declaration from a dictionary."""
    unknown_fields = set(data.keys()) - VALID_TABLE_FIELDS
    if unknown_fields:
        raise SchemaLoadError(
            f"Unknown field(s) in table definition: {', '.join(sorted(unknown_fields))}"
        )

    name = data.get("table")
    if not name:
        raise SchemaLoadError("Table definition missing 'table' field")

    columns = [_parse_column(col, name) for col in data.get("columns") or []]

    seen = set()
    for column in columns:
        if column.name in seen:
            raise SchemaLoadError(
                f"Duplicate column name '{column.name}' in table '{name}'"
            )
        seen.add(column.name)

    dropped = data.get("drop") or []
    if isinstance(dropped, str):
        dropped = [dropped]

    renamed = data.get("rename") or {}
    if not isinstance(renamed, dict):
        raise SchemaLoadError(f"'rename' in table '{name}' must be a mapping")

    return DeclaredTable(
        name=name,
        columns=columns,
        primary_key=data.get("primary_key"),
        dropped=[str(c) for c in dropped],
        renamed={str(k): str(v) for k, v in renamed.items()},
        timestamps=bool(data.get("timestamps", False)),
        soft_delete=bool(data.get("soft_delete", False)),
    )


def _parse_column(data: dict, table_name: str) -> ColumnDeclaration:
    """Parse a column declaration from a dictionary."""
    unknown_fields = set(data.keys()) - VALID_COLUMN_FIELDS
    if unknown_fields:
        raise SchemaLoadError(
            f"Unknown field(s) in column definition: {', '.join(sorted(unknown_fields))}"
        )

    name = data.get("name")
    if not name:
        raise SchemaLoadError(f"Column definition in table '{table_name}' missing 'name' field")

    raw_type = data.get("type")
    if not raw_type:
        raise SchemaLoadError(f"Column '{name}' missing 'type' field")
    try:
        col_type = ColumnType.from_name(str(raw_type))
    except ValueError as e:
        raise SchemaLoadError(f"Column '{name}': {e}") from e

    length = data.get("length", DEFAULT_LENGTHS.get(col_type))
    precision = data.get("precision")
    if col_type is ColumnType.DECIMAL and precision is None:
        precision = DEFAULT_PRECISION

    foreign_key = None
    if fk_data := data.get("foreign_key"):
        foreign_key = _parse_foreign_key(fk_data, name)
        if "length" not in data:
            length = DEFAULT_LENGTHS.get(col_type, DEFAULT_LENGTHS[ColumnType.INT])

    return ColumnDeclaration(
        name=name,
        type=col_type,
        length=length,
        precision=precision,
        unsigned=bool(data.get("unsigned", False)),
        nullable=bool(data.get("nullable", True)),
        default=data.get("default"),
        index=bool(data.get("index", False)),
        unique=bool(data.get("unique", False)),
        current_timestamp=bool(data.get("current_timestamp", False)),
        on_update_timestamp=bool(data.get("on_update_timestamp", False)),
        foreign_key=foreign_key,
    )


def _parse_foreign_key(data: Any, column_name: str) -> ForeignKeyDeclaration:
    if isinstance(data, str):
        data = {"table": data}
    if not isinstance(data, dict):
        raise SchemaLoadError(f"Invalid foreign_key for column '{column_name}'")

    unknown_fields = set(data.keys()) - VALID_FOREIGN_KEY_FIELDS
    if unknown_fields:
        raise SchemaLoadError(
            f"Unknown field(s) in foreign_key: {', '.join(sorted(unknown_fields))}"
        )
    if not data.get("table"):
        raise SchemaLoadError(f"foreign_key for column '{column_name}' missing 'table'")

    try:
        on_delete = RelationAction.from_name(data["on_delete"]) if data.get("on_delete") else None
        on_update = RelationAction.from_name(data["on_update"]) if data.get("on_update") else None
    except ValueError as e:
        raise SchemaLoadError(f"Column '{column_name}': {e}") from e

    return ForeignKeyDeclaration(
        table=data["table"],
        column=data.get("column"),
        on_delete=on_delete,
        on_update=on_update,
    )


def _order_by_dependencies(registry: dict[str, DeclaredTable]) -> list[DeclaredTable]:
    """Depth-first ordering: referenced tables before referencing ones."""
    ordered: list[DeclaredTable] = []
    state: dict[str, str] = {}

    def visit(name: str, path: list[str]) -> None:
        if state.get(name) == "done":
            return
        if state.get(name) == "visiting":
            cycle = " -> ".join(path + [name])
            raise SchemaLoadError(f"Circular foreign key references: {cycle}")
        state[name] = "visiting"
        table = registry[name]
        for dependency in sorted(table.referenced_tables()):
            if dependency in registry:
                visit(dependency, path + [name])
        state[name] = "done"
        ordered.append(table)

    for name in registry:
        visit(name, [])
    return ordered
