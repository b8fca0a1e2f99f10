"""Schema representation classes."""

from dataclasses import dataclass
from typing import Optional
import re

from tableshape.types import CURRENT_TIMESTAMP, ColumnType, DefaultValue, RelationAction

_TIMESTAMP_PATTERN = re.compile(r"^current_timestamp(\(\d*\))?$", re.IGNORECASE)


def is_current_timestamp(value: object) -> bool:
    """Check if a default value names the current timestamp in any engine spelling."""
    return isinstance(value, str) and bool(_TIMESTAMP_PATTERN.match(value.strip()))


@dataclass
class ForeignKeySpec:
    """
    Foreign key reference resolved from a schema capability.

    Actions are left unset only when built by hand; the builder always
    fills them in.
    """

    target_table: str
    target_column: Optional[str] = None
    on_delete: Optional[RelationAction] = RelationAction.SET_NULL
    on_update: Optional[RelationAction] = RelationAction.CASCADE


@dataclass
class ColumnDefinition:
    """Desired shape of a single column."""

    name: str
    type: ColumnType
    length: Optional[int] = None
    precision: Optional[int] = None
    unsigned: bool = False
    allow_null: bool = True
    default_value: DefaultValue = None
    indexed: bool = False
    unique: bool = False
    auto_update_timestamp: bool = False
    foreign_key: Optional[ForeignKeySpec] = None

    @property
    def field_type(self) -> str:
        """Native type string as the engine reports it in ``SHOW COLUMNS``."""
        return self.type.render(self.length, self.precision, self.unsigned)

    @property
    def has_default(self) -> bool:
        if self.default_value is None:
            return False
        return not (
            isinstance(self.default_value, str)
            and self.default_value.strip().lower() == "null"
        )

    @property
    def default_text(self) -> Optional[str]:
        """String form of the default used for rendering and comparison."""
        if not self.has_default:
            return None
        if isinstance(self.default_value, bool):
            return "1" if self.default_value else "0"
        return str(self.default_value)

    @property
    def defaults_to_current_timestamp(self) -> bool:
        return is_current_timestamp(self.default_text)


__all__ = [
    "CURRENT_TIMESTAMP",
    "ColumnDefinition",
    "ForeignKeySpec",
    "is_current_timestamp",
]
