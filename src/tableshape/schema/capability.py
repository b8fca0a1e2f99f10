"""Contract for types that own a table and can be referenced by foreign keys."""

from typing import TYPE_CHECKING, ClassVar, Protocol, runtime_checkable

from tableshape.exceptions import ValidationError

if TYPE_CHECKING:
    from tableshape.schema.table import TableDefinition

__all__ = ["SchemaCapability", "Entity", "resolve_reference"]


@runtime_checkable
class SchemaCapability(Protocol):
    """Protocol every reconcilable type implements.

    Classes qualify as foreign key targets as long as ``table_name`` and
    ``primary_key_name`` are callable on the class itself.
    """

    def table_name(self) -> str: ...

    def primary_key_name(self) -> str: ...

    def populate(self, table: "TableDefinition") -> None: ...


class Entity:
    """Convenience base for entity classes.

    Subclasses set ``__table__`` and implement ``populate``; the primary key
    follows the ``<table>_id`` convention unless ``__primary_key__`` is set.
    """

    __table__: ClassVar[str] = ""
    __primary_key__: ClassVar[str] = ""

    @classmethod
    def table_name(cls) -> str:
        if not cls.__table__:
            raise ValidationError(f"{cls.__name__} does not declare __table__")
        return cls.__table__

    @classmethod
    def primary_key_name(cls) -> str:
        return cls.__primary_key__ or f"{cls.table_name()}_id"

    def populate(self, table: "TableDefinition") -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement populate()")


def resolve_reference(target: object) -> tuple[str, str]:
    """Return ``(table_name, primary_key_name)`` for a foreign key target."""
    if not isinstance(target, SchemaCapability):
        raise ValidationError(
            f"Foreign key target {target!r} must implement schema capability"
        )
    return target.table_name(), target.primary_key_name()
