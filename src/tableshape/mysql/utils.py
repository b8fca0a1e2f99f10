"""Utility functions for MySQL operations.

Extracts common DB logic from CLI for reuse and testability.
"""

import importlib
from typing import Iterable, Optional

from tableshape.config import Config
from tableshape.exceptions import ValidationError
from tableshape.schema.capability import SchemaCapability
from tableshape.schema.introspect import LiveColumn, SchemaIntrospector
from tableshape.schema.reconciler import SchemaReconciler


def build_config_and_validate(
    *,
    host: Optional[str] = None,
    user: Optional[str] = None,
    database: Optional[str] = None,
    profile: Optional[str] = None,
) -> Config:
    """Load config from ~/.my.cnf/env and validate for DB operations.

    Raises:
        ConfigError: If required configuration is missing.
    """
    config = Config.from_env(host=host, user=user, database=database, profile=profile)
    config.validate_for_db_ops()
    return config


def load_entity(reference: str) -> SchemaCapability:
    """Import ``package.module:ClassName`` and return a schema capability.

    Classes are instantiated without arguments so ``populate`` can be called
    on the result.

    Raises:
        ValidationError: If the reference cannot be imported or does not
            implement the schema capability.
    """
    module_name, _, attribute = reference.partition(":")
    if not module_name or not attribute:
        raise ValidationError(
            f"Entity reference must look like 'package.module:ClassName', got {reference!r}"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValidationError(f"Cannot import module '{module_name}': {e}") from e

    target = getattr(module, attribute, None)
    if target is None:
        raise ValidationError(f"Module '{module_name}' has no attribute '{attribute}'")
    if isinstance(target, type):
        target = target()
    if not isinstance(target, SchemaCapability):
        raise ValidationError(f"{reference} does not implement schema capability")
    return target


def reconcile_all(
    config: Config,
    capabilities: Iterable[SchemaCapability],
    reports: Optional[dict[str, list[str]]] = None,
) -> dict[str, list[str]]:
    """Reconcile each capability in order over one connection.

    Args:
        config: Validated configuration with DB connection info.
        capabilities: Tables to converge, referenced tables first.
        reports: Optional dict filled in as tables are processed, so callers
            can still read partial reports after a failure.

    Returns:
        Action reports keyed by table name, in reconciliation order.

    Raises:
        TableshapeError: On the first failure; earlier steps stay applied.
    """
    from tableshape.mysql.client import MySQLClient

    config.validate_for_db_ops()

    if reports is None:
        reports = {}
    with MySQLClient.from_config(config) as client:
        reconciler = SchemaReconciler(SchemaIntrospector(client))
        for capability in capabilities:
            table = capability.table_name()
            try:
                reconciler.reconcile(capability)
            finally:
                reports[table] = reconciler.report
    return reports


def describe_table(config: Config, table: str) -> Optional[list[LiveColumn]]:
    """Return the live columns of a table in physical order, or None if absent."""
    from tableshape.mysql.client import MySQLClient

    config.validate_for_db_ops()

    with MySQLClient.from_config(config) as client:
        introspector = SchemaIntrospector(client)
        if not introspector.table_exists(table):
            return None
        columns = []
        for name in introspector.column_names(table):
            details = introspector.column_details(table, name)
            if details is not None:
                columns.append(details)
        return columns
