"""MySQL client wrapper."""

import logging
import re
from typing import Any, Optional, Sequence

import mysql.connector

from tableshape.config import Config
from tableshape.exceptions import (
    DatabaseConnectionError,
    DatabaseExecutionError,
    InvalidIdentifierError,
)

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z0-9_]+$")


def quote_identifier(name: str) -> str:
    """Validate and backtick-quote an identifier for use in DDL text."""
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise InvalidIdentifierError(str(name))
    return "`" + name.replace("`", "``") + "`"


class MySQLClient:
    """Thin wrapper around mysql-connector-python for metadata queries and DDL.

    Rows are returned as dicts keyed by column label. Autocommit is enabled
    because every statement the reconciler sends is either a read or DDL.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 3306,
        user: Optional[str] = None,
        password: Optional[str] = None,
        database: Optional[str] = None,
        charset: str = "utf8mb4",
        connection: Any = None,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._database = database
        self._charset = charset
        self._connection = connection
        self._owns_connection = connection is None

    @classmethod
    def from_config(cls, config: Config) -> "MySQLClient":
        return cls(
            host=config.host,
            port=config.port,
            user=config.user,
            password=config.password,
            database=config.database,
            charset=config.charset,
        )

    def connect(self) -> None:
        """Open the connection. Must be called before running statements."""
        if self._connection is not None:
            raise RuntimeError("Already connected. Call close() before reconnecting.")
        try:
            self._connection = mysql.connector.connect(
                host=self._host,
                port=self._port,
                user=self._user,
                password=self._password or "",
                database=self._database,
                charset=self._charset,
                autocommit=True,
            )
        except mysql.connector.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to MySQL at {self._host}:{self._port}: {e}"
            ) from e
        self._owns_connection = True
        logger.debug(f"Connected to MySQL at {self._host}:{self._port}")

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        self._run(sql, params, fetch=None)

    def fetch_one(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> Optional[dict[str, Any]]:
        return self._run(sql, params, fetch="one")

    def fetch_all(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> list[dict[str, Any]]:
        return self._run(sql, params, fetch="all") or []

    def quote_identifier(self, name: str) -> str:
        return quote_identifier(name)

    def _run(self, sql: str, params: Optional[Sequence[Any]], fetch: Optional[str]) -> Any:
        if self._connection is None:
            raise RuntimeError("Not connected. Call connect() first.")
        cursor = self._connection.cursor(dictionary=True)
        try:
            if params:
                cursor.execute(sql, tuple(params))
            else:
                cursor.execute(sql)
            if fetch == "one":
                row = cursor.fetchone()
                # Drain the remaining rows so the connection can be reused.
                cursor.fetchall()
                return row
            if fetch == "all":
                return cursor.fetchall()
            return None
        except mysql.connector.Error as e:
            raise DatabaseExecutionError(f"Statement failed: {e}", statement=sql) from e
        finally:
            cursor.close()

    def close(self) -> None:
        if self._connection is not None and self._owns_connection:
            try:
                self._connection.close()
            finally:
                self._connection = None

    def __enter__(self) -> "MySQLClient":
        if self._connection is None:
            self.connect()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
