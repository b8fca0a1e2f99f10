"""Configuration management for tableshape."""

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tableshape.exceptions import ConfigError


def load_mycnf(section: str = "client", path: Optional[Path] = None) -> dict[str, str]:
    """Load connection settings from ~/.my.cnf.

    Args:
        section: Option group to read (default: "client")
        path: Alternative option file, mainly for tests

    Returns:
        Dict with any of host, port, user, password, database

    Raises:
        ConfigError: If the file exists but the section does not
    """
    cfg_path = path or Path.home() / ".my.cnf"
    if not cfg_path.exists():
        return {}

    config = configparser.ConfigParser(allow_no_value=True, interpolation=None)
    config.read(cfg_path)

    if section not in config:
        available = config.sections() or ["(none)"]
        raise ConfigError(
            f"Section '{section}' not found in {cfg_path}. "
            f"Available sections: {', '.join(available)}"
        )

    options = config[section]
    result = {}
    for key in ("host", "port", "user", "password"):
        if options.get(key):
            result[key] = options[key].strip().strip("\"'")
    database = options.get("database") or options.get("db")
    if database:
        result["database"] = database.strip().strip("\"'")
    return result


@dataclass
class Config:
    """Configuration for tableshape."""

    host: Optional[str] = None
    port: int = 3306
    user: Optional[str] = None
    password: Optional[str] = None
    database: Optional[str] = None
    charset: str = "utf8mb4"
    schema_dir: str = "schema"

    @classmethod
    def from_env(
        cls,
        *,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        database: Optional[str] = None,
        schema_dir: Optional[str] = None,
        profile: Optional[str] = None,
    ) -> "Config":
        """Load configuration from ~/.my.cnf, env vars, with CLI overrides.

        Priority (highest to lowest):
        1. Explicit parameters (CLI args)
        2. Environment variables
        3. ~/.my.cnf option group (``client`` unless a profile is given)
        """
        mycnf = {}
        section = profile or os.environ.get("TABLESHAPE_PROFILE", "client")
        try:
            mycnf = load_mycnf(section)
        except ConfigError:
            if profile:
                raise

        def resolve(explicit, env_key, cfg_key=None):
            if explicit is not None:
                return explicit
            env_val = os.environ.get(env_key)
            if env_val is not None:
                return env_val
            if cfg_key and cfg_key in mycnf:
                return mycnf[cfg_key]
            return None

        raw_port = resolve(port, "MYSQL_PORT", "port")
        try:
            resolved_port = int(raw_port) if raw_port is not None else 3306
        except ValueError:
            raise ConfigError(f"Invalid MySQL port: {raw_port!r}") from None

        return cls(
            host=resolve(host, "MYSQL_HOST", "host"),
            port=resolved_port,
            user=resolve(user, "MYSQL_USER", "user"),
            password=resolve(password, "MYSQL_PASSWORD", "password"),
            database=resolve(database, "MYSQL_DATABASE", "database"),
            schema_dir=schema_dir
            if schema_dir is not None
            else os.environ.get("TABLESHAPE_SCHEMA_DIR", "schema"),
        )

    def validate_for_db_ops(self) -> None:
        """Validate that all required fields for database operations are present.

        Raises:
            ConfigError: If host, user or database is missing.
        """
        missing = []
        if not self.host:
            missing.append("host (use --host or MYSQL_HOST)")
        if not self.user:
            missing.append("user (use --user or MYSQL_USER)")
        if not self.database:
            missing.append("database (use --database or MYSQL_DATABASE)")

        if missing:
            raise ConfigError(
                "Missing required configuration:\n  - " + "\n  - ".join(missing)
            )
