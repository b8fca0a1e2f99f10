"""MySQL connection and helper modules."""

from tableshape.mysql.client import MySQLClient, quote_identifier

__all__ = ["MySQLClient", "quote_identifier"]
