# renormalizer/database/schema.py

from typing import List

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .connection import DatabaseManager
from ..core.logging import LoggingMixin
from ..types import TableInfo, SchemaError, StorageError


RESERVED_PREFIX = "sqlite_"


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class TableEnumerator(LoggingMixin):
    """
    Reads table names, DDL and column layout from a SQLite database.

    Tables whose names start with sqlite_ belong to the engine and are
    never listed.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def list_tables(self) -> List[str]:
        query = text(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND substr(name, 1, :plen) != :prefix "
            "ORDER BY rowid"
        )
        try:
            with self.db_manager.get_connection() as conn:
                names = list(conn.execute(query, {"plen": len(RESERVED_PREFIX),
                                                  "prefix": RESERVED_PREFIX}).scalars())
        except SQLAlchemyError as e:
            self.log_error("Failed to list tables", error=str(e), exception_type=type(e).__name__)
            raise StorageError(f"Cannot list tables: {e}") from e

        self.log_info(f"Tables found: [{', '.join(names)}]")
        return names

    def get_ddl(self, name: str) -> str:
        query = text("SELECT sql FROM sqlite_master WHERE type = 'table' AND name = :name")
        try:
            with self.db_manager.get_connection() as conn:
                ddl = conn.execute(query, {"name": name}).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot read schema of {name}: {e}", table=name) from e

        if not ddl:
            raise SchemaError(f"No schema found for table {name}", table=name)
        return ddl

    def _table_info(self, name: str):
        try:
            with self.db_manager.get_connection() as conn:
                return conn.exec_driver_sql(f"PRAGMA table_info({quote_identifier(name)})").mappings().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Cannot read columns of {name}: {e}", table=name) from e

    def get_columns(self, name: str) -> List[str]:
        return [row["name"] for row in self._table_info(name)]

    def get_primary_key(self, name: str) -> List[str]:
        # pk holds the 1-based position inside the key, 0 for non-key columns
        keyed = [row for row in self._table_info(name) if row["pk"]]
        return [row["name"] for row in sorted(keyed, key=lambda row: row["pk"])]

    def describe(self, name: str) -> TableInfo:
        info = self._table_info(name)
        keyed = sorted((row for row in info if row["pk"]), key=lambda row: row["pk"])
        return TableInfo(
            name=name,
            ddl=self.get_ddl(name),
            columns=[row["name"] for row in info],
            primary_key=[row["name"] for row in keyed],
        )
