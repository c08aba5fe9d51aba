# renormalizer/database/migrator.py
"""
Row migration from the source database into the fresh destination.

For each table the source DDL is replayed verbatim, then every row is
copied with its JSON column(s) renormalized. Booleans are written as
their JSON text. All inserts for one table share a single destination
transaction.
"""

from typing import Any, Dict, List, Optional, Sequence

import msgspec
from sqlalchemy import column, insert, table as table_clause
from sqlalchemy.exc import SQLAlchemyError

from .connection import DatabaseManager
from .schema import TableEnumerator, quote_identifier
from ..core.logging import LoggingMixin
from ..transform.unwrapper import unwrap, check_precision
from ..types import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_JSON_COLUMNS,
    DEFAULT_KEY_COLUMN,
    RepairIssue,
    SchemaError,
    StorageError,
    StoredValue,
    TableMigration,
    UnwrapError,
)


def to_stored(value: StoredValue) -> StoredValue:
    """Bindable form of a normalized value"""
    # sqlite3 binds bool as 1/0, which would read back as a number
    if isinstance(value, bool):
        return msgspec.json.encode(value).decode()
    return value


class RowMigrator(LoggingMixin):
    def __init__(
        self,
        source: DatabaseManager,
        destination: DatabaseManager,
        enumerator: Optional[TableEnumerator] = None,
        json_columns: Sequence[str] = DEFAULT_JSON_COLUMNS,
        key_column: str = DEFAULT_KEY_COLUMN,
        batch_size: int = DEFAULT_BATCH_SIZE,
        keep_going: bool = False,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")

        self.source = source
        self.destination = destination
        self.enumerator = enumerator or TableEnumerator(source)
        self.json_columns = list(json_columns)
        self.key_column = key_column
        self.batch_size = batch_size
        self.keep_going = keep_going

    def migrate(self, table_name: str) -> TableMigration:
        self.log_info(f"Processing table: {table_name}", table=table_name)

        self.replay_schema(table_name)
        migration = TableMigration(table=table_name)

        try:
            with self.source.get_connection() as src, self.destination.get_transaction() as dst:
                result = src.exec_driver_sql(f"SELECT * FROM {quote_identifier(table_name)}")
                columns = list(result.keys())
                targets = [name for name in self.json_columns if name in columns]

                if not targets:
                    self.log_info("No JSON column, copying rows verbatim", table=table_name)

                statement = insert(table_clause(table_name, *[column(name) for name in columns]))

                for partition in result.mappings().partitions(self.batch_size):
                    rows = [self._process_row(table_name, dict(row), targets, migration)
                            for row in partition]
                    migration.rows_read += len(rows)
                    dst.execute(statement, rows)
                    migration.rows_written += len(rows)

        except SQLAlchemyError as e:
            self.log_error("Failed to migrate table",
                           table=table_name,
                           error=str(e),
                           exception_type=type(e).__name__)
            raise StorageError(f"Failed to migrate table {table_name}: {e}", table=table_name) from e

        self.log_info(f"Table {table_name} migrated",
                      table=table_name,
                      rows=migration.rows_written)
        return migration

    def replay_schema(self, table_name: str) -> None:
        ddl = self.enumerator.get_ddl(table_name)
        try:
            with self.destination.get_transaction() as dst:
                dst.exec_driver_sql(ddl)
        except SQLAlchemyError as e:
            raise SchemaError(f"Failed to create table {table_name}: {e}", table=table_name) from e

    def _process_row(
        self,
        table_name: str,
        row: Dict[str, Any],
        targets: List[str],
        migration: TableMigration,
    ) -> Dict[str, Any]:
        row_key = row.get(self.key_column)
        self.log_debug(f"Inserting row with {self.key_column} {row_key}",
                       table=table_name, row_key=row_key)

        changed = False
        for name in targets:
            raw = row[name]
            try:
                outcome = unwrap(raw)
                check_precision(outcome.value)
            except UnwrapError as e:
                message = f"{e} (table {table_name}, {self.key_column} {row_key}, column {name})"
                if not self.keep_going:
                    self.log_error(message, table=table_name, row_key=row_key, column=name,
                                   exception_type=type(e).__name__)
                    raise type(e)(message, value=e.value) from e

                self.log_warning(message, table=table_name, row_key=row_key, column=name)
                migration.issues.append(RepairIssue(
                    stage="unwrap",
                    table=table_name,
                    message=message,
                    row_key=row_key,
                    column=name,
                    error_type=type(e).__name__,
                ))
                continue

            self.log_debug(f"Column {name}: {outcome.layers} layer(s) peeled",
                           table=table_name, row_key=row_key, column=name,
                           layers=outcome.layers,
                           precision_guarded=outcome.precision_guarded or None)

            stored = to_stored(outcome.value)
            if type(stored) is not type(raw) or stored != raw:
                changed = True
            row[name] = stored

        if changed:
            migration.rows_changed += 1
        return row
