# renormalizer/database/verifier.py

from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .connection import DatabaseManager
from .schema import TableEnumerator, quote_identifier
from ..core.logging import LoggingMixin
from ..types import (
    DEFAULT_KEY_COLUMN,
    IntegrityMismatchError,
    RepairIssue,
    StorageError,
    TableVerification,
)


class IntegrityVerifier(LoggingMixin):
    """
    Confirms every keyed source row has a counterpart in the destination.

    Rows are matched on the configured key column, or on the table's
    declared primary key when that column is absent. Tables with neither
    are skipped. Nothing is written to either database.
    """

    def __init__(
        self,
        source: DatabaseManager,
        destination: DatabaseManager,
        enumerator: Optional[TableEnumerator] = None,
        key_column: str = DEFAULT_KEY_COLUMN,
        keep_going: bool = False,
    ):
        self.source = source
        self.destination = destination
        self.enumerator = enumerator or TableEnumerator(source)
        self.key_column = key_column
        self.keep_going = keep_going

    def resolve_key_columns(self, table_name: str) -> List[str]:
        if self.key_column in self.enumerator.get_columns(table_name):
            return [self.key_column]
        return self.enumerator.get_primary_key(table_name)

    def verify(self, table_name: str) -> TableVerification:
        self.log_info(f"Checking integrity for table: {table_name}", table=table_name)

        key_columns = self.resolve_key_columns(table_name)
        verification = TableVerification(table=table_name, key_columns=key_columns)

        if not key_columns:
            self.log_warning(f"Table {table_name} has no {self.key_column} column or primary key, skipping",
                             table=table_name)
            verification.skipped = True
            return verification

        key_label = ", ".join(key_columns)
        quoted_table = quote_identifier(table_name)
        select_keys = f"SELECT {', '.join(quote_identifier(c) for c in key_columns)} FROM {quoted_table}"
        lookup = text(
            f"SELECT 1 FROM {quoted_table} WHERE "
            + " AND ".join(f"{quote_identifier(c)} IS :k{i}" for i, c in enumerate(key_columns))
            + " LIMIT 1"
        )

        try:
            with self.source.get_connection() as src, self.destination.get_connection() as dst:
                for key in src.exec_driver_sql(select_keys):
                    params = {f"k{i}": value for i, value in enumerate(key)}
                    row_key = key[0] if len(key) == 1 else tuple(key)
                    verification.rows_checked += 1

                    if dst.execute(lookup, params).first() is not None:
                        self.log_debug(f"Row with {key_label} {row_key} exists in both tables.",
                                       table=table_name, row_key=row_key)
                        continue

                    verification.rows_missing += 1
                    self._report_missing(verification, row_key)

        except SQLAlchemyError as e:
            self.log_error("Failed to check table integrity",
                           table=table_name,
                           error=str(e),
                           exception_type=type(e).__name__)
            raise StorageError(f"Integrity check failed for table {table_name}: {e}", table=table_name) from e

        return verification

    def _report_missing(self, verification: TableVerification, row_key) -> None:
        table_name = verification.table
        key_label = ", ".join(verification.key_columns)
        message = f"Row with {key_label} {row_key} is missing or null in the destination table {table_name}."

        if not self.keep_going:
            self.log_error(message, table=table_name, row_key=row_key)
            raise IntegrityMismatchError(message, table=table_name, row_key=row_key)

        self.log_warning(message, table=table_name, row_key=row_key)
        verification.issues.append(RepairIssue(
            stage="integrity",
            table=table_name,
            message=message,
            row_key=row_key,
            error_type=IntegrityMismatchError.__name__,
        ))
