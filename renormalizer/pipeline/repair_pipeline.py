# renormalizer/pipeline/repair_pipeline.py

from pathlib import Path
from typing import Optional

from ..core.logging import LoggingMixin
from ..database.connection import SourceDatabaseManager, DestinationDatabaseManager
from ..database.schema import TableEnumerator
from ..database.migrator import RowMigrator
from ..database.verifier import IntegrityVerifier
from ..types import RepairConfig, RepairSummary, ConfigurationError


def _same_file(first: Path, second: Path) -> bool:
    if str(first) == str(second):
        return True
    return first.resolve() == second.resolve()


def preflight(config: RepairConfig) -> None:
    """Path checks that must pass before any database is opened"""
    if _same_file(config.input_path, config.output_path):
        raise ConfigurationError("Output cannot be the same as input")

    if not config.input_path.is_file():
        raise ConfigurationError(f"{config.input_path}: file doesn't exist")

    if config.output_path.exists():
        raise ConfigurationError(f"output file already exist: {config.output_path}")


class RepairPipeline(LoggingMixin):
    """
    Sequential repair run over one source database.

    Tables are enumerated once, then each one is migrated in storage
    order. When integrity checking is enabled every table is verified
    after all of them have been migrated.
    """

    def __init__(self, config: RepairConfig):
        self.config = config
        self.source: Optional[SourceDatabaseManager] = None
        self.destination: Optional[DestinationDatabaseManager] = None

    def run(self) -> RepairSummary:
        preflight(self.config)

        summary = RepairSummary(
            input_path=str(self.config.input_path),
            output_path=str(self.config.output_path),
        )

        self.source = SourceDatabaseManager(self.config.source)
        self.destination = DestinationDatabaseManager(self.config.destination)

        try:
            self.log_info(f"Loading {self.config.input_path} file", db_path=str(self.config.input_path))
            self.source.initialize()

            self.log_info(f"Creating output sqlite file: {self.config.output_path}",
                          db_path=str(self.config.output_path))
            self.destination.initialize()

            enumerator = TableEnumerator(self.source)
            summary.tables = enumerator.list_tables()

            migrator = RowMigrator(
                self.source,
                self.destination,
                enumerator=enumerator,
                json_columns=self.config.json_columns,
                key_column=self.config.key_column,
                batch_size=self.config.batch_size,
                keep_going=self.config.keep_going,
            )
            for table_name in summary.tables:
                summary.migrations[table_name] = migrator.migrate(table_name)

            self.log_info("Migration done", rows=sum(m.rows_written for m in summary.migrations.values()))

            if self.config.check_integrity:
                verifier = IntegrityVerifier(
                    self.source,
                    self.destination,
                    enumerator=enumerator,
                    key_column=self.config.key_column,
                    keep_going=self.config.keep_going,
                )
                for table_name in summary.tables:
                    summary.verifications[table_name] = verifier.verify(table_name)

                self.log_info("Integrity check done",
                              rows=sum(v.rows_checked for v in summary.verifications.values()))

        finally:
            self.destination.shutdown()
            self.source.shutdown()

        return summary
