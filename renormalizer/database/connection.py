# renormalizer/database/connection.py

from typing import Generator
from contextlib import contextmanager
from pathlib import Path
from urllib.parse import quote

from msgspec import structs

from sqlalchemy import create_engine, event, Engine, Connection, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError

from ..core.logging import RenormalizerLogger, log_with_context, INFO, DEBUG, WARNING, ERROR
from ..types import DatabaseConfig, ConfigurationError, StorageError


class DatabaseManager:
    def __init__(self, config: DatabaseConfig):
        if not config:
            raise ValueError("DatabaseConfig is required")

        self.config = structs.replace(config, path=Path(config.path))
        self.logger = RenormalizerLogger.get_logger(f'database.{self.__class__.__name__.lower()}')
        self._engine = None

        log_with_context(self.logger, DEBUG, "DatabaseManager created",
                        db_path=str(config.path))

    def _build_url(self) -> URL:
        if self.config.read_only:
            # pysqlite forwards unknown query keys into the file: URI
            return URL.create(
                "sqlite",
                database=f"file:{quote(str(self.config.path))}",
                query={"mode": "ro", "uri": "true"},
            )
        return URL.create("sqlite", database=str(self.config.path))

    def initialize(self) -> None:
        if self._engine is not None:
            self.logger.warning("Database already initialized")
            return

        try:
            log_with_context(self.logger, INFO, "Opening database",
                            db_path=str(self.config.path))

            self._engine = create_engine(self._build_url(), echo=False)

            if self.config.busy_timeout_ms:
                self._install_busy_timeout(self._engine, self.config.busy_timeout_ms)

            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            log_with_context(self.logger, DEBUG, "Database opened successfully",
                            db_path=str(self.config.path))

        except SQLAlchemyError as e:
            log_with_context(self.logger, ERROR, "Failed to open database",
                            db_path=str(self.config.path),
                            error=str(e),
                            exception_type=type(e).__name__)
            self._engine = None
            raise StorageError(f"Cannot open database {self.config.path}: {e}") from e

    @staticmethod
    def _install_busy_timeout(engine: Engine, timeout_ms: int) -> None:
        @event.listens_for(engine, "connect")
        def set_busy_timeout(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute(f"PRAGMA busy_timeout = {int(timeout_ms)}")
            cursor.close()

    def shutdown(self) -> None:
        if self._engine is None:
            return

        log_with_context(self.logger, DEBUG, "Closing database",
                        db_path=str(self.config.path))

        try:
            self._engine.dispose()
        except SQLAlchemyError as e:
            log_with_context(self.logger, WARNING, "Error while closing database",
                            db_path=str(self.config.path),
                            error=str(e),
                            exception_type=type(e).__name__)
        finally:
            self._engine = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._engine

    @contextmanager
    def get_connection(self) -> Generator[Connection, None, None]:
        with self.engine.connect() as conn:
            yield conn

    @contextmanager
    def get_transaction(self) -> Generator[Connection, None, None]:
        """Connection inside BEGIN ... COMMIT, rolled back if the block raises"""
        with self.engine.connect() as conn:
            trans = conn.begin()
            try:
                yield conn
                trans.commit()
                log_with_context(self.logger, DEBUG, "Database transaction committed",
                                db_path=str(self.config.path))
            except Exception as e:
                trans.rollback()
                log_with_context(self.logger, ERROR, "Database transaction rolled back",
                                db_path=str(self.config.path),
                                error=str(e),
                                exception_type=type(e).__name__)
                raise


class SourceDatabaseManager(DatabaseManager):
    """Read-only handle on the database being repaired"""

    def __init__(self, config: DatabaseConfig):
        if not config.read_only:
            config = structs.replace(config, read_only=True)
        super().__init__(config)

    def initialize(self) -> None:
        if not self.config.path.is_file():
            raise ConfigurationError(f"{self.config.path}: file doesn't exist")
        super().initialize()


class DestinationDatabaseManager(DatabaseManager):
    """
    Handle on the freshly created output database.

    The file is created exclusively so an existing store is never merged into.
    """

    def initialize(self) -> None:
        if self._engine is None:
            try:
                self.config.path.touch(exist_ok=False)
            except FileExistsError:
                raise ConfigurationError(f"output file already exist: {self.config.path}")
        super().initialize()

