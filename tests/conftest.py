# tests/conftest.py
"""
pytest configuration and fixtures for renormalizer testing

Every fixture builds throwaway SQLite files under tmp_path.
"""

from pathlib import Path
from typing import Dict, List, Tuple

import pytest
from sqlalchemy import create_engine, text

from renormalizer.core.logging import RenormalizerLogger
from renormalizer.database.connection import SourceDatabaseManager, DestinationDatabaseManager
from renormalizer.types import DatabaseConfig


DOCS_DDL = 'CREATE TABLE "docs" (ID TEXT PRIMARY KEY, json TEXT)'
EVENTS_DDL = ('CREATE TABLE events (id INTEGER PRIMARY KEY AUTOINCREMENT, '
              'name TEXT, payload BLOB, weight REAL, json TEXT)')
PLAIN_DDL = 'CREATE TABLE plain (code TEXT, label TEXT)'

DOCS_ROWS = [
    {"ID": "number", "json": '"5"'},
    {"ID": "double", "json": '"\\"5\\""'},
    {"ID": "object", "json": '"{\\"a\\":1}"'},
    {"ID": "array", "json": '[1, 2]'},
    {"ID": "text", "json": '"\\"hello\\""'},
    {"ID": "plain", "json": 'hello'},
    {"ID": "flag", "json": '"true"'},
    {"ID": "big", "json": '"12345678901234567890"'},
]

EVENTS_ROWS = [
    {"name": "created", "payload": b"\x00\x01", "weight": 1.5, "json": '"{\\"ok\\":true}"'},
    {"name": "updated", "payload": None, "weight": -2.25, "json": '"\\"7\\""'},
    {"name": "deleted", "payload": b"\xff", "weight": 0.0, "json": '"false"'},
]

PLAIN_ROWS = [
    {"code": "a", "label": '"\\"not touched\\""'},
    {"code": "b", "label": None},
]


def build_database(path: Path, tables: Dict[str, Tuple[str, List[dict]]]) -> Path:
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        for name, (ddl, rows) in tables.items():
            conn.exec_driver_sql(ddl)
            for row in rows:
                columns = ", ".join(f'"{key}"' for key in row)
                params = ", ".join(f":{key}" for key in row)
                conn.execute(text(f'INSERT INTO "{name}" ({columns}) VALUES ({params})'), row)
    engine.dispose()
    return path


def read_rows(path: Path, table: str, order_by: str = "rowid") -> List[dict]:
    engine = create_engine(f"sqlite:///{path}")
    with engine.connect() as conn:
        rows = [dict(row) for row in conn.exec_driver_sql(
            f'SELECT * FROM "{table}" ORDER BY {order_by}').mappings()]
    engine.dispose()
    return rows


def read_ddl(path: Path, table: str) -> str:
    engine = create_engine(f"sqlite:///{path}")
    with engine.connect() as conn:
        ddl = conn.execute(text("SELECT sql FROM sqlite_master WHERE name = :name"),
                           {"name": table}).scalar_one()
    engine.dispose()
    return ddl


@pytest.fixture(autouse=True)
def console_logging():
    """Bind the console handler to the stdout pytest is capturing for this test"""
    RenormalizerLogger.configure(log_level="DEBUG", file_enabled=False, force=True)
    yield


@pytest.fixture
def source_path(tmp_path) -> Path:
    return build_database(tmp_path / "source.sqlite", {
        "docs": (DOCS_DDL, DOCS_ROWS),
        "events": (EVENTS_DDL, EVENTS_ROWS),
        "plain": (PLAIN_DDL, PLAIN_ROWS),
    })


@pytest.fixture
def output_path(tmp_path) -> Path:
    return tmp_path / "output.sqlite"


@pytest.fixture
def make_database(tmp_path):
    def _make(name: str, tables: Dict[str, Tuple[str, List[dict]]]) -> Path:
        return build_database(tmp_path / name, tables)
    return _make


@pytest.fixture
def managers(source_path, output_path):
    source = SourceDatabaseManager(DatabaseConfig(path=source_path))
    destination = DestinationDatabaseManager(DatabaseConfig(path=output_path, busy_timeout_ms=1000))
    source.initialize()
    destination.initialize()
    yield source, destination
    destination.shutdown()
    source.shutdown()


@pytest.fixture
def open_pair(output_path):
    """Open managers on an arbitrary source file"""
    opened = []

    def _open(path: Path):
        source = SourceDatabaseManager(DatabaseConfig(path=path))
        destination = DestinationDatabaseManager(DatabaseConfig(path=output_path))
        source.initialize()
        destination.initialize()
        opened.extend([source, destination])
        return source, destination

    yield _open
    for manager in opened:
        manager.shutdown()
