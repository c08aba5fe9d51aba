# renormalizer/types/config.py

from typing import List, Optional
from pathlib import Path

from msgspec import Struct, field


DEFAULT_JSON_COLUMNS = ["json"]
DEFAULT_KEY_COLUMN = "ID"
DEFAULT_BATCH_SIZE = 500
DEFAULT_BUSY_TIMEOUT_MS = 60000


class DatabaseConfig(Struct):
    path: Path
    read_only: bool = False
    busy_timeout_ms: Optional[int] = None


class RepairConfig(Struct):
    input_path: Path
    output_path: Path
    check_integrity: bool = False
    json_columns: List[str] = field(default_factory=lambda: list(DEFAULT_JSON_COLUMNS))
    key_column: str = DEFAULT_KEY_COLUMN
    batch_size: int = DEFAULT_BATCH_SIZE
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS
    keep_going: bool = False
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @property
    def source(self) -> DatabaseConfig:
        return DatabaseConfig(path=self.input_path, read_only=True)

    @property
    def destination(self) -> DatabaseConfig:
        return DatabaseConfig(path=self.output_path, busy_timeout_ms=self.busy_timeout_ms)
