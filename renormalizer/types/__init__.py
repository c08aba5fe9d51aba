# renormalizer/types/__init__.py

from typing import Union

StoredValue = Union[str, bytes, int, float, bool, None]

# Configuration Types
from .config import (
    DatabaseConfig,
    RepairConfig,
    DEFAULT_JSON_COLUMNS,
    DEFAULT_KEY_COLUMN,
    DEFAULT_BATCH_SIZE,
    DEFAULT_BUSY_TIMEOUT_MS,
)

# Repair Types
from .repair import (
    UnwrapOutcome,
    TableInfo,
    RepairIssue,
    TableMigration,
    TableVerification,
    RepairSummary,
)

# Errors
from .errors import (
    RenormalizerError,
    ConfigurationError,
    UnwrapError,
    UnsupportedValueError,
    NumberTooBigError,
    StorageError,
    SchemaError,
    IntegrityMismatchError,
)
