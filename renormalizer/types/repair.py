# renormalizer/types/repair.py

from typing import Any, Dict, List, Literal, Optional

from msgspec import Struct, field


class UnwrapOutcome(Struct):
    value: Any
    layers: int = 0
    precision_guarded: bool = False


class TableInfo(Struct):
    name: str
    ddl: str
    columns: List[str]
    primary_key: List[str] = field(default_factory=list)


class RepairIssue(Struct):
    stage: Literal["unwrap", "integrity"]
    table: str
    message: str
    row_key: Optional[Any] = None
    column: Optional[str] = None
    error_type: Optional[str] = None


class TableMigration(Struct):
    table: str
    rows_read: int = 0
    rows_written: int = 0
    rows_changed: int = 0
    issues: List[RepairIssue] = field(default_factory=list)


class TableVerification(Struct):
    table: str
    key_columns: List[str] = field(default_factory=list)
    rows_checked: int = 0
    rows_missing: int = 0
    skipped: bool = False
    issues: List[RepairIssue] = field(default_factory=list)


class RepairSummary(Struct):
    input_path: str
    output_path: str
    tables: List[str] = field(default_factory=list)
    migrations: Dict[str, TableMigration] = field(default_factory=dict)
    verifications: Dict[str, TableVerification] = field(default_factory=dict)

    @property
    def issues(self) -> List[RepairIssue]:
        found = []
        for migration in self.migrations.values():
            found.extend(migration.issues)
        for verification in self.verifications.values():
            found.extend(verification.issues)
        return found

    @property
    def ok(self) -> bool:
        return not self.issues
