# renormalizer/__init__.py

from .core.config import load_repair_config
from .core.logging import RenormalizerLogger, log_with_context
from .database.connection import DatabaseManager, SourceDatabaseManager, DestinationDatabaseManager
from .database.schema import TableEnumerator
from .database.migrator import RowMigrator
from .database.verifier import IntegrityVerifier
from .pipeline.repair_pipeline import RepairPipeline, preflight
from .transform.unwrapper import normalize, unwrap, check_precision, MAX_SAFE_INTEGER
from .types import RepairConfig, RepairSummary, RenormalizerError

__version__ = "0.1.0"


def repair_database(input_path, output_path, env_vars: dict = None, **overrides) -> RepairSummary:
    config = load_repair_config(input_path=input_path, output_path=output_path,
                                env_vars=env_vars, **overrides)
    return RepairPipeline(config).run()
