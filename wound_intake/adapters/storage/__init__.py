"""Storage adapters for Wound Intake.

This module contains repositories that implement the CaseRecordRepository
port, plus the registry that maps case ids to repositories.
"""

from wound_intake.adapters.storage.duckdb_repository import DuckDBCaseRecordRepository
from wound_intake.adapters.storage.memory_repository import MemoryCaseRecordRepository
from wound_intake.adapters.storage.registry import RepositoryRegistry

__all__ = ["DuckDBCaseRecordRepository", "MemoryCaseRecordRepository", "RepositoryRegistry"]
