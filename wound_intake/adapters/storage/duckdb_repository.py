"""DuckDB Case-Record Repository.

This adapter implements the CaseRecordRepository contract on DuckDB, an
in-process database, storing each case as one row with its full JSON payload.

Security Impact:
    - Sensitive fields are already encrypted by the data steward before a
      record reaches ``ready_for_review``; the payload is stored as given
    - Record contents are never logged, only case ids
    - Database path is validated to prevent writing to missing directories

Architecture:
    - Implements CaseRecordRepository (Hexagonal Architecture)
    - Internal operations return ``Result``; the async port methods raise
      ``StorageError`` on failure
    - ``save`` is a full-record upsert (last write wins)
"""

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Optional

import duckdb
from pydantic import ValidationError as PydanticValidationError

from wound_intake.domain.case_record import CaseRecord
from wound_intake.domain.ports import CaseRecordRepository, Result, StorageError
from wound_intake.infrastructure.config_manager import StorageConfig

logger = logging.getLogger(__name__)


class DuckDBCaseRecordRepository(CaseRecordRepository):
    """DuckDB implementation of CaseRecordRepository.

    Parameters:
        storage_config: StorageConfig from the configuration manager (preferred)
        db_path: Path to DuckDB database file (or ':memory:' for in-memory)

    Example Usage:
        ```python
        repository = DuckDBCaseRecordRepository(db_path="data/intake.duckdb")
        result = repository.initialize_schema()
        if result.is_success():
            await repository.save(record)
        ```
    """

    def __init__(self, storage_config: Optional[StorageConfig] = None, db_path: Optional[str] = None):
        if storage_config:
            if storage_config.backend != "duckdb":
                raise StorageError(
                    f"StorageConfig backend '{storage_config.backend}' does not match DuckDB repository",
                    operation="__init__"
                )
            self.db_path = storage_config.db_path or ":memory:"
        else:
            self.db_path = db_path or ":memory:"

        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._initialized = False
        self._lock = threading.Lock()

        if self.db_path != ":memory:":
            db_path_obj = Path(self.db_path)
            if not db_path_obj.parent.exists():
                raise StorageError(
                    f"Database directory does not exist: {db_path_obj.parent}",
                    operation="__init__"
                )

    def _get_connection(self) -> duckdb.DuckDBPyConnection:
        """Get or create the DuckDB connection (created lazily, then reused)."""
        if self._connection is None:
            try:
                self._connection = duckdb.connect(self.db_path)
                logger.info(f"Connected to DuckDB database: {self.db_path}")
            except Exception as e:
                raise StorageError(
                    f"Failed to connect to DuckDB: {str(e)}",
                    operation="connect",
                    details={"db_path": self.db_path}
                )
        return self._connection

    def initialize_schema(self) -> Result[None]:
        """Create the ``case_records`` table if it does not exist.

        Returns:
            Result[None]: Success or failure with error details
        """
        try:
            with self._lock:
                conn = self._get_connection()
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS case_records (
                        case_id VARCHAR PRIMARY KEY,
                        clinician_id VARCHAR NOT NULL,
                        status VARCHAR NOT NULL,
                        state VARCHAR NOT NULL,
                        payload JSON NOT NULL,
                        created_at TIMESTAMP NOT NULL,
                        updated_at TIMESTAMP NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_case_records_clinician
                    ON case_records(clinician_id)
                """)
            self._initialized = True
            logger.info("Case record schema initialized successfully")
            return Result.success_result(None)
        except Exception as e:
            error_msg = f"Failed to initialize schema: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(StorageError(error_msg, operation="initialize_schema"), error_type="StorageError")

    def _ensure_schema(self) -> None:
        if not self._initialized:
            result = self.initialize_schema()
            if not result.is_success():
                raise StorageError(result.error or "Schema initialization failed", operation="initialize_schema")

    def persist(self, record: CaseRecord) -> Result[str]:
        """Upsert ``record`` synchronously.

        Returns:
            Result[str]: The case id on success
        """
        try:
            self._ensure_schema()
            payload = json.dumps(record.to_payload())
            with self._lock:
                self._get_connection().execute(
                    """
                    INSERT OR REPLACE INTO case_records
                        (case_id, clinician_id, status, state, payload, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        record.case_id,
                        record.clinician_id,
                        record.status.value,
                        record.storage_meta.state.value,
                        payload,
                        record.created_at.replace(tzinfo=None),
                        record.updated_at.replace(tzinfo=None),
                    ],
                )
            logger.debug(f"Persisted case {record.case_id}")
            return Result.success_result(record.case_id)
        except StorageError as e:
            return Result.failure_result(e, error_details={"case_id": record.case_id})
        except Exception as e:
            error_msg = f"Failed to persist case record: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="persist"),
                error_type="StorageError",
                error_details={"case_id": record.case_id},
            )

    def load(self, case_id: str) -> Result[Optional[CaseRecord]]:
        """Load a record synchronously (value is None when absent)."""
        try:
            self._ensure_schema()
            with self._lock:
                row = self._get_connection().execute(
                    "SELECT payload FROM case_records WHERE case_id = ?", [case_id]
                ).fetchone()
            if row is None:
                return Result.success_result(None)
            payload = row[0] if isinstance(row[0], dict) else json.loads(row[0])
            return Result.success_result(CaseRecord.from_payload(payload))
        except StorageError as e:
            return Result.failure_result(e, error_details={"case_id": case_id})
        except PydanticValidationError as e:
            logger.error(f"Stored payload for case {case_id} is not a valid case record ({e.error_count()} errors)")
            return Result.failure_result(
                StorageError("Stored case record is invalid", operation="load"),
                error_type="StorageError",
                error_details={"case_id": case_id},
            )
        except Exception as e:
            error_msg = f"Failed to load case record: {str(e)}"
            logger.error(error_msg, exc_info=True)
            return Result.failure_result(
                StorageError(error_msg, operation="load"),
                error_type="StorageError",
                error_details={"case_id": case_id},
            )

    async def save(self, record: CaseRecord) -> None:
        result = await asyncio.to_thread(self.persist, record)
        if not result.is_success():
            raise StorageError(result.error or "Save failed", operation="save", details=result.error_details)

    async def fetch_by_id(self, case_id: str) -> Optional[CaseRecord]:
        result = await asyncio.to_thread(self.load, case_id)
        if not result.is_success():
            raise StorageError(result.error or "Fetch failed", operation="fetch_by_id", details=result.error_details)
        return result.value

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            try:
                self._connection.close()
                logger.info("Closed DuckDB connection")
            except Exception as e:
                logger.warning(f"Error closing connection: {str(e)}")
            finally:
                self._connection = None
                self._initialized = False
