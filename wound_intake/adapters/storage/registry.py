"""Repository registry: which repository serves which case.

The registry is an explicitly constructed object with caller-controlled
lifetime, passed into the session runtime. With a shared (durable)
repository every case resolves to it; otherwise each case id gets its own
in-memory repository, kept for the registry's lifetime.
"""

import logging
from typing import Optional

from wound_intake.adapters.storage.memory_repository import MemoryCaseRecordRepository
from wound_intake.domain.ports import CaseRecordRepository

logger = logging.getLogger(__name__)


class RepositoryRegistry:
    """Resolves the repository for a case id.

    Parameters:
        shared: Repository used for every case (e.g. DuckDB); when None,
            per-case memory repositories are created on demand
    """

    def __init__(self, shared: Optional[CaseRecordRepository] = None):
        self._shared = shared
        self._per_case: dict[str, MemoryCaseRecordRepository] = {}

    @property
    def is_durable(self) -> bool:
        return self._shared is not None

    def resolve(self, case_id: str) -> CaseRecordRepository:
        if self._shared is not None:
            return self._shared
        repository = self._per_case.get(case_id)
        if repository is None:
            repository = MemoryCaseRecordRepository()
            self._per_case[case_id] = repository
            logger.debug(f"Created memory repository for case {case_id}")
        return repository

    def clear(self) -> None:
        """Drop all per-case memory repositories."""
        self._per_case.clear()

    def close(self) -> None:
        """Release the shared repository's resources, if it holds any."""
        close = getattr(self._shared, "close", None)
        if callable(close):
            close()
        self.clear()
