"""In-memory case-record repository.

Records are stored in serialized form, so callers can never mutate stored
state through a returned object.
"""

import logging
from typing import Optional

from wound_intake.domain.case_record import CaseRecord
from wound_intake.domain.ports import CaseRecordRepository

logger = logging.getLogger(__name__)


class MemoryCaseRecordRepository(CaseRecordRepository):
    """Process-local repository; contents are lost on restart."""

    def __init__(self):
        self._payloads: dict[str, dict] = {}

    async def save(self, record: CaseRecord) -> None:
        self._payloads[record.case_id] = record.to_payload()
        logger.debug(f"Saved case {record.case_id} to memory")

    async def fetch_by_id(self, case_id: str) -> Optional[CaseRecord]:
        payload = self._payloads.get(case_id)
        if payload is None:
            return None
        return CaseRecord.from_payload(payload)

    def __len__(self) -> int:
        return len(self._payloads)
