import logging
from typing import Optional

logger = logging.getLogger(__name__)


class EditSession:
    """Which record, if any, is open in the edit form."""

    def __init__(self):
        self.record_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.record_id is not None

    def open(self, record_id: str):
        self.record_id = record_id
        logger.info("Edit session opened for %s", record_id)

    def close(self):
        if self.record_id is not None:
            logger.info("Edit session for %s closed", self.record_id)
        self.record_id = None

    def is_editing(self, record_id: str) -> bool:
        return self.record_id is not None and self.record_id == record_id

    def close_if_editing(self, record_id: str) -> bool:
        """Called after a record is deleted so no session points at it."""
        if self.is_editing(record_id):
            self.close()
            return True
        return False
