from __future__ import annotations

from typing import Any, Protocol

from mailsorter.domain.entities.classified_record import ClassifiedRecord


class RecordStore(Protocol):
    # False when the message_id was already stored (idempotent no-op)
    def store(self, record: ClassifiedRecord) -> bool: ...
    def list_all(self) -> list[ClassifiedRecord]: ...
    def health_check(self) -> dict[str, Any]: ...
