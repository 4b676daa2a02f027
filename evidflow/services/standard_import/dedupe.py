"""In-batch duplicate detection on the configured key field."""

from __future__ import annotations

import logging
from typing import Dict, Iterable

from .models import CanonicalField, MappedRecord

LOGGER = logging.getLogger(__name__)


class DuplicateDetector:
    """Flag every repeat of a key after its first occurrence.

    Records are visited in ascending ``row_index`` whatever order they are
    given in, so the earliest source row always keeps the key. Blank keys are
    ignored; they are the validator's concern.
    """

    def __init__(self, key_field: CanonicalField = CanonicalField.CODE) -> None:
        self.key_field = key_field

    def detect(
        self,
        records: Iterable[MappedRecord],
        key_field: CanonicalField | None = None,
    ) -> Dict[int, int]:
        """Return ``row_index -> row_index of the first occurrence`` for repeats."""

        field_name = key_field or self.key_field
        first_seen: Dict[str, int] = {}
        conflicts: Dict[int, int] = {}
        for record in sorted(records, key=lambda item: item.row_index):
            key = record.text(field_name)
            if key is None:
                continue
            if key in first_seen:
                conflicts[record.row_index] = first_seen[key]
                LOGGER.debug(
                    "import.dedupe duplicate row=%s key=%s first_row=%s",
                    record.row_index,
                    key,
                    first_seen[key],
                )
            else:
                first_seen[key] = record.row_index
        return conflicts
