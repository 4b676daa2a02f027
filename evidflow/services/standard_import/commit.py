"""Best-effort batch commit with per-record failure isolation."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Sequence

from .models import CanonicalField, CommitOutcome, CommitStatus, MappedRecord

LOGGER = logging.getLogger(__name__)

CreateFn = Callable[[MappedRecord], Any]


class BatchCommitter:
    """Drive eligible records through an external create operation.

    A failing create never aborts the batch and is never retried. Setting
    ``cancel_event`` stops further attempts; records not yet attempted are
    reported as ``not_processed``. Outcomes always come back in source order.
    """

    def __init__(self, *, max_workers: int = 1, logger: logging.Logger | None = None) -> None:
        self.max_workers = max(1, int(max_workers))
        self.logger = logger or LOGGER

    def commit(
        self,
        records: Sequence[MappedRecord],
        create_fn: CreateFn,
        *,
        cancel_event: threading.Event | None = None,
    ) -> List[CommitOutcome]:
        ordered = sorted(records, key=lambda item: item.row_index)
        start = time.monotonic()
        if self.max_workers == 1 or len(ordered) <= 1:
            outcomes = [self._attempt(record, create_fn, cancel_event) for record in ordered]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self._attempt, record, create_fn, cancel_event) for record in ordered
                ]
                outcomes = [future.result() for future in futures]
        outcomes.sort(key=lambda item: item.row_index)

        self.logger.info(
            "import.commit done attempted=%s committed=%s failed=%s not_processed=%s duration=%.3f",
            len(ordered),
            sum(1 for item in outcomes if item.status is CommitStatus.COMMITTED),
            sum(1 for item in outcomes if item.status is CommitStatus.FAILED),
            sum(1 for item in outcomes if item.status is CommitStatus.NOT_PROCESSED),
            time.monotonic() - start,
        )
        return outcomes

    def _attempt(
        self,
        record: MappedRecord,
        create_fn: CreateFn,
        cancel_event: threading.Event | None,
    ) -> CommitOutcome:
        code = record.text(CanonicalField.CODE)
        name = record.text(CanonicalField.NAME)
        if cancel_event is not None and cancel_event.is_set():
            return CommitOutcome(
                row_index=record.row_index,
                code=code,
                name=name,
                status=CommitStatus.NOT_PROCESSED,
            )
        try:
            create_fn(record)
        except Exception as exc:  # noqa: BLE001
            reason = self._describe_error(exc)
            self.logger.warning(
                "import.commit failed row=%s code=%s reason=%s",
                record.row_index,
                code,
                reason,
            )
            return CommitOutcome(
                row_index=record.row_index,
                code=code,
                name=name,
                status=CommitStatus.FAILED,
                error=reason,
            )
        self.logger.debug("import.commit committed row=%s code=%s", record.row_index, code)
        return CommitOutcome(
            row_index=record.row_index,
            code=code,
            name=name,
            status=CommitStatus.COMMITTED,
        )

    @staticmethod
    def _describe_error(exc: BaseException) -> str:
        message = str(exc).replace("\n", " ").strip()
        return message or exc.__class__.__name__
