from __future__ import annotations

import threading
import time

from evidflow.services.standard_import.commit import BatchCommitter
from evidflow.services.standard_import.models import CommitStatus, MappedRecord


def _records(count: int) -> list[MappedRecord]:
    return [MappedRecord(row_index=index + 2, code=str(index + 1), name=f"S{index + 1}") for index in range(count)]


def test_one_failure_does_not_abort_the_batch() -> None:
    attempted: list[int] = []

    def create(record: MappedRecord) -> None:
        attempted.append(record.row_index)
        if record.row_index == 3:
            raise RuntimeError("standard code 2 already exists")

    outcomes = BatchCommitter().commit(_records(3), create)

    assert attempted == [2, 3, 4]
    assert [item.status for item in outcomes] == [
        CommitStatus.COMMITTED,
        CommitStatus.FAILED,
        CommitStatus.COMMITTED,
    ]
    assert outcomes[1].error == "standard code 2 already exists"
    assert outcomes[1].code == "2"
    assert not outcomes[1].success


def test_failures_are_not_retried() -> None:
    calls: list[int] = []

    def create(record: MappedRecord) -> None:
        calls.append(record.row_index)
        raise ConnectionError()

    outcomes = BatchCommitter().commit(_records(1), create)

    assert calls == [2]
    assert outcomes[0].error == "ConnectionError"


def test_cancellation_marks_remaining_records_not_processed() -> None:
    cancel = threading.Event()

    def create(record: MappedRecord) -> None:
        cancel.set()

    outcomes = BatchCommitter().commit(_records(3), create, cancel_event=cancel)

    assert [item.status for item in outcomes] == [
        CommitStatus.COMMITTED,
        CommitStatus.NOT_PROCESSED,
        CommitStatus.NOT_PROCESSED,
    ]
    assert all(item.error is None for item in outcomes)


def test_concurrent_commit_returns_outcomes_in_source_order() -> None:
    def create(record: MappedRecord) -> None:
        # later rows finish first
        time.sleep(0.01 * (10 - record.row_index))
        if record.row_index == 5:
            raise ValueError("rejected")

    outcomes = BatchCommitter(max_workers=4).commit(list(reversed(_records(6))), create)

    assert [item.row_index for item in outcomes] == [2, 3, 4, 5, 6, 7]
    assert [item.status for item in outcomes].count(CommitStatus.FAILED) == 1
    assert outcomes[3].status is CommitStatus.FAILED


def test_empty_batch() -> None:
    assert BatchCommitter(max_workers=3).commit([], lambda record: None) == []
