"""Job status transitions.

    PENDING -> PROCESSING -> COMPLETED | FAILED | SKIPPED

Classification may move a job from PENDING or PROCESSING straight to
SKIPPED. A FAILED job may be processed again, which moves it back to
PROCESSING.

Timestamps are stamped once: ``processing_started_at`` on the first move
into PROCESSING and ``completed_at`` on the first move into a terminal
status. Retries keep the original values.
"""

from __future__ import annotations

from datetime import datetime

from src.app.jobs.schemas import JobRecord, JobStatus, JobUpdate

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.SKIPPED})

# Jobs in these states are never processed again.
FINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.SKIPPED})


def is_terminal(status: JobStatus) -> bool:
    return status in TERMINAL_STATUSES


def apply_update(record: JobRecord, update: JobUpdate, now: datetime) -> JobRecord:
    """Return a new record with update merged and timestamps stamped."""
    changes = update.model_dump(exclude_unset=True)
    new_status = changes.get("status")

    if (
        new_status == JobStatus.PROCESSING
        and record.status != JobStatus.PROCESSING
        and record.processing_started_at is None
    ):
        changes["processing_started_at"] = now

    if new_status is not None and is_terminal(new_status) and record.completed_at is None:
        changes["completed_at"] = now

    return record.model_copy(update=changes)
