"""
Scheduling dispatch — how the lead scorer hands a scored lead to the
follow-up scheduler.

InlineDispatcher runs the scheduler inside the request with its own retry
and backoff. QueueDispatcher pushes an RQ job with RQ's retry policy. In
both cases a scheduling failure never rolls back the lead score.
"""
import logging
import time
from typing import Sequence

from rq import Retry

from app.errors import PersistenceError
from app.pipeline.scheduler import sequence_length

logger = logging.getLogger('pipeline.dispatch')


QUEUE_RETRY_INTERVALS = [10, 60, 300]


class InlineDispatcher:
    """Schedule synchronously, retrying with a fixed backoff."""

    def __init__(self, scheduler, attempts: int = 3, backoff: Sequence[float] = (1, 2), sleep=time.sleep):
        self.scheduler = scheduler
        self.attempts = max(1, attempts)
        self.backoff = list(backoff)
        self.sleep = sleep

    def __call__(self, submission_id, lead_score_id, sequence) -> int:
        """Returns the number of follow-ups scheduled (0 when every attempt failed)."""
        for attempt in range(self.attempts):
            result = self.scheduler.schedule(submission_id, lead_score_id, sequence)
            if result.success:
                return result.scheduled
            if attempt < self.attempts - 1:
                wait = self.backoff[min(attempt, len(self.backoff) - 1)] if self.backoff else 0
                logger.warning(
                    "Scheduling for lead %s failed, retrying in %ss (attempt %d/%d)",
                    submission_id, wait, attempt + 1, self.attempts,
                )
                self.sleep(wait)

        logger.error("Giving up scheduling follow-ups for lead %s after %d attempts", submission_id, self.attempts)
        return 0


class QueueDispatcher:
    """Push scheduling onto the RQ queue; the worker retries on failure."""

    def __init__(self, queue, retry_intervals=None):
        self.queue = queue
        self.retry_intervals = retry_intervals or QUEUE_RETRY_INTERVALS

    def __call__(self, submission_id, lead_score_id, sequence) -> int:
        """Returns the planned number of follow-ups (the job has not run yet)."""
        self.queue.enqueue(
            schedule_followups_job,
            submission_id,
            lead_score_id,
            sequence,
            retry=Retry(max=len(self.retry_intervals), interval=self.retry_intervals),
        )
        logger.info("Queued follow-up scheduling for lead %s (%s)", submission_id, sequence)
        return sequence_length(sequence)


# ── RQ jobs ──────────────────────────────────────────────────────────────────

def schedule_followups_job(submission_id, lead_score_id, sequence):
    """RQ job: schedule a lead's follow-ups. Raises so RQ retries on failure."""
    from app.pipeline.manager import build_scheduler
    result = build_scheduler().schedule(submission_id, lead_score_id, sequence)
    if not result.success:
        raise PersistenceError(result.error or f"Scheduling failed for {submission_id}")
    return result.scheduled


def process_due_followups_job(limit=None):
    """RQ job: one executor pass over due follow-ups."""
    from app.pipeline.manager import process_due_followups
    return process_due_followups(limit)
