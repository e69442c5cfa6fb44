"""
Follow-up scheduler — turns a sequence name into dated follow-up items.

Pure and deterministic: no model calls. Each sequence is a fixed list of
(email_type, delay_hours) pairs; unknown names fall back to 'minimal'.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from app.errors import PersistenceError

logger = logging.getLogger('pipeline.scheduler')


FOLLOWUP_SEQUENCES = {
    'immediate': [
        ('welcome', 0),
        ('demo_invite', 4),
        ('check_in', 24),
    ],
    'standard': [
        ('welcome', 1),
        ('value_prop', 48),
        ('demo_invite', 120),
    ],
    'nurture': [
        ('welcome', 1),
        ('value_prop', 72),
        ('case_study', 168),
        ('demo_invite', 336),
        ('final', 504),
    ],
    'minimal': [
        ('welcome', 1),
    ],
}

FALLBACK_SEQUENCE = 'minimal'


@dataclass
class PlannedFollowup:
    sequence_number: int
    email_type: str
    scheduled_for: datetime


@dataclass
class ScheduleResult:
    success: bool
    scheduled: int = 0
    error: Optional[str] = None


def resolve_sequence(sequence: str) -> str:
    if sequence in FOLLOWUP_SEQUENCES:
        return sequence
    logger.warning("Unknown follow-up sequence %r, falling back to '%s'", sequence, FALLBACK_SEQUENCE)
    return FALLBACK_SEQUENCE


def sequence_length(sequence: str) -> int:
    return len(FOLLOWUP_SEQUENCES.get(sequence) or FOLLOWUP_SEQUENCES[FALLBACK_SEQUENCE])


def build_schedule(sequence: str, now: Optional[datetime] = None) -> List[PlannedFollowup]:
    """Dated plan for a sequence: sequence_number 1..N, scheduled_for non-decreasing."""
    now = now or datetime.now(timezone.utc)
    steps = FOLLOWUP_SEQUENCES[resolve_sequence(sequence)]
    return [
        PlannedFollowup(
            sequence_number=idx,
            email_type=email_type,
            scheduled_for=now + timedelta(hours=delay_hours),
        )
        for idx, (email_type, delay_hours) in enumerate(steps, 1)
    ]


class FollowupScheduler:

    def __init__(self, store):
        self.store = store

    def schedule(self, submission_id, lead_score_id, sequence, now=None) -> ScheduleResult:
        """
        Persist a lead's follow-up sequence as pending items in one write.

        A lead that already has items is left alone and reported as success,
        so a retried dispatch never doubles a sequence.
        """
        plan = build_schedule(sequence, now)
        try:
            existing = self.store.list_followups(submission_id)
            if existing:
                logger.info("Lead %s already has %d follow-ups scheduled", submission_id, len(existing))
                return ScheduleResult(success=True, scheduled=len(existing))

            self.store.insert_followups(submission_id, lead_score_id, plan)
        except PersistenceError as e:
            logger.error("Error scheduling follow-ups for lead %s: %s", submission_id, e)
            return ScheduleResult(success=False, error=str(e))

        logger.info("Scheduled %d follow-up emails for lead %s", len(plan), submission_id)
        return ScheduleResult(success=True, scheduled=len(plan))
