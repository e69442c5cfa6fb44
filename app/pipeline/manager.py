"""
Pipeline Manager — wires the lead pipeline together and exposes its entry points.

  process_lead          → score one submission, dispatch follow-up scheduling
  process_due_followups → one executor pass over due follow-ups
  retry_pending_leads   → re-score submissions stuck in pending/failed

Routes, RQ jobs and cron scripts all come through here, so every caller
gets the same store, gateway, breakers and dispatch mode.
"""
import logging
from datetime import datetime, timedelta, timezone

from app.config import (
    OPENAI_API_KEY, OPENAI_BASE_URL, MODEL_TIMEOUT_SECONDS,
    RESEND_API_KEY, RESEND_API_URL, FROM_EMAIL, EMAIL_TIMEOUT_SECONDS,
    SCHEDULER_DISPATCH, LEAD_RETRY_LOOKBACK_HOURS, LEAD_RETRY_MAX_PER_RUN,
)
from app.errors import ConfigError, PersistenceError, PipelineError
from app.pipeline.chat import ChatAgent
from app.pipeline.dispatch import InlineDispatcher, QueueDispatcher
from app.pipeline.executor import FollowupExecutor
from app.pipeline.lead_scorer import LeadScorer, SubmissionNotFound
from app.pipeline.scheduler import FollowupScheduler
from app.services.circuit_breaker import get_breaker
from app.services.email_provider import ResendClient
from app.services.ledger import InteractionLedger
from app.services.model_gateway import ModelGateway
from app.services.store import LeadStore

logger = logging.getLogger('pipeline.manager')


# ── Lazy RQ queue (avoids import-time Redis connection in tests) ─────────────

_queue = None

def _get_queue():
    global _queue
    if _queue is None:
        from app.extensions import redis_client
        from rq import Queue
        _queue = Queue(connection=redis_client)
    return _queue


# ── Component builders ───────────────────────────────────────────────────────

def build_store():
    return LeadStore()


def build_gateway():
    return ModelGateway(
        OPENAI_API_KEY,
        base_url=OPENAI_BASE_URL,
        timeout=MODEL_TIMEOUT_SECONDS,
        breaker=get_breaker('openai', failure_threshold=5, reset_timeout=60),
    )


def build_email_client():
    return ResendClient(
        RESEND_API_KEY,
        FROM_EMAIL,
        api_url=RESEND_API_URL,
        timeout=EMAIL_TIMEOUT_SECONDS,
        breaker=get_breaker('resend', failure_threshold=3, reset_timeout=180),
    )


def build_scheduler(store=None):
    return FollowupScheduler(store or build_store())


def build_dispatcher(store=None, mode=None):
    mode = (mode or SCHEDULER_DISPATCH).lower()
    if mode == 'queue':
        return QueueDispatcher(_get_queue())
    if mode != 'inline':
        logger.warning("Unknown SCHEDULER_DISPATCH %r, using inline", mode)
    return InlineDispatcher(build_scheduler(store))


def build_lead_scorer():
    store = build_store()
    return LeadScorer(build_gateway(), store, InteractionLedger(store), build_dispatcher(store))


def build_executor():
    store = build_store()
    return FollowupExecutor(build_gateway(), store, InteractionLedger(store), build_email_client())


def build_chat_agent():
    store = build_store()
    return ChatAgent(build_gateway(), InteractionLedger(store), store)


# ── Public API ───────────────────────────────────────────────────────────────

def process_lead(submission_id, full_name, email, phone, business_name, website=None, message=None):
    return build_lead_scorer().process_lead(
        submission_id, full_name, email, phone, business_name, website, message,
    )


def submit_lead(full_name, email, phone='', business_name='', website=None, message=None):
    """Store a new contact submission and score it right away."""
    submission = build_store().create_submission(full_name, email, phone, business_name, website, message)
    result = process_lead(
        submission['id'], full_name, email, phone, business_name, website, message,
    )
    return submission, result


def process_due_followups(limit=None):
    """One executor pass. Returns the JSON-ready summary."""
    return build_executor().process_due(limit).to_dict()


def retry_pending_leads(lookback_hours=None, max_per_run=None, now=None):
    """
    Re-score submissions left in pending/failed within the lookback window.

    Each candidate is claimed with a conditional update first, so two sweeps
    running side by side never score the same lead twice.
    """
    lookback_hours = lookback_hours or LEAD_RETRY_LOOKBACK_HOURS
    max_per_run = max_per_run or LEAD_RETRY_MAX_PER_RUN
    since = (now or datetime.now(timezone.utc)) - timedelta(hours=lookback_hours)

    scorer = build_lead_scorer()
    scorer.gateway.ensure_configured()
    store = scorer.store

    stats = {'scanned': 0, 'claimed': 0, 'succeeded': 0, 'failed': 0, 'skipped': 0}
    candidates = store.list_retry_candidates(since, max_per_run)
    stats['scanned'] = len(candidates)

    for sub in candidates:
        try:
            if not store.claim_submission(sub['id']):
                stats['skipped'] += 1
                continue
        except PersistenceError:
            stats['failed'] += 1
            continue
        stats['claimed'] += 1

        try:
            result = scorer.process_lead(
                sub['id'], sub['full_name'], sub['email'], sub['phone'],
                sub['business_name'], sub.get('website'), sub.get('message'),
            )
        except ConfigError:
            raise
        except (PipelineError, SubmissionNotFound) as e:
            logger.error("Retry of lead %s aborted: %s", sub['id'], e)
            stats['failed'] += 1
            try:
                store.set_submission_status(sub['id'], 'failed')
            except PersistenceError:
                logger.error("Could not mark lead %s as failed", sub['id'], exc_info=True)
            continue

        if result.success:
            stats['succeeded'] += 1
        else:
            stats['failed'] += 1
            logger.warning("Retry of lead %s failed: %s", sub['id'], result.error)

    logger.info(
        "Lead retry sweep: scanned=%d claimed=%d succeeded=%d failed=%d skipped=%d",
        stats['scanned'], stats['claimed'], stats['succeeded'], stats['failed'], stats['skipped'],
    )
    return stats


def get_lead_detail(submission_id):
    """Submission with its score and follow-ups, or None."""
    store = build_store()
    submission = store.get_submission(submission_id)
    if submission is None:
        return None
    return {
        'submission': submission,
        'leadScore': store.get_lead_score_for_submission(submission_id),
        'followups': store.list_followups(submission_id),
    }


def cancel_followups(submission_id):
    cancelled = build_store().cancel_followups(submission_id)
    logger.info("Cancelled %d pending follow-ups for lead %s", cancelled, submission_id)
    return cancelled


def send_chat_message(message, history=None, session_id=None):
    return build_chat_agent().send_chat_message(message, history, session_id)


def list_interactions(start=None, end=None, interaction_type=None, limit=500):
    store = build_store()
    return InteractionLedger(store).list_interactions(start, end, interaction_type, limit)
