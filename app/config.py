"""
Centralized configuration — all env vars, constants, status values.
"""
import os


def _int_env(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _float_env(name, default):
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Flask ────────────────────────────────────────────────────────────────────
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')

# ── Redis (RQ queue + circuit breakers) ──────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── OpenAI ────────────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
OPENAI_BASE_URL = os.getenv('OPENAI_BASE_URL')  # None → SDK default
OPENAI_QUALITY_MODEL = os.getenv('OPENAI_QUALITY_MODEL', 'gpt-4o')
OPENAI_ECONOMY_MODEL = os.getenv('OPENAI_ECONOMY_MODEL', 'gpt-4o-mini')
MODEL_TIMEOUT_SECONDS = _float_env('MODEL_TIMEOUT_SECONDS', 30.0)

# ── Resend (transactional email) ─────────────────────────────────────────────
RESEND_API_KEY = os.getenv('RESEND_API_KEY')
RESEND_API_URL = os.getenv('RESEND_API_URL', 'https://api.resend.com')
FROM_EMAIL = os.getenv('FROM_EMAIL', 'Khanect <hello@khanect.com>')
EMAIL_TIMEOUT_SECONDS = _float_env('EMAIL_TIMEOUT_SECONDS', 15.0)

# ── Follow-up executor ───────────────────────────────────────────────────────
FOLLOWUP_BATCH_LIMIT = _int_env('FOLLOWUP_BATCH_LIMIT', 10)
FOLLOWUP_SEND_DELAY_SECONDS = _float_env('FOLLOWUP_SEND_DELAY_SECONDS', 0.5)
FOLLOWUP_MAX_RUNTIME_SECONDS = _float_env('FOLLOWUP_MAX_RUNTIME_SECONDS', 240.0)
FOLLOWUP_CLAIM_TTL_MINUTES = _int_env('FOLLOWUP_CLAIM_TTL_MINUTES', 15)

# ── Scheduling dispatch: "inline" (in the request) or "queue" (RQ) ───────────
SCHEDULER_DISPATCH = os.getenv('SCHEDULER_DISPATCH', 'inline').lower()

# ── Lead retry sweep ─────────────────────────────────────────────────────────
LEAD_RETRY_LOOKBACK_HOURS = _int_env('LEAD_RETRY_LOOKBACK_HOURS', 72)
LEAD_RETRY_MAX_PER_RUN = _int_env('LEAD_RETRY_MAX_PER_RUN', 200)

# ── Status values ────────────────────────────────────────────────────────────
SUBMISSION_STATUSES = [
    'pending',
    'processing',
    'completed',
    'failed',
]

# 'processing' is the executor's claim; 'sent', 'failed', 'cancelled' are terminal.
FOLLOWUP_STATUSES = [
    'pending',
    'processing',
    'sent',
    'failed',
    'cancelled',
]

INTERACTION_TYPES = [
    'chat',
    'lead_processing',
    'email_generation',
]

# ── Lead score enums ─────────────────────────────────────────────────────────
LEAD_CATEGORIES = ['hot', 'warm', 'cold', 'unqualified']
BUDGET_INDICATORS = ['high', 'medium', 'low', 'unknown']
URGENCY_INDICATORS = ['high', 'medium', 'low']
FOLLOWUP_SEQUENCE_NAMES = ['immediate', 'standard', 'nurture', 'minimal']
EMAIL_TYPES = ['welcome', 'value_prop', 'case_study', 'demo_invite', 'check_in', 'final']
