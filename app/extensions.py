"""
Shared client instances — Redis (RQ queue + circuit breaker state).

redis.from_url does not connect until first use, so importing this module
is always safe (even with no Redis running during tests).
"""
import logging
import redis

from app.config import REDIS_URL, OPENAI_API_KEY, RESEND_API_KEY

logger = logging.getLogger('app.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

if not OPENAI_API_KEY:
    logger.warning("OPENAI_API_KEY not set; lead scoring and email generation will fail")
if not RESEND_API_KEY:
    logger.warning("RESEND_API_KEY not set; follow-up emails cannot be sent")
