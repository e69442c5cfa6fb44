"""
Redis-backed circuit breaker for the model and email providers.

One Redis hash per service (cb:<name>) holds state, consecutive failures,
the last failure time and lifetime success/failure counters. States:
  - CLOSED    → calls pass through
  - OPEN      → calls short-circuit with CircuitOpenError
  - HALF_OPEN → reset_timeout elapsed, the next call is a probe

Breakers fail open: if Redis is unreachable every call is allowed.
"""
import logging
import time
from functools import wraps

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN — service unavailable")


class CircuitBreaker:
    """
    Usage:
        cb = CircuitBreaker('openai', redis_client, failure_threshold=5, reset_timeout=60)
        result = cb.call(client.chat.completions.create, **kwargs)
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout

    @property
    def key(self):
        return f'{self.PREFIX}:{self.name}'

    def _snapshot(self):
        try:
            return self.redis.hgetall(self.key) or {}
        except Exception:
            return {}

    def _seconds_since_failure(self, data):
        last = data.get('last_failure')
        if not last:
            return None
        return time.time() - float(last)

    @property
    def state(self):
        data = self._snapshot()
        current = data.get('state', CLOSED)
        if current == OPEN:
            elapsed = self._seconds_since_failure(data)
            if elapsed is not None and elapsed > self.reset_timeout:
                return HALF_OPEN
        return current if current in (CLOSED, OPEN, HALF_OPEN) else CLOSED

    @property
    def is_open(self):
        return self.state == OPEN

    @property
    def failure_count(self):
        try:
            return int(self._snapshot().get('failures', 0))
        except (TypeError, ValueError):
            return 0

    def get_health(self):
        """Return health metrics dict for this service."""
        data = self._snapshot()
        last_success = data.get('last_success')
        last_failure = data.get('last_failure')
        return {
            'name': self.name,
            'state': self.state,
            'failure_count': int(data.get('failures', 0) or 0),
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': int(data.get('total_success', 0) or 0),
            'total_failure': int(data.get('total_failure', 0) or 0),
            'last_success': float(last_success) if last_success else None,
            'last_failure': float(last_failure) if last_failure else None,
            'last_error': data.get('last_error', ''),
        }

    def call(self, func, *args, **kwargs):
        """Execute func through the circuit breaker."""
        if self.state == OPEN:
            elapsed = self._seconds_since_failure(self._snapshot())
            retry_after = max(0, self.reset_timeout - elapsed) if elapsed is not None else None
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def _on_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.hset(self.key, mapping={'state': CLOSED, 'failures': 0, 'last_success': str(time.time())})
            pipe.hincrby(self.key, 'total_success', 1)
            pipe.execute()
        except Exception:
            logger.debug("Circuit '%s' could not record success", self.name, exc_info=True)

    def _on_failure(self, error):
        try:
            failures = self.redis.hincrby(self.key, 'failures', 1)
            mapping = {'last_failure': str(time.time()), 'last_error': str(error)[:200]}
            if failures >= self.failure_threshold:
                mapping['state'] = OPEN
                logger.warning(
                    "Circuit '%s' OPENED after %d failures (threshold=%d): %s",
                    self.name, failures, self.failure_threshold, error,
                )
            pipe = self.redis.pipeline()
            pipe.hset(self.key, mapping=mapping)
            pipe.hincrby(self.key, 'total_failure', 1)
            pipe.execute()
        except Exception:
            logger.debug("Circuit '%s' could not record failure", self.name, exc_info=True)

    def reset(self):
        """Manually reset the circuit breaker to closed state."""
        try:
            self.redis.hset(self.key, mapping={'state': CLOSED, 'failures': 0})
            self.redis.hdel(self.key, 'last_failure')
            logger.info("Circuit '%s' manually reset to CLOSED", self.name)
        except Exception as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)

    def protect(self, func):
        """Decorator form of the circuit breaker."""
        @wraps(func)
        def wrapper(*args, **kwargs):
            return self.call(func, *args, **kwargs)
        return wrapper


# ── Global registry ───────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None, **kwargs):
    """Get or create a named circuit breaker (singleton per name)."""
    if name not in _registry:
        if redis_client is None:
            from app.extensions import redis_client as rc
            redis_client = rc
        _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return _registry[name]


def get_all_breakers():
    """Return all registered circuit breakers."""
    return dict(_registry)


def init_breakers(redis_client):
    """Initialize breakers for the model provider and the email provider."""
    breakers = {
        'openai': CircuitBreaker('openai', redis_client, failure_threshold=5, reset_timeout=60),
        'resend': CircuitBreaker('resend', redis_client, failure_threshold=3, reset_timeout=180),
    }
    _registry.update(breakers)
    return breakers
