"""
Circuit breakers for the two outbound collaborators: the SurveyMonkey API and
the Power Automate webhook.

State lives in Redis so every worker process sees the same picture:
  - CLOSED    → calls pass through
  - OPEN      → `failure_threshold` consecutive failures; calls raise
                CircuitOpenError until `reset_timeout` has elapsed
  - HALF_OPEN → one probe call is let through; success closes the circuit

Redis being unreachable never blocks a call (bookkeeping fails open).
"""
import logging
import time

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'

SURVEYMONKEY = 'surveymonkey'
WEBHOOK = 'webhook'


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN, service unavailable")


class CircuitBreaker:
    """
    Redis-backed circuit breaker.

        cb = CircuitBreaker('webhook', redis_client, failure_threshold=5, reset_timeout=120)
        response = cb.call(requests.post, url, json=payload, timeout=10)
    """

    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout

    def _key(self, suffix):
        return f'{self.PREFIX}:{self.name}:{suffix}'

    # ── State ─────────────────────────────────────────────────────────

    @property
    def state(self):
        try:
            s = self.redis.get(self._key('state'))
            if s is None:
                return CLOSED
            if s == OPEN and self._seconds_since_failure() > self.reset_timeout:
                self.redis.set(self._key('state'), HALF_OPEN)
                return HALF_OPEN
            return s
        except Exception:
            return CLOSED

    @property
    def failure_count(self):
        try:
            val = self.redis.get(self._key('failures'))
            return int(val) if val else 0
        except Exception:
            return 0

    def _seconds_since_failure(self):
        last = self.redis.get(self._key('last_failure'))
        if not last:
            return float('inf')
        return time.time() - float(last)

    # ── Calls ─────────────────────────────────────────────────────────

    def call(self, func, *args, **kwargs):
        """Execute func through the circuit breaker."""
        if self.state == OPEN:
            try:
                retry_after = max(0, self.reset_timeout - self._seconds_since_failure())
            except Exception:
                retry_after = None
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
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.hincrby(self._key('health'), 'success', 1)
            pipe.hset(self._key('health'), 'last_success', str(time.time()))
            pipe.execute()
        except Exception:
            logger.debug("Circuit '%s': could not record success", self.name)

    def _on_failure(self, error):
        try:
            count = self.redis.incr(self._key('failures'))
            now = str(time.time())
            self.redis.set(self._key('last_failure'), now)
            pipe = self.redis.pipeline()
            pipe.hincrby(self._key('health'), 'failure', 1)
            pipe.hset(self._key('health'), 'last_failure', now)
            pipe.hset(self._key('health'), 'last_error', str(error)[:200])
            pipe.execute()
            if count >= self.failure_threshold:
                self.redis.set(self._key('state'), OPEN)
                logger.warning("Circuit '%s' OPENED after %d failures: %s", self.name, count, error)
            else:
                logger.info("Circuit '%s' failure %d/%d: %s", self.name, count, self.failure_threshold, error)
        except Exception:
            logger.debug("Circuit '%s': could not record failure", self.name)

    def reset(self):
        """Manually close the circuit."""
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.delete(self._key('last_failure'))
            pipe.execute()
            logger.info("Circuit '%s' manually reset to CLOSED", self.name)
        except Exception as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)

    def get_health(self):
        """Health metrics dict for /api/health."""
        try:
            data = self.redis.hgetall(self._key('health')) or {}
        except Exception:
            data = {}
        return {
            'name': self.name,
            'state': self.state,
            'failure_count': self.failure_count,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': int(data.get('success', 0)),
            'total_failure': int(data.get('failure', 0)),
            'last_error': data.get('last_error', ''),
        }


# ── Registry ──────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name):
    """Named breaker, created against the shared Redis client on first use."""
    if name not in _registry:
        from study_funnel.extensions import redis_client
        _registry[name] = CircuitBreaker(name, redis_client)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register the breakers for every outbound collaborator."""
    breakers = {
        SURVEYMONKEY: CircuitBreaker(SURVEYMONKEY, redis_client, failure_threshold=3, reset_timeout=300),
        WEBHOOK: CircuitBreaker(WEBHOOK, redis_client, failure_threshold=5, reset_timeout=120),
    }
    _registry.update(breakers)
    return breakers
