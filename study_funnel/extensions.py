"""
Shared client instances.

redis.from_url() does not connect until first use, so importing this module
is always safe (even when Redis is absent during tests or local dev).
"""
import redis

from study_funnel.config import REDIS_URL

# Circuit breaker state
redis_client = redis.from_url(REDIS_URL, decode_responses=True, socket_connect_timeout=2)
