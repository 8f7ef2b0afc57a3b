import logging

import redis

logger = logging.getLogger(__name__)


class TokenThrottle:
    """Redis backed 'only once per window' guard"""

    def __init__(self, redis_url):
        self.redis_url = redis_url
        self.client = None

    def _get_client(self):
        if self.client is None:
            self.client = redis.from_url(self.redis_url)
        return self.client

    def try_set_if_absent(self, key, value, ttl):
        """
        Claim key for ttl seconds. Returns False when the key is already held.
        If Redis is unreachable the claim is granted so resets keep working.
        """
        try:
            return bool(self._get_client().set(key, value, nx=True, ex=ttl))
        except redis.RedisError as e:
            logger.error(f"Throttle store unavailable, allowing {key}: {e}")
            return True

    def release(self, key):
        """Give a claim back before its ttl, for when the guarded action never happened"""
        try:
            self._get_client().delete(key)
        except redis.RedisError as e:
            logger.error(f"Throttle store unavailable, {key} stays claimed until it expires: {e}")
