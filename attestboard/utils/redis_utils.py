"""
Redis connection helpers for the cache backend.

Outside DEBUG the cache may hold results for weeks, so only TLS connections
with credentials are accepted.
"""

import logging
from typing import Optional
from urllib.parse import urlparse

import redis.asyncio as redis
from redis.exceptions import RedisError

from attestboard.config import Config

logger = logging.getLogger(__name__)

_LOCAL_HOSTS = ('localhost', '127.0.0.1', '::1')
_DEVELOPMENT_URL = 'redis://localhost:6379'


class RedisUtils:
    """Redis URL policy and client creation."""

    @staticmethod
    def get_secure_redis_url() -> Optional[str]:
        """
        Resolve the Redis URL from Config.REDIS_URL.

        Returns:
            The URL to connect to, or None when the configured URL fails the
            security policy (or nothing is configured outside DEBUG)
        """
        configured = Config.REDIS_URL
        if not configured:
            if Config.DEBUG:
                logger.warning(f"REDIS_URL not set, using {_DEVELOPMENT_URL} for development")
                return _DEVELOPMENT_URL
            logger.error("REDIS_URL is required for the redis cache backend (rediss:// with credentials)")
            return None

        problem = RedisUtils.security_problem(configured)
        if problem:
            logger.error(f"Refusing REDIS_URL: {problem}")
            return None
        return configured

    @staticmethod
    def security_problem(redis_url: str) -> Optional[str]:
        """Why a URL is not acceptable under the current mode, or None."""
        parsed = urlparse(redis_url)
        if parsed.scheme not in ('redis', 'rediss', 'unix'):
            return f"unsupported scheme {parsed.scheme!r}"
        if Config.DEBUG:
            if parsed.scheme == 'redis' and parsed.hostname not in _LOCAL_HOSTS:
                logger.warning(f"Plaintext Redis connection to {parsed.hostname} in development")
            return None
        if parsed.scheme != 'rediss':
            return "TLS (rediss://) is required outside DEBUG"
        if not parsed.password:
            return "credentials are required outside DEBUG"
        return None

    @staticmethod
    async def create_redis_client() -> Optional[redis.Redis]:
        """Connect and ping. None when no acceptable URL or the server is unreachable."""
        redis_url = RedisUtils.get_secure_redis_url()
        if not redis_url:
            return None

        client = redis.from_url(redis_url)
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.error(f"Failed to connect to Redis: {e}")
            await client.close()
            return None
        logger.info("Connected to Redis cache")
        return client
