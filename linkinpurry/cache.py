import logging
from functools import wraps

import redis
from flask import current_app, request

from linkinpurry.auth import optional_user_id

logger = logging.getLogger(__name__)

KEY_PREFIX = 'cache_'


class ResponseCache:
    """
    Redis-backed cache for JSON GET responses.

    Keys look like ``cache_<path and query>&id=<viewer id>`` so every viewer
    gets their own copy; writes drop whole path prefixes.
    """

    def __init__(self, app=None):
        self.client = None
        self.ttl = 3600
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.ttl = app.config.get('CACHE_TTL', 3600)
        url = app.config.get('REDIS_URL')
        self.client = redis.Redis.from_url(url, decode_responses=True) if url else None
        if self.client is None:
            app.logger.info("REDIS_URL not set; response caching disabled")
        app.extensions['response_cache'] = self

    @property
    def enabled(self):
        return self.client is not None

    @staticmethod
    def make_key(viewer_id):
        return f"{KEY_PREFIX}{request.full_path.rstrip('?')}&id={viewer_id}"

    def get(self, key):
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.warning("Cache error (get %s): %s", key, e)
            return None

    def set(self, key, payload):
        try:
            self.client.set(key, payload, ex=self.ttl)
        except redis.RedisError as e:
            logger.warning("Cache error (set %s): %s", key, e)

    def invalidate(self, *prefixes):
        if not self.enabled:
            return 0
        removed = 0
        for prefix in prefixes:
            pattern = f"{KEY_PREFIX}{prefix}*"
            try:
                keys = list(self.client.scan_iter(match=pattern))
                if keys:
                    removed += self.client.delete(*keys)
                    logger.debug("Invalidated cache for pattern %s: %s", pattern, keys)
            except redis.RedisError as e:
                logger.warning("Cache error (invalidate %s): %s", pattern, e)
        return removed

    def cached(self, f):
        """Serve a successful JSON response from the cache, storing it on a miss."""

        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not self.enabled:
                return f(*args, **kwargs)

            key = self.make_key(optional_user_id())
            hit = self.get(key)
            if hit is not None:
                logger.debug("Cache hit for %s", key)
                return current_app.response_class(hit, status=200, mimetype='application/json')

            logger.debug("Cache miss for %s", key)
            response = current_app.make_response(f(*args, **kwargs))
            if response.status_code == 200 and response.is_json:
                self.set(key, response.get_data(as_text=True))
            return response

        return decorated_function

    def invalidates(self, *prefixes):
        """Drop cached responses under `prefixes` once the wrapped write succeeds."""

        def decorator(f):
            @wraps(f)
            def decorated_function(*args, **kwargs):
                response = current_app.make_response(f(*args, **kwargs))
                if response.status_code < 400:
                    self.invalidate(*prefixes)
                return response

            return decorated_function

        return decorator
