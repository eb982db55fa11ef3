"""
Configuration module for RoomQueue.
Handles app configuration, logging, session storage, and cache initialization.
"""

import os
import logging
from urllib.parse import urlparse

import redis
from flask_session import Session
from flask_caching import Cache
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


DEFAULTS = {
    "SECRET_KEY": "your-secret-key-change-in-production",
    "ROOM_STATE_TIMEOUT": 6 * 60 * 60,
    "HISTORY_LIMIT": 20,
    "CHAT_HISTORY_LIMIT": 50,
    "DEFAULT_ROOM_MODE": "equal_turns",
    "SOCKETIO_ASYNC_MODE": "threading",
    "CORS_ALLOWED_ORIGINS": "*",
    "LOG_LEVEL": "INFO",
}


def get_setting(name, cast=str):
    """Read a setting from the environment, falling back to DEFAULTS"""
    value = os.getenv(name)
    if value is None or value == "":
        return DEFAULTS.get(name)
    try:
        return cast(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using default %r", name, value, DEFAULTS.get(name))
        return DEFAULTS.get(name)


def get_redis_url():
    """Get Redis URL with proper SSL configuration for hosted Redis"""
    redis_url = os.getenv("REDIS_URL")

    if redis_url and redis_url.startswith("rediss://"):
        return redis_url + "?ssl_cert_reqs=none"
    return redis_url


def create_manual_redis_client():
    """Create a direct Redis client, or None when Redis is not configured or not reachable"""
    redis_url = os.getenv("REDIS_URL")
    if not redis_url:
        logger.info("No REDIS_URL found, room state stays in the in-process cache")
        return None

    try:
        parsed = urlparse(redis_url)
        client = redis.Redis(
            host=parsed.hostname,
            port=parsed.port or 6379,
            password=parsed.password,
            ssl=parsed.scheme == "rediss",
            ssl_cert_reqs=None,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
            retry_on_timeout=False,
        )
        client.ping()
        logger.info("Manual Redis client connected to %s:%s", parsed.hostname, parsed.port or 6379)
        return client

    except redis.RedisError as e:
        logger.warning("Manual Redis connection failed: %s", e)
        return None


class RoomCache:
    """Redis cache wrapper with fallback to Flask-Caching"""

    def __init__(self, flask_cache, manual_client=None):
        self.flask_cache = flask_cache
        self.manual_client = manual_client
        self.use_manual = manual_client is not None

        if self.use_manual:
            logger.info("Using manual Redis client for room state")
        else:
            logger.info("Using Flask-Caching for room state")

    def get(self, key):
        if self.use_manual:
            try:
                return self.manual_client.get(key)
            except redis.RedisError as e:
                logger.warning("Manual Redis get failed for key: %s - %s, falling back to Flask-Caching", key, e)
        return self.flask_cache.get(key)

    def set(self, key, value, timeout=None):
        if self.use_manual:
            try:
                if timeout:
                    return self.manual_client.setex(key, timeout, value)
                return self.manual_client.set(key, value)
            except redis.RedisError as e:
                logger.warning("Manual Redis set failed for key: %s - %s, falling back to Flask-Caching", key, e)
        return self.flask_cache.set(key, value, timeout=timeout)

    def delete(self, key):
        if self.use_manual:
            try:
                return self.manual_client.delete(key)
            except redis.RedisError as e:
                logger.warning("Manual Redis delete failed for key: %s - %s, falling back to Flask-Caching", key, e)
        return self.flask_cache.delete(key)


def configure_logging(level_name):
    """Configure root logging once for the process"""
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def configure_session_storage(app, manual_redis=None):
    """Configure server-side session storage; Redis in production, filesystem otherwise"""
    app.config.setdefault("SESSION_PERMANENT", True)
    app.config.setdefault("SESSION_USE_SIGNER", True)
    app.config.setdefault("SESSION_KEY_PREFIX", "roomqueue:")
    app.config.setdefault("SESSION_COOKIE_HTTPONLY", True)
    app.config.setdefault("SESSION_COOKIE_SAMESITE", "Lax")

    if os.getenv("FLASK_ENV") == "production" and manual_redis is not None:
        app.config["SESSION_TYPE"] = "redis"
        app.config["SESSION_REDIS"] = manual_redis
        app.config["SESSION_COOKIE_SECURE"] = True
        logger.info("Using Redis for session storage (production)")
        return True

    app.config["SESSION_TYPE"] = "filesystem"
    app.config.setdefault("SESSION_FILE_DIR", "/tmp/roomqueue_session")
    logger.info("Using filesystem for session storage")
    return False


def init_app(app):
    """Initialize Flask app with configuration and return the room cache"""

    configure_logging(app.config.get("LOG_LEVEL") or get_setting("LOG_LEVEL"))

    app.config.setdefault("SECRET_KEY", get_setting("SECRET_KEY"))
    app.config.setdefault("ROOM_STATE_TIMEOUT", get_setting("ROOM_STATE_TIMEOUT", int))
    app.config.setdefault("HISTORY_LIMIT", get_setting("HISTORY_LIMIT", int))
    app.config.setdefault("CHAT_HISTORY_LIMIT", get_setting("CHAT_HISTORY_LIMIT", int))
    app.config.setdefault("DEFAULT_ROOM_MODE", get_setting("DEFAULT_ROOM_MODE"))
    app.config.setdefault("SOCKETIO_ASYNC_MODE", get_setting("SOCKETIO_ASYNC_MODE"))
    app.config.setdefault("CORS_ALLOWED_ORIGINS", get_setting("CORS_ALLOWED_ORIGINS"))

    testing = app.config.get("TESTING", False)
    manual_redis = None if testing else create_manual_redis_client()

    # Tests keep Flask's signed cookie session so the test clients share it
    if not testing:
        configure_session_storage(app, manual_redis)
        Session(app)

    if manual_redis is not None:
        app.config["CACHE_TYPE"] = "RedisCache"
        app.config["CACHE_REDIS_URL"] = get_redis_url()
    else:
        app.config["CACHE_TYPE"] = "SimpleCache"
    app.config["CACHE_DEFAULT_TIMEOUT"] = app.config["ROOM_STATE_TIMEOUT"]

    flask_cache = Cache(app)
    cache = RoomCache(flask_cache, manual_redis)

    logger.info("Configuration and caching initialized (cache=%s)", app.config["CACHE_TYPE"])
    return cache
