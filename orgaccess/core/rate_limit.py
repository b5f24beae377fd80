"""
Simple in-memory rate limiting for API endpoints
"""
from functools import wraps
from fastapi import HTTPException, status, Request
from typing import Callable
from datetime import timedelta
from collections import defaultdict
import logging
import threading

from orgaccess.models.user import User
from orgaccess.utils.dates import utcnow

logger = logging.getLogger(__name__)

# identifier -> list of request timestamps
_rate_limit_store = defaultdict(list)
_rate_limit_lock = threading.Lock()

# Cleanup old entries every 5 minutes
_last_cleanup = utcnow()
_cleanup_interval = timedelta(minutes=5)


def _cleanup_old_entries():
    """Remove entries older than the time window"""
    global _last_cleanup

    now = utcnow()
    if now - _last_cleanup < _cleanup_interval:
        return

    with _rate_limit_lock:
        _last_cleanup = now
        cutoff_time = now - timedelta(hours=1)  # Keep last hour of data

        for key in list(_rate_limit_store.keys()):
            _rate_limit_store[key] = [ts for ts in _rate_limit_store[key] if ts > cutoff_time]
            if not _rate_limit_store[key]:
                del _rate_limit_store[key]


def clear_rate_limits():
    with _rate_limit_lock:
        _rate_limit_store.clear()


def _identify(func: Callable, args, kwargs, identifier_func: Callable = None) -> str:
    request = None
    user = None
    for value in list(args) + list(kwargs.values()):
        if isinstance(value, Request):
            request = value
        elif isinstance(value, User):
            user = value

    if identifier_func:
        identifier = identifier_func(request, user)
    elif user is not None:
        identifier = f"user_{user.id}"
    elif request is not None and request.client:
        identifier = f"ip_{request.client.host}"
    else:
        identifier = "unknown"
    return f"{func.__name__}:{identifier}"


def rate_limit(max_requests: int = 5, window_seconds: int = 300, identifier_func: Callable = None):
    """
    Rate limiting decorator for FastAPI endpoints.

    Args:
        max_requests: Maximum number of requests allowed
        window_seconds: Time window in seconds (default: 5 minutes)
        identifier_func: Function (request, user) -> identifier (default: user id, then client IP)

    Usage:
        @router.post("/endpoint")
        @rate_limit(max_requests=5, window_seconds=300)
        def my_endpoint(current_user: User = Depends(get_current_user)):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            identifier = _identify(func, args, kwargs, identifier_func)

            _cleanup_old_entries()

            now = utcnow()
            window_start = now - timedelta(seconds=window_seconds)

            with _rate_limit_lock:
                recent_requests = [ts for ts in _rate_limit_store[identifier] if ts > window_start]
                if len(recent_requests) >= max_requests:
                    logger.warning(
                        "Rate limit exceeded for %s (%d requests in %ds)",
                        identifier, len(recent_requests), window_seconds,
                    )
                    raise HTTPException(
                        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                        detail=f"Rate limit exceeded: {max_requests} requests per {window_seconds} seconds. Please try again later."
                    )
                _rate_limit_store[identifier] = recent_requests + [now]

            return func(*args, **kwargs)

        return wrapper
    return decorator
