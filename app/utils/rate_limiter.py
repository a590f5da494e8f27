"""
Rate limiting middleware for API endpoints
"""
import time
from collections import defaultdict, deque
from fastapi import Request, HTTPException
from typing import Deque, Dict
import logging

from app.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding-window rate limiter keyed by user or client address

    Windows are per process; a multi-worker deployment gets one budget
    per worker.
    """

    WINDOWS = (("minute", 60), ("hour", 3600))

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.limits = {"minute": requests_per_minute, "hour": requests_per_hour}

        # {client_id: timestamps of accepted requests within the last hour}
        self.history: Dict[str, Deque[float]] = defaultdict(deque)

    def _get_client_id(self, request: Request) -> str:
        """Extract client identifier from request"""
        if hasattr(request.state, "user_id"):
            return str(request.state.user_id)
        return request.client.host if request.client else "unknown"

    def reset(self) -> None:
        self.history.clear()

    def _cleanup_old_entries(self, now: float) -> None:
        """Drop timestamps older than the longest window and forget idle clients"""
        cutoff = now - 3600
        for client_id in list(self.history):
            timestamps = self.history[client_id]
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()
            if not timestamps:
                del self.history[client_id]

    async def check_rate_limit(self, request: Request) -> None:
        """
        Check if request exceeds rate limits

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        client_id = self._get_client_id(request)
        now = time.time()
        self._cleanup_old_entries(now)
        timestamps = self.history[client_id]

        for name, seconds in self.WINDOWS:
            count = sum(1 for ts in timestamps if ts > now - seconds)
            limit = self.limits[name]
            if count >= limit:
                logger.warning(f"Rate limit exceeded ({name}): {client_id}")
                raise HTTPException(
                    status_code=429,
                    detail={
                        "error": "rate_limit_exceeded",
                        "message": f"Too many requests. Limit: {limit} requests per {name}",
                        "retry_after": seconds
                    }
                )

        timestamps.append(now)
        logger.debug(f"Rate limit check passed: {client_id} ({len(timestamps)} in the last hour)")


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
