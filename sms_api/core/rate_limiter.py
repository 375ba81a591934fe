# sms_api/core/rate_limiter.py
from fastapi import Request
from typing import Dict
import time

from .config import settings
from .exceptions import SchoolAPIException


class RateLimiter:
    def __init__(self):
        self.requests: Dict[str, list] = {}

    async def check_rate_limit(self, request: Request, max_requests: int = 60, window: int = 60, scope: str = "api"):
        """Check rate limit for endpoint"""
        client_ip = request.client.host if request.client else "unknown"
        endpoint = str(request.url.path)
        key = f"{scope}:{client_ip}:{endpoint}"

        now = time.time()

        # Clean old requests
        if key in self.requests:
            self.requests[key] = [req_time for req_time in self.requests[key] if now - req_time < window]
        else:
            self.requests[key] = []

        if len(self.requests[key]) >= max_requests:
            raise SchoolAPIException(
                status_code=429,
                detail="Too many requests from this IP, please try again later"
            )

        self.requests[key].append(now)

    def reset(self):
        self.requests.clear()


rate_limiter = RateLimiter()


async def api_rate_limit(request: Request):
    """Router-level dependency for the general API limit"""
    await rate_limiter.check_rate_limit(
        request,
        max_requests=settings.rate_limit_requests,
        window=settings.rate_limit_window_seconds,
    )


async def auth_rate_limit(request: Request):
    await rate_limiter.check_rate_limit(
        request,
        max_requests=settings.auth_rate_limit_requests,
        window=settings.auth_rate_limit_window_seconds,
        scope="auth",
    )
