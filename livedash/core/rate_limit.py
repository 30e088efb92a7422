"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address. Only the routes that forward to
the upstream stats server opt in, so one busy dashboard cannot hammer it.

Usage in routes:
    from fastapi import Request
    from livedash.core.rate_limit import limiter

    @router.get("/some-proxied-endpoint")
    @limiter.limit(settings.proxy_rate_limit)
    async def my_endpoint(request: Request):
        ...

Wired into the app in main.py:
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
