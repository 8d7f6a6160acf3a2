"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address.

Limits in use:
  POST /api/dreams            10/minute
  POST /api/pyjama-parties     5/minute
  POST /api/analytics/events  100/minute
  POST /api/map/export        10/minute

Usage in routes:
    @router.post("/some-endpoint")
    @limiter.limit("10/minute")
    async def my_endpoint(request: Request, payload: MyRequest):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

DREAM_SUBMIT_LIMIT = "10/minute"
SIGNUP_LIMIT = "5/minute"
ANALYTICS_LIMIT = "100/minute"
EXPORT_LIMIT = "10/minute"

limiter = Limiter(key_func=get_remote_address)
