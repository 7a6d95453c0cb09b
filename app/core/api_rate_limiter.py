"""
Endpoint-level rate limits.

Per-IP limits guard the public endpoints (technician signup, job responses,
unsubscribe); per-organization limits guard the OpenAI-backed ones.
"""

import logging
from fastapi import Request
from app.core.rate_limiter import rate_limiter

logger = logging.getLogger(__name__)


def check_ip_rate_limit(ip_address: str, endpoint: str = "api") -> None:
    """
    Check rate limit for a specific IP address.

    Limit: 300 requests per minute per IP.

    Raises:
        HTTPException: 429 if rate limit exceeded
    """
    rate_limiter.check_rate_limit(
        key=f"ip:{ip_address}:{endpoint}",
        max_requests=300,
        window_seconds=60,
        error_message="IP rate limit exceeded. Too many requests from your IP address"
    )


def check_signup_rate_limit(ip_address: str) -> None:
    """
    Technician self-signup.

    Limit: 5 signups per hour per IP.
    """
    rate_limiter.check_rate_limit(
        key=f"signup:{ip_address}",
        max_requests=5,
        window_seconds=3600,
        error_message="Too many signups from your IP address"
    )


def check_public_response_rate_limit(ip_address: str) -> None:
    """
    Recipient responses to a work order (the link in the dispatch email).

    Limit: 30 per 10 minutes per IP.
    """
    rate_limiter.check_rate_limit(
        key=f"respond:{ip_address}",
        max_requests=30,
        window_seconds=600,
        error_message="Too many responses submitted"
    )


def check_openai_rate_limit(org_id: str) -> None:
    """
    Check rate limit for OpenAI API calls (work-order parsing, lead selection).

    Limit: 60 calls per minute per organization.
    """
    rate_limiter.check_rate_limit(
        key=f"openai:{org_id}",
        max_requests=60,
        window_seconds=60,
        error_message="AI processing rate limit exceeded"
    )


def get_client_ip(request: Request) -> str:
    """
    Extract the client's IP address from the request.

    Handles X-Forwarded-For header for proxied requests.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first (client IP)
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"
