"""Pydantic schemas for rate limited demo endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from ratelimiter.adapters.rate_limit.base import RateLimitResult


class RateLimitStatus(BaseModel):
    """Outcome of the rate limit check that admitted the request."""

    allowed: bool = Field(..., description="Always true on a successful response.")
    current: int = Field(..., description="Requests counted against the caller, this one included.")
    limit: int = Field(..., description="Maximum requests per window (bucket capacity).")
    remaining: int = Field(..., description="Requests left before rejection.")
    reset_at: int = Field(..., description="UNIX epoch seconds when the budget recovers.")

    @classmethod
    def from_result(cls, result: RateLimitResult) -> "RateLimitStatus":
        return cls(
            allowed=result.allowed,
            current=result.current,
            limit=result.limit,
            remaining=result.remaining,
            reset_at=result.reset_at,
        )


class LimitedResourceResponse(BaseModel):
    """Response body of a rate limited demo endpoint."""

    message: str = Field(..., description="Human-readable confirmation.")
    algorithm: str = Field(..., description="Algorithm guarding the endpoint.")
    window_seconds: int = Field(..., description="Window size of the guarding limiter.")
    rate_limit: RateLimitStatus | None = Field(
        default=None,
        description="Check result; null when rate limiting is disabled or the store failed open.",
    )
