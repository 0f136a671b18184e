"""Resilience utilities for external service calls.

- Circuit Breaker: Prevents cascading failures
- Retry Logic: Handles transient errors
"""

from gst.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from gst.resilience.retry import (
    RetryConfig,
    async_retry_with_backoff,
    retry_with_backoff,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "async_retry_with_backoff",
    "RetryConfig",
    "retry_with_backoff",
]
