"""Decision functions for the request pipeline.

Retry and token-repair decisions live here, apart from the network code,
so the policies can be exercised on their own.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

AUTH_PATH_MARKERS = ("/auth/", "/login", "/register")
REFRESH_EXEMPT_MARKERS = ("/auth/login", "/auth/register", "/auth/refresh")

TRANSIENT_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budgets (total attempts, not extra retries) and backoff base in seconds."""
    auth_max_attempts: int = 3
    default_max_attempts: int = 2
    base_delay: float = 1.0

    @staticmethod
    def from_settings(settings) -> "RetryPolicy":
        return RetryPolicy(
            auth_max_attempts=max(1, settings.auth_retry_attempts),
            default_max_attempts=max(1, settings.default_retry_attempts),
            base_delay=settings.retry_base_delay,
        )


def is_auth_endpoint(path: str) -> bool:
    return any(marker in path for marker in AUTH_PATH_MARKERS)


def is_refresh_exempt(path: str) -> bool:
    """Login, register and refresh never trigger a token refresh themselves."""
    return any(marker in path for marker in REFRESH_EXEMPT_MARKERS)


def max_attempts_for(path: str, policy: RetryPolicy) -> int:
    if is_auth_endpoint(path):
        return policy.auth_max_attempts
    return policy.default_max_attempts


def backoff_delay(attempt: int, base: float) -> float:
    # attempt is zero-based: 1s, 2s, 4s... for base=1
    return base * (2 ** attempt)


def is_transient_error(exc: BaseException) -> bool:
    return isinstance(exc, TRANSIENT_ERRORS)


def should_retry(exc: BaseException, attempt: int, max_attempts: int) -> bool:
    return is_transient_error(exc) and attempt < max_attempts - 1


def should_refresh(status_code: Optional[int], path: str, replayed: bool) -> bool:
    return status_code == 401 and not replayed and not is_refresh_exempt(path)
