"""Retry utilities with exponential backoff."""

import logging

import httpx
import structlog
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.stdlib.get_logger(__name__)

# Network-level failures only; HTTP status errors are answers, not flakes
TRANSIENT_HTTP_ERRORS = (httpx.TransportError,)


def http_retry(
    max_attempts: int = 2,
    min_wait: float = 0.5,
    max_wait: float = 2.0,
    exceptions: tuple = TRANSIENT_HTTP_ERRORS,
):
    """Retry decorator for collaborator HTTP calls.

    Waits stay short: every tool call runs under the assistant's per-tool
    timeout.

    Args:
        max_attempts: Max attempts including the first
        min_wait: Min wait between retries (seconds)
        max_wait: Max wait between retries (seconds)
        exceptions: Exception types to retry on
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=0.5, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def retry_from_config(retry_config):
    """Build http_retry from a RetryConfig model (or None for defaults)."""
    if retry_config is None:
        return http_retry()
    return http_retry(
        max_attempts=retry_config.max_attempts,
        min_wait=retry_config.min_wait,
        max_wait=retry_config.max_wait,
    )
