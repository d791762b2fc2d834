"""
Store connector: open the backing graph store with bounded, cancellable retry.

The store may come up after the server (container start ordering), so the
initial connect retries with exponential backoff. Only ``StoreUnavailableError``
is retried; a schema bootstrap failure is fatal on the first occurrence.

Delay before attempt *n+1* is ``min(initial_delay * 2**(n-1), max_delay)``,
i.e. 1s, 2s, 4s, 8s, 10s, 10s... with the defaults.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from tenacity import AsyncRetrying, RetryCallState, RetryError, retry_if_exception_type, stop_after_attempt

from ..config import RetrySettings, Settings, settings
from ..errors import ConnectionCancelledError, StoreConnectionError, StoreUnavailableError
from .base import GraphStore
from .factory import create_store

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Connect retry policy."""

    max_attempts: int = 30
    initial_delay: float = 1.0
    max_delay: float = 10.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay <= 0 or self.max_delay <= 0:
            raise ValueError("delays must be positive")

    @classmethod
    def from_settings(cls, config: RetrySettings) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            initial_delay=config.initial_delay,
            max_delay=config.max_delay,
        )


def backoff_delay(attempt: int, initial_delay: float, max_delay: float) -> float:
    """Delay after failed attempt ``attempt`` (1-based): doubling, capped."""
    if attempt < 1:
        return 0.0
    # Cap the exponent so large attempt numbers don't overflow
    return min(initial_delay * 2 ** min(attempt - 1, 62), max_delay)


def cancellable_sleep(cancel_event: asyncio.Event | None) -> Sleep:
    """Sleep that returns early with ConnectionCancelledError once ``cancel_event`` is set."""

    async def _sleep(delay: float) -> None:
        if cancel_event is None:
            await asyncio.sleep(delay)
            return
        if cancel_event.is_set():
            raise ConnectionCancelledError("context cancelled")
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except TimeoutError:
            return
        raise ConnectionCancelledError("context cancelled")

    return _sleep


async def connect(config: Settings | None = None) -> GraphStore:
    """
    Single connection attempt: build the configured store, ping it and
    apply schema.

    Raises:
        StoreUnavailableError: store unreachable
        SchemaBootstrapError: schema could not be applied
    """
    store = create_store(config or settings)
    await store.initialize()
    return store


async def connect_with_retry(
    config: Settings | None = None,
    policy: RetryPolicy | None = None,
    cancel_event: asyncio.Event | None = None,
    sleep: Sleep | None = None,
    connect_fn: Callable[[], Awaitable[GraphStore]] | None = None,
) -> GraphStore:
    """
    Connect to the backing store, retrying while it is unavailable.

    Args:
        config: Settings to build the store from (defaults to module settings)
        policy: Retry policy (defaults to ``config.retry``)
        cancel_event: When set, a pending wait aborts with ConnectionCancelledError
        sleep: Replacement for the cancellable wait (tests)
        connect_fn: Replacement for a single connect attempt (tests)

    Returns:
        Initialized GraphStore

    Raises:
        StoreConnectionError: every attempt failed
        SchemaBootstrapError: schema bootstrap failed (not retried)
        ConnectionCancelledError: cancel_event fired while waiting
    """
    config = config or settings
    policy = policy or RetryPolicy.from_settings(config.retry)
    attempt_once = connect_fn or (lambda: connect(config))

    def _wait(retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number, policy.initial_delay, policy.max_delay)

    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Store connection attempt {retry_state.attempt_number}/{policy.max_attempts} failed: {error}; "
            f"retrying in {delay:.1f}s"
        )

    retrying = AsyncRetrying(
        retry=retry_if_exception_type(StoreUnavailableError),
        stop=stop_after_attempt(policy.max_attempts),
        wait=_wait,
        sleep=sleep or cancellable_sleep(cancel_event),
        before_sleep=_log_retry,
    )

    try:
        store = await retrying(attempt_once)
    except RetryError as e:
        last_error = e.last_attempt.exception()
        attempts = e.last_attempt.attempt_number
        logger.error(f"Giving up on store connection after {attempts} attempts: {last_error}")
        raise StoreConnectionError(
            f"Store unavailable after {attempts} attempts: {last_error}",
            attempts=attempts,
            last_error=last_error,
        ) from last_error

    logger.info(f"Connected to {store.backend_name} store")
    return store
