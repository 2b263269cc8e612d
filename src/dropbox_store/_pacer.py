"""Pacer — adaptive delay and retry control for calls to a rate-limited service."""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

from tenacity import Retrying, retry_if_exception, stop_after_attempt

from dropbox_store._config import PacerConfig
from dropbox_store._errors import RestrictedContent, RetriesExhausted
from dropbox_store._transport import ApiError, ErrorReason

if TYPE_CHECKING:
    from tenacity import RetryCallState

T = TypeVar("T")

log = logging.getLogger(__name__)

# Throttling signatures the service reports in error summaries.
_THROTTLE_SIGNATURES = ("too_many_write_operations", "too_many_requests")


def should_retry(exc: BaseException) -> bool:
    """Return ``True`` if ``exc`` is a transient failure worth retrying."""
    if not isinstance(exc, ApiError):
        return False
    if exc.reason in (ErrorReason.RATE_LIMITED, ErrorReason.TRANSIENT):
        return True
    if exc.reason is ErrorReason.RESTRICTED_CONTENT:
        return False
    return any(signature in exc.summary for signature in _THROTTLE_SIGNATURES)


class Pacer:
    """Spaces out calls to the service and retries the ones that fail transiently.

    The delay between calls starts at ``min_sleep``. Each retryable failure
    doubles it, up to ``max_sleep``; each other outcome decays it back towards
    ``min_sleep`` by a factor of ``1 - 2**-decay_constant``. The very first call
    is never delayed. One instance is shared by every call a store makes, and
    is safe to use from several threads.

    :param config: Pacing parameters.
    :param sleep: Blocking sleep function (injectable for tests).
    :param clock: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(
        self,
        config: Optional[PacerConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or PacerConfig()
        self._config.validate()
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._sleep_time = self._config.min_sleep
        self._next_call: Optional[float] = None

    def __repr__(self) -> str:
        return f"Pacer(sleep_time={self.sleep_time!r}, config={self._config!r})"

    @property
    def sleep_time(self) -> float:
        """Current delay bound in seconds."""
        with self._lock:
            return self._sleep_time

    @property
    def config(self) -> PacerConfig:
        return self._config

    # region: bookkeeping

    def _begin_call(self) -> None:
        with self._lock:
            now = self._clock()
            start = now if self._next_call is None else max(now, self._next_call)
            self._next_call = start + self._sleep_time
        if start > now:
            self._sleep(start - now)

    def _end_call(self, *, retry: bool, retry_after: Optional[float] = None) -> None:
        cfg = self._config
        with self._lock:
            if retry:
                self._sleep_time = min(self._sleep_time * 2, cfg.max_sleep)
            else:
                factor = (1 << cfg.decay_constant) - 1
                self._sleep_time = max(self._sleep_time * factor / (1 << cfg.decay_constant), cfg.min_sleep)
            earliest = self._clock() + self._sleep_time
            if retry_after is not None:
                earliest = max(earliest, self._clock() + retry_after)
            if self._next_call is None or earliest > self._next_call:
                self._next_call = earliest

    def _attempt(self, fn: Callable[..., T], *args: object, **kwargs: object) -> T:
        self._begin_call()
        try:
            result = fn(*args, **kwargs)
        except ApiError as exc:
            if exc.reason is ErrorReason.RESTRICTED_CONTENT:
                self._end_call(retry=False)
                raise RestrictedContent(f"Content is restricted: {exc.summary}") from exc
            self._end_call(retry=should_retry(exc), retry_after=exc.retry_after)
            raise
        except Exception:
            self._end_call(retry=False)
            raise
        self._end_call(retry=False)
        return result

    # endregion

    def _log_retry(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome is not None else None
        log.debug(
            "Retrying %s after %r (attempt %d/%d), pacing delay now %.3fs",
            getattr(state.args[0], "__name__", state.args[0]),
            exc,
            state.attempt_number,
            self._config.retries,
            self.sleep_time,
        )

    def call(self, fn: Callable[..., T], *args: object, **kwargs: object) -> T:
        """Call ``fn`` after the pacing delay, retrying transient failures.

        :raises RestrictedContent: If the service refused the content. Never retried.
        :raises RetriesExhausted: If every attempt failed transiently.
        :raises ApiError: For any other failure of ``fn``.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self._config.retries),
            retry=retry_if_exception(should_retry),
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            return retrying(self._attempt, fn, *args, **kwargs)
        except ApiError as exc:
            if should_retry(exc):
                raise RetriesExhausted(
                    f"Gave up after {self._config.retries} attempts: {exc.summary}",
                ) from exc
            raise

    def call_no_retry(self, fn: Callable[..., T], *args: object, **kwargs: object) -> T:
        """Call ``fn`` after the pacing delay, without ever re-issuing it.

        Used where repeating a partially applied call would corrupt state.
        Delay bookkeeping is the same as for :meth:`call`.
        """
        return self._attempt(fn, *args, **kwargs)
