"""Tests for the Pacer's delay bookkeeping and retry decisions."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable

import pytest

from dropbox_store._config import PacerConfig
from dropbox_store._errors import RestrictedContent, RetriesExhausted, is_no_retry
from dropbox_store._pacer import Pacer, should_retry
from dropbox_store._transport import ApiError, ErrorReason

if TYPE_CHECKING:
    from tests.conftest import FakeClock


def _flaky(failures: list[ApiError], result: str = "ok") -> tuple[Callable[[], str], list[int]]:
    """A callable raising each of ``failures`` in turn, then returning ``result``."""
    attempts = [0]

    def fn() -> str:
        attempts[0] += 1
        if failures:
            raise failures.pop(0)
        return result

    return fn, attempts


def _rate_limited(n: int) -> list[ApiError]:
    return [ApiError(ErrorReason.RATE_LIMITED, "too_many_requests/") for _ in range(n)]


class TestShouldRetry:
    @pytest.mark.parametrize("reason", [ErrorReason.RATE_LIMITED, ErrorReason.TRANSIENT])
    def test_transient_reasons(self, reason: ErrorReason) -> None:
        assert should_retry(ApiError(reason))

    @pytest.mark.parametrize("reason", [ErrorReason.NOT_FOUND, ErrorReason.CONFLICT, ErrorReason.OTHER])
    def test_permanent_reasons(self, reason: ErrorReason) -> None:
        assert not should_retry(ApiError(reason))

    @pytest.mark.parametrize(
        "summary", ["too_many_write_operations/..", "upload failed: too_many_requests", "x too_many_requests y"]
    )
    def test_throttle_signature_in_summary(self, summary: str) -> None:
        assert should_retry(ApiError(ErrorReason.OTHER, summary))

    def test_restricted_content_never_retried(self) -> None:
        assert not should_retry(ApiError(ErrorReason.RESTRICTED_CONTENT, "too_many_requests"))

    def test_non_api_errors(self) -> None:
        assert not should_retry(ValueError("too_many_requests"))


class TestPacing:
    def test_first_call_not_delayed(self, pacer: Pacer, clock: FakeClock) -> None:
        assert pacer.call(lambda: 42) == 42
        assert clock.sleeps == []

    def test_calls_are_spaced_by_sleep_time(self, pacer: Pacer, clock: FakeClock) -> None:
        for _ in range(3):
            pacer.call(lambda: None)
        assert clock.sleeps == [pytest.approx(0.01), pytest.approx(0.01)]

    def test_starts_at_min_sleep(self, pacer: Pacer) -> None:
        assert pacer.sleep_time == pytest.approx(0.01)

    def test_delay_grows_on_retryable_failure(self, pacer: Pacer) -> None:
        fn, attempts = _flaky(_rate_limited(2))
        assert pacer.call(fn) == "ok"
        assert attempts[0] == 3
        # 0.01 -> 0.02 -> 0.04, then one success decays by 3/4
        assert pacer.sleep_time == pytest.approx(0.03)

    def test_delay_decays_on_success(self, pacer: Pacer) -> None:
        fn, _ = _flaky(_rate_limited(5))
        pacer.call(fn)
        before = pacer.sleep_time
        pacer.call(lambda: None)
        after = pacer.sleep_time
        assert after < before
        assert after == pytest.approx(before * 3 / 4)

    def test_delay_never_below_min(self, pacer: Pacer) -> None:
        for _ in range(10):
            pacer.call(lambda: None)
        assert pacer.sleep_time == pytest.approx(0.01)

    def test_delay_capped_at_max(self, clock: FakeClock) -> None:
        pacer = Pacer(PacerConfig(retries=20), sleep=clock.sleep, clock=clock)
        fn, attempts = _flaky(_rate_limited(20))
        with pytest.raises(RetriesExhausted) as exc_info:
            pacer.call(fn)
        assert attempts[0] == 20
        assert pacer.sleep_time == pytest.approx(2.0)
        assert max(clock.sleeps) <= 2.0 + 1e-9
        assert isinstance(exc_info.value.__cause__, ApiError)

    def test_retry_after_pushes_next_call(self, pacer: Pacer, clock: FakeClock) -> None:
        fn, attempts = _flaky([ApiError(ErrorReason.RATE_LIMITED, retry_after=5.0)])
        assert pacer.call(fn) == "ok"
        assert attempts[0] == 2
        assert clock.sleeps == [pytest.approx(5.0)]
        assert pacer.sleep_time <= pacer.config.max_sleep


class TestRetryDecisions:
    def test_restricted_content_raised_once(self, pacer: Pacer) -> None:
        fn, attempts = _flaky([ApiError(ErrorReason.RESTRICTED_CONTENT, "path/restricted_content/")])
        with pytest.raises(RestrictedContent) as exc_info:
            pacer.call(fn)
        assert attempts[0] == 1
        assert is_no_retry(exc_info.value)

    def test_permanent_error_raised_once(self, pacer: Pacer) -> None:
        fn, attempts = _flaky([ApiError(ErrorReason.NOT_FOUND, "path/not_found/")])
        with pytest.raises(ApiError) as exc_info:
            pacer.call(fn)
        assert exc_info.value.reason is ErrorReason.NOT_FOUND
        assert attempts[0] == 1

    def test_throttle_signature_retried(self, pacer: Pacer) -> None:
        fn, attempts = _flaky([ApiError(ErrorReason.OTHER, "too_many_write_operations/")])
        assert pacer.call(fn) == "ok"
        assert attempts[0] == 2

    def test_call_no_retry_makes_one_attempt(self, pacer: Pacer) -> None:
        fn, attempts = _flaky(_rate_limited(1))
        with pytest.raises(ApiError):
            pacer.call_no_retry(fn)
        assert attempts[0] == 1
        assert pacer.sleep_time == pytest.approx(0.02)

    def test_other_exceptions_propagate(self, pacer: Pacer) -> None:
        def boom() -> None:
            raise KeyError("x")

        with pytest.raises(KeyError):
            pacer.call(boom)

    def test_arguments_passed_through(self, pacer: Pacer) -> None:
        assert pacer.call(lambda a, *, b: a + b, 1, b=2) == 3


class TestConcurrency:
    def test_threads_share_one_schedule(self) -> None:
        cfg = PacerConfig(min_sleep=0.01, max_sleep=0.08)
        # The clock never moves, so every requested sleep is the absolute start of a slot.
        slots: list[float] = []
        pacer = Pacer(cfg, sleep=slots.append, clock=lambda: 0.0)
        failures = _rate_limited(8)
        failures_lock = threading.Lock()
        bounds: list[float] = []
        results: list[str] = []

        def fn() -> str:
            bounds.append(pacer.sleep_time)
            with failures_lock:
                if failures:
                    raise failures.pop()
            return "ok"

        def worker() -> None:
            results.append(pacer.call(fn))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results == ["ok"] * 16
        # 16 successes plus 8 retried failures; only the very first attempt is undelayed.
        assert len(slots) == 16 + 8 - 1
        ordered = sorted(slots)
        gaps = [b - a for a, b in zip([0.0, *ordered], ordered)]
        assert min(gaps) >= cfg.min_sleep - 1e-9
        assert all(cfg.min_sleep <= b <= cfg.max_sleep for b in [*bounds, pacer.sleep_time])
