import logging
import time

from sqlalchemy.exc import OperationalError

from nivalus.core import scheduler
from nivalus.core.scheduler import sweep_attempt_counters_job
from nivalus.services.rate_limit import AttemptLimiter, login_limiter, pin_limiter


def test_key_is_blocked_after_max_failures():
    limiter = AttemptLimiter(max_attempts=3, window_seconds=60)

    for _ in range(3):
        assert limiter.check("10.0.0.1")
        limiter.record_failure("10.0.0.1")

    assert not limiter.check("10.0.0.1")
    assert limiter.check("10.0.0.2")


def test_success_clears_the_key():
    limiter = AttemptLimiter(max_attempts=2, window_seconds=60)
    limiter.record_failure("k")
    limiter.record_failure("k")

    limiter.record_success("k")

    assert limiter.attempts("k") == 0
    assert limiter.check("k")


def test_entries_expire_after_window(monkeypatch):
    limiter = AttemptLimiter(max_attempts=1, window_seconds=60)
    limiter.record_failure("k")
    assert not limiter.check("k")

    real_time = time.time()
    monkeypatch.setattr("nivalus.services.rate_limit.time.time", lambda: real_time + 61)

    assert limiter.check("k")


def test_sweep_clears_everything():
    limiter = AttemptLimiter(max_attempts=1, window_seconds=60)
    limiter.record_failure("a")
    limiter.record_failure("b")

    assert limiter.sweep() == 2
    assert limiter.check("a") and limiter.check("b")


def test_scheduler_sweep_job_resets_shared_limiters():
    login_limiter.record_failure("127.0.0.1")
    pin_limiter.record_failure(1)

    sweep_attempt_counters_job()

    assert login_limiter.attempts("127.0.0.1") == 0
    assert pin_limiter.attempts(1) == 0


def test_keepalive_job_logs_database_errors(monkeypatch, caplog):
    closed = []

    class FakeSession:
        def close(self):
            closed.append(True)

    def failing_ping(db):
        raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

    monkeypatch.setattr(scheduler, "SessionLocal", FakeSession)
    monkeypatch.setattr(scheduler, "ping", failing_ping)

    with caplog.at_level(logging.ERROR, logger="nivalus.core.scheduler"):
        scheduler.database_keepalive_job()

    assert closed == [True]
    assert "Keep-alive query failed" in caplog.text


def test_keepalive_job_pings_and_closes(monkeypatch):
    calls = []

    class FakeSession:
        def close(self):
            calls.append("close")

    monkeypatch.setattr(scheduler, "SessionLocal", FakeSession)
    monkeypatch.setattr(scheduler, "ping", lambda db: calls.append("ping"))

    scheduler.database_keepalive_job()

    assert calls == ["ping", "close"]
