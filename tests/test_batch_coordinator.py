"""Tests for batch coordination."""

import asyncio

import pytest

from a11y_audit.batch_coordinator import BatchCoordinator, partition
from a11y_audit.checker import CheckResult
from a11y_audit.config import AuditConfig
from a11y_audit.infrastructure import AuditCancelled, CancellationToken, ConcurrencyLimiter
from a11y_audit.job_runner import JobRunner
from a11y_audit.models import OutcomeStatus

URLS = [f"https://example.com/page-{n}" for n in range(7)]


def fast_config(**overrides) -> AuditConfig:
    values = dict(request_delay=0.0, retry_delay=0.0, retry_jitter=0.0, batch_size=3, max_concurrent=2)
    values.update(overrides)
    return AuditConfig(**values)


class EventChecker:
    """Checker that records start/end events and takes a little time."""

    def __init__(self, delay: float = 0.01, fail_urls=()):
        self.delay = delay
        self.fail_urls = set(fail_urls)
        self.events = []

    async def check(self, url):
        self.events.append(("start", url))
        await asyncio.sleep(self.delay)
        self.events.append(("end", url))
        if url in self.fail_urls:
            raise Exception("invalid selector")
        return CheckResult(issues=[], document_title=url)

    async def close(self):
        pass


class RecordingToken(CancellationToken):
    """Token that records pacing waits instead of sleeping."""

    def __init__(self):
        super().__init__()
        self.sleeps = []

    async def sleep(self, seconds):
        self.raise_if_cancelled()
        self.sleeps.append(seconds)


def make_coordinator(checker, config, token=None, on_outcome=None):
    token = token or CancellationToken()
    limiter = ConcurrencyLimiter(config.max_concurrent)
    runner = JobRunner(checker, config, token=token)
    coordinator = BatchCoordinator(runner, limiter, config, token=token, on_outcome=on_outcome)
    return coordinator, limiter


class TestPartition:
    """Tests for partition()."""

    def test_seven_into_threes(self):
        """Test batch sizes 3, 3, 1."""
        batches = partition(URLS, 3)
        assert [len(b) for b in batches] == [3, 3, 1]
        assert [url for batch in batches for url in batch] == URLS

    def test_empty(self):
        """Test an empty list."""
        assert partition([], 3) == []

    def test_invalid_size(self):
        """Test that batch size must be positive."""
        with pytest.raises(ValueError):
            partition(URLS, 0)


class TestBatchCoordinator:
    """Tests for BatchCoordinator.run."""

    @pytest.mark.asyncio
    async def test_every_url_exactly_once(self):
        """Test that outcomes cover the input URLs exactly once."""
        coordinator, _ = make_coordinator(EventChecker(), fast_config())

        outcomes = await coordinator.run(URLS)

        assert sorted(o.url for o in outcomes) == sorted(URLS)
        assert len(outcomes) == len(URLS)
        assert coordinator.batch_sizes == [3, 3, 1]

    @pytest.mark.asyncio
    async def test_batches_complete_before_next_starts(self):
        """Test that no check of batch k+1 starts before batch k finished."""
        checker = EventChecker()
        coordinator, _ = make_coordinator(checker, fast_config())

        await coordinator.run(URLS)

        batches = partition(URLS, 3)
        for current, following in zip(batches, batches[1:]):
            last_end = max(checker.events.index(("end", url)) for url in current)
            first_start = min(checker.events.index(("start", url)) for url in following)
            assert last_end < first_start

    @pytest.mark.asyncio
    async def test_limiter_bound_respected(self):
        """Test that no more than max_concurrent checks overlap."""
        checker = EventChecker()
        coordinator, limiter = make_coordinator(checker, fast_config(max_concurrent=2))

        await coordinator.run(URLS)

        running = 0
        peak = 0
        for kind, _ in checker.events:
            running += 1 if kind == "start" else -1
            peak = max(peak, running)
        assert peak <= 2
        assert limiter.peak_running <= 2

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_siblings(self):
        """Test that a failed check still yields outcomes for the rest."""
        checker = EventChecker(fail_urls={URLS[1]})
        coordinator, _ = make_coordinator(checker, fast_config())

        outcomes = await coordinator.run(URLS)
        by_url = {o.url: o for o in outcomes}

        assert by_url[URLS[1]].status == OutcomeStatus.ERROR
        assert all(by_url[url].is_success for url in URLS if url != URLS[1])

    @pytest.mark.asyncio
    async def test_unexpected_runner_error_becomes_outcome(self):
        """Test that a crash outside the retry loop is still recorded."""

        class BrokenRunner:
            async def run(self, url):
                raise RuntimeError("unexpected")

        config = fast_config()
        coordinator = BatchCoordinator(BrokenRunner(), ConcurrencyLimiter(1), config, on_outcome=None)

        outcomes = await coordinator.run(URLS[:2])

        assert [o.status for o in outcomes] == [OutcomeStatus.ERROR, OutcomeStatus.ERROR]
        assert outcomes[0].error == "unexpected"
        assert outcomes[0].attempts == 1

    @pytest.mark.asyncio
    async def test_progress_callback(self):
        """Test that progress is reported once per URL with a running index."""
        calls = []
        coordinator, _ = make_coordinator(
            EventChecker(),
            fast_config(),
            on_outcome=lambda outcome, index, total: calls.append((index, total)),
        )

        await coordinator.run(URLS)

        assert [index for index, _ in calls] == list(range(1, 8))
        assert {total for _, total in calls} == {7}

    @pytest.mark.asyncio
    async def test_cancellation_stops_run(self):
        """Test that cancelling the token aborts between checks."""
        token = CancellationToken()

        class CancellingChecker(EventChecker):
            async def check(self, url):
                token.cancel("SIGINT")
                return await super().check(url)

        coordinator, limiter = make_coordinator(CancellingChecker(), fast_config(), token=token)

        with pytest.raises(AuditCancelled):
            await coordinator.run(URLS)
        limiter.shutdown()


class TestPacing:
    """Tests for per-request and between-batch delays."""

    @pytest.mark.asyncio
    async def test_request_and_batch_delays(self):
        """Test a delay after every check and a longer one between batches only."""
        token = RecordingToken()
        config = fast_config(request_delay=1.0, batch_delay_multiplier=2.0)
        coordinator, _ = make_coordinator(EventChecker(delay=0), config, token=token)

        await coordinator.run(URLS)

        assert config.batch_delay == 2.0
        assert token.sleeps == [1.0, 1.0, 1.0, 2.0, 1.0, 1.0, 1.0, 2.0, 1.0]

    @pytest.mark.asyncio
    async def test_no_pacing_when_disabled(self):
        """Test that a zero request delay also disables the batch delay."""
        token = RecordingToken()
        coordinator, _ = make_coordinator(EventChecker(delay=0), fast_config(), token=token)

        await coordinator.run(URLS)

        assert 2.0 not in token.sleeps
        assert set(token.sleeps) <= {0.0}
