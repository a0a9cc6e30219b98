"""Batch coordination: paces page checks through the concurrency limiter."""

import asyncio
import logging
from typing import Callable, List, Optional

from a11y_audit.config import AuditConfig
from a11y_audit.infrastructure.cancellation import AuditCancelled, CancellationToken
from a11y_audit.infrastructure.concurrency_limiter import ConcurrencyLimiter
from a11y_audit.job_runner import JobRunner
from a11y_audit.models import Outcome

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Outcome, int, int], None]


def partition(urls: List[str], size: int) -> List[List[str]]:
    """Split ``urls`` into consecutive batches of at most ``size`` items."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [urls[i:i + size] for i in range(0, len(urls), size)]


def log_progress(outcome: Outcome, index: int, total: int) -> None:
    """Default progress reporter: one log line per finished URL."""
    retry_note = f" ({outcome.attempts} attempts)" if outcome.was_retried else ""
    prefix = f"[{index}/{total}] {outcome.url}"

    if not outcome.is_success:
        logger.error(f"✗ {prefix} - Check failed{retry_note}")
    elif not outcome.issues:
        logger.info(f"✓ {prefix} - No issues found{retry_note}")
    else:
        logger.warning(f"⚠ {prefix} - {len(outcome.issues)} issues found{retry_note}")


class BatchCoordinator:
    """Runs every URL through the limiter, batch by batch.

    Throughput is bounded three ways:
    - the limiter caps simultaneous checks
    - each check holds its slot for ``request_delay`` after finishing
    - consecutive batches are separated by ``config.batch_delay``
    """

    def __init__(
        self,
        runner: JobRunner,
        limiter: ConcurrencyLimiter,
        config: AuditConfig,
        token: Optional[CancellationToken] = None,
        on_outcome: Optional[ProgressCallback] = log_progress,
    ):
        self.runner = runner
        self.limiter = limiter
        self.config = config
        self.token = token or CancellationToken()
        self.on_outcome = on_outcome
        self.batch_sizes: List[int] = []
        self._completed = 0

    async def run(self, urls: List[str]) -> List[Outcome]:
        """Check every URL.

        Args:
            urls: Ordered unique URLs

        Returns:
            Outcomes in completion order, batch by batch
        """
        batches = partition(urls, self.config.batch_size)
        total = len(urls)
        outcomes: List[Outcome] = []
        self.batch_sizes = []
        self._completed = 0

        for number, batch in enumerate(batches, start=1):
            self.token.raise_if_cancelled()

            start = (number - 1) * self.config.batch_size
            logger.info(
                f"📦 Processing batch {number}/{len(batches)} "
                f"(URLs {start + 1}-{start + len(batch)})..."
            )

            outcomes.extend(await self._run_batch(batch, total))
            self.batch_sizes.append(len(batch))

            if number < len(batches) and self.config.batch_delay > 0:
                logger.info(f"⏳ Waiting {self.config.batch_delay:.1f}s before next batch...")
                await self.token.sleep(self.config.batch_delay)

        return outcomes

    async def _run_batch(self, batch: List[str], total: int) -> List[Outcome]:
        """Admit a whole batch and wait for all of it."""
        finished: List[Outcome] = []

        futures = [
            self.limiter.admit(lambda url=url: self._run_one(url, total, finished))
            for url in batch
        ]
        await asyncio.gather(*futures)

        return finished

    async def _run_one(self, url: str, total: int, finished: List[Outcome]) -> Outcome:
        try:
            outcome = await self.runner.run(url)
        except AuditCancelled:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error checking {url}")
            outcome = Outcome.failure(
                url=url,
                error=str(e) or type(e).__name__,
                attempts=1,
                retryable=False,
            )

        finished.append(outcome)
        self._completed += 1
        if self.on_outcome:
            self.on_outcome(outcome, self._completed, total)

        # Pace the next request before releasing the slot
        await self.token.sleep(self.config.request_delay)
        return outcome
