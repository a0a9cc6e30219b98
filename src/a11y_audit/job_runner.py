"""Retry-managed execution of a single page check."""

import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from a11y_audit.checker import AccessibilityChecker
from a11y_audit.config import AuditConfig
from a11y_audit.error_classifier import ErrorClassifier
from a11y_audit.infrastructure.cancellation import AuditCancelled, CancellationToken
from a11y_audit.models import Outcome

logger = logging.getLogger(__name__)


class JobState(Enum):
    """Lifecycle of a page check job."""
    PENDING = "pending"
    RUNNING = "running"
    DONE_SUCCESS = "done-success"
    DONE_ERROR = "done-error"


@dataclass
class Job:
    """One pending or in-flight check of a URL."""
    url: str
    max_attempts: int
    attempt: int = 1
    state: JobState = JobState.PENDING
    last_delay: float = 0.0
    total_delay: float = 0.0

    @property
    def is_done(self) -> bool:
        return self.state in (JobState.DONE_SUCCESS, JobState.DONE_ERROR)

    @property
    def has_attempts_left(self) -> bool:
        return self.attempt < self.max_attempts


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff settings for page checks."""
    max_attempts: int
    initial_delay: float
    multiplier: float
    max_delay: float
    jitter_max: float

    @classmethod
    def from_config(cls, config: AuditConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_retries,
            initial_delay=config.retry_delay,
            multiplier=config.retry_multiplier,
            max_delay=config.max_retry_delay,
            jitter_max=config.retry_jitter,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Calculate the wait after a failed attempt.

        Args:
            attempt: Number of the attempt that just failed (1-based)

        Returns:
            initial_delay * multiplier ** (attempt - 1), capped at max_delay
        """
        exponent = max(attempt - 1, 0)
        try:
            delay = self.initial_delay * (self.multiplier ** exponent)
        except OverflowError:
            return self.max_delay
        return min(delay, self.max_delay)

    def jitter(self, rng: Optional[random.Random] = None) -> float:
        """Random addition in [0, jitter_max] to spread out concurrent retries."""
        if self.jitter_max <= 0:
            return 0.0
        return (rng or random).uniform(0, self.jitter_max)


class JobRunner:
    """Runs a page check with classified retries.

    ``run`` always returns an Outcome. The only exceptions it lets through
    are interruptions (AuditCancelled and asyncio.CancelledError).
    """

    def __init__(
        self,
        checker: AccessibilityChecker,
        config: AuditConfig,
        token: Optional[CancellationToken] = None,
        classifier: Optional[ErrorClassifier] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the runner.

        Args:
            checker: Accessibility checker invoked per attempt
            config: Audit configuration (retry settings)
            token: Cancellation token for backoff waits
            classifier: Error classifier (default patterns if None)
            rng: Random source for jitter
        """
        self.checker = checker
        self.policy = RetryPolicy.from_config(config)
        self.token = token or CancellationToken()
        self.classifier = classifier or ErrorClassifier()
        self._rng = rng or random.Random()

    async def run(self, url: str) -> Outcome:
        """Check a URL until it succeeds, fails permanently, or runs out of attempts.

        Args:
            url: Page to check

        Returns:
            Outcome with the number of attempts consumed
        """
        job = Job(url=url, max_attempts=self.policy.max_attempts)

        while True:
            self.token.raise_if_cancelled()
            job.state = JobState.RUNNING

            try:
                result = await self.checker.check(url)
            except AuditCancelled:
                raise
            except Exception as e:
                error_message = str(e) or type(e).__name__
                retryable = self.classifier.is_retryable(e)

                if retryable and job.has_attempts_left:
                    await self._wait_before_retry(job, error_message)
                    job.attempt += 1
                    continue

                job.state = JobState.DONE_ERROR
                logger.error(f"❌ Error checking {url} after {job.attempt} attempts: {error_message}")
                return Outcome.failure(
                    url=url,
                    error=error_message,
                    attempts=job.attempt,
                    retryable=retryable,
                )

            job.state = JobState.DONE_SUCCESS
            return Outcome.success(
                url=url,
                issues=result.issues,
                attempts=job.attempt,
                document_title=result.document_title,
            )

    async def _wait_before_retry(self, job: Job, error_message: str) -> None:
        """Back off before attempt ``job.attempt + 1``.

        Jitter is only added here, so the first attempt always starts
        immediately.
        """
        delay = self.policy.backoff_delay(job.attempt)
        jitter = self.policy.jitter(self._rng)

        logger.warning(
            f"⚠️  Retrying {job.url} (attempt {job.attempt + 1}/{job.max_attempts}) "
            f"after {delay + jitter:.1f}s..."
        )
        logger.debug(f"   Error: {error_message}")

        job.last_delay = delay + jitter
        job.total_delay += job.last_delay
        await self.token.sleep(job.last_delay)
