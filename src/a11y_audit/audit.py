"""Audit orchestration: sitemap collection, batched checks and cleanup."""

import logging
from datetime import datetime
from typing import List, Optional

from a11y_audit.batch_coordinator import BatchCoordinator, ProgressCallback, log_progress
from a11y_audit.checker import AccessibilityChecker, PlaywrightAxeChecker
from a11y_audit.config import AuditConfig
from a11y_audit.infrastructure import (
    CancellationToken,
    ConcurrencyLimiter,
    ResourceTracker,
)
from a11y_audit.job_runner import JobRunner
from a11y_audit.models import AuditReport, Outcome
from a11y_audit.sitemap_collector import SitemapCollectionError, SitemapCollector

logger = logging.getLogger(__name__)


class AccessibilityAudit:
    """Audits every page listed in a sitemap.

    Owns the per-run collaborators: one tracker, one limiter, one runner and
    one coordinator per ``run``. Whatever happens during the run, every
    tracked browser is closed before ``run`` returns or raises.
    """

    def __init__(
        self,
        config: Optional[AuditConfig] = None,
        checker: Optional[AccessibilityChecker] = None,
        collector: Optional[SitemapCollector] = None,
        token: Optional[CancellationToken] = None,
        tracker: Optional[ResourceTracker] = None,
        on_outcome: Optional[ProgressCallback] = log_progress,
    ):
        """Initialize the audit.

        Args:
            config: Audit configuration (AuditConfig() if None)
            checker: Page checker (PlaywrightAxeChecker if None)
            collector: Sitemap collector (built from config if None)
            token: Cancellation token shared by every suspension point
            tracker: Resource tracker for browser instances
            on_outcome: Progress callback per finished URL
        """
        self.config = (config or AuditConfig()).validate()
        self.token = token or CancellationToken()
        self.tracker = tracker or ResourceTracker()
        self.checker = checker or PlaywrightAxeChecker(self.config, self.tracker)
        self.collector = collector or SitemapCollector(self.config, self.token)
        self.on_outcome = on_outcome
        self.limiter: Optional[ConcurrencyLimiter] = None

    async def run(self, sitemap_url: str) -> AuditReport:
        """Run the full audit.

        Args:
            sitemap_url: Root sitemap or sitemap index URL

        Returns:
            AuditReport with one outcome per discovered URL

        Raises:
            SitemapCollectionError: If no URLs could be collected
            AuditCancelled: If the token fired during the run
        """
        started_at = datetime.now()
        self.limiter = ConcurrencyLimiter(self.config.max_concurrent)

        try:
            urls = await self.token.run(self.collector.collect(sitemap_url))
            if not urls:
                raise SitemapCollectionError(
                    f"No URLs found in the sitemap at {sitemap_url}",
                    sitemap_url=sitemap_url,
                )

            logger.info(f"🏃 Running accessibility checks on {len(urls)} URLs...")

            runner = JobRunner(self.checker, self.config, self.token)
            coordinator = BatchCoordinator(
                runner,
                self.limiter,
                self.config,
                token=self.token,
                on_outcome=self.on_outcome,
            )
            outcomes = await self.token.run(coordinator.run(urls))
        finally:
            self.limiter.shutdown()
            await self.cleanup()

        self._check_completeness(urls, outcomes)

        return AuditReport(
            sitemap_url=sitemap_url,
            urls=urls,
            outcomes=outcomes,
            config=self.config.to_dict(),
            started_at=started_at,
        )

    async def cleanup(self) -> None:
        """Close every tracked browser and the checker."""
        closed = await self.tracker.close_all()
        if closed:
            logger.info(f"Closed {closed} browser instance(s)")
        await self.checker.close()

    def _check_completeness(self, urls: List[str], outcomes: List[Outcome]) -> None:
        """Log any URL without exactly one outcome."""
        seen = [outcome.url for outcome in outcomes]
        missing = set(urls) - set(seen)
        duplicates = {url for url in seen if seen.count(url) > 1}

        if missing:
            logger.error(f"{len(missing)} URLs have no outcome: {sorted(missing)[:5]}")
        if duplicates:
            logger.error(f"{len(duplicates)} URLs have more than one outcome: {sorted(duplicates)[:5]}")


def log_summary(report: AuditReport) -> None:
    """Log the final totals of a run."""
    summary = report.summary

    logger.info(f"\n{'=' * 60}")
    logger.info("📈 Summary:")
    logger.info(f"   Pages scanned: {summary.scanned}")
    logger.info(f"   Successful checks: {summary.succeeded}")
    logger.info(f"   Failed checks: {summary.failed}")
    logger.info(f"   Checks with retries: {summary.retried}")
    logger.info(f"   Total issues: {summary.total_issues}")
    if summary.total_issues > 0:
        logger.info(f"   Errors: {summary.errors}")
        logger.info(f"   Warnings: {summary.warnings}")
    logger.info(f"   Duration: {report.duration_seconds:.1f}s")
    logger.info(f"{'=' * 60}\n")
