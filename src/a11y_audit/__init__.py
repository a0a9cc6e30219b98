"""Sitemap-driven WCAG 2.1 AA accessibility auditor."""

__version__ = "0.1.0"

from a11y_audit.audit import AccessibilityAudit, log_summary
from a11y_audit.batch_coordinator import BatchCoordinator, partition
from a11y_audit.checker import (
    AccessibilityChecker,
    CheckerError,
    CheckResult,
    PlaywrightAxeChecker,
    issues_from_axe,
)
from a11y_audit.config import AuditConfig
from a11y_audit.error_classifier import ErrorClassifier, is_retryable_error
from a11y_audit.job_runner import Job, JobRunner, JobState, RetryPolicy
from a11y_audit.models import (
    AuditReport,
    AuditSummary,
    Issue,
    Outcome,
    OutcomeStatus,
)
from a11y_audit.report_generator import ReportGenerator
from a11y_audit.sitemap_collector import (
    SitemapCollectionError,
    SitemapCollector,
    collect_urls,
    normalize_sitemap_url,
)

# Infrastructure
from a11y_audit.infrastructure import (
    AuditCancelled,
    CancellationToken,
    ConcurrencyLimiter,
    LimiterStats,
    ResourceTracker,
    install_signal_handlers,
    remove_signal_handlers,
)

__all__ = [
    "AccessibilityAudit",
    "log_summary",
    "BatchCoordinator",
    "partition",
    "AccessibilityChecker",
    "CheckerError",
    "CheckResult",
    "PlaywrightAxeChecker",
    "issues_from_axe",
    "AuditConfig",
    "ErrorClassifier",
    "is_retryable_error",
    "Job",
    "JobRunner",
    "JobState",
    "RetryPolicy",
    "AuditReport",
    "AuditSummary",
    "Issue",
    "Outcome",
    "OutcomeStatus",
    "ReportGenerator",
    "SitemapCollectionError",
    "SitemapCollector",
    "collect_urls",
    "normalize_sitemap_url",
    # Infrastructure
    "AuditCancelled",
    "CancellationToken",
    "ConcurrencyLimiter",
    "LimiterStats",
    "ResourceTracker",
    "install_signal_handlers",
    "remove_signal_handlers",
]
