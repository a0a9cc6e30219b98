"""Data models for accessibility audits."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse


class OutcomeStatus(str, Enum):
    """Terminal status of a page check."""
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Issue:
    """One accessibility violation reported by the checker."""

    type: str  # error / warning / notice
    code: str
    message: str
    context: Optional[str] = None
    selector: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Issue":
        return cls(
            type=data.get("type", "error"),
            code=data.get("code", ""),
            message=data.get("message", ""),
            context=data.get("context"),
            selector=data.get("selector"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "selector": self.selector,
        }


@dataclass(frozen=True)
class Outcome:
    """Immutable result of checking one URL."""

    url: str
    status: OutcomeStatus
    attempts: int
    document_title: str
    issues: Tuple[Issue, ...] = ()
    error: Optional[str] = None
    retryable: bool = False
    finished_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def success(
        cls,
        url: str,
        issues: List[Issue],
        attempts: int,
        document_title: Optional[str] = None,
    ) -> "Outcome":
        return cls(
            url=url,
            status=OutcomeStatus.SUCCESS,
            attempts=attempts,
            document_title=document_title or url,
            issues=tuple(issues),
        )

    @classmethod
    def failure(
        cls,
        url: str,
        error: str,
        attempts: int,
        retryable: bool,
    ) -> "Outcome":
        return cls(
            url=url,
            status=OutcomeStatus.ERROR,
            attempts=attempts,
            document_title=url,
            error=error,
            retryable=retryable,
        )

    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @property
    def was_retried(self) -> bool:
        return self.attempts > 1

    def issue_counts(self) -> Dict[str, int]:
        """Count issues by type."""
        counts: Dict[str, int] = {}
        for issue in self.issues:
            counts[issue.type] = counts.get(issue.type, 0) + 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status.value,
            "attempts": self.attempts,
            "document_title": self.document_title,
            "issues": [issue.to_dict() for issue in self.issues],
            "error": self.error,
            "retryable": self.retryable,
            "finished_at": self.finished_at.isoformat(),
        }


@dataclass
class AuditSummary:
    """Totals for a finished audit."""
    scanned: int = 0
    succeeded: int = 0
    failed: int = 0
    retried: int = 0
    total_issues: int = 0
    issues_by_type: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_outcomes(cls, outcomes: List[Outcome], scanned: Optional[int] = None) -> "AuditSummary":
        """Aggregate outcome records.

        Args:
            outcomes: Outcomes of the run
            scanned: Number of discovered URLs (defaults to len(outcomes))
        """
        summary = cls(scanned=len(outcomes) if scanned is None else scanned)
        summary.issues_by_type = {"error": 0, "warning": 0, "notice": 0}

        for outcome in outcomes:
            if outcome.is_success:
                summary.succeeded += 1
            else:
                summary.failed += 1
            if outcome.was_retried:
                summary.retried += 1
            for issue_type, count in outcome.issue_counts().items():
                summary.issues_by_type[issue_type] = summary.issues_by_type.get(issue_type, 0) + count
            summary.total_issues += len(outcome.issues)

        return summary

    @property
    def errors(self) -> int:
        return self.issues_by_type.get("error", 0)

    @property
    def warnings(self) -> int:
        return self.issues_by_type.get("warning", 0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scanned": self.scanned,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "retried": self.retried,
            "total_issues": self.total_issues,
            "issues_by_type": dict(self.issues_by_type),
        }


@dataclass
class AuditReport:
    """Everything a report needs about one run."""
    sitemap_url: str
    urls: List[str]
    outcomes: List[Outcome]
    config: Dict[str, Any]
    started_at: datetime
    finished_at: datetime = field(default_factory=datetime.now)

    @property
    def domain(self) -> str:
        return urlparse(self.sitemap_url).hostname or self.sitemap_url

    @property
    def summary(self) -> AuditSummary:
        return AuditSummary.from_outcomes(self.outcomes, scanned=len(self.urls))

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sitemap_url": self.sitemap_url,
            "domain": self.domain,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "config": self.config,
            "summary": self.summary.to_dict(),
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }
