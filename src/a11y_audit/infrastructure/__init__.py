"""
Infrastructure Package.

Scheduling, cancellation and resource lifecycle primitives shared by an
audit run.
"""

from .cancellation import (
    AuditCancelled,
    CancellationToken,
    install_signal_handlers,
    remove_signal_handlers,
)
from .concurrency_limiter import (
    ConcurrencyLimiter,
    LimiterStats,
)
from .resource_tracker import ResourceTracker

__all__ = [
    # Cancellation
    "AuditCancelled",
    "CancellationToken",
    "install_signal_handlers",
    "remove_signal_handlers",
    # Concurrency Limiter
    "ConcurrencyLimiter",
    "LimiterStats",
    # Resource Tracker
    "ResourceTracker",
]
