# src/a11y_audit/constants.py
"""Centralized constants for the accessibility audit.

This module contains default values and fixed settings used across
multiple modules. For user-configurable values, see config.py and
AuditConfig.
"""

# =============================================================================
# Scheduling Defaults
# =============================================================================

# Maximum accessibility checks running at the same time
DEFAULT_MAX_CONCURRENT_CHECKS = 1

# Number of URLs processed per batch
DEFAULT_BATCH_SIZE = 3

# Pause after each completed check (seconds)
DEFAULT_REQUEST_DELAY_SECONDS = 5.0

# Pause between batches, as a multiple of the request delay
DEFAULT_BATCH_DELAY_MULTIPLIER = 2.0


# =============================================================================
# Timeouts
# =============================================================================

# Overall page check timeout (seconds)
DEFAULT_PAGE_TIMEOUT_SECONDS = 90.0

# Wait after page load before running the checker (seconds)
DEFAULT_PAGE_WAIT_SECONDS = 3.0

# Navigation timeout (seconds)
DEFAULT_NAVIGATION_TIMEOUT_SECONDS = 90.0

# Timeout for the sitemap HEAD probe (seconds)
SITEMAP_VERIFY_TIMEOUT_SECONDS = 10.0

# Timeout for sitemap downloads (seconds)
SITEMAP_FETCH_TIMEOUT_SECONDS = 30.0

# Maximum redirects followed when fetching a sitemap
SITEMAP_MAX_REDIRECTS = 5


# =============================================================================
# Retry Constants
# =============================================================================

# Maximum attempts per page check (first attempt included)
DEFAULT_MAX_RETRIES = 3

# Delay before the first retry (seconds)
INITIAL_RETRY_DELAY_SECONDS = 5.0

# Growth factor of the retry delay
RETRY_DELAY_MULTIPLIER = 2.0

# Ceiling for a single backoff wait (seconds)
MAX_RETRY_DELAY_SECONDS = 60.0

# Upper bound of the random jitter added to retries (seconds)
RETRY_JITTER_MAX_SECONDS = 2.0

# Extra attempts when a sitemap download fails
SITEMAP_FETCH_RETRIES = 2

# Linear backoff step between sitemap download attempts (seconds)
SITEMAP_RETRY_DELAY_SECONDS = 1.0


# =============================================================================
# Error Classification
# =============================================================================

# Lower-cased substrings of error messages that indicate a transient failure
RETRYABLE_ERROR_PATTERNS = (
    "timeout",
    "timed out",
    "navigation timeout",
    "net::err",
    "econnreset",
    "econnrefused",
    "connection reset",
    "connection refused",
    "socket hang up",
    "empty response",
    "protocol error",
    "target closed",
    "session closed",
    "browser has been closed",
    "page crashed",
    "abnormal",
    "failed action",
    "wait for",
)


# =============================================================================
# Browser and Checker Constants
# =============================================================================

# Chromium flags tuned for stability rather than stealth
BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-features=IsolateOrigins,site-per-process",
    "--disable-blink-features=AutomationControlled",
    "--disable-extensions",
    "--disable-plugins",
    "--disable-images",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-features=TranslateUI",
    "--disable-ipc-flooding-protection",
    "--disable-hang-monitor",
    "--hide-scrollbars",
    "--mute-audio",
    "--disable-default-apps",
    "--disable-sync",
]

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

# Headers sent when downloading sitemaps
SITEMAP_REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/xml, text/xml, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Headers sent with every page navigation
PAGE_REQUEST_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
}

VIEWPORT_WIDTH = 1280
VIEWPORT_HEIGHT = 1024

# Accessibility standard reported and enforced
ACCESSIBILITY_STANDARD_LABEL = "WCAG 2.1 Level AA"

# axe-core rule tags making up the WCAG 2 A/AA standard
AXE_RUN_TAGS = ["wcag2a", "wcag2aa", "wcag21a", "wcag21aa"]

# Default axe-core build injected into every page
DEFAULT_AXE_SOURCE = "https://cdn.jsdelivr.net/npm/axe-core@4.10.2/axe.min.js"

INCLUDE_WARNINGS = True
INCLUDE_NOTICES = False


# =============================================================================
# Sitemap and Report Constants
# =============================================================================

# Path appended to bare site URLs
DEFAULT_SITEMAP_PATH = "/sitemap_index.xml"

DEFAULT_REPORT_FILENAME = "report.html"

# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130
