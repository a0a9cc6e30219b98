"""
Accessibility checker backed by headless Chromium and axe-core.

Each check launches its own browser, registers it with the ResourceTracker
before anything can fail, and releases it through the tracker when done,
so a crashed or timed-out attempt never leaks a browser process.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from playwright.async_api import async_playwright, Browser, Page, Playwright

from a11y_audit.config import AuditConfig
from a11y_audit.constants import (
    AXE_RUN_TAGS,
    BROWSER_ARGS,
    INCLUDE_NOTICES,
    INCLUDE_WARNINGS,
    PAGE_REQUEST_HEADERS,
    USER_AGENT,
    VIEWPORT_HEIGHT,
    VIEWPORT_WIDTH,
)
from a11y_audit.infrastructure.resource_tracker import ResourceTracker
from a11y_audit.models import Issue

logger = logging.getLogger(__name__)


# Runs axe-core in the page and returns only what the report needs
AXE_RUN_SCRIPT = """
async (tags) => {
    const results = await axe.run(document, {
        runOnly: { type: 'tag', values: tags },
        resultTypes: ['violations', 'incomplete'],
    });
    const pick = (items) => items.map((rule) => ({
        id: rule.id,
        help: rule.help,
        impact: rule.impact,
        nodes: rule.nodes.map((node) => ({ html: node.html, target: node.target })),
    }));
    return {
        violations: pick(results.violations),
        incomplete: pick(results.incomplete),
    };
}
"""


class CheckerError(Exception):
    """Raised when the checker itself cannot run on a page."""


@dataclass
class CheckResult:
    """Raw result of one successful page check."""
    issues: List[Issue] = field(default_factory=list)
    document_title: Optional[str] = None


class AccessibilityChecker(Protocol):
    """Anything that can check one URL."""

    async def check(self, url: str) -> CheckResult:
        ...

    async def close(self) -> None:
        ...


def _selector(target: Any) -> Optional[str]:
    """Flatten an axe target (possibly nested for iframes) into a selector."""
    if not target:
        return None
    if isinstance(target, (list, tuple)):
        return " ".join(_selector(part) or "" for part in target).strip() or None
    return str(target)


def issues_from_axe(
    raw: Dict[str, Any],
    include_warnings: bool = INCLUDE_WARNINGS,
    include_notices: bool = INCLUDE_NOTICES,
) -> List[Issue]:
    """
    Convert axe-core results into Issue records.

    Violations become errors, incomplete results (need manual review)
    become warnings, passes become notices. One Issue per affected node.

    Args:
        raw: Dictionary with violations / incomplete / passes lists
        include_warnings: Keep incomplete results
        include_notices: Keep passes

    Returns:
        List of issues in axe order
    """
    groups = [("violations", "error")]
    if include_warnings:
        groups.append(("incomplete", "warning"))
    if include_notices:
        groups.append(("passes", "notice"))

    issues = []
    for key, issue_type in groups:
        for rule in raw.get(key) or []:
            message = rule.get("help") or rule.get("description") or rule.get("id", "")
            nodes = rule.get("nodes") or [{}]
            for node in nodes:
                issues.append(Issue(
                    type=issue_type,
                    code=rule.get("id", ""),
                    message=message,
                    context=node.get("html") or None,
                    selector=_selector(node.get("target")),
                ))
    return issues


class PlaywrightAxeChecker:
    """
    Runs axe-core against a page in a fresh headless Chromium.

    Usage:
        checker = PlaywrightAxeChecker(config, tracker)
        try:
            result = await checker.check("https://example.com/")
        finally:
            await checker.close()
    """

    def __init__(self, config: AuditConfig, tracker: ResourceTracker):
        """
        Initialize checker.

        Args:
            config: Audit configuration (timeouts, headless, axe source)
            tracker: Tracker receiving every launched browser
        """
        self.config = config
        self.tracker = tracker
        self._playwright: Optional[Playwright] = None
        self._lock = asyncio.Lock()

    async def _ensure_started(self) -> Playwright:
        async with self._lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
                logger.debug("Playwright driver started")
        return self._playwright

    async def check(self, url: str) -> CheckResult:
        """
        Check one page.

        Raises:
            CheckerError: If the check exceeds page_timeout or axe cannot run
            Exception: Navigation and browser errors from Playwright
        """
        try:
            return await asyncio.wait_for(self._check(url), timeout=self.config.page_timeout)
        except asyncio.TimeoutError:
            raise CheckerError(
                f"Page check timed out after {self.config.page_timeout:.0f}s: {url}"
            ) from None

    async def _check(self, url: str) -> CheckResult:
        playwright = await self._ensure_started()

        browser: Browser = await playwright.chromium.launch(
            headless=self.config.headless,
            args=BROWSER_ARGS,
            timeout=self.config.navigation_timeout * 1000,
        )
        await self.tracker.register(browser)

        try:
            context = await browser.new_context(
                viewport={"width": VIEWPORT_WIDTH, "height": VIEWPORT_HEIGHT},
                device_scale_factor=1,
                is_mobile=False,
                has_touch=False,
                user_agent=USER_AGENT,
                ignore_https_errors=True,
                # axe is injected as a script tag, which a strict CSP would block
                bypass_csp=True,
                extra_http_headers=PAGE_REQUEST_HEADERS,
            )
            context.set_default_timeout(self.config.page_timeout * 1000)
            context.set_default_navigation_timeout(self.config.navigation_timeout * 1000)

            page = await context.new_page()
            await page.goto(url, wait_until="load")

            if self.config.page_wait > 0:
                await page.wait_for_timeout(self.config.page_wait * 1000)

            await self._inject_axe(page)
            raw = await page.evaluate(AXE_RUN_SCRIPT, AXE_RUN_TAGS)
            title = await page.title()
        finally:
            await self.tracker.release(browser)

        return CheckResult(issues=issues_from_axe(raw), document_title=title or None)

    async def _inject_axe(self, page: Page) -> None:
        source = self.config.axe_source
        if source.startswith(("http://", "https://")):
            await page.add_script_tag(url=source)
        else:
            path = Path(source)
            if not path.exists():
                raise CheckerError(f"axe-core script not found: {source}")
            await page.add_script_tag(path=str(path))

        loaded = await page.evaluate("() => typeof window.axe !== 'undefined'")
        if not loaded:
            raise CheckerError(f"axe-core failed to load from {source}")

    async def close(self) -> None:
        """Stop the Playwright driver."""
        async with self._lock:
            if self._playwright is None:
                return
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self._playwright = None
