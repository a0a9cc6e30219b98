"""Command-line interface for the accessibility auditor."""

import argparse
import asyncio
import logging
import sys
import webbrowser
from pathlib import Path
from typing import List, Optional

from a11y_audit.audit import AccessibilityAudit, log_summary
from a11y_audit.config import AuditConfig
from a11y_audit.constants import (
    ACCESSIBILITY_STANDARD_LABEL,
    DEFAULT_REPORT_FILENAME,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_OK,
)
from a11y_audit.infrastructure import (
    AuditCancelled,
    CancellationToken,
    install_signal_handlers,
    remove_signal_handlers,
)
from a11y_audit.logging_config import setup_logging
from a11y_audit.models import AuditReport
from a11y_audit.report_generator import ReportGenerator
from a11y_audit.sitemap_collector import (
    SitemapCollectionError,
    SitemapCollector,
    normalize_sitemap_url,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="a11y-audit",
        description="Accessibility Auditor - Check every page in a sitemap against WCAG 2.1 AA",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  a11y-audit example.com
  a11y-audit https://example.com/sitemap.xml --open
  a11y-audit example.com --reliable --format json -o audit.json
        """,
    )

    parser.add_argument(
        "site",
        help="Website or sitemap URL (example.com, https://example.com/sitemap.xml)",
    )
    parser.add_argument(
        "--output",
        "-o",
        help=f"Report path (default: {DEFAULT_REPORT_FILENAME} in the current directory)",
    )
    parser.add_argument(
        "--format",
        choices=["html", "json"],
        default="html",
        help="Report format (default: html)",
    )
    parser.add_argument(
        "--open",
        action="store_true",
        help="Open the report in the default browser when done",
    )

    # Configuration sources
    parser.add_argument(
        "--reliable",
        action="store_true",
        help="Use the slow, high-reliability preset for fragile servers",
    )
    parser.add_argument(
        "--config",
        help="YAML or JSON configuration file",
    )

    # Overrides
    parser.add_argument("--max-concurrent", type=int, help="Maximum simultaneous page checks")
    parser.add_argument("--batch-size", type=int, help="URLs per batch")
    parser.add_argument("--request-delay", type=float, help="Seconds to wait after each check")
    parser.add_argument("--max-retries", type=int, help="Maximum attempts per URL")
    parser.add_argument("--page-timeout", type=float, help="Seconds before a page check is abandoned")

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file in addition to console",
    )

    return parser


def load_config(args: argparse.Namespace) -> AuditConfig:
    """Build the run configuration: preset or environment, then file, then flags.

    Raises:
        FileNotFoundError: If --config names a missing file
        ValueError: If a value is out of range
    """
    config = AuditConfig.reliable() if args.reliable else AuditConfig.from_env()

    if args.config:
        config = AuditConfig.from_file(args.config, base=config)

    config = config.with_overrides(
        max_concurrent=args.max_concurrent,
        batch_size=args.batch_size,
        request_delay=args.request_delay,
        max_retries=args.max_retries,
        page_timeout=args.page_timeout,
    )
    return config.validate()


def print_config(config: AuditConfig, sitemap_url: str) -> None:
    """Print the settings a run will use."""
    print(f"\n🔍 Accessibility Audit ({ACCESSIBILITY_STANDARD_LABEL})\n")
    print(f"Sitemap: {sitemap_url}")
    print("Configuration:")
    print(f"  • Max concurrent checks: {config.max_concurrent}")
    print(f"  • Batch size: {config.batch_size}")
    print(f"  • Request delay: {config.request_delay:.1f}s (batch delay {config.batch_delay:.1f}s)")
    print(f"  • Page timeout: {config.page_timeout:.0f}s")
    print(f"  • Max attempts: {config.max_retries}")
    print(f"  • Retry delay: {config.retry_delay:.1f}s (x{config.retry_multiplier:g}, max {config.max_retry_delay:.0f}s)")
    print()


def print_sitemap_help(sitemap_url: str) -> None:
    """Explain what to check when the sitemap cannot be read."""
    print(f"\n❌ Could not read the sitemap at {sitemap_url}")
    print("\nPlease check:")
    print("  • The website is online and reachable from this machine")
    print("  • The sitemap exists (try /sitemap.xml or /sitemap_index.xml)")
    print("  • You can pass the sitemap URL directly, e.g. https://example.com/sitemap.xml")


def write_report(audit_report: AuditReport, args: argparse.Namespace) -> Path:
    """Write the report in the requested format."""
    generator = ReportGenerator()
    output = args.output or (
        DEFAULT_REPORT_FILENAME if args.format == "html" else Path(DEFAULT_REPORT_FILENAME).with_suffix(".json")
    )

    if args.format == "json":
        return generator.write_json(audit_report, output)
    return generator.write(audit_report, output)


async def run_audit(args: argparse.Namespace, config: AuditConfig, sitemap_url: str) -> int:
    """Verify the sitemap, run the audit and write the report.

    Returns:
        Process exit code
    """
    token = CancellationToken()
    install_signal_handlers(token)

    try:
        collector = SitemapCollector(config, token)

        print("Verifying sitemap...")
        try:
            reachable = await token.run(collector.verify(sitemap_url))
        except AuditCancelled as e:
            logger.warning(f"🛑 Audit interrupted ({e.reason}) during sitemap check")
            return EXIT_INTERRUPTED
        if not reachable:
            print_sitemap_help(sitemap_url)
            return EXIT_FAILURE
        print("✓ Sitemap is accessible\n")

        audit = AccessibilityAudit(config, collector=collector, token=token)
        try:
            audit_report = await audit.run(sitemap_url)
        except SitemapCollectionError as e:
            logger.error(e.message)
            print_sitemap_help(sitemap_url)
            return EXIT_FAILURE
        except AuditCancelled as e:
            logger.warning(f"🛑 Audit interrupted ({e.reason}), browsers closed")
            return EXIT_INTERRUPTED

        log_summary(audit_report)

        print("\n📊 Generating report...")
        report_path = write_report(audit_report, args)
        print(f"✓ Report saved to: {report_path}")

        if args.open:
            print("🌐 Opening report in your browser...")
            if not webbrowser.open(report_path.as_uri()):
                print(f"Could not open a browser, open {report_path} manually")

        return EXIT_OK
    finally:
        remove_signal_handlers()


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
    )

    try:
        config = load_config(args)
        sitemap_url = normalize_sitemap_url(args.site)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        return EXIT_FAILURE

    print_config(config, sitemap_url)

    try:
        return asyncio.run(run_audit(args, config, sitemap_url))
    except KeyboardInterrupt:
        # Platforms without loop signal handlers land here
        print("\n🛑 Interrupted")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
