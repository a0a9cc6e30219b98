"""HTML and JSON report generator using Jinja2 templates."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape

from a11y_audit.constants import ACCESSIBILITY_STANDARD_LABEL
from a11y_audit.models import AuditReport


class ReportGenerator:
    """Generates readable HTML reports from audit results."""

    def __init__(self, template_dir: Optional[Union[str, Path]] = None):
        """Initialize report generator.

        Args:
            template_dir: Directory containing Jinja2 templates (package
                templates if None)
        """
        template_path = Path(template_dir) if template_dir else Path(__file__).parent / "templates"

        self.env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.env.filters['format_number'] = self._format_number
        self.env.filters['plural'] = self._plural

    def _format_number(self, value):
        """Format number with thousand separators."""
        try:
            return "{:,}".format(int(value))
        except (ValueError, TypeError):
            return value

    def _plural(self, count, singular, plural=None):
        """Pick the singular or plural noun for ``count``."""
        if count == 1:
            return singular
        return plural or singular + "s"

    def _format_date(self, value: datetime) -> str:
        """Format a timestamp for the report header."""
        return value.strftime('%B %d, %Y at %I:%M %p')

    def render(self, report: AuditReport) -> str:
        """Render the HTML report.

        Args:
            report: Finished audit

        Returns:
            HTML document
        """
        template = self.env.get_template('report.html')
        return template.render(
            domain=report.domain,
            sitemap_url=report.sitemap_url,
            generated_at=self._format_date(report.finished_at),
            duration=report.duration_seconds,
            standard=ACCESSIBILITY_STANDARD_LABEL,
            config=report.config,
            summary=report.summary,
            outcomes=report.outcomes,
        )

    def write(self, report: AuditReport, output_path: Union[str, Path]) -> Path:
        """Render and save the HTML report.

        Args:
            report: Finished audit
            output_path: Path to save HTML report

        Returns:
            Resolved path of the written file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.render(report), encoding='utf-8')
        return output_path.resolve()

    def write_json(self, report: AuditReport, output_path: Union[str, Path]) -> Path:
        """Save the report as JSON.

        Args:
            report: Finished audit
            output_path: Path to save JSON report

        Returns:
            Resolved path of the written file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
        return output_path.resolve()
