"""Scan report export to a Markdown file.

// [LAW:locality-or-seam] All export formatting lives here; the executor only
// decides when to call export_report.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from complior_tui.core.types import ScanResult, Severity

logger = logging.getLogger(__name__)

SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
)


def report_filename(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"complior-report-{now.strftime('%Y%m%d-%H%M%S')}.md"


def render_markdown(scan: ScanResult) -> str:
    score = scan.score
    lines = [
        "# Complior Compliance Report",
        "",
        f"- **Project:** {scan.project_path or '(unknown)'}",
        f"- **Scanned at:** {scan.scanned_at or '(unknown)'}",
        f"- **Score:** {score.total_score:.0f}/100 ({score.zone.value.upper()})",
        f"- **Checks:** {score.total_checks} total, {score.passed_checks} passed, "
        f"{score.failed_checks} failed, {score.skipped_checks} skipped",
        f"- **Files scanned:** {scan.files_scanned}",
    ]
    if score.critical_cap_applied:
        lines.append("- Score capped by a critical finding.")

    lines += ["", "## Findings", ""]
    if not scan.findings:
        lines.append("No findings.")

    for severity in SEVERITY_ORDER:
        group = [f for f in scan.findings if f.severity is severity]
        if not group:
            continue
        lines += [f"### {severity.value.capitalize()} ({len(group)})", ""]
        for finding in group:
            ref = f" ({finding.article_reference})" if finding.article_reference else ""
            lines.append(f"- `{finding.check_id}`{ref}: {finding.message}")
            if finding.obligation_id:
                lines.append(f"  - Obligation: {finding.obligation_id}")
            if finding.fix:
                lines.append(f"  - Suggested fix: {finding.fix}")
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


def export_report(scan: ScanResult, directory: str | Path, now: datetime | None = None) -> Path:
    """Write the report into directory. Raises OSError on failure."""
    path = Path(directory) / report_filename(now)
    path.write_text(render_markdown(scan), encoding="utf-8")
    logger.info("report exported: %s", path)
    return path
