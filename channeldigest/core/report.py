"""
Report writer: markdown run report, short digest, optional webhook post.
"""

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import requests

from channeldigest.core.constants import (
    DEFAULT_REPORTS_DIR, DIGEST_MAX_NEW_ITEMS, MAX_REPORT_TAGS, WEBHOOK_MAX_CHARS,
    WEBHOOK_TIMEOUT_SEC,
)
from channeldigest.core.models import AnalysisResult, ItemResult

logger = logging.getLogger(__name__)


def format_duration(seconds: Optional[int]) -> str:
    if not seconds:
        return "Unknown"
    seconds = int(seconds)
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_number(num: Optional[int]) -> str:
    return f"{num:,}" if num else "Unknown"


def format_date(value: Optional[date]) -> str:
    return value.isoformat() if value else "Unknown"


def _analysis_text(result: Optional[AnalysisResult], fallback: str) -> str:
    return result.text if result and result.text else fallback


def group_by_source(results: list[ItemResult]) -> dict[str, list[ItemResult]]:
    grouped: dict[str, list[ItemResult]] = {}
    for r in results:
        grouped.setdefault(r.item.source_ref, []).append(r)
    return grouped


def render_item_section(result: ItemResult) -> str:
    item = result.item
    lines = [
        f"### {item.title}",
        "",
        f"**URL:** {item.url}",
        f"**Duration:** {format_duration(item.duration_sec)} | "
        f"**Views:** {format_number(item.view_count)} | "
        f"**Uploaded:** {format_date(item.upload_date)}",
        "",
    ]
    if result.metadata and result.metadata.tags:
        lines += [f"**Tags:** {', '.join(result.metadata.tags[:MAX_REPORT_TAGS])}", ""]
    if result.error:
        lines += [f"> **Error ({result.error.code}):** {result.error.message}", ""]
    transcript_note = (f"{len(result.transcript):,} characters" if result.transcript
                       else "No transcript available")
    lines += [
        f"**Transcript:** {transcript_note}",
        "",
        "#### Thumbnail Analysis",
        "",
        _analysis_text(result.thumbnail_analysis, "No thumbnail analysis available."),
        "",
        "#### Content Analysis",
        "",
        _analysis_text(result.analysis, "No content analysis available."),
        "",
        "---",
        "",
    ]
    return "\n".join(lines)


class MarkdownReporter:
    """Report collaborator writing <reports_dir>/YYYY-MM-DD.md."""

    def __init__(self, reports_dir: Path | None = None):
        self.reports_dir = Path(reports_dir or DEFAULT_REPORTS_DIR)

    def render(self, results: list[ItemResult], aggregate_text: str,
               now: datetime | None = None) -> Path:
        now = now or datetime.now()
        date_str = now.strftime("%Y-%m-%d")
        grouped = group_by_source(results)

        parts = [
            f"# YouTube Channel Digest - {date_str}",
            "",
            f"*Generated: {now.strftime('%Y-%m-%d %H:%M:%S')}*",
            "",
            "---",
            "",
            "## Overview",
            "",
            f"- **Channels Analyzed:** {len(grouped)}",
            f"- **Videos Processed:** {len(results)}",
            f"- **New Videos Found:** {sum(1 for r in results if r.is_new)}",
            f"- **Failed Videos:** {sum(1 for r in results if r.error)}",
            "",
            "---",
            "",
            "## Aggregate Insights",
            "",
            aggregate_text or "No aggregate insights available.",
            "",
            "---",
            "",
        ]
        for source, source_results in grouped.items():
            parts += [f"## {source}", ""]
            parts += [render_item_section(r) for r in source_results]

        self.reports_dir.mkdir(parents=True, exist_ok=True)
        report_path = self.reports_dir / f"{date_str}.md"
        report_path.write_text("\n".join(parts), encoding='utf-8')

        logger.info("Report generated: %s", report_path)
        return report_path

    def summarize(self, results: list[ItemResult], report_path: Path) -> str:
        """Short digest for chat notification."""
        new_results = [r for r in results if r.is_new]
        source_count = len({r.item.source_ref for r in results})

        lines = [
            "**YouTube Channel Digest**",
            "",
            f"Analyzed **{len(results)}** videos from **{source_count}** channels.",
        ]
        if new_results:
            lines += ["", "**New Videos:**"]
            for r in new_results[:DIGEST_MAX_NEW_ITEMS]:
                lines.append(f'- {r.item.source_ref}: "{r.item.title}"')
            if len(new_results) > DIGEST_MAX_NEW_ITEMS:
                lines.append(f"...and {len(new_results) - DIGEST_MAX_NEW_ITEMS} more")
        lines += ["", f"Full report: {report_path}"]
        return "\n".join(lines)


def post_digest(webhook_url: str, text: str) -> bool:
    """Post the digest to a Discord webhook. Failures are logged only."""
    content = text if len(text) <= WEBHOOK_MAX_CHARS else text[:WEBHOOK_MAX_CHARS - 3] + "..."
    try:
        resp = requests.post(webhook_url, json={"content": content}, timeout=WEBHOOK_TIMEOUT_SEC)
    except requests.exceptions.RequestException as e:
        logger.warning("Digest post failed: %s", e)
        return False
    if resp.status_code >= 300:
        logger.warning("Digest post returned %d: %s", resp.status_code, resp.text[:200])
        return False
    logger.info("Digest posted to webhook")
    return True
