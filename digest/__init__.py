"""Multi-workflow update digest: aggregation, scoring, correlation and briefings."""

from .aggregator import WorkflowUpdateAggregator, assemble_digest
from .briefing import format_briefing, format_compact, render_digest
from .change_summary import summarize_changes
from .correlation import correlate_urls, normalize_url
from .scoring import score_signal, signal_level_for
from .service import build_workflow_digest, resolve_watermark

__all__ = [
    "WorkflowUpdateAggregator",
    "assemble_digest",
    "build_workflow_digest",
    "correlate_urls",
    "format_briefing",
    "format_compact",
    "normalize_url",
    "render_digest",
    "resolve_watermark",
    "score_signal",
    "signal_level_for",
    "summarize_changes",
]
