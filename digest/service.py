"""Entry point for the workflow updates digest: aggregate, correlate, format."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, Optional, Union

from config import get_settings
from core import DigestFormat
from digest.aggregator import WorkflowUpdateAggregator
from digest.briefing import render_digest
from digest.change_summary import parse_timestamp
from digest.correlation import correlate_urls
from sources import ZipfClient


logger = logging.getLogger(__name__)


def resolve_watermark(
    since: Union[str, datetime, None] = None,
    *,
    now: Optional[datetime] = None,
) -> datetime:
    """Parse an ISO 8601 watermark; default is the configured window before now."""
    if since is None or (isinstance(since, str) and not since.strip()):
        current = now or datetime.now(timezone.utc)
        return current - timedelta(hours=int(get_settings().digest.default_window_hours))
    parsed = parse_timestamp(since)
    if parsed is None:
        raise ValueError(f"Invalid 'since' timestamp {since!r}; expected ISO 8601")
    return parsed


async def build_workflow_digest(
    client: ZipfClient,
    *,
    since: Union[str, datetime, None] = None,
    include_inactive: bool = False,
    max_workflows: Optional[int] = None,
    verbose: bool = False,
    format: Union[str, DigestFormat] = DigestFormat.JSON,
    aggregator: Optional[WorkflowUpdateAggregator] = None,
) -> Dict[str, Any]:
    """
    Build the multi-workflow update digest.

    Args:
        client: remote service client
        since: ISO 8601 watermark (default: 24h ago)
        include_inactive: also scan paused/completed/failed workflows
        max_workflows: cap on workflows scanned (hard max 50)
        verbose: attach recent diffs, executions and latest state
        format: json | briefing | briefing_llm | compact

    Returns:
        JSON-ready digest payload; `formatted_output` is set for the
        narrative and compact formats only
    """
    fmt = DigestFormat(format)
    watermark = resolve_watermark(since)
    aggregator = aggregator or WorkflowUpdateAggregator(client)

    response = await aggregator.aggregate(
        watermark,
        include_inactive=include_inactive,
        max_workflows=max_workflows,
        verbose=verbose,
    )

    if response.workflows_with_changes > 0:
        correlations, metadata = correlate_urls(response.workflows)
        response.correlations = correlations
        response.correlation_metadata = metadata
        if correlations:
            logger.info(f"Found {len(correlations)} URL(s) shared across workflows")

    return render_digest(response, fmt)
