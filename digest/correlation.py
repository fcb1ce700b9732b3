"""Cross-workflow URL correlation."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple
from urllib.parse import unquote_plus, urlsplit, urlunsplit

from core import CorrelatedWorkflow, Correlation, CorrelationMetadata, WorkflowDigest


MAX_WORKFLOWS_FOR_CORRELATION = 15
TRACKING_PARAMS = frozenset({"ref", "source", "fbclid", "gclid", "mc_cid", "mc_eid"})
TRACKING_PARAM_PREFIXES = ("utm_",)


def _is_tracking_param(segment: str) -> bool:
    key = unquote_plus(segment.split("=", 1)[0]).strip().lower()
    return key in TRACKING_PARAMS or key.startswith(TRACKING_PARAM_PREFIXES)


def normalize_url(url: str) -> str:
    """
    Canonical form used to match URLs across workflows.

    Forces https, drops the fragment and tracking parameters, and trims
    trailing slashes from non-root paths. Anything that does not parse as an
    absolute URL is returned unchanged.
    """
    raw = str(url or "").strip()
    try:
        parsed = urlsplit(raw)
    except ValueError:
        return raw
    if not parsed.scheme or not parsed.netloc:
        return raw

    scheme = "https" if parsed.scheme in {"http", "https"} else parsed.scheme
    path = parsed.path
    if path != "/" and path.endswith("/"):
        # rstrip keeps normalization idempotent for paths like "/a//"
        path = path.rstrip("/") or "/"
    query = "&".join(
        segment for segment in parsed.query.split("&") if segment and not _is_tracking_param(segment)
    )
    return urlunsplit((scheme, parsed.netloc.lower(), path, query, ""))


def display_domain(url: str) -> str:
    try:
        host = urlsplit(str(url or "").strip()).hostname or ""
    except ValueError:
        host = ""
    if host.startswith("www."):
        host = host[4:]
    return host or str(url or "").strip()[:60]


def _insight(workflows: Sequence[CorrelatedWorkflow]) -> str:
    names = ", ".join(row.workflow_name for row in workflows)
    return f"Appears in {len(workflows)} monitors: {names}"


def correlate_urls(
    digests: Sequence[WorkflowDigest],
    *,
    max_workflows: int = MAX_WORKFLOWS_FOR_CORRELATION,
) -> Tuple[List[Correlation], CorrelationMetadata]:
    """
    Find URLs that surfaced independently in two or more workflows.

    Only digests with changes and at least one new URL take part, and only the
    first ``max_workflows`` of them in the caller's order. One pass over their
    URLs builds a map keyed by normalized URL, so the cost is linear in the
    number of URLs rather than pairwise in workflows.
    """
    eligible = [digest for digest in digests if digest.has_changes and digest.new_urls]
    analyzed = eligible[: max(0, int(max_workflows))]
    metadata = CorrelationMetadata(
        workflows_analyzed=len(analyzed),
        workflows_skipped=len(eligible) - len(analyzed),
        total_urls_compared=sum(len(digest.new_urls) for digest in analyzed),
    )
    if len(analyzed) < 2:
        return [], metadata

    buckets: Dict[str, Dict[str, CorrelatedWorkflow]] = {}
    for digest in analyzed:
        for entry in digest.new_urls:
            contributors = buckets.setdefault(normalize_url(entry.url), {})
            if digest.workflow_id in contributors:
                continue
            contributors[digest.workflow_id] = CorrelatedWorkflow(
                workflow_id=digest.workflow_id,
                workflow_name=digest.workflow_name,
                context=str(entry.snippet or entry.title or ""),
            )

    correlations = [
        Correlation(
            type="shared_url",
            value=value,
            workflows=list(contributors.values()),
            insight=_insight(list(contributors.values())),
        )
        for value, contributors in buckets.items()
        if len(contributors) >= 2
    ]
    correlations.sort(key=lambda row: len(row.workflows), reverse=True)
    return correlations, metadata
