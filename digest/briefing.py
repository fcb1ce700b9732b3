"""Briefing renderers for the workflow digest (human, LLM and compact shapes)."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

from core import Correlation, DigestFormat, DigestResponse, NewUrl, SignalLevel, WorkflowDigest
from digest.correlation import display_domain


QUIET_PREVIEW_LIMIT = 5
URL_PREVIEW_LIMIT = 3
CORRELATION_PREVIEW_LIMIT = 5

LEVEL_ORDER = (SignalLevel.URGENT, SignalLevel.NOTABLE, SignalLevel.ROUTINE, SignalLevel.NOISE)
DETAILED_LEVELS = frozenset({SignalLevel.URGENT, SignalLevel.NOTABLE})

_HUMAN_HEADINGS = {
    SignalLevel.URGENT: "🔴 Urgent",
    SignalLevel.NOTABLE: "🟡 Notable",
    SignalLevel.ROUTINE: "🟢 Routine",
    SignalLevel.NOISE: "⚪ Noise",
}


def _heading(level: SignalLevel, count: int, *, for_llm: bool) -> str:
    if for_llm:
        return f"## {level.value.upper()} ({count})"
    return f"## {_HUMAN_HEADINGS[level]} ({count})"


def _quiet_section(response: DigestResponse) -> List[str]:
    lines = [
        "## All quiet",
        response.summary,
        "",
        "Last execution per workflow:",
    ]
    preview = response.workflows[:QUIET_PREVIEW_LIMIT]
    for digest in preview:
        lines.append(f"- {digest.workflow_name}: {digest.last_execution_at or 'never run'}")
    remaining = len(response.workflows) - len(preview)
    if remaining > 0:
        lines.append(f"- +{remaining} more")
    return lines


def _url_line(entry: NewUrl) -> str:
    label = str(entry.title or "").strip()
    if label:
        return f"  - {label} ({entry.url})"
    return f"  - {entry.url}"


def _detailed_entry(digest: WorkflowDigest, *, for_llm: bool) -> List[str]:
    marker = ""
    if digest.triggered_condition:
        marker = " [TRIGGERED]" if for_llm else " 🎯 triggered"
    lines = [f"### {digest.workflow_name}{marker}"]
    if for_llm:
        lines.append(f"- workflow_id: {digest.workflow_id}")
        lines.append(f"- signal: {digest.signal_level.value} ({digest.signal_score}/100)")
    else:
        lines.append(f"Score {digest.signal_score}/100")
    lines.append(f"- changes: {digest.change_summary}")
    lines.append(f"- why: {digest.signal_reasoning}")
    if digest.error:
        lines.append(f"- error: {digest.error}")
    if digest.new_urls:
        lines.append(f"- new URLs ({len(digest.new_urls)}):")
        lines.extend(_url_line(entry) for entry in digest.new_urls[:URL_PREVIEW_LIMIT])
        if len(digest.new_urls) > URL_PREVIEW_LIMIT:
            lines.append(f"  - +{len(digest.new_urls) - URL_PREVIEW_LIMIT} more")
    return lines


def _condensed_entry(digests: Sequence[WorkflowDigest]) -> List[str]:
    return [", ".join(digest.workflow_name for digest in digests)]


def _correlation_section(correlations: Sequence[Correlation], *, for_llm: bool) -> List[str]:
    heading = "## CROSS-WORKFLOW SIGNALS" if for_llm else "## 🔗 Cross-workflow signals"
    lines = [heading]
    for correlation in correlations[:CORRELATION_PREVIEW_LIMIT]:
        names = ", ".join(row.workflow_name for row in correlation.workflows)
        lines.append(f"- {display_domain(correlation.value)}: seen by {len(correlation.workflows)} monitors ({names})")
    return lines


def group_by_level(digests: Sequence[WorkflowDigest]) -> Dict[SignalLevel, List[WorkflowDigest]]:
    groups: Dict[SignalLevel, List[WorkflowDigest]] = {level: [] for level in LEVEL_ORDER}
    for digest in digests:
        groups[digest.signal_level].append(digest)
    return groups


def format_briefing(response: DigestResponse, *, for_llm: bool = False) -> str:
    """Render the digest as a grouped narrative briefing."""
    title = "# Workflow update briefing" if for_llm else "# 📋 Workflow update briefing"
    lines = [title, f"Since {response.since} (checked {response.checked_at})", ""]

    if response.workflows_with_changes == 0:
        lines.extend(_quiet_section(response))
        return "\n".join(lines).rstrip() + "\n"

    lines.extend([response.summary, ""])
    for level, digests in group_by_level(response.workflows).items():
        if not digests:
            continue
        lines.append(_heading(level, len(digests), for_llm=for_llm))
        if level in DETAILED_LEVELS:
            for digest in digests:
                lines.extend(_detailed_entry(digest, for_llm=for_llm))
                lines.append("")
        else:
            lines.extend(_condensed_entry(digests))
            lines.append("")

    if response.correlations:
        lines.extend(_correlation_section(response.correlations, for_llm=for_llm))

    return "\n".join(lines).rstrip() + "\n"


def compact_digest(digest: WorkflowDigest) -> Dict[str, Any]:
    return {
        "workflow_id": digest.workflow_id,
        "workflow_name": digest.workflow_name,
        "status": digest.status,
        "has_changes": digest.has_changes,
        "triggered_condition": digest.triggered_condition,
        "change_summary": digest.change_summary,
        "new_url_count": len(digest.new_urls),
    }


def format_compact(response: DigestResponse) -> Tuple[List[Dict[str, Any]], str]:
    """Strip every digest down to its essentials plus a one-line aggregate."""
    rows = [compact_digest(digest) for digest in response.workflows]
    line = (
        f"{response.workflows_with_changes}/{response.total_workflows} changed, "
        f"{response.triggered_workflows} triggered, "
        f"{response.total_executions_since} executions since {response.since}"
    )
    urgent = [digest.workflow_name for digest in response.workflows if digest.signal_level == SignalLevel.URGENT]
    if urgent and response.workflows_with_changes:
        line += f" | urgent: {', '.join(urgent)}"
    if response.correlations:
        line += f" | {len(response.correlations)} shared URL(s)"
    return rows, line


def render_digest(response: DigestResponse, fmt: DigestFormat = DigestFormat.JSON) -> Dict[str, Any]:
    """Produce the JSON-ready payload for the requested format."""
    fmt = DigestFormat(fmt)
    if fmt == DigestFormat.COMPACT:
        rows, line = format_compact(response)
        payload = response.model_dump(
            mode="json",
            exclude_none=True,
            exclude={"workflows", "correlations", "correlation_metadata", "formatted_output"},
        )
        payload["workflows"] = rows
        payload["formatted_output"] = line
        return payload

    payload = response.model_dump(mode="json", exclude_none=True, exclude={"formatted_output"})
    if fmt in {DigestFormat.BRIEFING, DigestFormat.BRIEFING_LLM}:
        payload["formatted_output"] = format_briefing(response, for_llm=fmt == DigestFormat.BRIEFING_LLM)
    return payload
