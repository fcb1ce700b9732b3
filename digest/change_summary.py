"""Short human-readable change summaries derived from workflow diffs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence


NO_CHANGES_DETECTED = "No changes detected"
NO_CHANGES = "No changes"

# change_type -> (tally bucket); status/text changes share one bucket
_CHANGE_BUCKETS = {
    "added": "added",
    "removed": "removed",
    "increase": "increase",
    "decrease": "decrease",
    "status_change": "changed",
    "text_change": "changed",
}
_BUCKET_LABELS = (
    ("added", "+{count} added"),
    ("removed", "-{count} removed"),
    ("increase", "↑{count} increased"),
    ("decrease", "↓{count} decreased"),
    ("changed", "~{count} changed"),
)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        dt = value
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    text = str(value or "").strip()
    if not text:
        return None
    normalized = text.replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def diffs_newest_first(diffs: Sequence[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """Order execution diffs by `executed_at`, undated entries last."""
    return sorted(
        [diff for diff in diffs if isinstance(diff, Mapping)],
        key=lambda diff: parse_timestamp(diff.get("executed_at")) or _EPOCH,
        reverse=True,
    )


def latest_diff(diffs: Sequence[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    ordered = diffs_newest_first(diffs)
    return ordered[0] if ordered else None


def tally_changes(changes: Sequence[Mapping[str, Any]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for change in changes or []:
        bucket = _CHANGE_BUCKETS.get(str((change or {}).get("change_type") or "").strip().lower())
        if bucket:
            counts[bucket] = counts.get(bucket, 0) + 1
    return counts


def summarize_changes(diff_payload: Mapping[str, Any]) -> str:
    """
    Derive the digest change summary from a workflow diff response.

    Returns e.g. ``"+2 added, ↑1 increased"``.
    """
    stats = diff_payload.get("stats") or {}
    change_rate = stats.get("change_rate")
    if change_rate is not None:
        try:
            if float(change_rate) == 0.0:
                return NO_CHANGES_DETECTED
        except (TypeError, ValueError):
            pass

    recent = latest_diff(list(diff_payload.get("diffs") or []))
    if recent is None:
        return NO_CHANGES

    changes = list(recent.get("changes") or [])
    if not recent.get("has_changes") and not changes:
        return NO_CHANGES_DETECTED

    counts = tally_changes(changes)
    parts = [label.format(count=counts[bucket]) for bucket, label in _BUCKET_LABELS if counts.get(bucket)]
    if parts:
        return ", ".join(parts)

    text = str(recent.get("summary") or "").strip()
    if text:
        return text
    return NO_CHANGES
