"""Rule-based signal scoring for workflow digests.

Deterministic additive terms over a fixed baseline; every weight and
threshold is a module constant so the heuristic stays auditable.
"""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from core import NewUrl, SignalLevel, WorkflowDigest


BASELINE_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100

PRIORITY_WEIGHTS = {"high": 25, "low": -15}
TRIGGERED_WEIGHT = 30
HIGH_SIGNAL_SOURCE_WEIGHT = 20
HIGH_CHURN_THRESHOLD = 50.0
HIGH_CHURN_WEIGHT = -15
TARGETED_CHURN_MAX = 20.0
TARGETED_CHURN_WEIGHT = 5
NEW_DOMAIN_WEIGHT = 10
EXTRACTION_CHANGE_WEIGHT = 15
MANY_NEW_URLS_THRESHOLD = 5
MANY_NEW_URLS_WEIGHT = 10
SOME_NEW_URLS_WEIGHT = 5

LEVEL_THRESHOLDS = (
    (80, SignalLevel.URGENT),
    (60, SignalLevel.NOTABLE),
    (40, SignalLevel.ROUTINE),
)

# Any document_type containing one of these tokens counts as high-signal,
# e.g. "legal_regulatory", "academic_paper", "news_editorial", "government".
HIGH_SIGNAL_DOCUMENT_TOKENS = frozenset({"legal", "regulatory", "academic", "news", "editorial", "government"})

BASELINE_REASONING = "baseline activity"


class SignalScore(BaseModel):
    score: int
    level: SignalLevel
    reasoning: str
    factors: List[str] = Field(default_factory=list)


def signal_level_for(score: int) -> SignalLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return SignalLevel.NOISE


def _clamp(value: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, int(value)))


def _document_tokens(document_type: Optional[str]) -> List[str]:
    return [token for token in re.split(r"[^a-z]+", str(document_type or "").lower()) if token]


def high_signal_document_type(new_urls: Sequence[NewUrl]) -> Optional[str]:
    for entry in new_urls:
        if HIGH_SIGNAL_DOCUMENT_TOKENS.intersection(_document_tokens(entry.document_type)):
            return str(entry.document_type)
    return None


def workflow_priority(workflow: Mapping[str, Any]) -> str:
    priority = workflow.get("priority")
    if not priority:
        config = workflow.get("operation_config")
        priority = config.get("priority") if isinstance(config, Mapping) else None
    return str(priority or "").strip().lower()


def new_domain_count(state: Mapping[str, Any]) -> int:
    raw = state.get("new_domain_count")
    if raw is not None:
        try:
            return int(raw)
        except (TypeError, ValueError):
            return 0
    domains = state.get("net_new_domains")
    return len(domains) if isinstance(domains, (list, tuple)) else 0


def extraction_field_changes(state: Mapping[str, Any]) -> List[str]:
    changes = state.get("extraction_field_changes")
    if not isinstance(changes, (list, tuple)):
        return []
    fields = []
    for change in changes:
        if isinstance(change, Mapping):
            fields.append(str(change.get("field") or "?"))
        else:
            fields.append(str(change))
    return fields


def score_signal(
    digest: WorkflowDigest,
    workflow: Optional[Mapping[str, Any]] = None,
    latest_state: Optional[Mapping[str, Any]] = None,
) -> SignalScore:
    """Score one digest; pure function of the digest, its workflow and latest state."""
    workflow = workflow or {}
    state = latest_state or {}
    total = BASELINE_SCORE
    factors: List[str] = []

    priority = workflow_priority(workflow)
    if priority in PRIORITY_WEIGHTS:
        weight = PRIORITY_WEIGHTS[priority]
        total += weight
        factors.append(f"{priority} priority ({weight:+d})")

    if digest.triggered_condition:
        total += TRIGGERED_WEIGHT
        factors.append(f"stop condition triggered ({TRIGGERED_WEIGHT:+d})")

    document_type = high_signal_document_type(digest.new_urls)
    if document_type:
        total += HIGH_SIGNAL_SOURCE_WEIGHT
        factors.append(f"high-signal source: {document_type} ({HIGH_SIGNAL_SOURCE_WEIGHT:+d})")

    rate = digest.change_rate
    if rate is not None:
        if rate > HIGH_CHURN_THRESHOLD:
            total += HIGH_CHURN_WEIGHT
            factors.append(f"high churn {rate:.0f}% ({HIGH_CHURN_WEIGHT:+d})")
        elif 0 < rate <= TARGETED_CHURN_MAX:
            total += TARGETED_CHURN_WEIGHT
            factors.append(f"targeted change {rate:.0f}% ({TARGETED_CHURN_WEIGHT:+d})")

    domains = new_domain_count(state)
    if domains > 0:
        total += NEW_DOMAIN_WEIGHT
        factors.append(f"{domains} new domain(s) ({NEW_DOMAIN_WEIGHT:+d})")

    fields = extraction_field_changes(state)
    if fields:
        total += EXTRACTION_CHANGE_WEIGHT
        factors.append(f"extracted fields changed: {', '.join(fields[:3])} ({EXTRACTION_CHANGE_WEIGHT:+d})")

    url_count = len(digest.new_urls)
    if url_count >= MANY_NEW_URLS_THRESHOLD:
        total += MANY_NEW_URLS_WEIGHT
        factors.append(f"{url_count} new URLs ({MANY_NEW_URLS_WEIGHT:+d})")
    elif url_count > 0:
        total += SOME_NEW_URLS_WEIGHT
        factors.append(f"{url_count} new URL(s) ({SOME_NEW_URLS_WEIGHT:+d})")

    score = _clamp(total)
    return SignalScore(
        score=score,
        level=signal_level_for(score),
        reasoning="; ".join(factors) if factors else BASELINE_REASONING,
        factors=factors,
    )


def apply_signal_score(
    digest: WorkflowDigest,
    workflow: Optional[Mapping[str, Any]] = None,
    latest_state: Optional[Mapping[str, Any]] = None,
) -> WorkflowDigest:
    result = score_signal(digest, workflow, latest_state)
    digest.signal_score = result.score
    digest.signal_level = result.level
    digest.signal_reasoning = result.reasoning
    return digest
