"""Canonical data contracts for job polling and workflow digests."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


SETTLED_STATUSES = frozenset({"completed", "failed"})


class DigestFormat(str, Enum):
    """Output shapes supported by the workflow digest."""

    JSON = "json"
    BRIEFING = "briefing"
    BRIEFING_LLM = "briefing_llm"
    COMPACT = "compact"


class SignalLevel(str, Enum):
    """Four-bucket importance classification of a digest."""

    URGENT = "urgent"
    NOTABLE = "notable"
    ROUTINE = "routine"
    NOISE = "noise"


class NoSummary(BaseModel):
    """No summary has been attached to the job yet."""

    kind: Literal["none"] = "none"


class LegacySummary(BaseModel):
    """Bare-string summary; older jobs return the final text directly."""

    kind: Literal["legacy"] = "legacy"
    text: str


class TrackedSummary(BaseModel):
    """Summary object carrying its own processing sub-status."""

    kind: Literal["tracked"] = "tracked"
    status: str
    content: Optional[str] = None


SummaryState = Union[NoSummary, LegacySummary, TrackedSummary]


def parse_summary(raw: Any) -> SummaryState:
    """Map the dynamic JSON `summary` field onto one summary variant."""
    if raw is None:
        return NoSummary()
    if isinstance(raw, str):
        return LegacySummary(text=raw)
    if isinstance(raw, dict):
        status = str(raw.get("status") or "pending").strip().lower()
        content = raw.get("content")
        return TrackedSummary(status=status, content=None if content is None else str(content))
    return LegacySummary(text=str(raw))


def summary_settled(state: SummaryState) -> bool:
    """True once the summary will no longer change."""
    if isinstance(state, LegacySummary):
        return True
    if isinstance(state, TrackedSummary):
        return state.status in SETTLED_STATUSES
    return False


class JobSnapshot(BaseModel):
    """Most recently observed state of a remote search/crawl job."""

    id: str
    status: str = "pending"
    summary: SummaryState = Field(default_factory=NoSummary, discriminator="kind")
    metadata_status: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "JobSnapshot":
        data = dict(payload or {})
        job_id = str(data.get("search_job_id") or data.get("id") or "").strip()
        interpretation = data.get("query_interpretation") or {}
        metadata_status = interpretation.get("metadata_status") if isinstance(interpretation, dict) else None
        if metadata_status is None:
            metadata_status = data.get("metadata_status")
        return cls(
            id=job_id,
            status=str(data.get("status") or "pending").strip().lower(),
            summary=parse_summary(data.get("summary")),
            metadata_status=str(metadata_status).strip().lower() if metadata_status else None,
            payload=data,
        )

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class PollOutcome(BaseModel):
    """Result of driving a job: the snapshot plus why polling stopped."""

    snapshot: JobSnapshot
    reason: Literal["not_requested", "ready", "timeout"]
    attempts: int = 0
    elapsed_sec: float = 0.0


class NewUrl(BaseModel):
    """A URL newly discovered by a workflow execution."""

    url: str
    title: Optional[str] = None
    snippet: Optional[str] = None
    published_date: Optional[str] = None
    document_type: Optional[str] = None

    @classmethod
    def coerce(cls, entry: Any) -> Optional["NewUrl"]:
        """Accept both the structured shape and legacy bare-string entries."""
        if isinstance(entry, str):
            url = entry.strip()
            return cls(url=url) if url else None
        if isinstance(entry, dict):
            url = str(entry.get("url") or "").strip()
            if not url:
                return None
            return cls(
                url=url,
                title=entry.get("title") or None,
                snippet=entry.get("snippet") or None,
                published_date=entry.get("published_date") or None,
                document_type=entry.get("document_type") or None,
            )
        return None


def optional_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


class WorkflowDigest(BaseModel):
    """One workflow's change state since the watermark plus its importance."""

    workflow_id: str
    workflow_name: str
    workflow_type: Optional[str] = None
    workflow_mode: Optional[str] = None
    status: str = "active"

    has_changes: bool = False
    triggered_condition: bool = False
    executions_since: int = 0
    last_execution_at: Optional[str] = None
    next_execution_at: Optional[str] = None

    change_summary: str = "No changes"
    change_rate: Optional[float] = Field(default=None, ge=0, le=100)

    signal_score: int = 50
    signal_level: SignalLevel = SignalLevel.ROUTINE
    signal_reasoning: str = "baseline activity"

    new_urls: List[NewUrl] = Field(default_factory=list)

    recent_diffs: Optional[List[Dict[str, Any]]] = None
    recent_executions: Optional[List[Dict[str, Any]]] = None
    latest_state: Optional[Dict[str, Any]] = None

    error: Optional[str] = None

    @classmethod
    def from_error(cls, workflow: Dict[str, Any], error: str) -> "WorkflowDigest":
        return cls(
            workflow_id=str(workflow.get("id") or ""),
            workflow_name=str(workflow.get("name") or "Unnamed workflow"),
            workflow_type=optional_text(workflow.get("workflow_type")),
            workflow_mode=optional_text(workflow.get("mode")),
            status=str(workflow.get("status") or "active"),
            has_changes=False,
            triggered_condition=False,
            executions_since=0,
            last_execution_at=optional_text(workflow.get("last_execution_at")),
            next_execution_at=optional_text(workflow.get("next_execution_at")),
            change_summary="Error fetching updates",
            error=error,
        )


class CorrelatedWorkflow(BaseModel):
    workflow_id: str
    workflow_name: str
    context: str = ""


class Correlation(BaseModel):
    """A value (currently a URL) that surfaced in two or more workflows."""

    type: Literal["shared_url", "shared_topic", "shared_entity"] = "shared_url"
    value: str
    workflows: List[CorrelatedWorkflow]
    insight: str

    @model_validator(mode="after")
    def _at_least_two_workflows(self) -> "Correlation":
        distinct = {row.workflow_id for row in self.workflows}
        if len(distinct) < 2:
            raise ValueError("correlation requires at least two distinct workflows")
        return self


class CorrelationMetadata(BaseModel):
    workflows_analyzed: int = 0
    workflows_skipped: int = 0
    total_urls_compared: int = 0


class DigestResponse(BaseModel):
    """Aggregate workflow update digest, built fresh per call."""

    summary: str
    since: str
    checked_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )
    total_workflows: int = 0
    total_workflows_scanned: Optional[int] = None
    workflows_truncated: Optional[bool] = None
    max_workflows_applied: Optional[int] = None
    workflows_with_changes: int = 0
    triggered_workflows: int = 0
    total_executions_since: int = 0
    workflows: List[WorkflowDigest] = Field(default_factory=list)
    formatted_output: Optional[str] = None
    correlations: Optional[List[Correlation]] = None
    correlation_metadata: Optional[CorrelationMetadata] = None

    @field_validator("summary", mode="before")
    @classmethod
    def _non_empty_summary(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("summary is required")
        return text
