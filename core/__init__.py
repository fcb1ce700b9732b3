"""Core contracts and shared types for job polling and workflow digests."""

from .contracts import (
    CorrelatedWorkflow,
    Correlation,
    CorrelationMetadata,
    DigestFormat,
    DigestResponse,
    JobSnapshot,
    LegacySummary,
    NewUrl,
    NoSummary,
    PollOutcome,
    SignalLevel,
    SummaryState,
    TrackedSummary,
    WorkflowDigest,
    parse_summary,
    summary_settled,
)

__all__ = [
    "CorrelatedWorkflow",
    "Correlation",
    "CorrelationMetadata",
    "DigestFormat",
    "DigestResponse",
    "JobSnapshot",
    "LegacySummary",
    "NewUrl",
    "NoSummary",
    "PollOutcome",
    "SignalLevel",
    "SummaryState",
    "TrackedSummary",
    "WorkflowDigest",
    "parse_summary",
    "summary_settled",
]
