"""Completion predicates for asynchronous job features."""

from __future__ import annotations

from typing import Callable

from core import JobSnapshot, summary_settled as _summary_state_settled
from core.contracts import SETTLED_STATUSES


FeaturePredicate = Callable[[JobSnapshot], bool]


def summary_settled(snapshot: JobSnapshot) -> bool:
    return _summary_state_settled(snapshot.summary)


def metadata_settled(snapshot: JobSnapshot) -> bool:
    return snapshot.metadata_status in SETTLED_STATUSES


def job_completed(snapshot: JobSnapshot) -> bool:
    return snapshot.status == "completed"
