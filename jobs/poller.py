"""Backoff poller that drives one remote job until its requested features settle."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from config import get_settings
from core import JobSnapshot, PollOutcome
from jobs.features import FeaturePredicate
from utils.exceptions import JobFailedError


logger = logging.getLogger(__name__)

SnapshotFetcher = Callable[[str], Awaitable[Optional[Dict[str, Any]]]]


class AsyncJobPoller:
    """
    Poll a job snapshot with exponential backoff inside a wall-clock budget.

    The fetcher must swallow transient failures itself and return ``None``;
    the poller keeps the last good snapshot and carries on. Each fetch is
    cut off at the remaining budget and then counts as a miss. A ``failed``
    status raises :class:`JobFailedError`. When the budget runs out the last
    observed snapshot is returned instead of raising, so callers should read
    the outcome as "best available data", not "operation succeeded".
    """

    def __init__(
        self,
        fetch_snapshot: SnapshotFetcher,
        *,
        initial_interval_sec: Optional[float] = None,
        backoff_multiplier: Optional[float] = None,
        max_interval_sec: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings().poller
        self._fetch_snapshot = fetch_snapshot
        self.initial_interval_sec = float(
            settings.initial_interval_sec if initial_interval_sec is None else initial_interval_sec
        )
        self.backoff_multiplier = float(
            settings.backoff_multiplier if backoff_multiplier is None else backoff_multiplier
        )
        self.max_interval_sec = float(settings.max_interval_sec if max_interval_sec is None else max_interval_sec)
        self._min_budget = float(settings.min_budget_sec)
        self._max_budget = float(settings.max_budget_sec)
        self._default_budget = float(settings.budget_sec)
        self._sleep = sleep
        self._clock = clock

    def clamp_budget(self, budget_sec: Optional[float]) -> float:
        if budget_sec is None:
            return self._default_budget
        return max(self._min_budget, min(self._max_budget, float(budget_sec)))

    def next_interval(self, interval: float) -> float:
        return min(self.max_interval_sec, interval * self.backoff_multiplier)

    @staticmethod
    def _ensure_not_failed(snapshot: JobSnapshot) -> None:
        if snapshot.failed:
            raise JobFailedError(
                f"Job {snapshot.id} failed",
                snapshot=snapshot,
                job_id=snapshot.id,
            )

    async def poll(
        self,
        initial_payload: Dict[str, Any],
        predicates: Sequence[FeaturePredicate] = (),
        *,
        budget_sec: Optional[float] = None,
    ) -> PollOutcome:
        """
        Drive the job described by ``initial_payload`` (the submission response).

        Args:
            initial_payload: submission response carrying the job id
            predicates: feature-completion checks; all must hold to stop early
            budget_sec: wall-clock budget, clamped to the configured range

        Returns:
            PollOutcome with reason ``not_requested``, ``ready`` or ``timeout``
        """
        last = JobSnapshot.from_payload(initial_payload)
        checks = list(predicates or [])
        if not checks:
            return PollOutcome(snapshot=last, reason="not_requested")

        self._ensure_not_failed(last)
        if all(check(last) for check in checks):
            return PollOutcome(snapshot=last, reason="ready")

        budget = self.clamp_budget(budget_sec)
        started = self._clock()
        deadline = started + budget
        interval = self.initial_interval_sec
        attempts = 0

        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(interval, remaining))
            interval = self.next_interval(interval)

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            attempts += 1
            try:
                # a single slow request may not outlive the budget
                payload = await asyncio.wait_for(self._fetch_snapshot(last.id), timeout=remaining)
            except asyncio.TimeoutError:
                logger.debug(f"Poll attempt {attempts} for job {last.id} cut off at budget")
                payload = None
            if payload is None:
                logger.debug(f"Poll attempt {attempts} for job {last.id} got no snapshot")
                continue

            snapshot = JobSnapshot.from_payload(payload)
            if not snapshot.id:
                snapshot = snapshot.model_copy(update={"id": last.id})
            last = snapshot
            self._ensure_not_failed(last)
            if all(check(last) for check in checks):
                elapsed = self._clock() - started
                logger.info(f"Job {last.id} ready after {attempts} polls ({elapsed:.1f}s)")
                return PollOutcome(snapshot=last, reason="ready", attempts=attempts, elapsed_sec=elapsed)

        elapsed = self._clock() - started
        logger.warning(
            f"Job {last.id} still '{last.status}' after {budget:.0f}s budget; returning partial snapshot"
        )
        return PollOutcome(snapshot=last, reason="timeout", attempts=attempts, elapsed_sec=elapsed)
