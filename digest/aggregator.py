"""
Workflow Update Aggregator
并发拉取每个工作流的执行记录与变更 diff，生成逐工作流的摘要
"""

from __future__ import annotations

import asyncio
from datetime import datetime
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from config import get_settings
from core import DigestResponse, NewUrl, WorkflowDigest
from core.contracts import optional_text
from digest.change_summary import diffs_newest_first, parse_timestamp, summarize_changes
from digest.scoring import apply_signal_score
from sources import ZipfClient


logger = logging.getLogger(__name__)

NO_WORKFLOWS_SUMMARY = "No workflows found. Create a workflow to start monitoring."
ALL_QUIET_SUMMARY = "All quiet: no changes detected across {total} workflows since {since}."

VERBOSE_DIFF_LIMIT = 3
VERBOSE_EXECUTION_LIMIT = 5


def _after(value: Any, watermark: datetime) -> bool:
    ts = parse_timestamp(value)
    return ts is not None and ts > watermark


def count_executions_since(executions: List[Mapping[str, Any]], watermark: datetime) -> int:
    return sum(
        1
        for execution in executions
        if _after(execution.get("completed_at") or execution.get("started_at"), watermark)
    )


def _coerce_urls(entries: Any) -> List[NewUrl]:
    if not isinstance(entries, (list, tuple)):
        return []
    urls: List[NewUrl] = []
    for entry in entries:
        item = NewUrl.coerce(entry)
        if item is not None:
            urls.append(item)
    return urls


def extract_new_urls(
    diff: Optional[Mapping[str, Any]],
    latest_state: Optional[Mapping[str, Any]] = None,
) -> List[NewUrl]:
    """
    Read `net_new_urls` from the most recent diff's extracted state.

    Falls back to the workflow's latest state when that diff carries no URL
    list. Bare-string entries become ``NewUrl(url=...)``.
    """
    state = (diff or {}).get("extracted_state")
    if isinstance(state, Mapping) and state.get("net_new_urls") is not None:
        return _coerce_urls(state.get("net_new_urls"))
    if latest_state:
        return _coerce_urls(latest_state.get("net_new_urls"))
    return []


def _change_rate(diff_payload: Mapping[str, Any]) -> Optional[float]:
    raw = (diff_payload.get("stats") or {}).get("change_rate")
    if raw is None:
        return None
    try:
        rate = float(raw)
    except (TypeError, ValueError):
        return None
    # percentage; out-of-range upstream values are clamped
    return max(0.0, min(100.0, rate))


def latest_state_of(diff_payload: Mapping[str, Any]) -> Dict[str, Any]:
    latest = diff_payload.get("latest") or {}
    state = latest.get("state") if isinstance(latest, Mapping) else None
    if isinstance(state, Mapping):
        return dict(state)
    newest = diffs_newest_first(list(diff_payload.get("diffs") or []))
    if newest and isinstance(newest[0].get("extracted_state"), Mapping):
        return dict(newest[0]["extracted_state"])
    return {}


def assemble_digest(
    workflow: Mapping[str, Any],
    timeline: Mapping[str, Any],
    diff_payload: Mapping[str, Any],
    watermark: datetime,
    *,
    verbose: bool = False,
) -> WorkflowDigest:
    """Assemble one digest from already-fetched workflow, timeline and diff payloads."""
    executions = [row for row in list(timeline.get("executions") or []) if isinstance(row, Mapping)]
    diffs = diffs_newest_first(list(diff_payload.get("diffs") or []))
    status = str(workflow.get("status") or "active")
    latest_state = latest_state_of(diff_payload)

    digest = WorkflowDigest(
        workflow_id=str(workflow.get("id") or ""),
        workflow_name=str(workflow.get("name") or diff_payload.get("workflow_name") or "Unnamed workflow"),
        workflow_type=optional_text(workflow.get("workflow_type") or diff_payload.get("workflow_type")),
        workflow_mode=optional_text(workflow.get("mode") or diff_payload.get("workflow_mode")),
        status=status,
        has_changes=any(bool(diff.get("has_changes")) for diff in diffs),
        # completion after the watermark counts as triggered whatever the reason
        triggered_condition=status == "completed" and _after(workflow.get("last_execution_at"), watermark),
        executions_since=count_executions_since(executions, watermark),
        last_execution_at=optional_text(workflow.get("last_execution_at")),
        next_execution_at=optional_text(workflow.get("next_execution_at")),
        change_summary=summarize_changes(diff_payload),
        change_rate=_change_rate(diff_payload),
        new_urls=extract_new_urls(diffs[0] if diffs else None, latest_state),
    )

    if verbose:
        digest.recent_diffs = [dict(diff) for diff in diffs[:VERBOSE_DIFF_LIMIT]]
        digest.recent_executions = [dict(row) for row in executions[:VERBOSE_EXECUTION_LIMIT]]
        digest.latest_state = latest_state or None

    return apply_signal_score(digest, workflow, latest_state)


def summarize_response(
    total: int,
    with_changes: int,
    triggered: int,
    executions: int,
    since: str,
) -> str:
    if with_changes == 0:
        return ALL_QUIET_SUMMARY.format(total=total, since=since)
    text = f"{with_changes} of {total} workflows have changes since {since}"
    if triggered:
        text += f", {triggered} triggered"
    return f"{text} ({executions} executions)."


class WorkflowUpdateAggregator:
    """
    工作流更新聚合器
    每个工作流的失败被隔离为错误摘要，不影响其他工作流
    """

    def __init__(
        self,
        client: ZipfClient,
        *,
        max_concurrency: Optional[int] = None,
        timeline_limit: Optional[int] = None,
    ):
        settings = get_settings().digest
        self._client = client
        self._settings = settings
        self._semaphore = asyncio.Semaphore(max(1, int(max_concurrency or settings.max_concurrency)))
        self.timeline_limit = int(timeline_limit or settings.timeline_limit)

    def resolve_max_workflows(self, max_workflows: Optional[int]) -> int:
        if max_workflows is None:
            return int(self._settings.default_max_workflows)
        return max(1, min(int(self._settings.hard_max_workflows), int(max_workflows)))

    async def _guarded(self, fetch: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        async with self._semaphore:
            return await fetch(*args)

    async def list_workflows(
        self,
        *,
        include_inactive: bool,
        max_workflows: int,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Follow pagination until `max_workflows` are collected. Returns (workflows, total)."""
        status = None if include_inactive else "active"
        page_size = max(1, min(int(self._settings.page_size), max_workflows))
        collected: List[Dict[str, Any]] = []
        total: Optional[int] = None
        offset = 0

        while len(collected) < max_workflows:
            page = await self._client.list_workflows(status=status, limit=page_size, offset=offset)
            rows = [row for row in list(page.get("workflows") or []) if isinstance(row, dict)]
            pagination = page.get("pagination") or {}
            if pagination.get("total") is not None:
                total = int(pagination["total"])
            collected.extend(rows)
            offset += len(rows)

            has_more = pagination.get("hasMore")
            if has_more is None:
                has_more = total is not None and offset < total
            if not rows or not has_more:
                break

        if total is None:
            total = len(collected)
        return collected[:max_workflows], max(total, len(collected))

    async def _fetch_pair(self, workflow_id: str, since_iso: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        results = await asyncio.gather(
            self._guarded(self._client.get_workflow_timeline, workflow_id, self.timeline_limit),
            self._guarded(self._client.get_workflow_diff, workflow_id, since_iso),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        timeline, diff_payload = results
        return dict(timeline or {}), dict(diff_payload or {})

    async def digest_workflow(
        self,
        workflow: Dict[str, Any],
        watermark: datetime,
        *,
        verbose: bool = False,
    ) -> WorkflowDigest:
        workflow_id = str(workflow.get("id") or "")
        try:
            timeline, diff_payload = await self._fetch_pair(workflow_id, watermark.isoformat(timespec="seconds"))
            return assemble_digest(workflow, timeline, diff_payload, watermark, verbose=verbose)
        except Exception as exc:
            logger.warning(f"Workflow {workflow_id} digest failed: {exc}")
            digest = WorkflowDigest.from_error(workflow, str(exc) or type(exc).__name__)
            return apply_signal_score(digest, workflow)

    async def aggregate(
        self,
        watermark: datetime,
        *,
        include_inactive: bool = False,
        max_workflows: Optional[int] = None,
        verbose: bool = False,
    ) -> DigestResponse:
        """
        Build the per-workflow digest set since `watermark`.

        Listing failures propagate; anything that goes wrong inside one
        workflow becomes that workflow's error digest.
        """
        cap = self.resolve_max_workflows(max_workflows)
        since = watermark.isoformat(timespec="seconds")
        workflows, total_scanned = await self.list_workflows(include_inactive=include_inactive, max_workflows=cap)

        if not workflows:
            return DigestResponse(summary=NO_WORKFLOWS_SUMMARY, since=since, total_workflows=0)

        digests = await asyncio.gather(
            *[self.digest_workflow(workflow, watermark, verbose=verbose) for workflow in workflows]
        )
        ordered = sorted(digests, key=lambda row: (-row.signal_score, -row.executions_since))

        with_changes = sum(1 for row in ordered if row.has_changes)
        triggered = sum(1 for row in ordered if row.triggered_condition)
        executions = sum(row.executions_since for row in ordered)
        errors = sum(1 for row in ordered if row.error)
        if errors:
            logger.info(f"Digest built with {errors}/{len(ordered)} workflow errors")

        return DigestResponse(
            summary=summarize_response(len(ordered), with_changes, triggered, executions, since),
            since=since,
            total_workflows=len(ordered),
            total_workflows_scanned=total_scanned,
            workflows_truncated=total_scanned > len(ordered),
            max_workflows_applied=cap,
            workflows_with_changes=with_changes,
            triggered_workflows=triggered,
            total_executions_since=executions,
            workflows=ordered,
        )
