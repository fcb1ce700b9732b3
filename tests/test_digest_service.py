from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from digest import build_workflow_digest, resolve_watermark


class _FakeWorkflowClient:
    def __init__(self, workflows: List[Dict[str, Any]], diffs: Dict[str, Dict[str, Any]]) -> None:
        self.workflows = workflows
        self.diffs = diffs
        self.diff_since: List[str] = []

    async def list_workflows(self, status=None, limit=50, offset=0):
        rows = self.workflows[offset : offset + limit]
        return {"workflows": rows, "pagination": {"total": len(self.workflows), "hasMore": False}}

    async def get_workflow_timeline(self, workflow_id: str, limit: int = 20):
        return {"executions": [{"completed_at": "2026-10-16T05:00:00Z"}]}

    async def get_workflow_diff(self, workflow_id: str, since=None):
        self.diff_since.append(since)
        return self.diffs.get(workflow_id, {"stats": {"change_rate": 0}, "diffs": []})


def _workflow(workflow_id: str, name: str) -> Dict[str, Any]:
    return {"id": workflow_id, "name": name, "status": "active", "last_execution_at": "2026-10-16T05:00:00Z"}


def _diff_with_urls(*urls: str) -> Dict[str, Any]:
    return {
        "stats": {"change_rate": 15},
        "diffs": [
            {
                "executed_at": "2026-10-16T05:00:00Z",
                "has_changes": True,
                "changes": [{"change_type": "added"} for _ in urls],
                "extracted_state": {"net_new_urls": [{"url": url, "title": "Shared story"} for url in urls]},
            }
        ],
    }


@pytest.mark.asyncio
async def test_all_quiet_digest_has_no_correlations() -> None:
    client = _FakeWorkflowClient([_workflow("wf_1", "A"), _workflow("wf_2", "B")], {})

    payload = await build_workflow_digest(client, since="2026-10-16T00:00:00Z")

    assert payload["workflows_with_changes"] == 0
    assert payload["summary"].startswith("All quiet: no changes detected across 2 workflows")
    assert "correlations" not in payload
    assert "correlation_metadata" not in payload
    assert payload["total_executions_since"] == 2
    assert client.diff_since == ["2026-10-16T00:00:00+00:00", "2026-10-16T00:00:00+00:00"]


@pytest.mark.asyncio
async def test_shared_url_is_reported_across_workflows() -> None:
    client = _FakeWorkflowClient(
        [_workflow("wf_1", "A"), _workflow("wf_2", "B"), _workflow("wf_3", "C")],
        {
            "wf_1": _diff_with_urls("https://example.com/x?utm_source=feed"),
            "wf_2": _diff_with_urls("http://example.com/x/", "https://example.com/only-b"),
        },
    )

    payload = await build_workflow_digest(client, since="2026-10-16T00:00:00Z")

    assert payload["workflows_with_changes"] == 2
    assert len(payload["correlations"]) == 1
    correlation = payload["correlations"][0]
    assert correlation["value"] == "https://example.com/x"
    assert sorted(row["workflow_name"] for row in correlation["workflows"]) == ["A", "B"]
    assert payload["correlation_metadata"] == {
        "workflows_analyzed": 2,
        "workflows_skipped": 0,
        "total_urls_compared": 3,
    }


@pytest.mark.asyncio
async def test_briefing_format_attaches_formatted_output() -> None:
    client = _FakeWorkflowClient([_workflow("wf_1", "A")], {"wf_1": _diff_with_urls("https://example.com/a")})

    payload = await build_workflow_digest(client, since="2026-10-16T00:00:00Z", format="briefing")

    assert payload["formatted_output"].startswith("# 📋 Workflow update briefing")
    assert "### A" in payload["formatted_output"]


@pytest.mark.asyncio
async def test_invalid_inputs_raise_value_error() -> None:
    client = _FakeWorkflowClient([], {})

    with pytest.raises(ValueError, match="Invalid 'since'"):
        await build_workflow_digest(client, since="yesterday-ish")
    with pytest.raises(ValueError):
        await build_workflow_digest(client, format="yaml")


def test_watermark_defaults_to_window_before_now() -> None:
    now = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
    assert resolve_watermark(None, now=now) == now - timedelta(hours=24)
    assert resolve_watermark("  ", now=now) == now - timedelta(hours=24)
    assert resolve_watermark("2026-10-16T00:00:00Z") == datetime(2026, 10, 16, tzinfo=timezone.utc)
