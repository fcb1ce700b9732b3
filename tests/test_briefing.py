from __future__ import annotations

from core import (
    CorrelatedWorkflow,
    Correlation,
    DigestFormat,
    DigestResponse,
    NewUrl,
    SignalLevel,
    WorkflowDigest,
)
from digest.briefing import format_briefing, format_compact, group_by_level, render_digest


def _digest(workflow_id: str, level: SignalLevel, score: int, **extra) -> WorkflowDigest:
    data = {
        "workflow_id": workflow_id,
        "workflow_name": f"Monitor {workflow_id}",
        "signal_level": level,
        "signal_score": score,
        "has_changes": True,
    }
    data.update(extra)
    return WorkflowDigest(**data)


def _response(workflows, **extra) -> DigestResponse:
    data = {
        "summary": "2 of 4 workflows have changes since 2026-10-16T00:00:00+00:00.",
        "since": "2026-10-16T00:00:00+00:00",
        "checked_at": "2026-10-17T00:00:00+00:00",
        "total_workflows": len(workflows),
        "workflows_with_changes": sum(1 for row in workflows if row.has_changes),
        "triggered_workflows": sum(1 for row in workflows if row.triggered_condition),
        "workflows": workflows,
    }
    data.update(extra)
    return DigestResponse(**data)


def _mixed_response() -> DigestResponse:
    urls = [NewUrl(url=f"https://example.com/{idx}", title=f"Story {idx}" if idx == 0 else None) for idx in range(5)]
    workflows = [
        _digest("a", SignalLevel.URGENT, 95, triggered_condition=True, new_urls=urls, change_summary="+5 added"),
        _digest("b", SignalLevel.NOTABLE, 65, change_summary="~1 changed"),
        _digest("c", SignalLevel.ROUTINE, 50, has_changes=False),
        _digest("d", SignalLevel.NOISE, 20, has_changes=False),
    ]
    correlation = Correlation(
        value="https://www.example.com/0",
        workflows=[
            CorrelatedWorkflow(workflow_id="a", workflow_name="Monitor a"),
            CorrelatedWorkflow(workflow_id="b", workflow_name="Monitor b"),
        ],
        insight="Appears in 2 monitors: Monitor a, Monitor b",
    )
    return _response(workflows, correlations=[correlation], total_executions_since=7)


def test_human_briefing_groups_by_level() -> None:
    text = format_briefing(_mixed_response())

    assert text.startswith("# 📋 Workflow update briefing\n")
    assert text.index("## 🔴 Urgent (1)") < text.index("## 🟡 Notable (1)") < text.index("## 🟢 Routine (1)")
    assert "### Monitor a 🎯 triggered" in text
    assert "  - Story 0 (https://example.com/0)" in text
    assert "  - https://example.com/2" in text
    assert "https://example.com/3" not in text
    assert "  - +2 more" in text
    assert "## ⚪ Noise (1)\nMonitor d" in text
    assert "## 🔗 Cross-workflow signals" in text
    assert "- example.com: seen by 2 monitors (Monitor a, Monitor b)" in text


def test_llm_briefing_uses_plain_headings() -> None:
    text = format_briefing(_mixed_response(), for_llm=True)

    assert text.startswith("# Workflow update briefing\n")
    assert "## URGENT (1)" in text
    assert "### Monitor a [TRIGGERED]" in text
    assert "- signal: urgent (95/100)" in text
    assert "## CROSS-WORKFLOW SIGNALS" in text
    assert "🔴" not in text


def test_quiet_briefing_lists_last_executions() -> None:
    workflows = [
        _digest(str(idx), SignalLevel.ROUTINE, 50, has_changes=False, last_execution_at=f"2026-10-16T0{idx}:00:00Z")
        for idx in range(7)
    ]
    workflows[0].last_execution_at = None
    response = _response(workflows, summary="All quiet: no changes detected across 7 workflows since x.")

    text = format_briefing(response)

    assert "## All quiet" in text
    assert "All quiet: no changes detected across 7 workflows since x." in text
    assert "- Monitor 0: never run" in text
    assert "- Monitor 4: 2026-10-16T04:00:00Z" in text
    assert "Monitor 5" not in text
    assert "- +2 more" in text
    assert "## 🟢 Routine" not in text


def test_group_by_level_keeps_fixed_order() -> None:
    groups = group_by_level(_mixed_response().workflows)
    assert list(groups) == [SignalLevel.URGENT, SignalLevel.NOTABLE, SignalLevel.ROUTINE, SignalLevel.NOISE]
    assert [row.workflow_id for row in groups[SignalLevel.URGENT]] == ["a"]


def test_compact_rows_and_one_line_summary() -> None:
    rows, line = format_compact(_mixed_response())

    assert rows[0] == {
        "workflow_id": "a",
        "workflow_name": "Monitor a",
        "status": "active",
        "has_changes": True,
        "triggered_condition": True,
        "change_summary": "+5 added",
        "new_url_count": 5,
    }
    assert line == (
        "2/4 changed, 1 triggered, 7 executions since 2026-10-16T00:00:00+00:00"
        " | urgent: Monitor a | 1 shared URL(s)"
    )


def test_render_formats() -> None:
    response = _mixed_response()

    as_json = render_digest(response, DigestFormat.JSON)
    assert "formatted_output" not in as_json
    assert as_json["workflows"][0]["signal_level"] == "urgent"
    assert as_json["correlations"][0]["type"] == "shared_url"

    briefing = render_digest(response, DigestFormat.BRIEFING_LLM)
    assert briefing["formatted_output"].startswith("# Workflow update briefing")
    assert len(briefing["workflows"]) == 4

    compact = render_digest(response, "compact")
    assert "correlations" not in compact
    assert set(compact["workflows"][0]) == {
        "workflow_id",
        "workflow_name",
        "status",
        "has_changes",
        "triggered_condition",
        "change_summary",
        "new_url_count",
    }
    assert compact["formatted_output"].startswith("2/4 changed")
