from __future__ import annotations

from datetime import datetime, timezone

from digest.change_summary import diffs_newest_first, parse_timestamp, summarize_changes


def test_zero_change_rate_wins_over_diffs() -> None:
    payload = {
        "stats": {"change_rate": 0},
        "diffs": [{"executed_at": "2026-10-16T10:00:00Z", "has_changes": True, "changes": [{"change_type": "added"}]}],
    }
    assert summarize_changes(payload) == "No changes detected"


def test_no_diffs_means_no_changes() -> None:
    assert summarize_changes({"diffs": []}) == "No changes"
    assert summarize_changes({}) == "No changes"


def test_latest_diff_without_changes() -> None:
    payload = {
        "diffs": [
            {"executed_at": "2026-10-15T10:00:00Z", "has_changes": True, "changes": [{"change_type": "added"}]},
            {"executed_at": "2026-10-16T10:00:00Z", "has_changes": False, "changes": []},
        ]
    }
    assert summarize_changes(payload) == "No changes detected"


def test_changes_are_tallied_by_type_in_fixed_order() -> None:
    payload = {
        "stats": {"change_rate": 12.5},
        "diffs": [
            {
                "executed_at": "2026-10-16T10:00:00Z",
                "has_changes": True,
                "changes": [
                    {"change_type": "decrease"},
                    {"change_type": "added"},
                    {"change_type": "added"},
                    {"change_type": "status_change"},
                    {"change_type": "text_change"},
                    {"change_type": "removed"},
                    {"change_type": "increase"},
                ],
            }
        ],
    }
    assert summarize_changes(payload) == "+2 added, -1 removed, ↑1 increased, ↓1 decreased, ~2 changed"


def test_free_text_summary_used_when_change_types_unknown() -> None:
    payload = {
        "diffs": [
            {
                "executed_at": "2026-10-16T10:00:00Z",
                "has_changes": True,
                "changes": [{"change_type": "reordered"}],
                "summary": "Ranking shuffled",
            }
        ]
    }
    assert summarize_changes(payload) == "Ranking shuffled"


def test_diffs_sorted_newest_first_with_undated_last() -> None:
    ordered = diffs_newest_first(
        [
            {"id": "old", "executed_at": "2026-10-14T00:00:00Z"},
            {"id": "undated"},
            {"id": "new", "executed_at": "2026-10-16T00:00:00+00:00"},
        ]
    )
    assert [row["id"] for row in ordered] == ["new", "old", "undated"]


def test_parse_timestamp_normalizes_to_utc() -> None:
    assert parse_timestamp("2026-10-16T02:00:00+02:00") == datetime(2026, 10, 16, 0, 0, tzinfo=timezone.utc)
    assert parse_timestamp("2026-10-16T00:00:00") == datetime(2026, 10, 16, tzinfo=timezone.utc)
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None
