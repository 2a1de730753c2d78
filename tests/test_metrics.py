"""Tests for streak metrics recomputation."""

import pytest

from streakboard.core.errors import NotMemberError, StoreError
from streakboard.services.metrics_service import MetricsService, summarize_history
from tests.conftest import CHALLENGE_ID, TODAY, day


def _rows(statuses):
    return [
        {"check_in_date": when.isoformat(), "status": status}
        for when, status in statuses.items()
    ]


def test_five_completed_days_ending_today():
    history = _rows({day(-4 + i): "completed" for i in range(5)})
    summary = summarize_history(history, TODAY)
    assert summary.current_streak == 5
    assert summary.best_streak == 5
    assert summary.total_completions == 5
    assert summary.completion_rate == 100.0


def test_missed_today_resets_current_but_keeps_best():
    statuses = {day(-5 + i): "completed" for i in range(5)}
    statuses[TODAY] = "missed"
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.current_streak == 0
    assert summary.best_streak == 5
    assert summary.missed_days_count == 1


def test_streak_counts_from_yesterday_when_today_not_checked_in():
    statuses = {day(-3): "completed", day(-2): "completed", day(-1): "completed"}
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.current_streak == 3


def test_pending_today_does_not_anchor_streak():
    statuses = {day(-2): "completed", day(-1): "completed", TODAY: "pending"}
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.current_streak == 2
    assert summary.completion_rate == 100.0


def test_freeze_day_preserves_continuity():
    statuses = {
        day(-4): "completed",
        day(-3): "completed",
        day(-2): "completed",
        day(-1): "freeze",
        TODAY: "completed",
    }
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.current_streak == 5
    assert summary.best_streak == 5
    assert summary.total_completions == 4
    assert summary.completion_rate == 80.0


def test_gap_day_breaks_streak():
    statuses = {day(-4): "completed", day(-3): "completed", day(-1): "completed"}
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.current_streak == 1
    assert summary.best_streak == 2
    assert summary.missed_days_count == 0


def test_last_record_two_days_ago_means_no_current_streak():
    statuses = {day(-3): "completed", day(-2): "completed"}
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.current_streak == 0
    assert summary.best_streak == 2


def test_future_freeze_days_are_ignored():
    statuses = {TODAY: "completed", day(1): "freeze", day(2): "freeze"}
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.current_streak == 1
    assert summary.best_streak == 1
    assert summary.completion_rate == 100.0


def test_empty_history_is_all_zero():
    summary = summarize_history([], TODAY)
    assert summary.current_streak == 0
    assert summary.best_streak == 0
    assert summary.completion_rate == 0
    assert summary.total_completions == 0
    assert summary.missed_days_count == 0


def test_only_pending_rows_give_zero_rate():
    summary = summarize_history(_rows({TODAY: "pending", day(-1): "pending"}), TODAY)
    assert summary.completion_rate == 0


def test_completion_rate_rounds_to_two_decimals():
    statuses = {day(-2): "completed", day(-1): "missed", TODAY: "missed"}
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.completion_rate == 33.33


def test_best_streak_never_below_previous_value():
    summary = summarize_history(_rows({TODAY: "completed"}), TODAY, previous_best=9)
    assert summary.best_streak == 9
    assert summary.current_streak == 1


@pytest.mark.parametrize(
    "statuses",
    [
        {day(-6): "completed", day(-5): "missed", day(-4): "freeze", day(-1): "completed"},
        {day(-2): "freeze", day(-1): "freeze", TODAY: "freeze"},
        {day(-10 + i): ("completed" if i % 3 else "missed") for i in range(11)},
    ],
)
def test_metric_bounds_hold(statuses):
    summary = summarize_history(_rows(statuses), TODAY)
    assert summary.best_streak >= summary.current_streak
    assert 0 <= summary.completion_rate <= 100
    completed = sum(1 for s in statuses.values() if s == "completed")
    assert summary.total_completions == completed


@pytest.mark.asyncio
async def test_recompute_persists_metrics(store):
    store.add_member("alice")
    store.seed("alice", {day(-1): "completed", TODAY: "completed"})
    service = MetricsService(store=store)

    metrics = await service.recompute_metrics(CHALLENGE_ID, "alice", today=TODAY)

    assert metrics.current_streak == 2
    saved = store.metrics[(CHALLENGE_ID, "alice")]
    assert saved["current_streak"] == 2
    assert saved["best_streak"] == 2
    assert saved["total_completions"] == 2


@pytest.mark.asyncio
async def test_recompute_is_idempotent(store):
    store.add_member("alice")
    store.seed(
        "alice",
        {day(-3): "completed", day(-2): "missed", day(-1): "freeze", TODAY: "completed"},
    )
    service = MetricsService(store=store)

    first = await service.recompute_metrics(CHALLENGE_ID, "alice", today=TODAY)
    second = await service.recompute_metrics(CHALLENGE_ID, "alice", today=TODAY)

    assert first == second


@pytest.mark.asyncio
async def test_best_streak_survives_backdated_miss(store):
    store.add_member("alice")
    store.seed("alice", {day(-2): "completed", day(-1): "completed", TODAY: "completed"})
    service = MetricsService(store=store)
    await service.recompute_metrics(CHALLENGE_ID, "alice", today=TODAY)

    store.seed("alice", {day(-1): "missed"})
    metrics = await service.recompute_metrics(CHALLENGE_ID, "alice", today=TODAY)

    assert metrics.current_streak == 1
    assert metrics.best_streak == 3


@pytest.mark.asyncio
async def test_history_failure_leaves_metrics_untouched(store):
    store.add_member("alice")
    store.seed("alice", {TODAY: "completed"})
    service = MetricsService(store=store)
    await service.recompute_metrics(CHALLENGE_ID, "alice", today=TODAY)
    before = dict(store.metrics[(CHALLENGE_ID, "alice")])

    store.seed("alice", {TODAY: "missed"})
    store.fail("get_history")
    with pytest.raises(StoreError):
        await service.recompute_metrics(CHALLENGE_ID, "alice", today=TODAY)

    assert store.metrics[(CHALLENGE_ID, "alice")] == before


@pytest.mark.asyncio
async def test_recompute_challenge_continues_past_failures(store, monkeypatch):
    for user in ("alice", "bob", "carol"):
        store.add_member(user)
        store.seed(user, {TODAY: "completed"})
    service = MetricsService(store=store)

    real_recompute = service.recompute_metrics

    async def flaky(challenge_id, user_id, today=None):
        if user_id == "bob":
            raise StoreError("Failed to load check-in history")
        return await real_recompute(challenge_id, user_id, today=today)

    monkeypatch.setattr(service, "recompute_metrics", flaky)

    result = await service.recompute_challenge(CHALLENGE_ID, today=TODAY)

    assert result["updated"] == 2
    assert result["failed"] == ["bob"]
    assert (CHALLENGE_ID, "carol") in store.metrics


@pytest.mark.asyncio
async def test_recompute_for_non_member_writes_nothing(store):
    store.seed("mallory", {TODAY: "completed"})
    service = MetricsService(store=store)

    with pytest.raises(NotMemberError):
        await service.recompute_metrics(CHALLENGE_ID, "mallory", today=TODAY)

    assert "put_metrics" not in store.calls
    assert store.list_metrics(CHALLENGE_ID) == []
