# ABOUTME: Tests for the sync gate.
# ABOUTME: Verifies the five minute boundary, force override and remaining-wait values.

from datetime import UTC, datetime, timedelta

from rss_sync.services.gate import MIN_SYNC_INTERVAL, check_sync_gate

NOW = datetime(2026, 2, 13, 12, 0, 0, tzinfo=UTC)


def test_interval_is_five_minutes():
    assert MIN_SYNC_INTERVAL == timedelta(seconds=300)


def test_never_synced_is_eligible():
    decision = check_sync_gate(None, now=NOW)
    assert decision.eligible is True
    assert decision.retry_after == 0


def test_recent_sync_is_rejected():
    decision = check_sync_gate(NOW - timedelta(seconds=10), now=NOW)
    assert decision.eligible is False
    assert decision.retry_after == 290


def test_force_overrides_recent_sync():
    decision = check_sync_gate(NOW - timedelta(seconds=10), force=True, now=NOW)
    assert decision.eligible is True


def test_exactly_at_interval_is_eligible():
    assert check_sync_gate(NOW - timedelta(seconds=300), now=NOW).eligible is True


def test_just_under_interval_is_rejected():
    decision = check_sync_gate(NOW - timedelta(seconds=299, milliseconds=500), now=NOW)
    assert decision.eligible is False
    assert decision.retry_after == 1


def test_immediately_after_sync_waits_less_than_interval():
    decision = check_sync_gate(NOW - timedelta(milliseconds=5), now=NOW)
    assert decision.eligible is False
    assert 0 < decision.retry_after < 300


def test_naive_timestamp_treated_as_utc():
    naive = (NOW - timedelta(seconds=60)).replace(tzinfo=None)
    decision = check_sync_gate(naive, now=NOW)
    assert decision.eligible is False
    assert decision.retry_after == 240


def test_old_sync_is_eligible():
    assert check_sync_gate(NOW - timedelta(hours=3), now=NOW).eligible is True
