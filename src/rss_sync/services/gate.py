# ABOUTME: Sync gate deciding whether a feed may be synchronized now.
# ABOUTME: Enforces a fixed minimum interval between passes unless forced.

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

MIN_SYNC_INTERVAL = timedelta(minutes=5)


@dataclass(frozen=True)
class GateDecision:
    eligible: bool
    retry_after: int = 0


def check_sync_gate(
    last_synced_at: datetime | None, *, force: bool = False, now: datetime | None = None
) -> GateDecision:
    """Decide eligibility for a feed last synchronized at ``last_synced_at``.

    Eligible when forced, never synchronized, or at least MIN_SYNC_INTERVAL
    has elapsed. Otherwise ``retry_after`` holds the remaining wait, truncated
    to whole seconds and never below 1.
    """
    if force or last_synced_at is None:
        return GateDecision(eligible=True)

    now = now or datetime.now(UTC)
    if last_synced_at.tzinfo is None:
        # SQLite hands back naive values; they are stored in UTC.
        last_synced_at = last_synced_at.replace(tzinfo=UTC)

    elapsed = now - last_synced_at
    if elapsed >= MIN_SYNC_INTERVAL:
        return GateDecision(eligible=True)

    remaining = (MIN_SYNC_INTERVAL - elapsed).total_seconds()
    return GateDecision(eligible=False, retry_after=max(1, int(remaining)))
