"""
Notification reconciliation.

Merges four notification sources into one duplicate-free list:

1. The canonical list persisted by the previous run (carries ``read``)
2. Alerts freshly derived from the patient's vitals
3. Stored assessments produced by completed assessment flows
4. System notifications

Sources are merged by id. An id that is already present keeps its
``read`` flag while every other field is replaced by the fresher copy, so
a notification marked read stays read across any number of merges.
Entries older than the retention window are dropped and the result is
sorted newest first, persisted, and summarised as an unread badge count.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from .models import Notification
from .store import AssessmentStore, NotificationStore, SystemNotificationStore
from .thresholds import derive_alerts
from .vitals_client import MissingIdentityError, VitalsClient, VitalsError

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


def _merge_source(merged: Dict[str, Notification], fresh: Iterable[Notification]) -> None:
    for notification in fresh:
        existing = merged.get(notification.id)
        read = existing.read if existing is not None else False
        merged[notification.id] = notification.model_copy(update={"read": read})


def sort_notifications(notifications: Iterable[Notification]) -> List[Notification]:
    """Newest first; ties broken by id so ordering is stable across runs."""
    return sorted(notifications, key=lambda n: (n.date, n.id), reverse=True)


def merge_notifications(
    previous: Iterable[Notification],
    alerts: Iterable[Notification] = (),
    assessments: Iterable[Notification] = (),
    system: Iterable[Notification] = (),
    now: Optional[datetime] = None,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> List[Notification]:
    """
    Merge notification sources by id.

    Args:
        previous: Canonical list from the last run; seeds the merge
        alerts: Freshly derived vitals alerts
        assessments: Stored assessment notifications
        system: System notifications
        now: Reference time for expiry (defaults to now, UTC)
        retention_days: Entries older than this are removed

    Returns:
        Merged notifications sorted by date, newest first
    """
    if now is None:
        now = datetime.now(timezone.utc)

    merged: Dict[str, Notification] = {n.id: n for n in previous}
    _merge_source(merged, alerts)
    _merge_source(merged, assessments)
    _merge_source(merged, system)

    cutoff = now - timedelta(days=retention_days)
    kept = [n for n in merged.values() if n.date >= cutoff]

    expired = len(merged) - len(kept)
    if expired:
        logger.info(f"[RECONCILE] Expired {expired} notification(s) older than {retention_days} days")

    return sort_notifications(kept)


def count_unread(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.read)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass."""

    notifications: List[Notification] = field(default_factory=list)
    unread_count: int = 0
    alerts_derived: int = 0
    vitals_error: Optional[str] = None
    identity_missing: bool = False
    persisted: bool = True

    def to_dict(self) -> dict:
        return {
            "notifications": [n.to_dict() for n in self.notifications],
            "unread_count": self.unread_count,
            "alerts_derived": self.alerts_derived,
            "vitals_error": self.vitals_error,
            "identity_missing": self.identity_missing,
            "persisted": self.persisted,
        }


class NotificationReconciler:
    """
    Runs a full reconciliation pass over all notification sources.

    Each call starts from scratch: nothing from a previous in-flight pass
    is resumed. A failure in one source never aborts the others.
    """

    def __init__(
        self,
        notifications: NotificationStore,
        assessments: AssessmentStore,
        system: SystemNotificationStore,
        vitals: Optional[VitalsClient] = None,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        height_m: Optional[float] = None,
    ):
        self.notifications = notifications
        self.assessments = assessments
        self.system = system
        self.vitals = vitals
        self.retention_days = retention_days
        self.height_m = height_m

    async def _derive_fresh_alerts(self, now: datetime, result: ReconcileResult) -> List[Notification]:
        if self.vitals is None:
            return []

        try:
            snapshot = await self.vitals.fetch_snapshot()
        except MissingIdentityError as e:
            logger.warning(f"[RECONCILE] Skipping vitals alerts, identity missing: {e}")
            result.vitals_error = str(e)
            result.identity_missing = True
            return []
        except VitalsError as e:
            logger.error(f"[RECONCILE] Error fetching patient data for alerts: {e}")
            result.vitals_error = str(e)
            return []

        return derive_alerts(snapshot, now=now, height_m=self.height_m)

    async def reconcile(self, now: Optional[datetime] = None) -> ReconcileResult:
        """
        Merge all sources, persist the canonical list and badge count.

        Args:
            now: Reference time (defaults to now, UTC)

        Returns:
            ReconcileResult with the merged list and diagnostics
        """
        if now is None:
            now = datetime.now(timezone.utc)

        result = ReconcileResult()

        alerts = await self._derive_fresh_alerts(now, result)
        result.alerts_derived = len(alerts)

        previous = self.notifications.load()
        assessments = self.assessments.load()
        system = self.system.load()

        merged = merge_notifications(
            previous,
            alerts=alerts,
            assessments=assessments,
            system=system,
            now=now,
            retention_days=self.retention_days,
        )

        result.notifications = merged
        result.unread_count = count_unread(merged)
        saved_list = self.notifications.save(merged)
        saved_badge = self.notifications.save_badge_count(result.unread_count)
        result.persisted = saved_list and saved_badge

        logger.info(
            f"[RECONCILE] {len(merged)} notification(s), {result.unread_count} unread "
            f"(previous={len(previous)}, alerts={len(alerts)}, "
            f"assessments={len(assessments)}, system={len(system)})"
        )
        return result
