"""
Unit tests for notification reconciliation.

These tests verify:
1. Merging by id preserves the read flag
2. Each source failing in isolation
3. Retention and ordering
4. Persisting the list and unread badge count

Usage:
    pytest tests/test_reconciler.py -v
"""
import httpx
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from notification_center.models import AlertNotification, StoreNotification, SystemNotification
from notification_center.store import AssessmentStore, NotificationStore, SystemNotificationStore
from notification_center.reconciler import (
    NotificationReconciler,
    count_unread,
    merge_notifications,
)
from notification_center.thresholds import VitalsSnapshot
from notification_center.vitals_client import MissingIdentityError, VitalsClient, VitalsFetchError


def _alert(id, date, read=False, message="reading"):
    return AlertNotification(
        id=id, title="High Blood Pressure", message=message, date=date,
        read=read, alert_type="bloodPressure", severity="medium",
    )


def _vitals(snapshot=None, error=None):
    vitals = MagicMock()
    vitals.fetch_snapshot = AsyncMock(return_value=snapshot, side_effect=error)
    return vitals


class TestMergeNotifications:
    """Test the pure merge step."""

    def test_read_flag_survives_fresh_copy(self, now):
        previous = [_alert("bp-high-150-95", now - timedelta(hours=2), read=True, message="old")]
        fresh = [_alert("bp-high-150-95", now, read=False, message="new")]

        merged = merge_notifications(previous, alerts=fresh, now=now)

        assert len(merged) == 1
        assert merged[0].read is True
        assert merged[0].message == "new"
        assert merged[0].date == now

    def test_new_entries_are_unread(self, now):
        fresh = [_alert("glucose-high-200", now, read=True)]

        merged = merge_notifications([], alerts=fresh, now=now)

        assert merged[0].read is False

    def test_previous_entries_without_fresh_copy_are_kept(self, now):
        previous = [_alert("bp-high-160-100", now - timedelta(days=1), read=True)]

        merged = merge_notifications(previous, now=now)

        assert [n.id for n in merged] == ["bp-high-160-100"]

    def test_sources_are_deduplicated_by_id(self, now):
        system = SystemNotification(id="system-1", title="t", message="m", date=now)

        merged = merge_notifications([], system=[system, system], now=now)

        assert len(merged) == 1

    def test_expired_entries_dropped(self, now):
        previous = [
            _alert("old", now - timedelta(days=31)),
            _alert("recent", now - timedelta(days=29)),
        ]

        merged = merge_notifications(previous, now=now)

        assert [n.id for n in merged] == ["recent"]

    def test_sorted_newest_first(self, now):
        previous = [
            _alert("a", now - timedelta(days=3)),
            _alert("b", now - timedelta(days=1)),
            _alert("c", now - timedelta(days=2)),
        ]

        merged = merge_notifications(previous, now=now)

        assert [n.id for n in merged] == ["b", "c", "a"]

    def test_merge_is_idempotent(self, now):
        previous = [
            _alert("bp-high-150-95", now - timedelta(days=2), read=True),
            _alert("glucose-high-200", now - timedelta(days=40)),
            StoreNotification(
                id="bp-assessment-1", title="BP Assessment Summary", message="m",
                date=now - timedelta(hours=5), read=True,
            ),
        ]
        alerts = [
            _alert("bp-high-150-95", now - timedelta(hours=1)),
            _alert("weight-high-100", now - timedelta(hours=3)),
        ]

        once = merge_notifications(previous, alerts=alerts, now=now)
        twice = merge_notifications(once, alerts=alerts, now=now)

        assert [(n.id, n.read, n.date) for n in twice] == [(n.id, n.read, n.date) for n in once]

    def test_result_is_union_of_ids(self, now):
        previous = [_alert("a", now - timedelta(days=1)), _alert("shared", now - timedelta(days=2), read=True)]
        alerts = [_alert("shared", now), _alert("b", now - timedelta(hours=2))]
        system = [SystemNotification(id="system-1", title="t", message="m", date=now - timedelta(hours=1))]

        merged = merge_notifications(previous, alerts=alerts, system=system, now=now)

        assert sorted(n.id for n in merged) == ["a", "b", "shared", "system-1"]
        assert {n.id: n.read for n in merged} == {"a": False, "b": False, "shared": True, "system-1": False}

    def test_count_unread(self, now):
        notifications = [_alert("a", now, read=True), _alert("b", now), _alert("c", now)]

        assert count_unread(notifications) == 2


class TestNotificationReconciler:
    """Test full reconciliation passes."""

    def _reconciler(self, notification_store, assessment_store, system_store, vitals=None):
        return NotificationReconciler(
            notification_store, assessment_store, system_store, vitals=vitals
        )

    @pytest.mark.asyncio
    async def test_merges_all_sources_and_persists(
        self, notification_store, assessment_store, system_store, now
    ):
        assessment_store.add(
            StoreNotification(
                id="bp-assessment-1", title="BP Assessment Summary", message="m",
                date=now - timedelta(hours=1), severity="info",
            )
        )
        system_store.add("Welcome", "Notifications are on", now=now - timedelta(hours=2))
        vitals = _vitals(VitalsSnapshot(systolic=150, diastolic=95, glucose=200))

        result = await self._reconciler(
            notification_store, assessment_store, system_store, vitals
        ).reconcile(now=now)

        ids = [n.id for n in result.notifications]
        assert ids[:2] == ["glucose-high-200", "bp-high-150-95"]
        assert "bp-assessment-1" in ids
        assert len(ids) == 4
        assert result.unread_count == 4
        assert result.alerts_derived == 2
        assert result.persisted is True
        assert [n.id for n in notification_store.load()] == ids
        assert notification_store.load_badge_count() == 4

    @pytest.mark.asyncio
    async def test_read_state_preserved_across_runs(
        self, notification_store, assessment_store, system_store, now
    ):
        vitals = _vitals(VitalsSnapshot(systolic=150, diastolic=95))
        reconciler = self._reconciler(notification_store, assessment_store, system_store, vitals)

        await reconciler.reconcile(now=now)
        stored = notification_store.load()
        notification_store.save([n.model_copy(update={"read": True}) for n in stored])

        result = await reconciler.reconcile(now=now + timedelta(minutes=5))

        assert len(result.notifications) == 1
        assert result.notifications[0].read is True
        assert result.unread_count == 0
        assert notification_store.load_badge_count() == 0

    @pytest.mark.asyncio
    async def test_missing_identity_keeps_other_sources(
        self, notification_store, assessment_store, system_store, now
    ):
        system_store.add("Welcome", "Hello", now=now)
        vitals = _vitals(error=MissingIdentityError("User not found"))

        result = await self._reconciler(
            notification_store, assessment_store, system_store, vitals
        ).reconcile(now=now)

        assert result.identity_missing is True
        assert result.vitals_error == "User not found"
        assert result.alerts_derived == 0
        assert len(result.notifications) == 1

    @pytest.mark.asyncio
    async def test_fetch_error_keeps_previous_alerts(
        self, notification_store, assessment_store, system_store, now
    ):
        notification_store.save([_alert("bp-high-150-95", now - timedelta(days=1), read=True)])
        vitals = _vitals(error=VitalsFetchError("API failed: 500"))

        result = await self._reconciler(
            notification_store, assessment_store, system_store, vitals
        ).reconcile(now=now)

        assert result.identity_missing is False
        assert result.vitals_error == "API failed: 500"
        assert [n.id for n in result.notifications] == ["bp-high-150-95"]
        assert result.notifications[0].read is True

    @pytest.mark.asyncio
    async def test_storage_failure_still_returns_merged_list(self, now):
        broken = MagicMock()
        broken.get.return_value = None
        broken.set.side_effect = OSError("disk full")

        reconciler = NotificationReconciler(
            NotificationStore(broken),
            AssessmentStore(broken),
            SystemNotificationStore(broken),
            vitals=_vitals(VitalsSnapshot(glucose=55)),
        )

        result = await reconciler.reconcile(now=now)

        assert result.persisted is False
        assert [n.id for n in result.notifications] == ["glucose-low-55"]
        assert result.unread_count == 1

    @pytest.mark.asyncio
    async def test_with_http_vitals_client(
        self, notification_store, assessment_store, system_store, signed_in, patient_payload, now
    ):
        """End to end through VitalsClient with a mocked transport."""
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json=patient_payload(weight=95))
        )
        vitals = VitalsClient(signed_in, base_url="https://vitals.test/api", transport=transport)

        result = await self._reconciler(
            notification_store, assessment_store, system_store, vitals
        ).reconcile(now=now)

        assert [n.id for n in result.notifications] == ["weight-high-95"]

    @pytest.mark.asyncio
    async def test_without_vitals_client(
        self, notification_store, assessment_store, system_store, now
    ):
        result = await self._reconciler(
            notification_store, assessment_store, system_store
        ).reconcile(now=now)

        assert result.notifications == []
        assert result.unread_count == 0
