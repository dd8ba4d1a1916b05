"""
Notification Center Module.

Derives vitals alerts, reconciles them with stored assessments and system
notifications, and persists the canonical read-state-preserving list.
"""

from .models import (
    AlertNotification,
    AssessmentSummary,
    Notification,
    StoreNotification,
    SystemNotification,
    parse_notifications,
)
from .thresholds import VitalsSnapshot, derive_alerts
from .store import (
    AssessmentStore,
    IdentityStore,
    MemoryKeyValueStore,
    NotificationStore,
    SQLiteKeyValueStore,
    SystemNotificationStore,
)
from .vitals_client import (
    MissingIdentityError,
    VitalsClient,
    VitalsError,
    VitalsFetchError,
)
from .reconciler import NotificationReconciler, ReconcileResult, merge_notifications
from .inbox import NotificationInbox, Route, filter_notifications, route_for

__all__ = [
    "AlertNotification",
    "AssessmentSummary",
    "Notification",
    "StoreNotification",
    "SystemNotification",
    "parse_notifications",
    "VitalsSnapshot",
    "derive_alerts",
    "AssessmentStore",
    "IdentityStore",
    "MemoryKeyValueStore",
    "NotificationStore",
    "SQLiteKeyValueStore",
    "SystemNotificationStore",
    "MissingIdentityError",
    "VitalsClient",
    "VitalsError",
    "VitalsFetchError",
    "NotificationReconciler",
    "ReconcileResult",
    "merge_notifications",
    "NotificationInbox",
    "filter_notifications",
    "Route",
    "route_for",
]
