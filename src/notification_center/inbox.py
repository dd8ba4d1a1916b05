"""
User-facing operations on the reconciled notification list.

Covers marking entries read, the filter tabs shown above the list, and
routing a tapped notification to the right screen.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from .models import Notification
from .reconciler import count_unread, sort_notifications
from .store import NotificationStore

logger = logging.getLogger(__name__)

FILTER_ALL = "All"
FILTER_UNREAD = "Unread"
BASE_TYPE_FILTERS = ["Alert", "System"]

SCREEN_ASSESSMENT_FLOW = "assessment_flow"
SCREEN_ASSESSMENT_SUMMARY = "assessment_summary"


class Navigator(Protocol):
    """Opaque dispatcher to a client screen."""

    def navigate(self, screen: str, **params: Any) -> None: ...


@dataclass
class Route:
    """Screen a notification opens, with its parameters."""

    screen: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"screen": self.screen, "params": self.params}


def route_for(notification: Notification) -> Optional[Route]:
    """
    Resolve where a tapped notification leads.

    ``Store`` entries open their summary, ``Alert`` entries open the
    assessment flow for their alert type, ``System`` entries go nowhere.
    """
    if notification.type == "Store":
        return Route(SCREEN_ASSESSMENT_SUMMARY, {"assessmentData": notification.to_dict()})

    if notification.type == "Alert" and notification.alert_type:
        return Route(
            SCREEN_ASSESSMENT_FLOW,
            {"alertType": notification.alert_type, "notificationData": notification.to_dict()},
        )

    return None


def filter_notifications(notifications: List[Notification], name: str = FILTER_ALL) -> List[Notification]:
    """Apply a filter tab: All, Unread, or a notification type."""
    if name == FILTER_ALL:
        return list(notifications)
    if name == FILTER_UNREAD:
        return [n for n in notifications if not n.read]
    return [n for n in notifications if n.type == name]


class NotificationInbox:
    """Read-state and filtering over the persisted notification list."""

    def __init__(self, store: NotificationStore):
        self.store = store

    def list_all(self) -> List[Notification]:
        return sort_notifications(self.store.load())

    def unread_count(self) -> int:
        return count_unread(self.store.load())

    def _persist(self, notifications: List[Notification]) -> None:
        self.store.save(notifications)
        self.store.save_badge_count(count_unread(notifications))

    def mark_as_read(self, notification_id: str) -> Optional[Notification]:
        """
        Mark one notification read.

        Returns:
            The updated notification, or None if the id is unknown
        """
        notifications = self.store.load()
        updated: Optional[Notification] = None
        for i, notification in enumerate(notifications):
            if notification.id == notification_id:
                updated = notification.model_copy(update={"read": True})
                notifications[i] = updated
                break

        if updated is None:
            logger.warning(f"[INBOX] Cannot mark unknown notification {notification_id} as read")
            return None

        self._persist(notifications)
        logger.info(f"[INBOX] Marked as read: {notification_id}")
        return updated

    def mark_all_as_read(self) -> List[Notification]:
        notifications = [n.model_copy(update={"read": True}) for n in self.store.load()]
        self._persist(notifications)
        logger.info(f"[INBOX] All {len(notifications)} notifications marked as read")
        return sort_notifications(notifications)

    def filter(self, name: str = FILTER_ALL) -> List[Notification]:
        return filter_notifications(self.list_all(), name)

    def available_filters(self) -> List[str]:
        """Filter tabs; Alert and System always shown, Store never."""
        types: List[str] = list(BASE_TYPE_FILTERS)
        for notification in self.list_all():
            if notification.type not in types:
                types.append(notification.type)
        return [FILTER_ALL, FILTER_UNREAD] + [t for t in types if t != "Store"]

    def open(self, notification_id: str, navigator: Optional[Navigator] = None) -> Optional[Route]:
        """
        Mark a notification read and dispatch it to its screen.

        Returns:
            The route taken, or None for unknown ids and System entries
        """
        notification = self.mark_as_read(notification_id)
        if notification is None:
            return None

        route = route_for(notification)
        if route is None:
            logger.debug(f"[INBOX] No route for {notification.type} notification {notification_id}")
            return None

        if navigator is not None:
            navigator.navigate(route.screen, **route.params)
        return route
