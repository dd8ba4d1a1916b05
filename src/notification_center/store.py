"""
Local persistence for notifications, assessments and identity.

Everything is kept as JSON strings under fixed keys in a small key-value
store, mirroring the mobile client's local storage layout. Repositories
own serialization for one key each; nothing else reads or writes the raw
keys.

Storage failures never propagate out of the repositories: loads fall back
to an empty value and saves return False, so callers can keep presenting
in-memory state for the current session.
"""

import json
import logging
import os
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional, Protocol

from .models import (
    Notification,
    Severity,
    SystemNotification,
    dump_notifications,
    parse_notifications,
)

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"
USER_KEY = "user"
NOTIFICATIONS_STATE_KEY = "notificationsState"
STORED_ASSESSMENTS_KEY = "storedAssessments"
SYSTEM_NOTIFICATIONS_KEY = "systemNotifications"
UNREAD_BADGE_COUNT_KEY = "unreadBadgeCount"

STORAGE_ERRORS = (sqlite3.Error, OSError)


class KeyValueStore(Protocol):
    """String key-value storage."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryKeyValueStore:
    """In-process key-value store, used for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class SQLiteKeyValueStore:
    """
    File-backed key-value store on a single SQLite table.

    A new connection is opened per operation so the store can be shared
    between request handlers.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        directory = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(directory, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
        logger.info(f"[STORE] Using SQLite key-value store at {db_path}")

    @contextmanager
    def _connect(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def delete(self, key: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))


class _JsonRepository:
    """Base for repositories that keep one JSON document under one key."""

    key: str = ""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def _load_json(self, default: Any) -> Any:
        try:
            raw = self.kv.get(self.key)
        except STORAGE_ERRORS as e:
            logger.error(f"[STORE] Failed to read {self.key}: {e}")
            return default

        if raw is None:
            return default

        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"[STORE] Corrupt JSON under {self.key}, ignoring: {e}")
            return default

    def _save_json(self, value: Any) -> bool:
        try:
            self.kv.set(self.key, json.dumps(value))
            return True
        except STORAGE_ERRORS as e:
            logger.error(f"[STORE] Failed to write {self.key}: {e}")
            return False


class NotificationStore(_JsonRepository):
    """Canonical reconciled notification list and its unread badge count."""

    key = NOTIFICATIONS_STATE_KEY

    def load(self) -> List[Notification]:
        return parse_notifications(self._load_json([]))

    def save(self, notifications: List[Notification]) -> bool:
        saved = self._save_json(dump_notifications(notifications))
        if saved:
            logger.debug(f"[STORE] Saved notifications state: {len(notifications)}")
        return saved

    def load_badge_count(self) -> int:
        try:
            raw = self.kv.get(UNREAD_BADGE_COUNT_KEY)
        except STORAGE_ERRORS as e:
            logger.error(f"[STORE] Failed to read {UNREAD_BADGE_COUNT_KEY}: {e}")
            return 0
        try:
            return int(raw) if raw else 0
        except ValueError:
            return 0

    def save_badge_count(self, count: int) -> bool:
        try:
            self.kv.set(UNREAD_BADGE_COUNT_KEY, str(count))
            return True
        except STORAGE_ERRORS as e:
            logger.error(f"[STORE] Failed to write {UNREAD_BADGE_COUNT_KEY}: {e}")
            return False


class AssessmentStore(_JsonRepository):
    """Completed assessments, newest first."""

    key = STORED_ASSESSMENTS_KEY

    def load(self) -> List[Notification]:
        return parse_notifications(self._load_json([]))

    def add(self, notification: Notification) -> bool:
        """Prepend a completed assessment."""
        existing = self._load_json([])
        if not isinstance(existing, list):
            existing = []
        existing.insert(0, notification.to_dict())
        saved = self._save_json(existing)
        if saved:
            logger.info(f"[STORE] Stored assessment {notification.id} ({len(existing)} total)")
        return saved


class SystemNotificationStore(_JsonRepository):
    """App-level notifications queued for the next reconciliation."""

    key = SYSTEM_NOTIFICATIONS_KEY

    def load(self) -> List[Notification]:
        return parse_notifications(self._load_json([]))

    def add(
        self,
        title: str,
        message: str,
        severity: Optional[Severity] = None,
        now: Optional[datetime] = None,
    ) -> SystemNotification:
        """Create and persist a system notification. Returns it even if the write failed."""
        notification = SystemNotification(
            id=f"system-{uuid.uuid4().hex[:12]}",
            title=title,
            message=message,
            date=now or datetime.now(timezone.utc),
            severity=severity,
        )
        existing = self._load_json([])
        if not isinstance(existing, list):
            existing = []
        existing.append(notification.to_dict())
        self._save_json(existing)
        return notification


class IdentityStore:
    """Cached user record and auth token."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    def get_user(self) -> Optional[Dict[str, Any]]:
        try:
            raw = self.kv.get(USER_KEY)
        except STORAGE_ERRORS as e:
            logger.error(f"[STORE] Failed to read {USER_KEY}: {e}")
            return None
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except json.JSONDecodeError:
            logger.error(f"[STORE] Corrupt JSON under {USER_KEY}")
            return None
        return user if isinstance(user, dict) else None

    def get_token(self) -> Optional[str]:
        try:
            return self.kv.get(AUTH_TOKEN_KEY) or None
        except STORAGE_ERRORS as e:
            logger.error(f"[STORE] Failed to read {AUTH_TOKEN_KEY}: {e}")
            return None

    def sign_in(self, user: Dict[str, Any], token: str) -> bool:
        try:
            self.kv.set(USER_KEY, json.dumps(user))
            self.kv.set(AUTH_TOKEN_KEY, token)
            return True
        except STORAGE_ERRORS as e:
            logger.error(f"[STORE] Failed to store identity: {e}")
            return False

    def sign_out(self) -> None:
        try:
            self.kv.delete(USER_KEY)
            self.kv.delete(AUTH_TOKEN_KEY)
        except STORAGE_ERRORS as e:
            logger.error(f"[STORE] Failed to clear identity: {e}")
