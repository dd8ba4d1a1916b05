"""Thread-safe in-memory registry of active assessment sessions.

Sessions live only as long as the process; a completed session's result
is already persisted as a stored assessment, so losing the registry only
loses in-progress walks.
"""
import threading
import uuid
from collections import OrderedDict
from typing import Optional

from assessment_flow import AssessmentSession


class SessionRegistry:
    """Bounded map of session id to AssessmentSession.

    When full, the least recently used session is evicted.
    """

    def __init__(self, max_sessions: int = 100):
        """Initialize the registry.

        Args:
            max_sessions: Maximum number of sessions kept at once.
        """
        self._sessions: OrderedDict[str, AssessmentSession] = OrderedDict()
        self._max_sessions = max_sessions
        self._lock = threading.Lock()
        self._completed: set = set()
        self._stats = {
            "total_started": 0,
            "total_completed": 0,
            "total_evicted": 0,
            "sessions_by_type": {},
        }

    def add(self, session: AssessmentSession) -> str:
        """Register a session and return its new id."""
        session_id = uuid.uuid4().hex
        with self._lock:
            self._sessions[session_id] = session
            self._stats["total_started"] += 1
            self._stats["sessions_by_type"][session.alert_type] = \
                self._stats["sessions_by_type"].get(session.alert_type, 0) + 1

            while len(self._sessions) > self._max_sessions:
                evicted_id, _ = self._sessions.popitem(last=False)
                self._completed.discard(evicted_id)
                self._stats["total_evicted"] += 1
        return session_id

    def get(self, session_id: str) -> Optional[AssessmentSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
            return session

    def mark_completed(self, session_id: str) -> bool:
        """Count a session as completed. Returns False if already counted."""
        with self._lock:
            if session_id not in self._sessions or session_id in self._completed:
                return False
            self._completed.add(session_id)
            self._stats["total_completed"] += 1
            return True

    def remove(self, session_id: str) -> bool:
        with self._lock:
            self._completed.discard(session_id)
            return self._sessions.pop(session_id, None) is not None

    def get_stats(self) -> dict:
        """Get registry statistics.

        Returns:
            Dictionary with registry statistics.
        """
        with self._lock:
            return {
                **self._stats,
                "sessions_by_type": dict(self._stats["sessions_by_type"]),
                "active_sessions": len(self._sessions),
            }

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._completed.clear()


# Global singleton instance
session_registry = SessionRegistry()
