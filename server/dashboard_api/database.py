"""SQLite-backed store manager for notifications, assessments and identity."""
import logging

from notification_center import (
    AssessmentStore,
    IdentityStore,
    NotificationInbox,
    NotificationReconciler,
    NotificationStore,
    SQLiteKeyValueStore,
    SystemNotificationStore,
    VitalsClient,
)
from notification_center.store import KeyValueStore
from assessment_flow import FlowGenerator, GenerativeClient, SummaryWriter

from .config import get_settings

log = logging.getLogger(__name__)


class StoreManager:
    """
    Builds the repositories over one key-value store and the services
    that use them. Everything shares the same underlying store so the
    reconciler sees assessments written by flow sessions.
    """

    def __init__(self, settings=None, kv: KeyValueStore | None = None):
        self.settings = settings or get_settings()
        self.kv = kv if kv is not None else SQLiteKeyValueStore(self.settings.store_path)

        self.notifications = NotificationStore(self.kv)
        self.assessments = AssessmentStore(self.kv)
        self.system = SystemNotificationStore(self.kv)
        self.identity = IdentityStore(self.kv)

        self.vitals = VitalsClient(
            self.identity,
            base_url=self.settings.vitals_api_url,
            timeout=self.settings.request_timeout,
        )
        generative = GenerativeClient(
            api_url=self.settings.generative_api_url,
            api_key=self.settings.generative_api_key,
            timeout=self.settings.request_timeout,
        )
        if not self.settings.generative_api_key:
            log.warning("[STORE] No generative API key configured, assessments use fallback flows")

        self.flow_generator = FlowGenerator(generative)
        self.summary_writer = SummaryWriter(generative)

        self.reconciler = NotificationReconciler(
            self.notifications,
            self.assessments,
            self.system,
            vitals=self.vitals,
            retention_days=self.settings.retention_days,
        )
        self.inbox = NotificationInbox(self.notifications)


# Singleton instance
store_manager = StoreManager()
