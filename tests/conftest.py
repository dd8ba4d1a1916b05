"""
Pytest fixtures for notification center and assessment flow tests.
"""
import os
import sys
import tempfile
import pytest
from datetime import datetime, timezone
from pathlib import Path
from dotenv import load_dotenv

# Ensure src/ is on sys.path so tests can import notification_center and assessment_flow.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Load environment variables
load_dotenv()

# Keep the API's module-level store out of the repository and never call
# a real generative backend from tests.
os.environ["VITALS_DATA_PATH"] = tempfile.mkdtemp(prefix="vitals-test-")
os.environ["VITALS_GENERATIVE_API_KEY"] = ""

from notification_center import (  # noqa: E402
    AssessmentStore,
    IdentityStore,
    MemoryKeyValueStore,
    NotificationStore,
    SystemNotificationStore,
)


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def kv():
    """Empty in-memory key-value store."""
    return MemoryKeyValueStore()


@pytest.fixture
def notification_store(kv):
    return NotificationStore(kv)


@pytest.fixture
def assessment_store(kv):
    return AssessmentStore(kv)


@pytest.fixture
def system_store(kv):
    return SystemNotificationStore(kv)


@pytest.fixture
def identity_store(kv):
    return IdentityStore(kv)


@pytest.fixture
def signed_in(identity_store):
    """Identity store with a cached patient and token."""
    identity_store.sign_in({"id": "patient-42", "name": "Test Patient"}, "test-token")
    return identity_store


# ============================================================================
# Time and Payload Fixtures
# ============================================================================

@pytest.fixture
def now():
    return datetime(2025, 3, 15, 9, 30, tzinfo=timezone.utc)


def make_patient_payload(systolic=None, diastolic=None, glucose=None, weight=None) -> dict:
    """Build a vitals backend response body."""
    measurements = {}
    if systolic is not None or diastolic is not None:
        measurements["bloodPressure"] = {"systolic": systolic, "diastolic": diastolic}
    if glucose is not None:
        measurements["bloodGlucose"] = {"blood_glucose_value_1": glucose}
    if weight is not None:
        measurements["weight"] = {"value": weight}
    return {"success": True, "data": {"id": "patient-42", "measurements": measurements}}


@pytest.fixture
def patient_payload():
    """Factory for vitals backend response bodies."""
    return make_patient_payload
