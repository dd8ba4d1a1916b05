"""
Threshold-based alert derivation for patient vitals.

Turns a vitals snapshot (blood pressure, blood glucose, weight) into
``Alert`` notifications using fixed clinical thresholds. Alert ids are
built only from the alert kind and the measured values, so identical
readings always produce the identical id and merge with the entry
persisted on a previous run instead of duplicating it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .models import AlertNotification

logger = logging.getLogger(__name__)

# Placeholder height used for BMI until patient height is available
ASSUMED_HEIGHT_M = 1.7

VITALS_THRESHOLDS = {
    "bloodPressure": {
        "high_systolic": 140,
        "high_diastolic": 90,
        "crisis_systolic": 180,
        "crisis_diastolic": 120,
        "low_systolic": 90,
        "low_diastolic": 60,
    },
    "bloodGlucose": {
        "high": 126,
        "low": 70,
    },
    "weight": {
        "bmi_obese": 30.0,
        "bmi_underweight": 18.5,
    },
}


def _to_float(value: Any) -> Optional[float]:
    """Parse a numeric field that may arrive as a number or a string."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _format_value(value: Optional[float]) -> str:
    """Render a reading for ids and messages (150.0 -> '150')."""
    if value is None:
        return "na"
    if value.is_integer():
        return str(int(value))
    return str(value)


@dataclass
class VitalsSnapshot:
    """Latest vitals for one patient. Missing readings are None."""

    systolic: Optional[float] = None
    diastolic: Optional[float] = None
    glucose: Optional[float] = None
    weight: Optional[float] = None

    @classmethod
    def from_patient(cls, data: Optional[Dict[str, Any]]) -> "VitalsSnapshot":
        """
        Build a snapshot from the patient payload returned by the backend.

        Accepts both field spellings the backend uses
        (``systolic``/``systolic_pressure``, ``blood_glucose_value_1``/``value``).
        """
        def section(source, key) -> dict:
            value = source.get(key) if isinstance(source, dict) else None
            return value if isinstance(value, dict) else {}

        measurements = section(data, "measurements")
        bp = section(measurements, "bloodPressure")
        glucose = section(measurements, "bloodGlucose")
        weight = section(measurements, "weight")

        return cls(
            systolic=_to_float(bp.get("systolic") or bp.get("systolic_pressure")),
            diastolic=_to_float(bp.get("diastolic") or bp.get("diastolic_pressure")),
            glucose=_to_float(glucose.get("blood_glucose_value_1") or glucose.get("value")),
            weight=_to_float(weight.get("value")),
        )


def compute_bmi(weight: float, height_m: float = ASSUMED_HEIGHT_M) -> float:
    """BMI rounded to one decimal."""
    return round(weight / (height_m * height_m), 1)


def _blood_pressure_alert(snapshot: VitalsSnapshot, now: datetime) -> Optional[AlertNotification]:
    systolic, diastolic = snapshot.systolic, snapshot.diastolic
    if systolic is None and diastolic is None:
        return None

    t = VITALS_THRESHOLDS["bloodPressure"]
    reading = f"{_format_value(systolic)}/{_format_value(diastolic)}"
    key = f"{_format_value(systolic)}-{_format_value(diastolic)}"

    def above(value, limit):
        return value is not None and value > limit

    def below(value, limit):
        return value is not None and value < limit

    if above(systolic, t["high_systolic"]) or above(diastolic, t["high_diastolic"]):
        crisis = above(systolic, t["crisis_systolic"]) or above(diastolic, t["crisis_diastolic"])
        return AlertNotification(
            id=f"bp-high-{key}",
            title="High Blood Pressure",
            message=f"Your BP reading {reading} mmHg is above normal range.",
            date=now,
            alert_type="bloodPressure",
            severity="high" if crisis else "medium",
        )

    if below(systolic, t["low_systolic"]) or below(diastolic, t["low_diastolic"]):
        return AlertNotification(
            id=f"bp-low-{key}",
            title="Low Blood Pressure",
            message=f"Your BP reading {reading} mmHg is below normal range.",
            date=now,
            alert_type="bloodPressure",
            severity="medium",
        )

    return None


def _glucose_alert(snapshot: VitalsSnapshot, now: datetime) -> Optional[AlertNotification]:
    glucose = snapshot.glucose
    if glucose is None:
        return None

    t = VITALS_THRESHOLDS["bloodGlucose"]
    value = _format_value(glucose)

    if glucose > t["high"]:
        return AlertNotification(
            id=f"glucose-high-{value}",
            title="High Blood Glucose",
            message=f"Your glucose level {value} mg/dL indicates possible diabetes risk.",
            date=now,
            alert_type="bloodGlucose",
            severity="high",
        )

    if 0 < glucose < t["low"]:
        return AlertNotification(
            id=f"glucose-low-{value}",
            title="Low Blood Glucose",
            message=f"Your glucose level {value} mg/dL is below normal range.",
            date=now,
            alert_type="bloodGlucose",
            severity="medium",
        )

    return None


def _weight_alert(
    snapshot: VitalsSnapshot, now: datetime, height_m: float
) -> Optional[AlertNotification]:
    weight = snapshot.weight
    if weight is None or weight <= 0:
        return None

    t = VITALS_THRESHOLDS["weight"]
    bmi = compute_bmi(weight, height_m)
    value = _format_value(weight)

    if bmi > t["bmi_obese"]:
        return AlertNotification(
            id=f"weight-high-{value}",
            title="Weight Concern",
            message=f"Your weight indicates obesity risk (BMI: {bmi:.1f}). Consider lifestyle changes.",
            date=now,
            alert_type="weight",
            severity="medium",
        )

    if bmi < t["bmi_underweight"]:
        return AlertNotification(
            id=f"weight-low-{value}",
            title="Underweight Alert",
            message=f"Your weight indicates underweight condition (BMI: {bmi:.1f}).",
            date=now,
            alert_type="weight",
            severity="medium",
        )

    return None


def derive_alerts(
    snapshot: VitalsSnapshot,
    now: Optional[datetime] = None,
    height_m: Optional[float] = None,
) -> List[AlertNotification]:
    """
    Derive unread alerts from a vitals snapshot.

    Args:
        snapshot: Latest patient vitals
        now: Timestamp for the generated alerts (defaults to now, UTC)
        height_m: Patient height for BMI; falls back to ASSUMED_HEIGHT_M

    Returns:
        At most one alert per measurement kind, in blood pressure,
        glucose, weight order.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    candidates = [
        _blood_pressure_alert(snapshot, now),
        _glucose_alert(snapshot, now),
        _weight_alert(snapshot, now, height_m or ASSUMED_HEIGHT_M),
    ]
    alerts = [a for a in candidates if a is not None]

    logger.debug(f"[THRESHOLDS] Derived {len(alerts)} alert(s) from {snapshot}")
    return alerts
