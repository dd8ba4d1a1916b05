"""
Fixed assessment graphs used when generation fails.

Kept in the same JSON shape the generative backend is asked to return,
and parsed through the same validation path.
"""

import copy
from typing import Any, Dict, List

from .nodes import parse_flow

BP_SYMPTOMS = [
    "Shortness of breath",
    "Chest pain / Pressure",
    "Palpitations",
    "Dizziness / Light headedness",
    "Headaches",
    "Blurred vision",
    "Nausea",
    "Swelling in legs or ankles",
]

GLUCOSE_SYMPTOMS = [
    "Excessive thirst",
    "Frequent urination",
    "Fatigue or weakness",
    "Blurred vision",
    "Headaches",
    "Shakiness or trembling",
    "Sweating",
    "Confusion or difficulty concentrating",
]

WEIGHT_SYMPTOMS = [
    "Shortness of breath during daily activities",
    "Joint pain or mobility issues",
    "Tiredness or lack of energy",
    "Emotional or stress-related eating",
    "Swelling in legs or ankles",
]

SUBSTANCE_OPTION = "Did you consume caffeine, nicotine, or alcohol before measurement?"
MEDICATION_OPTION = "Did you take your prescribed blood pressure medication?"

FALLBACK_FLOWS: Dict[str, List[Dict[str, Any]]] = {
    "bloodPressure": [
        {
            "id": "physicalActivity",
            "type": "single",
            "question": "Were you rushing or physically active before measurements?",
            "options": ["Yes", "No"],
            "nextStep": {"Yes": 1, "No": 2},
        },
        {
            "id": "restCompletion",
            "type": "completion",
            "title": "Rest Required",
            "message": (
                "Please rest for 10-15 minutes in a quiet environment and retake your "
                "blood pressure measurements for accurate results."
            ),
            "buttonText": "Generate Assessment Summary",
        },
        {
            "id": "assessmentChoice",
            "type": "single",
            "question": "Which factor would you like to assess?",
            "options": [SUBSTANCE_OPTION, MEDICATION_OPTION],
            "nextStep": {SUBSTANCE_OPTION: 3, MEDICATION_OPTION: 4},
        },
        {
            "id": "substanceIntake",
            "type": "single",
            "question": "Did you consume caffeine, nicotine, or alcohol before the measurement?",
            "options": ["Yes", "No"],
            "nextStep": 5,
        },
        {
            "id": "medicationAdherence",
            "type": "single",
            "question": "Did you take your prescribed blood pressure medication?",
            "options": ["Yes", "No"],
            "nextStep": {"Yes": 6, "No": 7},
        },
        {
            "id": "substanceCompletion",
            "type": "completion",
            "title": "Substance Assessment Complete",
            "message": "Thank you for completing the substance intake assessment.",
            "buttonText": "Generate Assessment Summary",
        },
        {
            "id": "symptomAssessment",
            "type": "multiple",
            "question": "Do you have any of the following symptoms? (Select all that apply)",
            "options": BP_SYMPTOMS,
            "nextStep": 8,
        },
        {
            "id": "medicationInstruction",
            "type": "completion",
            "title": "Medication Reminder",
            "message": (
                "Please take your prescribed blood pressure medication as directed and "
                "retake your measurements after 1 hour for accurate assessment."
            ),
            "buttonText": "Generate Assessment Summary",
        },
        {
            "id": "finalCompletion",
            "type": "completion",
            "title": "Assessment Complete",
            "message": "Thank you for completing the blood pressure assessment.",
            "buttonText": "Generate Assessment Summary",
        },
    ],
    "bloodGlucose": [
        {
            "id": "recentFood",
            "type": "single",
            "question": "Did you eat or drink anything (other than water) in the last 2 hours?",
            "options": ["Yes", "No"],
            "nextStep": {"Yes": 1, "No": 2},
        },
        {
            "id": "fastingInstruction",
            "type": "instruction",
            "title": "Fasting Glucose Context",
            "message": (
                "For accurate fasting glucose measurement, avoid food and drinks "
                "(except water) for 8-12 hours before testing."
            ),
            "buttonText": "I Understand, Continue",
            "nextStep": 2,
        },
        {
            "id": "symptomAssessment",
            "type": "multiple",
            "question": "Are you experiencing any of these symptoms? (Select all that apply)",
            "options": GLUCOSE_SYMPTOMS,
            "nextStep": 3,
        },
        {
            "id": "physicalActivity",
            "type": "single",
            "question": "Were you physically active before taking this measurement?",
            "options": ["Yes", "No"],
            "nextStep": 4,
        },
        {
            "id": "completion",
            "type": "completion",
            "title": "Assessment Complete",
            "message": "Thank you for completing the glucose assessment.",
            "buttonText": "Generate Assessment Summary",
        },
    ],
    "weight": [
        {
            "id": "weighingConditions",
            "type": "single",
            "question": (
                "Did you weigh yourself at a different time of day or in heavier "
                "clothing than usual?"
            ),
            "options": ["Yes", "No"],
            "nextStep": {"Yes": 1, "No": 2},
        },
        {
            "id": "weighingInstruction",
            "type": "instruction",
            "title": "Consistent Weighing",
            "message": (
                "For comparable results, weigh yourself in the morning before eating, "
                "in light clothing, on the same scale."
            ),
            "buttonText": "I Understand, Continue",
            "nextStep": 2,
        },
        {
            "id": "eatingHabits",
            "type": "single",
            "question": "Have your eating habits or appetite changed recently?",
            "options": ["Yes", "No"],
            "nextStep": 3,
        },
        {
            "id": "physicalActivity",
            "type": "single",
            "question": "How often are you physically active for at least 30 minutes?",
            "options": ["Rarely", "1-2 days a week", "3 or more days a week"],
            "nextStep": 4,
        },
        {
            "id": "symptomAssessment",
            "type": "multiple",
            "question": "Are you experiencing any of the following? (Select all that apply)",
            "options": WEIGHT_SYMPTOMS,
            "nextStep": 5,
        },
        {
            "id": "completion",
            "type": "completion",
            "title": "Assessment Complete",
            "message": "Thank you for completing the weight assessment.",
            "buttonText": "Generate Assessment Summary",
        },
    ],
}


def get_fallback_flow(alert_type: str) -> List[Any]:
    """
    Parsed fallback graph for an alert type.

    Raises:
        KeyError: unknown alert type
    """
    return parse_flow(copy.deepcopy(FALLBACK_FLOWS[alert_type]))
