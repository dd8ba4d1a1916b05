"""
Generative-text backed flow and summary generation.

The backend is asked for two things:

- a flow graph for an alert type, returned as JSON embedded in free text
- a narrative clinical summary of a completed session's answers

Both degrade gracefully. A flow that cannot be fetched, extracted, parsed
or validated is replaced by the fixed fallback graph for the alert type;
a summary that cannot be generated is replaced by a static message.
"""

import asyncio
import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, List, Optional

import httpx

from .fallback_flows import FALLBACK_FLOWS, get_fallback_flow
from .nodes import AnswerSet, FlowValidationError, parse_flow

logger = logging.getLogger(__name__)

DEFAULT_GENERATIVE_API_URL = (
    "https://generativelanguage.googleapis.com/v1/models/gemini-2.0-flash:generateContent"
)

UNAVAILABLE_SUMMARY = (
    "Unable to generate AI summary at this time. Please consult with your "
    "healthcare provider for a comprehensive assessment."
)

CONDITION_LABELS = {
    "bloodPressure": "blood pressure",
    "bloodGlucose": "blood glucose",
    "weight": "weight",
}

CONDITION_FOCUS = {
    "bloodPressure": (
        "pre-measurement conditions (physical activity, caffeine/nicotine/alcohol), "
        "medication adherence, and hypertension symptoms"
    ),
    "bloodGlucose": (
        "recent food intake, physical activity, and symptoms of hypo- or hyperglycemia"
    ),
    "weight": (
        "weighing conditions, eating habits, activity levels, and weight-related symptoms"
    ),
}

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


class GenerationError(Exception):
    """The generative backend failed or returned an unusable response."""


def extract_json_object(text: str) -> Any:
    """
    Pull the outermost ``{...}`` span out of model output and parse it.

    Raises:
        GenerationError: no braces found or the span is not valid JSON
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise GenerationError("Invalid JSON response from AI: no object found")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise GenerationError(f"Invalid JSON response from AI: {e}") from e


class GenerativeClient:
    """
    Minimal client for a ``generateContent`` style text endpoint.

    Sends ``{"contents": [{"parts": [{"text": prompt}]}], "generationConfig": {...}}``
    and reads ``candidates[0].content.parts[0].text``.
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_delay: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_url: Endpoint URL (default from GENERATIVE_API_URL)
            api_key: API key sent as the ``key`` query param (default from GENERATIVE_API_KEY)
            timeout: Request timeout in seconds
            max_retries: Extra attempts after the first failure
            retry_delay: Base delay between attempts, multiplied by attempt number
            transport: Optional httpx transport override
        """
        self.api_url = api_url or os.getenv("GENERATIVE_API_URL", DEFAULT_GENERATIVE_API_URL)
        self.api_key = api_key if api_key is not None else os.getenv("GENERATIVE_API_KEY", "")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._transport = transport

    async def _request(self, payload: dict) -> str:
        params = {"key": self.api_key} if self.api_key else None
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout), transport=self._transport
            ) as client:
                response = await client.post(self.api_url, params=params, json=payload)
        except httpx.HTTPError as e:
            raise GenerationError(f"Request failed: {e}") from e

        if response.status_code != 200:
            raise GenerationError(f"API request failed with status {response.status_code}")

        try:
            data = response.json()
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected response shape: {e}") from e

        if not isinstance(text, str):
            raise GenerationError(f"Unexpected completion text type: {type(text).__name__}")
        return text

    async def generate_text(
        self,
        prompt: str,
        temperature: float = 0.3,
        max_output_tokens: int = 2000,
    ) -> str:
        """
        Generate a completion for ``prompt``.

        Raises:
            GenerationError: every attempt failed, or no API key is configured
        """
        if not self.api_key:
            raise GenerationError("Generative API key not configured")

        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
                "topK": 40,
                "topP": 0.95,
            },
        }

        attempts = self.max_retries + 1
        last_error: Optional[GenerationError] = None
        for attempt in range(1, attempts + 1):
            try:
                return await self._request(payload)
            except GenerationError as e:
                last_error = e
                logger.warning(f"[GENERATE] Attempt {attempt}/{attempts} failed: {e}")
                if attempt < attempts and self.retry_delay > 0:
                    await asyncio.sleep(self.retry_delay * attempt)

        raise GenerationError(f"Generation failed after {attempts} attempt(s): {last_error}")


def build_flow_prompt(alert_type: str) -> str:
    """Prompt asking for a flow graph in the node JSON format."""
    label = CONDITION_LABELS[alert_type]
    example = json.dumps({"assessment": FALLBACK_FLOWS[alert_type]}, indent=2)
    return (
        f"You are a medical AI assistant creating a {label} assessment flow. "
        f"Generate a step-by-step assessment covering {CONDITION_FOCUS[alert_type]}.\n\n"
        "Rules:\n"
        "- Node types are \"single\", \"multiple\", \"instruction\" and \"completion\".\n"
        "- \"nextStep\" is the index of the next node in the list. A \"single\" node may map "
        "each option to an index instead; every option must have an entry.\n"
        "- \"completion\" nodes have no nextStep. Every path must end at a completion node "
        "and no path may return to an earlier question.\n\n"
        f"RETURN ONLY VALID JSON in this exact format:\n{example}"
    )


def build_summary_prompt(alert_type: str, answers: AnswerSet) -> str:
    """Prompt asking for a narrative summary of a session's answers."""
    label = CONDITION_LABELS.get(alert_type, "health")
    return (
        f"You are a medical AI analyzing a patient's {label} assessment responses. "
        "Create a comprehensive clinical summary and recommendations.\n\n"
        f"PATIENT ASSESSMENT RESPONSES:\n{json.dumps(answers, indent=2)}\n\n"
        "Generate a professional medical summary that includes:\n\n"
        "1. **Assessment Overview**: Brief summary of the patient's pre-measurement conditions\n"
        f"2. **Clinical Findings**: Analysis of reported symptoms and their potential significance for {label}\n"
        "3. **Risk Factors**: Identified risk factors based on responses\n"
        "4. **Recommendations**: When to retake measurements, lifestyle modifications, "
        "and when to seek immediate medical attention\n"
        "5. **Follow-up Plan**: Suggested next steps for monitoring\n\n"
        "Format the response in clear, patient-friendly language with sections. "
        "Be empathetic but clinically accurate."
    )


@dataclass
class FlowResult:
    """A flow graph and whether it came from the generative backend."""

    nodes: List[Any]
    generated: bool
    error: Optional[str] = None


class FlowGenerator:
    """Produces a validated flow graph for an alert type."""

    def __init__(self, client: Optional[GenerativeClient] = None):
        self.client = client

    async def generate_flow(self, alert_type: str) -> FlowResult:
        """
        Generate a flow, falling back to the fixed graph on any failure.

        Raises:
            ValueError: the alert type has no flow at all
        """
        if alert_type not in FALLBACK_FLOWS:
            raise ValueError(f"No assessment flow for alert type {alert_type!r}")

        if self.client is None:
            return FlowResult(get_fallback_flow(alert_type), generated=False)

        try:
            text = await self.client.generate_text(
                build_flow_prompt(alert_type), temperature=0.3, max_output_tokens=2000
            )
            nodes = parse_flow(extract_json_object(text))
        except (GenerationError, FlowValidationError) as e:
            logger.error(f"[FLOW] Error generating {alert_type} assessment flow, using fallback: {e}")
            return FlowResult(get_fallback_flow(alert_type), generated=False, error=str(e))

        logger.info(f"[FLOW] Generated {alert_type} flow with {len(nodes)} node(s)")
        return FlowResult(nodes, generated=True)


class SummaryWriter:
    """Writes the narrative part of an assessment summary."""

    def __init__(self, client: Optional[GenerativeClient] = None):
        self.client = client

    async def write(self, alert_type: str, answers: AnswerSet) -> str:
        """Narrative summary text, or UNAVAILABLE_SUMMARY if generation fails."""
        if self.client is None:
            return UNAVAILABLE_SUMMARY

        try:
            text = await self.client.generate_text(
                build_summary_prompt(alert_type, answers), temperature=0.4, max_output_tokens=1500
            )
        except GenerationError as e:
            logger.error(f"[SUMMARY] Error generating AI summary: {e}")
            return UNAVAILABLE_SUMMARY

        text = text.strip()
        return text or UNAVAILABLE_SUMMARY
