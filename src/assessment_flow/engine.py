"""
Assessment session state machine.

A session walks one flow graph: answers are recorded per node id, the
current step moves along resolved ``nextStep`` edges, and a completion
node hands the collected answers to summary generation. The finished
assessment is stored as a ``Store`` notification so the next
reconciliation surfaces it in the inbox.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from notification_center.models import AssessmentSummary, StoreNotification
from notification_center.store import AssessmentStore

from .generator import FlowGenerator, SummaryWriter
from .nodes import AnswerSet, MultipleChoiceNode, SingleChoiceNode

logger = logging.getLogger(__name__)

ID_PREFIXES = {
    "bloodPressure": "bp",
    "bloodGlucose": "glucose",
    "weight": "weight",
}

SUMMARY_TITLES = {
    "bloodPressure": ("BP Assessment Summary", "Blood pressure"),
    "bloodGlucose": ("Glucose Assessment Summary", "Glucose"),
    "weight": ("Weight Assessment Summary", "Weight"),
}


class FlowStateError(Exception):
    """An engine operation was called in a state that does not allow it."""


def build_summary(alert_type: str, answers: AnswerSet, ai_analysis: str,
                  assessment_date: Optional[datetime] = None) -> AssessmentSummary:
    """Structured summary fields pulled from well-known answer ids."""

    def single(node_id: str) -> Optional[str]:
        value = answers.get(node_id)
        return value if isinstance(value, str) else None

    symptoms = answers.get("symptomAssessment")
    selected = list(symptoms) if isinstance(symptoms, list) else []

    return AssessmentSummary(
        alert_type=alert_type,
        answers=dict(answers),
        physical_activity=single("physicalActivity"),
        substance_intake=single("substanceIntake"),
        medication_taken=single("medicationAdherence"),
        recent_food=single("recentFood"),
        selected_symptoms=selected,
        total_symptoms=len(selected),
        assessment_date=assessment_date or datetime.now(timezone.utc),
        ai_analysis=ai_analysis,
    )


class AssessmentSession:
    """One pass through an assessment flow."""

    def __init__(
        self,
        alert_type: str,
        flow: List[Any],
        assessment_store: AssessmentStore,
        summary_writer: Optional[SummaryWriter] = None,
        require_multiple_selection: bool = False,
        generated: bool = False,
    ):
        """
        Args:
            alert_type: bloodPressure, bloodGlucose or weight
            flow: Validated node list
            assessment_store: Destination for the completed assessment
            summary_writer: Narrative summary source (static fallback text if None)
            require_multiple_selection: Require at least one option on multiple-choice nodes
            generated: Whether the flow came from the generative backend
        """
        if not flow:
            raise FlowStateError("Cannot start a session with an empty flow")

        self.alert_type = alert_type
        self.flow = flow
        self.assessment_store = assessment_store
        self.summary_writer = summary_writer or SummaryWriter()
        self.require_multiple_selection = require_multiple_selection
        self.generated = generated

        self.current_step = 0
        self.answers: AnswerSet = {}
        self.history: List[int] = []
        self.completed_notification: Optional[StoreNotification] = None
        self._complete_lock = asyncio.Lock()

    @classmethod
    async def start(
        cls,
        alert_type: str,
        generator: FlowGenerator,
        assessment_store: AssessmentStore,
        summary_writer: Optional[SummaryWriter] = None,
        require_multiple_selection: bool = False,
    ) -> "AssessmentSession":
        """Obtain a flow for the alert type and open a session on it."""
        result = await generator.generate_flow(alert_type)
        logger.info(
            f"[SESSION] Starting {alert_type} assessment "
            f"({'generated' if result.generated else 'fallback'} flow, {len(result.nodes)} nodes)"
        )
        return cls(
            alert_type,
            result.nodes,
            assessment_store,
            summary_writer=summary_writer,
            require_multiple_selection=require_multiple_selection,
            generated=result.generated,
        )

    @property
    def current_node(self) -> Any:
        return self.flow[self.current_step]

    @property
    def is_complete(self) -> bool:
        return self.completed_notification is not None

    def _node_by_id(self, node_id: str) -> Any:
        for node in self.flow:
            if node.id == node_id:
                return node
        raise FlowStateError(f"Unknown node {node_id!r}")

    def select_single(self, node_id: str, option: str) -> None:
        """Record ``option`` for a single-choice node, replacing any earlier answer."""
        node = self._node_by_id(node_id)
        if not isinstance(node, SingleChoiceNode):
            raise FlowStateError(f"Node {node_id!r} is not a single-choice question")
        if option not in node.options:
            raise FlowStateError(f"Option {option!r} is not offered by node {node_id!r}")
        self.answers[node_id] = option

    def toggle_multiple(self, node_id: str, option: str) -> List[str]:
        """Add ``option`` to a multiple-choice answer, or remove it if already selected."""
        node = self._node_by_id(node_id)
        if not isinstance(node, MultipleChoiceNode):
            raise FlowStateError(f"Node {node_id!r} is not a multiple-choice question")
        if option not in node.options:
            raise FlowStateError(f"Option {option!r} is not offered by node {node_id!r}")

        current = self.answers.get(node_id)
        selected = list(current) if isinstance(current, list) else []
        if option in selected:
            selected.remove(option)
        else:
            selected.append(option)
        self.answers[node_id] = selected
        return selected

    def can_advance(self) -> bool:
        node = self.current_node
        if isinstance(node, SingleChoiceNode):
            return bool(self.answers.get(node.id))
        if isinstance(node, MultipleChoiceNode):
            if self.require_multiple_selection:
                return len(self.answers.get(node.id) or []) > 0
            return True
        return True

    def advance(self) -> bool:
        """
        Move to the resolved next node.

        Returns:
            True if the step changed; False when the answer is missing, the
            answer has no mapping entry, or the node is terminal
        """
        node = self.current_node
        if not self.can_advance():
            return False

        target = node.resolve_next(self.answers.get(node.id))
        if target is None:
            return False

        self.history.append(self.current_step)
        self.current_step = target
        return True

    def go_back(self) -> bool:
        """Return to the previously visited node. Answers are kept."""
        if self.is_complete:
            raise FlowStateError("Assessment already completed")
        if not self.history:
            return False
        self.current_step = self.history.pop()
        return True

    def progress(self) -> float:
        if self.is_complete:
            return 1.0
        return (self.current_step + 1) / len(self.flow)

    async def complete(self, now: Optional[datetime] = None) -> StoreNotification:
        """
        Generate the summary, store the assessment and return it.

        Calling again after a successful completion returns the same
        notification without storing it twice. Overlapping calls wait for
        the first one and share its result.

        Raises:
            FlowStateError: the current node is not a completion node
        """
        async with self._complete_lock:
            if self.completed_notification is not None:
                return self.completed_notification
            return await self._store_completion(now)

    async def _store_completion(self, now: Optional[datetime]) -> StoreNotification:
        if not self.current_node.is_terminal:
            raise FlowStateError(
                f"Cannot complete assessment at non-terminal node {self.current_node.id!r}"
            )

        now = now or datetime.now(timezone.utc)
        ai_analysis = await self.summary_writer.write(self.alert_type, self.answers)
        summary = build_summary(self.alert_type, self.answers, ai_analysis, assessment_date=now)

        prefix = ID_PREFIXES.get(self.alert_type, self.alert_type)
        title, label = SUMMARY_TITLES.get(
            self.alert_type, ("Assessment Summary", self.alert_type)
        )
        notification = StoreNotification(
            id=f"{prefix}-assessment-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:6]}",
            title=title,
            message=f"{label} assessment completed with {summary.total_symptoms} symptoms reported",
            date=now,
            read=False,
            severity="info",
            summary=summary,
        )

        if not self.assessment_store.add(notification):
            logger.warning(f"[SESSION] Assessment {notification.id} kept in memory only")

        self.completed_notification = notification
        logger.info(f"[SESSION] Completed {self.alert_type} assessment {notification.id}")
        return notification
