"""Assessment flow API routes.

A session is started for an alert type, walked one node at a time, and
completed at a completion node, which stores the summary as a ``Store``
notification for the next reconciliation.
"""
import logging
from fastapi import APIRouter, HTTPException

from assessment_flow import AssessmentSession, FlowStateError, dump_flow

from ..models.assessments import OptionRequest, SessionResponse, StartAssessmentRequest
from ..database import store_manager
from ..services.session_registry import session_registry

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assessments", tags=["Assessments"])


def _to_response(session_id: str, session: AssessmentSession, changed: bool | None = None) -> SessionResponse:
    summary = session.completed_notification
    return SessionResponse(
        session_id=session_id,
        alert_type=session.alert_type,
        current_step=session.current_step,
        current_node=session.current_node.model_dump(mode="json", by_alias=True),
        answers=session.answers,
        can_advance=session.can_advance(),
        progress=session.progress(),
        generated=session.generated,
        completed=session.is_complete,
        flow=dump_flow(session.flow),
        changed=changed,
        summary=summary.to_dict() if summary else None,
    )


def _get_session(session_id: str) -> AssessmentSession:
    session = session_registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Assessment session {session_id} not found")
    return session


@router.post("", response_model=SessionResponse, status_code=201)
async def start_assessment(request: StartAssessmentRequest):
    """
    Start an assessment for an alert type.

    The flow is generated when a generative backend is configured and
    reachable; otherwise the fixed flow for the alert type is used.
    """
    try:
        session = await AssessmentSession.start(
            request.alert_type,
            store_manager.flow_generator,
            store_manager.assessments,
            summary_writer=store_manager.summary_writer,
            require_multiple_selection=request.require_multiple_selection,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    session_id = session_registry.add(session)
    return _to_response(session_id, session)


@router.get("/stored")
async def get_stored_assessments():
    """Completed assessments, newest first."""
    return [n.to_dict() for n in store_manager.assessments.load()]


@router.get("/stats")
async def get_session_stats():
    """Counts of started, completed and evicted sessions."""
    return session_registry.get_stats()


@router.get("/{session_id}", response_model=SessionResponse)
async def get_assessment(session_id: str):
    return _to_response(session_id, _get_session(session_id))


@router.post("/{session_id}/select", response_model=SessionResponse)
async def select_option(session_id: str, request: OptionRequest):
    """Record the answer to a single-choice question."""
    session = _get_session(session_id)
    try:
        session.select_single(request.node_id, request.option)
    except FlowStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _to_response(session_id, session)


@router.post("/{session_id}/toggle", response_model=SessionResponse)
async def toggle_option(session_id: str, request: OptionRequest):
    """Toggle an option on a multiple-choice question."""
    session = _get_session(session_id)
    try:
        session.toggle_multiple(request.node_id, request.option)
    except FlowStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _to_response(session_id, session)


@router.post("/{session_id}/advance", response_model=SessionResponse)
async def advance(session_id: str):
    """Move to the next node; ``changed`` is false when the answer does not resolve."""
    session = _get_session(session_id)
    changed = session.advance()
    return _to_response(session_id, session, changed=changed)


@router.post("/{session_id}/back", response_model=SessionResponse)
async def go_back(session_id: str):
    session = _get_session(session_id)
    try:
        changed = session.go_back()
    except FlowStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _to_response(session_id, session, changed=changed)


@router.post("/{session_id}/complete", response_model=SessionResponse)
async def complete(session_id: str):
    """
    Generate the summary and store the completed assessment.

    Repeating the call returns the same stored assessment.
    """
    session = _get_session(session_id)
    try:
        await session.complete()
    except FlowStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    session_registry.mark_completed(session_id)
    return _to_response(session_id, session)
