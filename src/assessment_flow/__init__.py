"""
Assessment Flow Module.

Walks a branching question graph for an alert type, collects answers, and
stores the generated summary as a completed assessment.
"""

from .nodes import (
    AssessmentNode,
    CompletionNode,
    FlowValidationError,
    InstructionNode,
    MultipleChoiceNode,
    SingleChoiceNode,
    dump_flow,
    parse_flow,
    validate_flow,
)
from .fallback_flows import FALLBACK_FLOWS, get_fallback_flow
from .generator import (
    UNAVAILABLE_SUMMARY,
    FlowGenerator,
    FlowResult,
    GenerationError,
    GenerativeClient,
    SummaryWriter,
    extract_json_object,
)
from .engine import AssessmentSession, FlowStateError, build_summary

__all__ = [
    "AssessmentNode",
    "CompletionNode",
    "FlowValidationError",
    "InstructionNode",
    "MultipleChoiceNode",
    "SingleChoiceNode",
    "dump_flow",
    "parse_flow",
    "validate_flow",
    "FALLBACK_FLOWS",
    "get_fallback_flow",
    "UNAVAILABLE_SUMMARY",
    "FlowGenerator",
    "FlowResult",
    "GenerationError",
    "GenerativeClient",
    "SummaryWriter",
    "extract_json_object",
    "AssessmentSession",
    "FlowStateError",
    "build_summary",
]
