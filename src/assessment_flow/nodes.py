"""
Assessment graph nodes.

A flow is an ordered list of nodes; ``nextStep`` values are indices into
that same list. Each node type resolves its own successor through
``resolve_next``, so the engine never has to inspect the shape of
``nextStep`` itself.
"""

import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

AnswerValue = Union[str, List[str]]
AnswerSet = Dict[str, AnswerValue]


class FlowValidationError(ValueError):
    """A flow graph violates the node invariants."""


class _BaseNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str

    @property
    def is_terminal(self) -> bool:
        return False

    def successors(self) -> List[int]:
        return []

    def resolve_next(self, answer: Optional[AnswerValue] = None) -> Optional[int]:
        return None


class SingleChoiceNode(_BaseNode):
    """One question, one selected option; may branch on the option."""

    type: Literal["single"] = "single"
    question: str
    options: List[str] = Field(min_length=1)
    next_step: Union[int, Dict[str, int]] = Field(alias="nextStep")

    def successors(self) -> List[int]:
        if isinstance(self.next_step, dict):
            return list(self.next_step.values())
        return [self.next_step]

    def resolve_next(self, answer: Optional[AnswerValue] = None) -> Optional[int]:
        if not isinstance(answer, str) or not answer:
            return None
        if isinstance(self.next_step, dict):
            return self.next_step.get(answer)
        return self.next_step


class MultipleChoiceNode(_BaseNode):
    """Checkbox question; always continues to the same node."""

    type: Literal["multiple"] = "multiple"
    question: str
    options: List[str] = Field(min_length=1)
    next_step: int = Field(alias="nextStep")

    def successors(self) -> List[int]:
        return [self.next_step]

    def resolve_next(self, answer: Optional[AnswerValue] = None) -> Optional[int]:
        return self.next_step


class InstructionNode(_BaseNode):
    type: Literal["instruction"] = "instruction"
    title: str
    message: str
    button_text: str = Field(default="Continue", alias="buttonText")
    next_step: int = Field(alias="nextStep")

    def successors(self) -> List[int]:
        return [self.next_step]

    def resolve_next(self, answer: Optional[AnswerValue] = None) -> Optional[int]:
        return self.next_step


class CompletionNode(_BaseNode):
    """Terminal node; reaching it enables summary generation."""

    type: Literal["completion"] = "completion"
    title: str
    message: str
    button_text: str = Field(default="Generate Assessment Summary", alias="buttonText")

    @property
    def is_terminal(self) -> bool:
        return True


AssessmentNode = Annotated[
    Union[SingleChoiceNode, MultipleChoiceNode, InstructionNode, CompletionNode],
    Field(discriminator="type"),
]

_flow_adapter: TypeAdapter = TypeAdapter(List[AssessmentNode])


def _check_acyclic(nodes: List[Any]) -> None:
    """Reject cycles reachable from the first node."""
    visiting, done = set(), set()
    stack = [(0, iter(nodes[0].successors()))]
    visiting.add(0)

    while stack:
        index, children = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            visiting.discard(index)
            done.add(index)
            continue
        if child in visiting:
            raise FlowValidationError(
                f"Cycle detected: node {nodes[index].id!r} leads back to {nodes[child].id!r}"
            )
        if child not in done:
            visiting.add(child)
            stack.append((child, iter(nodes[child].successors())))


def validate_flow(nodes: List[Any]) -> List[Any]:
    """
    Check a parsed flow against the graph invariants.

    - the flow is non-empty and node ids are unique
    - every nextStep index points inside the flow
    - a single-choice mapping covers exactly its options
    - at least one completion node exists
    - no cycles are reachable from the first node

    Returns:
        The same list, for chaining

    Raises:
        FlowValidationError: on the first violation found
    """
    if not nodes:
        raise FlowValidationError("Flow is empty")

    seen_ids = set()
    for node in nodes:
        if node.id in seen_ids:
            raise FlowValidationError(f"Duplicate node id {node.id!r}")
        seen_ids.add(node.id)

    for node in nodes:
        for target in node.successors():
            if not 0 <= target < len(nodes):
                raise FlowValidationError(
                    f"Node {node.id!r} points to step {target}, outside 0..{len(nodes) - 1}"
                )

        if isinstance(node, SingleChoiceNode) and isinstance(node.next_step, dict):
            missing = [o for o in node.options if o not in node.next_step]
            if missing:
                raise FlowValidationError(f"Node {node.id!r} has no nextStep for option(s) {missing}")
            extra = [k for k in node.next_step if k not in node.options]
            if extra:
                raise FlowValidationError(f"Node {node.id!r} maps unknown option(s) {extra}")

    if not any(node.is_terminal for node in nodes):
        raise FlowValidationError("Flow has no completion node")

    _check_acyclic(nodes)
    return nodes


def parse_flow(data: Any) -> List[Any]:
    """
    Build and validate nodes from generated JSON.

    Accepts either ``{"assessment": [...]}`` or a bare list of node dicts.

    Raises:
        FlowValidationError: wrong shape or invariant violation
    """
    if isinstance(data, dict):
        data = data.get("assessment")
    if not isinstance(data, list):
        raise FlowValidationError("Expected a list of assessment nodes")

    try:
        nodes = _flow_adapter.validate_python(data)
    except ValidationError as e:
        raise FlowValidationError(f"Invalid node structure: {e.error_count()} error(s)") from e

    return validate_flow(nodes)


def dump_flow(nodes: List[Any]) -> List[dict]:
    """Convert nodes back to their JSON shape."""
    return [node.model_dump(mode="json", by_alias=True) for node in nodes]
