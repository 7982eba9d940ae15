"""
State Inference Engine

Builds a best-effort interaction state machine for a node from three
independent evidence sources, weighted additively:

    variant-names        0.4  variant children named "Key=Value, Key=Value"
    prototype-reactions  0.3  recorded trigger/action pairs on the node
    annotations          0.3  designer-authored rules in the annotation store
"""

import logging
from typing import Any, Dict, List, Optional

from forage.app.models.annotation import InferredStateMachine
from forage.app.models.scene import SceneNode
from forage.app.services.annotations.store import AnnotationStore

logger = logging.getLogger(__name__)

SOURCE_VARIANT_NAMES = "variant-names"
SOURCE_REACTIONS = "prototype-reactions"
SOURCE_ANNOTATIONS = "annotations"

SOURCE_WEIGHTS = {
    SOURCE_VARIANT_NAMES: 0.4,
    SOURCE_REACTIONS: 0.3,
    SOURCE_ANNOTATIONS: 0.3,
}

INTERACTION_STATES = ("default", "hover", "active", "pressed", "focus", "disabled")

# (endpoint A, endpoint B candidates, trigger A->B, trigger B->A)
_CONVENTIONAL_PAIRS = (
    ("default", ("hover",), "ON_HOVER", "MOUSE_LEAVE"),
    ("hover", ("active", "pressed"), "ON_CLICK", "MOUSE_UP"),
    ("default", ("focus",), "ON_FOCUS", "ON_BLUR"),
)

SIMPLE_MAX_STATES = 3
SIMPLE_MAX_TRANSITIONS = 4

QUESTION_NO_TRANSITIONS = (
    "States were found but no transitions could be inferred. "
    "How do users move between states?"
)
QUESTION_NO_ANNOTATIONS = (
    "No designer annotations found. Consider using forage_annotate_state "
    "to add explicit state rules."
)
SUGGEST_SINGLE_VARIABLE = "useState: simple enough for a single state variable"
SUGGEST_REDUCER = "useReducer: complex state machine with multiple transitions"


def parse_variant_name(name: str) -> Dict[str, str]:
    """'State=Hover, Size=Large' -> {'State': 'Hover', 'Size': 'Large'}"""
    properties: Dict[str, str] = {}
    for pair in name.split(","):
        key, sep, value = pair.partition("=")
        if not sep:
            continue
        properties[key.strip()] = value.strip()
    return properties


def _add_state(states: List[str], state: str) -> None:
    if state and state not in states:
        states.append(state)


def _conventional_transitions(states: List[str]) -> List[Dict[str, Any]]:
    """Synthesize default/hover/active/focus edges between observed states"""
    observed: Dict[str, str] = {}
    for state in states:
        lowered = state.lower()
        if lowered in INTERACTION_STATES and lowered not in observed:
            observed[lowered] = state

    if len(observed) < 2:
        return []

    transitions: List[Dict[str, Any]] = []
    for first, seconds, forward, backward in _CONVENTIONAL_PAIRS:
        if first not in observed:
            continue
        second = next((observed[s] for s in seconds if s in observed), None)
        if second is None:
            continue
        transitions.append({"from": observed[first], "to": second, "trigger": forward})
        transitions.append({"from": second, "to": observed[first], "trigger": backward})
    return transitions


class StateInferenceEngine:
    """
    Merge naming, reaction and annotation evidence

    Example:
        >>> engine = StateInferenceEngine(AnnotationStore(document))
        >>> machine = engine.infer(document.find_node(component_set_id))
        >>> machine.states, machine.confidence
        (['Default', 'Hover'], 0.4)
    """

    def __init__(self, annotations: AnnotationStore):
        self.annotations = annotations

    def _from_variant_names(self, node: SceneNode, states: List[str], transitions: List[Dict[str, Any]]) -> bool:
        if node.type != "COMPONENT_SET":
            return False
        for variant in node.child_nodes:
            if variant.type != "COMPONENT":
                continue
            for value in parse_variant_name(variant.name).values():
                _add_state(states, value)
        transitions.extend(_conventional_transitions(states))
        return True

    def _from_reactions(self, node: SceneNode, transitions: List[Dict[str, Any]]) -> bool:
        if not node.reactions:
            return False
        for reaction in node.reactions:
            if reaction.trigger is None:
                continue
            for action in reaction.actions:
                transitions.append({
                    "from": node.name,
                    "to": action.destination_id or "unknown",
                    "trigger": reaction.trigger.type,
                    "action": action.type,
                })
        return True

    def _from_annotations(self, node: SceneNode, states: List[str], transitions: List[Dict[str, Any]]) -> bool:
        annotation = self.annotations.read(node)
        if annotation is None:
            return False

        annotated_states = annotation.get("states")
        annotated_transitions = annotation.get("transitions")
        if not isinstance(annotated_states, list):
            annotated_states = []
        if not isinstance(annotated_transitions, list):
            annotated_transitions = []
        if not annotated_states and not annotated_transitions:
            logger.debug(f"Annotation on {node.id} has neither states nor transitions")

        for state in annotated_states:
            if isinstance(state, str):
                _add_state(states, state)
        for transition in annotated_transitions:
            if isinstance(transition, dict):
                transitions.append(transition)
        return True

    def infer(self, node: SceneNode) -> InferredStateMachine:
        states: List[str] = []
        transitions: List[Dict[str, Any]] = []
        sources: List[str] = []

        if self._from_variant_names(node, states, transitions):
            sources.append(SOURCE_VARIANT_NAMES)
        if self._from_reactions(node, transitions):
            sources.append(SOURCE_REACTIONS)
        if self._from_annotations(node, states, transitions):
            sources.append(SOURCE_ANNOTATIONS)

        confidence = round(sum(SOURCE_WEIGHTS[s] for s in sources), 2) if states else 0.0

        open_questions: List[str] = []
        if states and not transitions:
            open_questions.append(QUESTION_NO_TRANSITIONS)
        if SOURCE_ANNOTATIONS not in sources:
            open_questions.append(QUESTION_NO_ANNOTATIONS)

        suggestion: Optional[str] = None
        if states:
            if len(states) <= SIMPLE_MAX_STATES and len(transitions) <= SIMPLE_MAX_TRANSITIONS:
                suggestion = SUGGEST_SINGLE_VARIABLE
            else:
                suggestion = SUGGEST_REDUCER

        return InferredStateMachine(
            node_id=node.id,
            node_name=node.name,
            states=states,
            transitions=transitions,
            confidence=confidence,
            sources=sources,
            open_questions=open_questions,
            suggested_implementation=suggestion,
        )
