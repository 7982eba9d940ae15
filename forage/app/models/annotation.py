"""
State annotation and inference models
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StateTransition(BaseModel):
    """Edge of a state machine; `from` is a Python keyword, hence the alias"""
    model_config = ConfigDict(populate_by_name=True)

    from_state: str = Field(..., alias="from")
    to: str
    trigger: str
    action: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class StateAnnotation(BaseModel):
    """
    Designer-authored state rules persisted on a node

    Example:
        {
            "states": ["Default", "Hover"],
            "transitions": [{"from": "Default", "to": "Hover", "trigger": "ON_HOVER"}],
            "notes": "Hover only on pointer devices"
        }
    """
    states: List[str]
    transitions: List[StateTransition] = Field(default_factory=list)
    notes: Optional[str] = None


class InferredStateMachine(BaseModel):
    """Best-effort state machine merged from naming, reactions and annotations"""
    node_id: str
    node_name: str
    states: List[str] = Field(default_factory=list)
    transitions: List[Dict[str, Any]] = Field(default_factory=list)
    confidence: float = 0.0
    sources: List[str] = Field(default_factory=list)
    open_questions: List[str] = Field(default_factory=list)
    suggested_implementation: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "nodeId": self.node_id,
            "nodeName": self.node_name,
            "states": self.states,
            "transitions": self.transitions,
            "confidence": self.confidence,
            "sources": self.sources,
            "openQuestions": self.open_questions,
        }
        if self.suggested_implementation is not None:
            payload["suggestedImplementation"] = self.suggested_implementation
        return payload
