"""
Bridge wire protocol

One WebSocket text frame carries one JSON object:

    Command   {id, method, params?}                 bridge -> sandbox
    Response  {id, type: "response", result?, error?}  sandbox -> bridge
"""

from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class CommandMethod(str, Enum):
    """Operations understood by the sandbox dispatcher"""
    GET_PAGES = "getPages"
    GET_FRAMES = "getFrames"
    GET_SELECTION = "getSelection"
    GET_CHILDREN = "getChildren"
    GET_VARIANTS = "getVariants"
    SEARCH_NODES = "searchNodes"
    GET_NODE_DETAIL = "getNodeDetail"
    GET_CSS = "getCss"
    GET_IMAGES = "getImages"
    GET_DESIGN_TOKENS = "getDesignTokens"
    GET_VARIABLES = "getVariables"
    GET_STYLES = "getStyles"
    COMPARE_VARIANTS = "compareVariants"
    FIND_REUSABLE = "findReusable"
    FIND_SIMILAR = "findSimilar"
    INFER_STATES = "inferStates"
    LINT_NAMING = "lintNaming"
    GET_ANNOTATIONS = "getAnnotations"
    ANNOTATE_STATE = "annotateState"


class ErrorPayload(BaseModel):
    """Structured failure carried by a Response"""
    code: str
    message: str


class Command(BaseModel):
    """Outbound request; id is the correlation id"""
    id: str
    method: str
    params: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class Response(BaseModel):
    """Inbound reply; exactly one of result/error is meaningful"""
    id: str
    type: Literal["response"] = "response"
    result: Any = None
    error: Optional[ErrorPayload] = None

    @model_validator(mode="after")
    def _result_or_error(self) -> "Response":
        if self.error is not None and self.result is not None:
            raise ValueError("Response carries both result and error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_wire(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"id": self.id, "type": self.type}
        if self.error is not None:
            payload["error"] = self.error.model_dump()
        else:
            payload["result"] = self.result
        return payload


class BridgeStatus(BaseModel):
    """Snapshot of the bridge, as served by the HTTP status app"""
    connected: bool
    port: Optional[int] = None
    pending_requests: int = Field(default=0, serialization_alias="pendingRequests")
