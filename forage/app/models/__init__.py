# Models package

from .annotation import (
    InferredStateMachine,
    StateAnnotation,
    StateTransition,
)

from .protocol import (
    BridgeStatus,
    Command,
    CommandMethod,
    ErrorPayload,
    Response,
)

from .scene import (
    DocumentData,
    PageNode,
    SceneNode,
)

__all__ = [
    "InferredStateMachine",
    "StateAnnotation",
    "StateTransition",
    "BridgeStatus",
    "Command",
    "CommandMethod",
    "ErrorPayload",
    "Response",
    "DocumentData",
    "PageNode",
    "SceneNode",
]
