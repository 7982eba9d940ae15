"""
Error Handler
Error taxonomy shared by the bridge, the sandbox dispatcher and the tool surfaces
"""

import logging
from typing import Dict, Any, Optional, Type
from enum import Enum

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Stable error codes carried in Response.error.code"""
    NOT_CONNECTED = "NOT_CONNECTED"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    PLUGIN_DISCONNECTED = "PLUGIN_DISCONNECTED"
    NODE_NOT_FOUND = "NODE_NOT_FOUND"
    PAGE_NOT_FOUND = "PAGE_NOT_FOUND"
    NOT_COMPONENT_SET = "NOT_COMPONENT_SET"
    CSS_NOT_SUPPORTED = "CSS_NOT_SUPPORTED"
    EXPORT_NOT_SUPPORTED = "EXPORT_NOT_SUPPORTED"
    INVALID_ANNOTATION = "INVALID_ANNOTATION"
    INVALID_PARAMS = "INVALID_PARAMS"
    UNKNOWN_METHOD = "UNKNOWN_METHOD"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ForageError(Exception):
    """Base class for every tagged failure surfaced to a caller"""

    default_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = str(code.value if isinstance(code, ErrorCode) else code or self.default_code.value)
        self.message = message
        super().__init__(message)

    def to_payload(self) -> Dict[str, str]:
        """Convert to the {code, message} shape of Response.error"""
        return {"code": self.code, "message": self.message}


class PluginNotConnectedError(ForageError, ConnectionError):
    """send() attempted while no sandbox connection is live"""
    default_code = ErrorCode.NOT_CONNECTED


class RequestTimeoutError(ForageError, TimeoutError):
    """Deadline elapsed with no response"""
    default_code = ErrorCode.REQUEST_TIMEOUT


class PluginDisconnectedError(ForageError, ConnectionError):
    """Sandbox connection closed while the request was in flight"""
    default_code = ErrorCode.PLUGIN_DISCONNECTED


class NodeNotFoundError(ForageError, LookupError):
    """Id resolves to nothing, or to the wrong structural kind"""
    default_code = ErrorCode.NODE_NOT_FOUND


class UnsupportedOperationError(ForageError):
    """Node kind lacks the requested capability"""
    default_code = ErrorCode.CSS_NOT_SUPPORTED


class InvalidPayloadError(ForageError, ValueError):
    """Malformed annotation write"""
    default_code = ErrorCode.INVALID_ANNOTATION


class InvalidParamsError(ForageError, ValueError):
    """Command parameters missing or out of range"""
    default_code = ErrorCode.INVALID_PARAMS


class UnknownMethodError(ForageError):
    """Dispatcher given an unrecognized operation name"""
    default_code = ErrorCode.UNKNOWN_METHOD


class RemoteCommandError(ForageError):
    """Sandbox-side failure with no more specific local class"""
    default_code = ErrorCode.INTERNAL_ERROR


_ERROR_CLASSES: Dict[str, Type[ForageError]] = {
    ErrorCode.NOT_CONNECTED.value: PluginNotConnectedError,
    ErrorCode.REQUEST_TIMEOUT.value: RequestTimeoutError,
    ErrorCode.PLUGIN_DISCONNECTED.value: PluginDisconnectedError,
    ErrorCode.NODE_NOT_FOUND.value: NodeNotFoundError,
    ErrorCode.PAGE_NOT_FOUND.value: NodeNotFoundError,
    ErrorCode.NOT_COMPONENT_SET.value: NodeNotFoundError,
    ErrorCode.CSS_NOT_SUPPORTED.value: UnsupportedOperationError,
    ErrorCode.EXPORT_NOT_SUPPORTED.value: UnsupportedOperationError,
    ErrorCode.INVALID_ANNOTATION.value: InvalidPayloadError,
    ErrorCode.INVALID_PARAMS.value: InvalidParamsError,
    ErrorCode.UNKNOWN_METHOD.value: UnknownMethodError,
}


def error_from_payload(payload: Dict[str, Any]) -> ForageError:
    """
    Rebuild a local exception from a Response.error payload

    The message is tagged with the remote code, e.g.
    "[NODE_NOT_FOUND] Node not found: 1:2".

    Args:
        payload: {code, message} as written by the sandbox dispatcher

    Returns:
        ForageError subclass matching the code (RemoteCommandError if unknown)
    """
    code = str(payload.get("code") or ErrorCode.INTERNAL_ERROR.value)
    message = str(payload.get("message") or "Unknown error")
    error_cls = _ERROR_CLASSES.get(code, RemoteCommandError)
    return error_cls(f"[{code}] {message}", code=code)


def format_error_payload(error: Exception) -> Dict[str, str]:
    """
    Convert any handler failure to a Response.error payload

    Tagged errors keep their code; anything else becomes INTERNAL_ERROR.
    """
    if isinstance(error, ForageError):
        return error.to_payload()

    logger.error(f"Unhandled sandbox error: {error}", exc_info=error)
    return {
        "code": ErrorCode.INTERNAL_ERROR.value,
        "message": str(error) or error.__class__.__name__,
    }


def http_status_for(error: ForageError) -> int:
    """Map a tagged error to the HTTP status used by the status app"""
    if isinstance(error, RequestTimeoutError):
        return 504
    if isinstance(error, ConnectionError):
        return 503
    if isinstance(error, NodeNotFoundError):
        return 404
    if isinstance(error, (InvalidParamsError, InvalidPayloadError, UnknownMethodError)):
        return 400
    if isinstance(error, UnsupportedOperationError):
        return 422
    return 502
