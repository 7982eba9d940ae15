"""
Command Dispatcher

Routes an inbound command to its handler and converts the outcome into a
Response. Every failure, tagged or not, becomes Response.error; nothing
escapes to the connection loop.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from forage.app.models.protocol import Command, CommandMethod, ErrorPayload, Response
from forage.app.services.sandbox.handlers import SceneCommandHandlers
from forage.app.shared.error_handler import (
    InvalidParamsError,
    UnknownMethodError,
    format_error_payload,
)

logger = logging.getLogger(__name__)

Handler = Callable[[Optional[Dict[str, Any]]], Awaitable[Any]]


class CommandDispatcher:
    """Method name -> handler coroutine"""

    def __init__(self, handlers: SceneCommandHandlers):
        self.handlers = handlers
        self._routes: Dict[CommandMethod, Handler] = {
            CommandMethod.GET_PAGES: handlers.get_pages,
            CommandMethod.GET_FRAMES: handlers.get_frames,
            CommandMethod.GET_SELECTION: handlers.get_selection,
            CommandMethod.GET_CHILDREN: handlers.get_children,
            CommandMethod.GET_VARIANTS: handlers.get_variants,
            CommandMethod.SEARCH_NODES: handlers.search_nodes,
            CommandMethod.GET_NODE_DETAIL: handlers.get_node_detail,
            CommandMethod.GET_CSS: handlers.get_css,
            CommandMethod.GET_IMAGES: handlers.get_images,
            CommandMethod.GET_DESIGN_TOKENS: handlers.get_design_tokens,
            CommandMethod.GET_VARIABLES: handlers.get_variables,
            CommandMethod.GET_STYLES: handlers.get_styles,
            CommandMethod.COMPARE_VARIANTS: handlers.compare_variants,
            CommandMethod.FIND_REUSABLE: handlers.find_reusable,
            CommandMethod.FIND_SIMILAR: handlers.find_similar,
            CommandMethod.INFER_STATES: handlers.infer_states,
            CommandMethod.LINT_NAMING: handlers.lint_naming,
            CommandMethod.GET_ANNOTATIONS: handlers.get_annotations,
            CommandMethod.ANNOTATE_STATE: handlers.annotate_state,
        }

    async def dispatch(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run one command

        Raises:
            UnknownMethodError: method is not a CommandMethod
            ForageError: raised by the handler
        """
        try:
            command_method = CommandMethod(method)
        except ValueError:
            raise UnknownMethodError(f"Unknown method: {method}")

        if params is not None and not isinstance(params, dict):
            raise InvalidParamsError("params must be an object")

        return await self._routes[command_method](params)

    async def handle_command(self, command: Command) -> Response:
        """Dispatch and wrap the outcome; never raises"""
        try:
            result = await self.dispatch(command.method, command.params)
        except Exception as e:
            payload = format_error_payload(e)
            logger.info(f"Command {command.method} (id={command.id}) failed: [{payload['code']}] {payload['message']}")
            return Response(id=command.id, error=ErrorPayload(**payload))
        return Response(id=command.id, result=result)

    async def handle_raw(self, raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Handle one decoded frame

        Returns:
            Response wire dict, or None when the frame has no usable id
        """
        try:
            command = Command.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Dropping malformed command: {e.error_count()} validation error(s)")
            return None
        response = await self.handle_command(command)
        return response.to_wire()
