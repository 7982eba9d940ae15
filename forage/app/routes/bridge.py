"""
Bridge status routes.

Small HTTP surface next to the MCP server: health, bridge status and a raw
command relay for debugging the sandbox without an MCP client.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from forage.app.models.protocol import CommandMethod
from forage.app.services.bridge.plugin_bridge import PluginBridge
from forage.app.shared.error_handler import ForageError, UnknownMethodError, http_status_for

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bridge", tags=["bridge"])


class CommandRequest(BaseModel):
    """Relay request body"""
    params: Optional[Dict[str, Any]] = Field(default=None, description="Command parameters")


def get_bridge(request: Request) -> PluginBridge:
    return request.app.state.bridge


@router.get("/status")
async def bridge_status(bridge: PluginBridge = Depends(get_bridge)):
    """Connection state, bound port and in-flight request count"""
    return bridge.status().model_dump(by_alias=True)


@router.post("/commands/{method}")
async def relay_command(
    method: str,
    body: Optional[CommandRequest] = None,
    bridge: PluginBridge = Depends(get_bridge),
):
    """
    Send one command to the sandbox and return its result

    Errors are mapped to HTTP statuses: 503 not connected / disconnected,
    504 timeout, 404 unknown node or page, 400 bad input, 502 anything else.
    """
    try:
        command_method = CommandMethod(method)
    except ValueError:
        raise UnknownMethodError(f"Unknown method: {method}")

    params = body.params if body is not None else None
    result = await bridge.send(command_method.value, params)
    return {"method": command_method.value, "result": result}


async def forage_error_handler(request: Request, exc: ForageError):
    """Tagged errors keep their code in the body"""
    status_code = http_status_for(exc)
    logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def create_app(bridge: PluginBridge, start_bridge: bool = True) -> FastAPI:
    """
    Build the HTTP status app

    Args:
        bridge: plugin bridge served by the routes
        start_bridge: start/close the bridge with the app lifespan
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_bridge:
            await bridge.start()
        try:
            yield
        finally:
            if start_bridge:
                await bridge.close()

    app = FastAPI(
        title="Forage Bridge",
        description="Status and command relay for the Forage plugin bridge",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.bridge = bridge
    app.add_exception_handler(ForageError, forage_error_handler)
    app.include_router(router)

    @app.get("/health")
    async def health_check():
        """Liveness plus whether the plugin is attached"""
        return {"status": "ok", "pluginConnected": bridge.connected}

    return app
