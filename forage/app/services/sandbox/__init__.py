"""
Sandbox side of the bridge

Command handlers over a scene document, the dispatcher that routes commands
to them, and the reconnecting WebSocket client that serves them.
"""

from .client import SandboxClient
from .dispatcher import CommandDispatcher
from .handlers import SceneCommandHandlers

__all__ = [
    "SandboxClient",
    "CommandDispatcher",
    "SceneCommandHandlers",
]
