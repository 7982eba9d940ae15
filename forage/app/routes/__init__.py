"""
Outer surfaces: the MCP tool server and the HTTP status app.
"""

from .bridge import create_app
from .mcp_tools import create_mcp_server

__all__ = ["create_app", "create_mcp_server"]
