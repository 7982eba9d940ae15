"""
Orchestrator surface

FastMCP server exposing the scene queries as forage_* tools. Every tool is a
thin forwarder: it sends one command through the plugin bridge and returns
the result as pretty-printed JSON text. Bridge and sandbox failures become
MCP tool errors carrying the tagged message.
"""

import json
import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, Dict, Literal, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import ToolAnnotations
from pydantic import Field

from forage.app.models.protocol import CommandMethod
from forage.app.services.bridge.plugin_bridge import PluginBridge
from forage.app.shared.error_handler import ForageError

logger = logging.getLogger(__name__)

SERVER_NAME = "forage-mcp"

READ_ONLY = ToolAnnotations(readOnlyHint=True, destructiveHint=False)
WRITEABLE = ToolAnnotations(readOnlyHint=False, destructiveHint=False)

# tool name -> command method it forwards to
TOOL_METHODS: Dict[str, CommandMethod] = {
    "forage_list_pages": CommandMethod.GET_PAGES,
    "forage_list_frames": CommandMethod.GET_FRAMES,
    "forage_get_selection": CommandMethod.GET_SELECTION,
    "forage_get_children": CommandMethod.GET_CHILDREN,
    "forage_get_variants": CommandMethod.GET_VARIANTS,
    "forage_search_nodes": CommandMethod.SEARCH_NODES,
    "forage_get_node_detail": CommandMethod.GET_NODE_DETAIL,
    "forage_get_css": CommandMethod.GET_CSS,
    "forage_get_images": CommandMethod.GET_IMAGES,
    "forage_get_design_tokens": CommandMethod.GET_DESIGN_TOKENS,
    "forage_get_variables": CommandMethod.GET_VARIABLES,
    "forage_get_styles": CommandMethod.GET_STYLES,
    "forage_compare_variants": CommandMethod.COMPARE_VARIANTS,
    "forage_find_reusable": CommandMethod.FIND_REUSABLE,
    "forage_find_similar": CommandMethod.FIND_SIMILAR,
    "forage_infer_states": CommandMethod.INFER_STATES,
    "forage_lint_naming": CommandMethod.LINT_NAMING,
    "forage_get_annotations": CommandMethod.GET_ANNOTATIONS,
    "forage_annotate_state": CommandMethod.ANNOTATE_STATE,
}

WRITE_TOOLS = frozenset({"forage_annotate_state"})

NodeId = Annotated[str, Field(description="Node ID, e.g. '12:34'")]
PageId = Annotated[str, Field(description="Page ID (from forage_list_pages)")]


async def forward(bridge: PluginBridge, method: CommandMethod, **params: Any) -> str:
    """
    Send one command and render its result

    None-valued params are dropped so the sandbox applies its defaults.

    Raises:
        ToolError: any ForageError from the bridge or the sandbox
    """
    payload = {key: value for key, value in params.items() if value is not None}
    try:
        result = await bridge.send(method.value, payload or None)
    except ForageError as e:
        logger.info(f"{method.value} failed: {e.message}")
        raise ToolError(e.message) from e
    return json.dumps(result, indent=2, ensure_ascii=False)


def create_mcp_server(bridge: PluginBridge, start_bridge: bool = True) -> FastMCP:
    """
    Build the forage MCP server

    Args:
        bridge: plugin bridge every tool forwards to
        start_bridge: start/close the bridge with the server lifespan

    Returns:
        FastMCP instance with 19 registered tools
    """

    @asynccontextmanager
    async def lifespan(app: FastMCP):
        if start_bridge:
            await bridge.start()
        logger.info(f"{SERVER_NAME} ready; waiting for the Forage plugin on port {bridge.port}")
        try:
            yield {}
        finally:
            if start_bridge:
                await bridge.close()
            logger.info(f"{SERVER_NAME} shutting down")

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)

    # ============================================================
    #  Discovery
    # ============================================================

    @mcp.tool(name="forage_list_pages", annotations=READ_ONLY)
    async def list_pages() -> str:
        """List every page of the open design file as [{id, name, childCount}].
        Start exploring here, then drill in with forage_list_frames."""
        return await forward(bridge, CommandMethod.GET_PAGES)

    @mcp.tool(name="forage_list_frames", annotations=READ_ONLY)
    async def list_frames(page_id: PageId) -> str:
        """List the top-level frames of one page as compact node projections.
        Use forage_get_children to go deeper."""
        return await forward(bridge, CommandMethod.GET_FRAMES, pageId=page_id)

    @mcp.tool(name="forage_get_selection", annotations=READ_ONLY)
    async def get_selection() -> str:
        """Return the nodes the designer currently has selected, with the page they sit on."""
        return await forward(bridge, CommandMethod.GET_SELECTION)

    # ============================================================
    #  Navigation
    # ============================================================

    @mcp.tool(name="forage_get_children", annotations=READ_ONLY)
    async def get_children(
        node_id: NodeId,
        depth: Annotated[Optional[int], Field(ge=1, le=10, description="Levels to expand (default 1)")] = None,
    ) -> str:
        """Expand the subtree below a node to a bounded depth.
        Keep depth low on large frames; request deeper levels node by node."""
        return await forward(bridge, CommandMethod.GET_CHILDREN, nodeId=node_id, depth=depth)

    @mcp.tool(name="forage_get_variants", annotations=READ_ONLY)
    async def get_variants(node_id: NodeId) -> str:
        """List the variants of a COMPONENT_SET with their parsed variant properties."""
        return await forward(bridge, CommandMethod.GET_VARIANTS, nodeId=node_id)

    @mcp.tool(name="forage_search_nodes", annotations=READ_ONLY)
    async def search_nodes(
        query: Annotated[Optional[str], Field(description="Case-insensitive name substring")] = None,
        type: Annotated[Optional[str], Field(description="Node type filter, e.g. TEXT or INSTANCE")] = None,
        page_id: Annotated[Optional[str], Field(description="Page to search (default: current page)")] = None,
    ) -> str:
        """Search a page by name and/or node type. Returns {results, total, capped};
        at most 100 results are returned."""
        return await forward(bridge, CommandMethod.SEARCH_NODES, query=query, type=type, pageId=page_id)

    # ============================================================
    #  Detail
    # ============================================================

    @mcp.tool(name="forage_get_node_detail", annotations=READ_ONLY)
    async def get_node_detail(
        node_id: NodeId,
        include_css: Annotated[Optional[bool], Field(description="Also generate CSS")] = None,
    ) -> str:
        """Full projection of one node with its direct children, bound variables
        and prototype reactions."""
        return await forward(bridge, CommandMethod.GET_NODE_DETAIL, nodeId=node_id, includeCss=include_css)

    @mcp.tool(name="forage_get_css", annotations=READ_ONLY)
    async def get_css(node_id: NodeId) -> str:
        """Generate CSS properties for a visual node as {nodeId, css}."""
        return await forward(bridge, CommandMethod.GET_CSS, nodeId=node_id)

    @mcp.tool(name="forage_get_images", annotations=READ_ONLY)
    async def get_images(
        node_id: NodeId,
        format: Annotated[Optional[Literal["PNG", "SVG", "JPG", "PDF"]], Field(description="Image format (default PNG)")] = None,
        scale: Annotated[Optional[float], Field(ge=0.5, le=4, description="Raster scale (default 2)")] = None,
    ) -> str:
        """Export a node as a base64-encoded image: {nodeId, format, mimeType, data, size}.
        Avoid large nodes at high scale."""
        return await forward(bridge, CommandMethod.GET_IMAGES, nodeId=node_id, format=format, scale=scale)

    # ============================================================
    #  Design system
    # ============================================================

    @mcp.tool(name="forage_get_design_tokens", annotations=READ_ONLY)
    async def get_design_tokens(
        format: Annotated[Optional[Literal["json", "tailwind", "css"]], Field(description="Output format (default json)")] = None,
    ) -> str:
        """Extract design tokens from local variables and text styles."""
        return await forward(bridge, CommandMethod.GET_DESIGN_TOKENS, format=format)

    @mcp.tool(name="forage_get_variables", annotations=READ_ONLY)
    async def get_variables() -> str:
        """List local variables with their values keyed by mode name."""
        return await forward(bridge, CommandMethod.GET_VARIABLES)

    @mcp.tool(name="forage_get_styles", annotations=READ_ONLY)
    async def get_styles() -> str:
        """List local paint, text and effect styles."""
        return await forward(bridge, CommandMethod.GET_STYLES)

    # ============================================================
    #  Analysis
    # ============================================================

    @mcp.tool(name="forage_compare_variants", annotations=READ_ONLY)
    async def compare_variants(
        node_id_a: Annotated[str, Field(description="First node ID")],
        node_id_b: Annotated[str, Field(description="Second node ID")],
    ) -> str:
        """Diff two nodes (typically two variants) attribute by attribute.
        Returns {nodeA, nodeB, differences, differenceCount}."""
        return await forward(bridge, CommandMethod.COMPARE_VARIANTS, nodeIdA=node_id_a, nodeIdB=node_id_b)

    @mcp.tool(name="forage_find_reusable", annotations=READ_ONLY)
    async def find_reusable() -> str:
        """Rank components instanced more than once on the current page."""
        return await forward(bridge, CommandMethod.FIND_REUSABLE)

    @mcp.tool(name="forage_find_similar", annotations=READ_ONLY)
    async def find_similar(
        node_id: NodeId,
        threshold: Annotated[Optional[float], Field(ge=0, le=1, description="Minimum similarity (default 0.7)")] = None,
    ) -> str:
        """Find same-type nodes on the current page that look like the target.
        At most 20 matches are listed; total counts all of them."""
        return await forward(bridge, CommandMethod.FIND_SIMILAR, nodeId=node_id, threshold=threshold)

    @mcp.tool(name="forage_infer_states", annotations=READ_ONLY)
    async def infer_states(node_id: NodeId) -> str:
        """Infer an interaction state machine from variant names, prototype reactions
        and designer annotations, with a confidence score and open questions."""
        return await forward(bridge, CommandMethod.INFER_STATES, nodeId=node_id)

    @mcp.tool(name="forage_lint_naming", annotations=READ_ONLY)
    async def lint_naming(
        page_id: Annotated[Optional[str], Field(description="Page to lint (default: current page)")] = None,
    ) -> str:
        """Flag layers that still carry auto-generated names such as 'Frame 12'."""
        return await forward(bridge, CommandMethod.LINT_NAMING, pageId=page_id)

    # ============================================================
    #  Annotations
    # ============================================================

    @mcp.tool(name="forage_get_annotations", annotations=READ_ONLY)
    async def get_annotations(node_id: NodeId) -> str:
        """Read the designer-authored state rules stored on a node."""
        return await forward(bridge, CommandMethod.GET_ANNOTATIONS, nodeId=node_id)

    @mcp.tool(name="forage_annotate_state", annotations=WRITEABLE)
    async def annotate_state(
        node_id: NodeId,
        annotation: Annotated[str, Field(
            description='JSON: {"states": [...], "transitions": [{"from", "to", "trigger"}], "notes": "..."}'
        )],
    ) -> str:
        """Store state rules on a node; forage_infer_states picks them up.
        Read existing rules with forage_get_annotations before overwriting them."""
        return await forward(bridge, CommandMethod.ANNOTATE_STATE, nodeId=node_id, annotation=annotation)

    return mcp
