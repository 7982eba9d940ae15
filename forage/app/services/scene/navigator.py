"""
Tree Navigator

Bounded-depth expansion of the projector over a subtree.
"""

from typing import Any, Dict, Optional

from forage.app.models.scene import SceneNode
from forage.app.services.scene.document import SceneDocument
from forage.app.services.scene.projector import project_node
from forage.app.shared.error_handler import InvalidParamsError

DEFAULT_DEPTH = 1
MAX_DEPTH = 10


def _expand(node: SceneNode, remaining: int) -> Dict[str, Any]:
    projected = project_node(node)
    if remaining > 0 and node.is_container:
        projected["children"] = [_expand(child, remaining - 1) for child in node.child_nodes]
    return projected


def get_children(document: SceneDocument, node_id: str, depth: Optional[int] = None) -> Dict[str, Any]:
    """
    Project the subtree below a node

    Level n < depth children carry a `children` list; level `depth` children
    do not. Deeper levels are dropped without error.

    Args:
        document: scene host
        node_id: container to expand
        depth: levels to expand, 1..10 (default 1)

    Returns:
        {id, name, type, children}

    Raises:
        InvalidParamsError: depth outside 1..10
        NodeNotFoundError: unknown id, or a page/document id
    """
    depth = DEFAULT_DEPTH if depth is None else depth
    if isinstance(depth, bool) or not isinstance(depth, int) or not DEFAULT_DEPTH <= depth <= MAX_DEPTH:
        raise InvalidParamsError(f"depth must be an integer between 1 and {MAX_DEPTH}, got {depth!r}")

    node = document.find_node(node_id)
    return {
        "id": node.id,
        "name": node.name,
        "type": node.type,
        "children": [_expand(child, depth - 1) for child in node.child_nodes],
    }
