"""
Variant Differ

Field-level diff between two projected nodes.
"""

import json
from typing import Any, Dict

from forage.app.models.scene import SceneNode
from forage.app.services.scene.projector import project_node

_MISSING = object()


def canonical_json(value: Any) -> str:
    """Order-independent serialization used for every equality test"""
    if value is _MISSING:
        return ""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def diff_projections(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """{key: {a, b}} for every key whose canonical value differs; absent sides are None"""
    differences: Dict[str, Dict[str, Any]] = {}
    keys = list(a) + [k for k in b if k not in a]
    for key in keys:
        value_a = a.get(key, _MISSING)
        value_b = b.get(key, _MISSING)
        if canonical_json(value_a) != canonical_json(value_b):
            differences[key] = {
                "a": None if value_a is _MISSING else value_a,
                "b": None if value_b is _MISSING else value_b,
            }
    return differences


def compare_nodes(node_a: SceneNode, node_b: SceneNode) -> Dict[str, Any]:
    """
    Compare two nodes (typically two variants of one component)

    Both sides are projected with child counts but without subtrees.

    Returns:
        {nodeA, nodeB, differences, differenceCount}
    """
    differences = diff_projections(project_node(node_a), project_node(node_b))
    return {
        "nodeA": {"id": node_a.id, "name": node_a.name},
        "nodeB": {"id": node_b.id, "name": node_b.name},
        "differences": differences,
        "differenceCount": len(differences),
    }
