"""
Similarity Scorer

Attribute-overlap ratio between nodes of the same type.
"""

from typing import Any, Dict, List

from forage.app.models.scene import SceneNode
from forage.app.services.analysis.variant_differ import canonical_json
from forage.app.services.scene.document import SceneDocument
from forage.app.services.scene.projector import project_node
from forage.app.shared.error_handler import InvalidParamsError

DEFAULT_THRESHOLD = 0.7
MAX_RESULTS = 20

# Identity and structure keys never count towards similarity
_IGNORED_KEYS = frozenset({"id", "name", "type", "childCount", "children"})


def compute_similarity(a: Dict[str, Any], b: Dict[str, Any]) -> float:
    """
    Equal keys / union of keys, identity and child-count keys excluded

    Two bare projections have an empty union and score 0.
    """
    keys = {k for k in a if k not in _IGNORED_KEYS} | {k for k in b if k not in _IGNORED_KEYS}
    if not keys:
        return 0.0

    matches = 0
    for key in keys:
        if key in a and key in b and canonical_json(a[key]) == canonical_json(b[key]):
            matches += 1
    return matches / len(keys)


def find_similar(
    document: SceneDocument,
    target: SceneNode,
    threshold: float = DEFAULT_THRESHOLD,
) -> Dict[str, Any]:
    """
    Rank same-type nodes on the current page by similarity to target

    Returns:
        {target, similar: [{node, similarity}] (at most 20), total}
    """
    if not 0 <= threshold <= 1:
        raise InvalidParamsError(f"threshold must be between 0 and 1, got {threshold!r}")

    projected_target = project_node(target)
    candidates = document.find_all(
        document.current_page,
        lambda n: n.type == target.type and n.id != target.id,
    )

    similar: List[Dict[str, Any]] = []
    for candidate in candidates:
        projected = project_node(candidate)
        score = compute_similarity(projected_target, projected)
        if score >= threshold:
            similar.append({"node": projected, "similarity": score})

    similar.sort(key=lambda item: item["similarity"], reverse=True)
    for item in similar:
        item["similarity"] = round(item["similarity"], 2)

    return {
        "target": {"id": target.id, "name": target.name, "type": target.type},
        "similar": similar[:MAX_RESULTS],
        "total": len(similar),
    }
