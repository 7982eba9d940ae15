"""
Reusable component finder

Counts instances per main component on a page; components used more than
once are the best candidates to build first.
"""

from typing import Any, Dict, List

from forage.app.models.scene import PageNode, SceneNode
from forage.app.services.scene.document import SceneDocument


def find_reusable(document: SceneDocument, page: PageNode) -> Dict[str, Any]:
    """
    Returns:
        {reusableComponents: [{component: {id, name}, count, instanceIds}], total}
        sorted by descending instance count
    """
    usage: Dict[str, Dict[str, Any]] = {}
    instances: List[SceneNode] = document.find_all(page, lambda n: n.type == "INSTANCE")

    for instance in instances:
        component_id = instance.main_component_id
        if not component_id:
            continue
        entry = usage.get(component_id)
        if entry is None:
            component = document.get_node_by_id(component_id)
            entry = {
                "component": {
                    "id": component_id,
                    "name": component.name if component is not None else component_id,
                },
                "count": 0,
                "instanceIds": [],
            }
            usage[component_id] = entry
        entry["count"] += 1
        entry["instanceIds"].append(instance.id)

    reusable = sorted(
        (entry for entry in usage.values() if entry["count"] > 1),
        key=lambda entry: entry["count"],
        reverse=True,
    )
    return {"reusableComponents": reusable, "total": len(reusable)}
