"""
Naming Linter

Flags layers still carrying the design tool's auto-generated names
("Frame 47", "Group 12", ...). Linting is exhaustive: the issue list is
never capped.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple

from forage.app.models.scene import SceneNode

GENERIC_NAME_ISSUE = "generic-name"

_GENERIC_KEYWORDS: Tuple[str, ...] = (
    "Frame",
    "Group",
    "Rectangle",
    "Ellipse",
    "Line",
    "Vector",
    "Text",
    "Image",
    "Component",
    "Instance",
)

# Checked in order; the first match wins
GENERIC_NAME_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(rf"{keyword}\s+\d+", re.IGNORECASE | re.ASCII) for keyword in _GENERIC_KEYWORDS
)


def match_generic_name(name: str) -> Optional[Pattern[str]]:
    for pattern in GENERIC_NAME_PATTERNS:
        if pattern.fullmatch(name):
            return pattern
    return None


def _suggestion(node: SceneNode) -> str:
    type_label = node.type.lower().replace("_", " ", 1)
    return (
        f'Rename "{node.name}" to describe its purpose (e.g., "hero-section", '
        f'"nav-item", "cta-button" instead of generic {type_label} names)'
    )


def lint_naming(nodes: Iterable[SceneNode]) -> Dict[str, Any]:
    """
    Scan nodes for generic names

    Returns:
        {issues: [{nodeId, name, type, issue, suggestion}], issueCount, totalNodes}
    """
    issues: List[Dict[str, str]] = []
    total = 0
    for node in nodes:
        total += 1
        if match_generic_name(node.name) is None:
            continue
        issues.append({
            "nodeId": node.id,
            "name": node.name,
            "type": node.type,
            "issue": GENERIC_NAME_ISSUE,
            "suggestion": _suggestion(node),
        })

    return {
        "issues": issues,
        "issueCount": len(issues),
        "totalNodes": total,
    }
