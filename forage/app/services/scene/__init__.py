"""
Scene host

In-memory scene document, node projection and subtree navigation.
"""

from .document import SceneDocument
from .navigator import get_children
from .projector import project_node

__all__ = [
    "SceneDocument",
    "get_children",
    "project_node",
]
