"""
Annotation storage over shared plugin data.
"""

from .store import AnnotationStore

__all__ = ["AnnotationStore"]
