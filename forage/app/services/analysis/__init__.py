"""
Scene analysis

Variant diffing, similarity scoring, naming lint, reusable-component counting
and state-machine inference over projected nodes.
"""

from .naming_linter import lint_naming
from .reusable import find_reusable
from .similarity import compute_similarity, find_similar
from .state_inference import StateInferenceEngine
from .variant_differ import compare_nodes

__all__ = [
    "lint_naming",
    "find_reusable",
    "compute_similarity",
    "find_similar",
    "StateInferenceEngine",
    "compare_nodes",
]
