"""
Design-system extraction

Design tokens, variables, the style catalog, CSS generation and image export.
"""

from .css import generate_css, supports_css
from .export import export_node
from .tokens import design_tokens, list_styles, list_variables

__all__ = [
    "generate_css",
    "supports_css",
    "export_node",
    "design_tokens",
    "list_styles",
    "list_variables",
]
