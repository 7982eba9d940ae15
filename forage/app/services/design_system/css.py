"""
CSS generation

Derives a CSS property map from a node's visual attributes, the way the
design tool's own "copy as CSS" does. Structural kinds (groups, sections,
slices, boolean operations) have no CSS of their own.
"""

from typing import Dict, List, Optional

from forage.app.models.scene import MIXED, Effect, Paint, SceneNode
from forage.app.services.scene.projector import clean_number, rgb_to_hex
from forage.app.shared.error_handler import ErrorCode, UnsupportedOperationError

CSS_NODE_TYPES = frozenset({
    "FRAME",
    "COMPONENT",
    "COMPONENT_SET",
    "INSTANCE",
    "RECTANGLE",
    "ELLIPSE",
    "POLYGON",
    "STAR",
    "VECTOR",
    "LINE",
    "TEXT",
})

_JUSTIFY = {
    "MIN": "flex-start",
    "CENTER": "center",
    "MAX": "flex-end",
    "SPACE_BETWEEN": "space-between",
}
_ALIGN = {
    "MIN": "flex-start",
    "CENTER": "center",
    "MAX": "flex-end",
    "BASELINE": "baseline",
}


def supports_css(node: SceneNode) -> bool:
    return node.type in CSS_NODE_TYPES


def _px(value: Optional[float]) -> str:
    return f"{clean_number(round(value or 0, 2))}px"


def _paint_css(paint: Paint) -> Optional[str]:
    if paint.type == "SOLID" and paint.color is not None:
        color = paint.color
        if paint.opacity is not None and paint.opacity < 1:
            color = color.model_copy(update={"a": paint.opacity})
        return rgb_to_hex(color)
    if paint.type == "GRADIENT_LINEAR" and paint.gradient_stops:
        stops = ", ".join(
            f"{rgb_to_hex(s.color)} {clean_number(round(s.position * 100, 2))}%"
            for s in paint.gradient_stops
        )
        return f"linear-gradient({stops})"
    if paint.type == "GRADIENT_RADIAL" and paint.gradient_stops:
        stops = ", ".join(
            f"{rgb_to_hex(s.color)} {clean_number(round(s.position * 100, 2))}%"
            for s in paint.gradient_stops
        )
        return f"radial-gradient({stops})"
    return None


def _shadow_css(effect: Effect) -> Optional[str]:
    if effect.type not in ("DROP_SHADOW", "INNER_SHADOW") or effect.offset is None:
        return None
    parts = [
        _px(effect.offset.x),
        _px(effect.offset.y),
        _px(effect.radius),
        _px(effect.spread),
        rgb_to_hex(effect.color) if effect.color is not None else "#000000",
    ]
    prefix = "inset " if effect.type == "INNER_SHADOW" else ""
    return prefix + " ".join(parts)


def generate_css(node: SceneNode) -> Dict[str, str]:
    """
    Args:
        node: node with visual styling

    Returns:
        CSS property -> value

    Raises:
        UnsupportedOperationError: node kind has no CSS
    """
    if not supports_css(node):
        raise UnsupportedOperationError(
            f"CSS generation is not supported for {node.type} nodes",
            code=ErrorCode.CSS_NOT_SUPPORTED,
        )

    css: Dict[str, str] = {}
    if node.width is not None:
        css["width"] = _px(node.width)
    if node.height is not None:
        css["height"] = _px(node.height)

    if node.layout_mode and node.layout_mode != "NONE":
        css["display"] = "flex"
        css["flex-direction"] = "row" if node.layout_mode == "HORIZONTAL" else "column"
        if node.primary_axis_align_items in _JUSTIFY:
            css["justify-content"] = _JUSTIFY[node.primary_axis_align_items]
        if node.counter_axis_align_items in _ALIGN:
            css["align-items"] = _ALIGN[node.counter_axis_align_items]
        if node.item_spacing:
            css["gap"] = _px(node.item_spacing)
        padding = [node.padding_top, node.padding_right, node.padding_bottom, node.padding_left]
        if any(padding):
            css["padding"] = " ".join(_px(p) for p in padding)
    if node.layout_grow:
        css["flex-grow"] = str(clean_number(node.layout_grow))

    fills = [p for p in node.fills or [] if p.visible]
    paints = [value for value in (_paint_css(p) for p in fills) if value]
    if paints:
        key = "color" if node.type == "TEXT" else "background"
        css[key] = ", ".join(reversed(paints)) if key == "background" else paints[-1]

    strokes = [p for p in node.strokes or [] if p.visible and p.type == "SOLID" and p.color is not None]
    if strokes:
        css["border"] = f"1px solid {_paint_css(strokes[-1])}"

    if isinstance(node.corner_radius, (int, float)) and node.corner_radius > 0:
        css["border-radius"] = _px(node.corner_radius)
    elif node.corner_radius == MIXED:
        corners = [node.top_left_radius, node.top_right_radius, node.bottom_right_radius, node.bottom_left_radius]
        css["border-radius"] = " ".join(_px(c) for c in corners)
    if node.type == "ELLIPSE":
        css["border-radius"] = "50%"

    shadows: List[str] = [s for s in (_shadow_css(e) for e in node.effects or [] if e.visible) if s]
    if shadows:
        css["box-shadow"] = ", ".join(shadows)
    blurs = [e for e in node.effects or [] if e.visible and e.type == "LAYER_BLUR" and e.radius]
    if blurs:
        css["filter"] = f"blur({_px(blurs[0].radius)})"

    if node.opacity is not None and node.opacity != 1:
        css["opacity"] = str(clean_number(round(node.opacity, 2)))

    if node.type == "TEXT":
        if node.font_name is not None and node.font_name != MIXED:
            css["font-family"] = f"'{node.font_name.family}'"
        if isinstance(node.font_size, (int, float)):
            css["font-size"] = _px(node.font_size)
        if isinstance(node.font_weight, (int, float)):
            css["font-weight"] = str(clean_number(node.font_weight))
        if node.line_height is not None and node.line_height != MIXED:
            if node.line_height.unit == "PIXELS":
                css["line-height"] = _px(node.line_height.value)
            elif node.line_height.unit == "PERCENT":
                css["line-height"] = f"{clean_number(node.line_height.value)}%"
        if node.letter_spacing is not None and node.letter_spacing != MIXED and node.letter_spacing.value:
            unit = "%" if node.letter_spacing.unit == "PERCENT" else "px"
            css["letter-spacing"] = f"{clean_number(node.letter_spacing.value)}{unit}"
        if node.text_align_horizontal and node.text_align_horizontal != "LEFT":
            css["text-align"] = node.text_align_horizontal.lower()

    return css
