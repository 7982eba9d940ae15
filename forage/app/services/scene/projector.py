"""
Node Projector

Turns one raw SceneNode into the compact representation used by every query
response. Identity fields are always emitted; everything else is driven by
PROJECTION_RULES and only appears when it departs from its default.

The projection is a pure function of the node: no caching, no clock, no
ordering that depends on dict iteration of input data.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from forage.app.models.scene import MIXED, Color, Effect, Paint, SceneNode

_GRADIENT_TYPES = ("GRADIENT_LINEAR", "GRADIENT_RADIAL", "GRADIENT_ANGULAR", "GRADIENT_DIAMOND")


def round_half_up(value: float) -> int:
    """Math.round semantics (0.5 rounds up), unlike Python's banker's round"""
    return int(math.floor(value + 0.5))


def clean_number(value: Any) -> Any:
    """Emit whole floats as ints so 16.0 serializes as 16"""
    if isinstance(value, float) and not isinstance(value, bool) and value.is_integer():
        return int(value)
    return value


def rgb_to_hex(color: Color) -> str:
    """#rrggbb, with an alpha byte appended when alpha < 1"""
    r = round_half_up(color.r * 255)
    g = round_half_up(color.g * 255)
    b = round_half_up(color.b * 255)
    hex_color = f"#{r:02x}{g:02x}{b:02x}"
    if color.a is not None and color.a < 1:
        hex_color += f"{round_half_up(color.a * 255):02x}"
    return hex_color


def project_paint(paint: Paint) -> Dict[str, Any]:
    projected: Dict[str, Any] = {"type": paint.type}
    if paint.type == "SOLID" and paint.color is not None:
        projected["color"] = rgb_to_hex(paint.color)
        if paint.opacity is not None and paint.opacity != 1:
            projected["opacity"] = clean_number(paint.opacity)
    if paint.type in _GRADIENT_TYPES and paint.gradient_stops:
        projected["gradientStops"] = [
            {"color": rgb_to_hex(stop.color), "position": clean_number(stop.position)}
            for stop in paint.gradient_stops
        ]
    return projected


def project_effect(effect: Effect) -> Dict[str, Any]:
    projected: Dict[str, Any] = {"type": effect.type}
    if effect.radius is not None:
        projected["radius"] = clean_number(effect.radius)
    if effect.offset is not None:
        projected["offset"] = {"x": clean_number(effect.offset.x), "y": clean_number(effect.offset.y)}
    if effect.color is not None:
        projected["color"] = rgb_to_hex(effect.color)
    if effect.spread is not None:
        projected["spread"] = clean_number(effect.spread)
    return projected


def _visible_paints(paints: Optional[Sequence[Paint]]) -> Optional[List[Dict[str, Any]]]:
    visible = [p for p in paints or () if p.visible]
    return [project_paint(p) for p in visible] or None


def _visible_effects(effects: Optional[Sequence[Effect]]) -> Optional[List[Dict[str, Any]]]:
    visible = [e for e in effects or () if e.visible]
    return [project_effect(e) for e in visible] or None


def _model_dump(value: Any) -> Any:
    return value.model_dump(exclude_none=True) if hasattr(value, "model_dump") else value


def _dump_clean(value: Any) -> Any:
    dumped = _model_dump(value)
    if isinstance(dumped, dict):
        return {k: clean_number(v) for k, v in dumped.items()}
    return clean_number(dumped)


# ------------------------------------------------------------
#  Rule predicates
# ------------------------------------------------------------

def _always(node: SceneNode) -> bool:
    return True


def _has_auto_layout(node: SceneNode) -> bool:
    return node.layout_mode is not None and node.layout_mode != "NONE"


def _is_text(node: SceneNode) -> bool:
    return node.type == "TEXT"


def _corner_radius(node: SceneNode) -> Optional[float]:
    radius = node.corner_radius
    if isinstance(radius, (int, float)) and radius > 0:
        return radius
    return None


def _border_radius(node: SceneNode) -> Optional[str]:
    if node.corner_radius != MIXED:
        return None
    corners = (
        node.top_left_radius,
        node.top_right_radius,
        node.bottom_right_radius,
        node.bottom_left_radius,
    )
    return " ".join(str(clean_number(c if c is not None else 0)) for c in corners)


@dataclass(frozen=True)
class ProjectionRule:
    """
    One projected attribute

    key:       output key
    read:      value extractor; None or MIXED means "omit"
    defaults:  values that are omitted as the type-specific default
    applies:   node predicate gating the rule
    transform: output shaping; returning None omits the key
    """
    key: str
    read: Callable[[SceneNode], Any]
    defaults: Tuple[Any, ...] = ()
    applies: Callable[[SceneNode], bool] = _always
    transform: Callable[[Any], Any] = field(default=clean_number)


PROJECTION_RULES: Tuple[ProjectionRule, ...] = (
    ProjectionRule("visible", lambda n: n.visible, defaults=(True,)),
    ProjectionRule("width", lambda n: n.width, transform=round_half_up),
    ProjectionRule("height", lambda n: n.height, transform=round_half_up),

    # Auto-layout container fields only mean something with a layout mode
    ProjectionRule("layoutMode", lambda n: n.layout_mode, applies=_has_auto_layout),
    ProjectionRule("primaryAxisAlignItems", lambda n: n.primary_axis_align_items, applies=_has_auto_layout),
    ProjectionRule("counterAxisAlignItems", lambda n: n.counter_axis_align_items, applies=_has_auto_layout),
    ProjectionRule("paddingLeft", lambda n: n.padding_left, applies=_has_auto_layout),
    ProjectionRule("paddingRight", lambda n: n.padding_right, applies=_has_auto_layout),
    ProjectionRule("paddingTop", lambda n: n.padding_top, applies=_has_auto_layout),
    ProjectionRule("paddingBottom", lambda n: n.padding_bottom, applies=_has_auto_layout),
    ProjectionRule("itemSpacing", lambda n: n.item_spacing, applies=_has_auto_layout),
    ProjectionRule("counterAxisSpacing", lambda n: n.counter_axis_spacing, applies=_has_auto_layout),

    # Auto-layout child fields
    ProjectionRule("layoutAlign", lambda n: n.layout_align, defaults=("INHERIT",)),
    ProjectionRule("layoutGrow", lambda n: n.layout_grow, defaults=(0,)),

    # Components
    ProjectionRule("isComponent", lambda n: n.type == "COMPONENT", defaults=(False,)),
    ProjectionRule("isComponentSet", lambda n: n.type == "COMPONENT_SET", defaults=(False,)),
    ProjectionRule("isInstance", lambda n: n.type == "INSTANCE", defaults=(False,)),
    ProjectionRule("mainComponentId", lambda n: n.main_component_id, applies=lambda n: n.type == "INSTANCE"),
    ProjectionRule("variantProperties", lambda n: n.variant_properties or None, transform=dict),
    ProjectionRule("componentProperties", lambda n: n.component_property_definitions or None, transform=dict),

    # Visual style
    ProjectionRule("fills", lambda n: n.fills, transform=_visible_paints),
    ProjectionRule("strokes", lambda n: n.strokes, transform=_visible_paints),
    ProjectionRule("effects", lambda n: n.effects, transform=_visible_effects),
    ProjectionRule("opacity", lambda n: n.opacity, defaults=(1,)),
    ProjectionRule("blendMode", lambda n: n.blend_mode, defaults=("PASS_THROUGH", "NORMAL")),
    ProjectionRule("cornerRadius", _corner_radius),
    ProjectionRule("borderRadius", _border_radius, transform=str),

    # Typography; mixed values are omitted rather than guessed
    ProjectionRule("textContent", lambda n: n.characters, applies=_is_text, transform=str),
    ProjectionRule("fontSize", lambda n: n.font_size, applies=_is_text),
    ProjectionRule("fontName", lambda n: n.font_name, applies=_is_text, transform=_model_dump),
    ProjectionRule("fontWeight", lambda n: n.font_weight, applies=_is_text),
    ProjectionRule("lineHeight", lambda n: n.line_height, applies=_is_text, transform=_dump_clean),
    ProjectionRule("letterSpacing", lambda n: n.letter_spacing, applies=_is_text, transform=_dump_clean),
    ProjectionRule("textAlignHorizontal", lambda n: n.text_align_horizontal, applies=_is_text),
    ProjectionRule("textAlignVertical", lambda n: n.text_align_vertical, applies=_is_text),
    ProjectionRule("textDecoration", lambda n: n.text_decoration, defaults=("NONE",), applies=_is_text),
    ProjectionRule("textCase", lambda n: n.text_case, defaults=("ORIGINAL",), applies=_is_text),
)

# Keys after which childCount / children are placed in the output
_STRUCTURE_AFTER = "height"


def _apply_rule(rule: ProjectionRule, node: SceneNode, out: Dict[str, Any]) -> None:
    if not rule.applies(node):
        return
    value = rule.read(node)
    if value is None or (isinstance(value, str) and value == MIXED):
        return
    if value in rule.defaults:
        return
    projected = rule.transform(value)
    if projected is None:
        return
    out[rule.key] = projected


def project_node(node: SceneNode, include_children: bool = False) -> Dict[str, Any]:
    """
    Project a raw node

    Args:
        node: raw scene node
        include_children: also project direct children (without their own children)

    Returns:
        Dict with id, name, type and every non-default attribute
    """
    projected: Dict[str, Any] = {"id": node.id, "name": node.name, "type": node.type}

    for rule in PROJECTION_RULES:
        _apply_rule(rule, node, projected)
        if rule.key == _STRUCTURE_AFTER and node.is_container:
            projected["childCount"] = len(node.child_nodes)
            if include_children:
                projected["children"] = [project_node(child) for child in node.child_nodes]

    return projected
