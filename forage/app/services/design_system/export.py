"""
Node image export

Raster formats (PNG, JPG, PDF) are rendered with Pillow at the requested
scale; SVG is emitted as markup at 1x. Rendering is a flat approximation of
the node tree: solid fills, strokes, corner radii, ellipses and text runs.
"""

import base64
import io
import logging
from typing import Any, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape, quoteattr

from PIL import Image, ImageDraw, ImageFont

from forage.app.models.scene import MIXED, Color, Paint, SceneNode
from forage.app.services.scene.projector import clean_number, rgb_to_hex
from forage.app.shared.error_handler import ErrorCode, InvalidParamsError, UnsupportedOperationError

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("PNG", "SVG", "JPG", "PDF")
DEFAULT_FORMAT = "PNG"
DEFAULT_SCALE = 2.0
MIN_SCALE = 0.5
MAX_SCALE = 4.0

MIME_TYPES = {
    "PNG": "image/png",
    "SVG": "image/svg+xml",
    "JPG": "image/jpeg",
    "PDF": "application/pdf",
}

_PIL_FORMATS = {"PNG": "PNG", "JPG": "JPEG", "PDF": "PDF"}

RGBA = Tuple[int, int, int, int]


def _rgba(color: Color, opacity: Optional[float] = None) -> RGBA:
    alpha = color.a if color.a is not None else 1.0
    if opacity is not None:
        alpha *= opacity
    return (
        int(round(color.r * 255)),
        int(round(color.g * 255)),
        int(round(color.b * 255)),
        int(round(alpha * 255)),
    )


def _solid(paints: Optional[List[Paint]]) -> Optional[Paint]:
    """Topmost visible solid paint"""
    for paint in reversed(paints or []):
        if paint.visible and paint.type == "SOLID" and paint.color is not None:
            return paint
    return None


def _has_geometry(node: SceneNode) -> bool:
    return bool(node.width) and bool(node.height)


def _radius(node: SceneNode) -> float:
    if isinstance(node.corner_radius, (int, float)):
        return float(node.corner_radius)
    if node.corner_radius == MIXED:
        # Pillow draws a single radius; use the largest corner
        corners = [node.top_left_radius, node.top_right_radius, node.bottom_right_radius, node.bottom_left_radius]
        return float(max(c or 0 for c in corners))
    return 0.0


# ============================================================
#  Raster
# ============================================================

def _draw_node(draw: ImageDraw.ImageDraw, node: SceneNode, origin: Tuple[float, float], scale: float) -> None:
    if not node.visible:
        return

    left, top = origin
    right = left + (node.width or 0) * scale
    bottom = top + (node.height or 0) * scale
    fill_paint = _solid(node.fills)
    stroke_paint = _solid(node.strokes)

    if node.type == "TEXT":
        if node.characters and fill_paint is not None:
            draw.text((left, top), node.characters, fill=_rgba(fill_paint.color, fill_paint.opacity),
                      font=ImageFont.load_default())
    elif right > left and bottom > top:
        box = [left, top, max(left, right - 1), max(top, bottom - 1)]
        fill = _rgba(fill_paint.color, fill_paint.opacity) if fill_paint is not None else None
        outline = _rgba(stroke_paint.color, stroke_paint.opacity) if stroke_paint is not None else None
        width = max(1, int(round(scale))) if outline is not None else 0
        if node.type == "ELLIPSE":
            draw.ellipse(box, fill=fill, outline=outline, width=width)
        elif _radius(node) > 0:
            draw.rounded_rectangle(box, radius=_radius(node) * scale, fill=fill, outline=outline, width=width)
        elif fill is not None or outline is not None:
            draw.rectangle(box, fill=fill, outline=outline, width=width)

    for child in node.child_nodes:
        child_origin = (left + (child.x or 0) * scale, top + (child.y or 0) * scale)
        _draw_node(draw, child, child_origin, scale)


def render_raster(node: SceneNode, image_format: str, scale: float) -> bytes:
    size = (
        max(1, int(round((node.width or 0) * scale))),
        max(1, int(round((node.height or 0) * scale))),
    )
    image = Image.new("RGBA", size, (0, 0, 0, 0))
    _draw_node(ImageDraw.Draw(image), node, (0.0, 0.0), scale)

    if image_format != "PNG":
        # JPEG and PDF carry no alpha channel
        background = Image.new("RGBA", size, (255, 255, 255, 255))
        image = Image.alpha_composite(background, image).convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format=_PIL_FORMATS[image_format])
    return buffer.getvalue()


# ============================================================
#  SVG
# ============================================================

def _svg_paint(paint: Optional[Paint]) -> Dict[str, str]:
    if paint is None:
        return {"fill": "none"}
    color = paint.color.model_copy(update={"a": None})
    attrs = {"fill": rgb_to_hex(color)}
    alpha = (paint.color.a if paint.color.a is not None else 1.0) * (paint.opacity if paint.opacity is not None else 1.0)
    if alpha < 1:
        attrs["fill-opacity"] = str(clean_number(round(alpha, 3)))
    return attrs


def _svg_attrs(attrs: Dict[str, Any]) -> str:
    return " ".join(f"{key}={quoteattr(str(clean_number(value)))}" for key, value in attrs.items())


def _svg_elements(node: SceneNode, x: float, y: float) -> List[str]:
    if not node.visible:
        return []

    elements: List[str] = []
    width = node.width or 0
    height = node.height or 0
    paint = _svg_paint(_solid(node.fills))
    stroke = _solid(node.strokes)
    if stroke is not None:
        paint["stroke"] = rgb_to_hex(stroke.color.model_copy(update={"a": None}))

    if node.type == "TEXT":
        if node.characters:
            font_size = node.font_size if isinstance(node.font_size, (int, float)) else 12
            attrs = {"x": x, "y": y + font_size, "font-size": font_size, **paint}
            elements.append(f"<text {_svg_attrs(attrs)}>{escape(node.characters)}</text>")
    elif node.type == "ELLIPSE":
        attrs = {"cx": x + width / 2, "cy": y + height / 2, "rx": width / 2, "ry": height / 2, **paint}
        elements.append(f"<ellipse {_svg_attrs(attrs)}/>")
    elif paint.get("fill") != "none" or "stroke" in paint:
        attrs = {"x": x, "y": y, "width": width, "height": height}
        if _radius(node) > 0:
            attrs["rx"] = _radius(node)
        attrs.update(paint)
        elements.append(f"<rect {_svg_attrs(attrs)}/>")

    for child in node.child_nodes:
        elements.extend(_svg_elements(child, x + (child.x or 0), y + (child.y or 0)))
    return elements


def render_svg(node: SceneNode) -> bytes:
    width = clean_number(node.width or 0)
    height = clean_number(node.height or 0)
    body = "\n  ".join(_svg_elements(node, 0.0, 0.0))
    markup = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" '
        f'viewBox="0 0 {width} {height}">\n  {body}\n</svg>\n'
    )
    return markup.encode("utf-8")


def export_node(node: SceneNode, image_format: Optional[str] = None, scale: Optional[float] = None) -> Dict[str, Any]:
    """
    Export a node as an encoded image

    Args:
        node: node to render; must have a width and height
        image_format: PNG (default), SVG, JPG or PDF
        scale: raster scale factor in 0.5..4 (default 2); ignored for SVG

    Returns:
        {nodeId, format, mimeType, data (base64), size (bytes)}

    Raises:
        InvalidParamsError: unknown format or scale out of range
        UnsupportedOperationError: node has no renderable geometry
    """
    image_format = (image_format or DEFAULT_FORMAT).upper()
    if image_format not in EXPORT_FORMATS:
        raise InvalidParamsError(f"format must be one of {', '.join(EXPORT_FORMATS)}, got {image_format!r}")

    scale = DEFAULT_SCALE if scale is None else scale
    if isinstance(scale, bool) or not isinstance(scale, (int, float)) or not MIN_SCALE <= scale <= MAX_SCALE:
        raise InvalidParamsError(f"scale must be between {MIN_SCALE} and {MAX_SCALE}, got {scale!r}")

    if not _has_geometry(node):
        raise UnsupportedOperationError(
            f"Export is not supported for {node.type} nodes",
            code=ErrorCode.EXPORT_NOT_SUPPORTED,
        )

    if image_format == "SVG":
        data = render_svg(node)
    else:
        data = render_raster(node, image_format, float(scale))

    logger.debug(f"Exported {node.id} as {image_format} ({len(data)} bytes)")
    return {
        "nodeId": node.id,
        "format": image_format,
        "mimeType": MIME_TYPES[image_format],
        "data": base64.b64encode(data).decode("ascii"),
        "size": len(data),
    }
