"""
Design tokens, variables and the style catalog

Token output formats:
    json      raw grouping into colors / spacing / typography / other
    tailwind  {format, theme: {colors, fontSize}}
    css       {format, css: ":root { --token: value; ... }"}
"""

from typing import Any, Dict, List, Optional

from forage.app.models.scene import Color, Dimension, TextStyle, Variable, VariableCollection
from forage.app.services.scene.document import SceneDocument
from forage.app.services.scene.projector import clean_number, project_effect, project_paint, rgb_to_hex
from forage.app.shared.error_handler import InvalidParamsError

TOKEN_FORMATS = ("json", "tailwind", "css")


def _token_name(name: str) -> str:
    return name.replace("/", "-")


def _line_height_css(line_height: Dimension) -> str:
    if line_height.unit == "PIXELS":
        return f"{clean_number(line_height.value)}px"
    if line_height.unit == "PERCENT":
        return f"{clean_number(line_height.value)}%"
    return "normal"


def _values_by_mode_name(variable: Variable, collection: Optional[VariableCollection]) -> Dict[str, Any]:
    modes = collection.modes if collection is not None else []
    return {mode.name: variable.values_by_mode.get(mode.mode_id) for mode in modes}


def _first_mode_value(variable: Variable) -> Any:
    if not variable.values_by_mode:
        return None
    return next(iter(variable.values_by_mode.values()))


def _as_color(value: Any) -> Optional[Color]:
    if isinstance(value, dict) and "r" in value:
        return Color.model_validate(value)
    return None


def _collections(document: SceneDocument) -> Dict[str, VariableCollection]:
    return {c.id: c for c in document.data.variable_collections}


def _typography(style: TextStyle) -> Dict[str, Any]:
    return {
        "name": style.name,
        "fontSize": clean_number(style.font_size),
        "fontFamily": style.font_name.family,
        "fontWeight": style.font_name.style,
        "lineHeight": style.line_height.model_dump(exclude_none=True),
        "letterSpacing": style.letter_spacing.model_dump(exclude_none=True),
    }


def raw_tokens(document: SceneDocument) -> Dict[str, Any]:
    collections = _collections(document)
    colors: Dict[str, Any] = {}
    spacing: Dict[str, Any] = {}
    other: Dict[str, Any] = {}

    for variable in document.data.variables:
        token = {
            "name": variable.name,
            "type": variable.resolved_type,
            "values": _values_by_mode_name(variable, collections.get(variable.variable_collection_id or "")),
            "scopes": variable.scopes,
        }
        if variable.resolved_type == "COLOR":
            colors[variable.name] = token
        elif variable.resolved_type == "FLOAT":
            spacing[variable.name] = token
        else:
            other[variable.name] = token

    typography = {style.name: _typography(style) for style in document.data.text_styles}

    return {
        "colors": colors,
        "spacing": spacing,
        "typography": typography,
        "paintStyles": len(document.data.paint_styles),
        "effectStyles": len(document.data.effect_styles),
        "other": other,
    }


def format_tailwind(document: SceneDocument) -> Dict[str, Any]:
    colors: Dict[str, str] = {}
    for variable in document.data.variables:
        if variable.resolved_type != "COLOR":
            continue
        color = _as_color(_first_mode_value(variable))
        if color is not None:
            colors[_token_name(variable.name)] = rgb_to_hex(color)

    font_size: Dict[str, Any] = {}
    for style in document.data.text_styles:
        font_size[_token_name(style.name)] = [
            f"{clean_number(style.font_size)}px",
            {"lineHeight": _line_height_css(style.line_height), "fontWeight": style.font_name.style},
        ]

    return {"format": "tailwind", "theme": {"colors": colors, "fontSize": font_size}}


def format_css(document: SceneDocument) -> Dict[str, Any]:
    properties: List[str] = []
    for variable in document.data.variables:
        value = _first_mode_value(variable)
        if variable.resolved_type == "COLOR":
            color = _as_color(value)
            if color is not None:
                properties.append(f"  --{_token_name(variable.name)}: {rgb_to_hex(color)};")
        elif variable.resolved_type == "FLOAT" and isinstance(value, (int, float)):
            properties.append(f"  --{_token_name(variable.name)}: {clean_number(value)}px;")

    for style in document.data.text_styles:
        properties.append(
            f"  --font-{_token_name(style.name)}: {style.font_name.style} "
            f"{clean_number(style.font_size)}px/{_line_height_css(style.line_height)} "
            f"'{style.font_name.family}';"
        )

    return {"format": "css", "css": ":root {\n" + "\n".join(properties) + "\n}"}


def design_tokens(document: SceneDocument, token_format: Optional[str] = None) -> Dict[str, Any]:
    token_format = (token_format or "json").lower()
    if token_format not in TOKEN_FORMATS:
        raise InvalidParamsError(f"format must be one of {', '.join(TOKEN_FORMATS)}, got {token_format!r}")
    if token_format == "tailwind":
        return format_tailwind(document)
    if token_format == "css":
        return format_css(document)
    return raw_tokens(document)


def list_variables(document: SceneDocument) -> List[Dict[str, Any]]:
    collections = _collections(document)
    variables = []
    for variable in document.data.variables:
        collection = collections.get(variable.variable_collection_id or "")
        variables.append({
            "id": variable.id,
            "name": variable.name,
            "resolvedType": variable.resolved_type,
            "valuesByMode": _values_by_mode_name(variable, collection),
            "scopes": variable.scopes,
            "collectionName": collection.name if collection is not None else None,
        })
    return variables


def list_styles(document: SceneDocument) -> Dict[str, Any]:
    return {
        "paintStyles": [
            {
                "id": style.id,
                "name": style.name,
                "type": "PAINT",
                "paints": [project_paint(p) for p in style.paints],
            }
            for style in document.data.paint_styles
        ],
        "textStyles": [
            {"id": style.id, "type": "TEXT", **_typography(style)}
            for style in document.data.text_styles
        ],
        "effectStyles": [
            {
                "id": style.id,
                "name": style.name,
                "type": "EFFECT",
                "effects": [project_effect(e) for e in style.effects],
            }
            for style in document.data.effect_styles
        ],
    }
