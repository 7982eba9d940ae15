"""
Scene graph models

Raw nodes as held by the scene host. Field names are snake_case in Python and
camelCase on disk, matching the design tool's plugin API. Text metrics and
corner radii may hold the MIXED sentinel when a node carries several values.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MIXED = "mixed"
Mixed = Literal["mixed"]

DOCUMENT_TYPE = "DOCUMENT"
PAGE_TYPE = "PAGE"

CONTAINER_TYPES = frozenset({
    "FRAME",
    "GROUP",
    "COMPONENT",
    "COMPONENT_SET",
    "INSTANCE",
    "BOOLEAN_OPERATION",
    "SECTION",
})


class SceneModel(BaseModel):
    """Base for on-disk models: camelCase aliases, unknown keys ignored"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Color(SceneModel):
    r: float
    g: float
    b: float
    a: Optional[float] = None


class ColorStop(SceneModel):
    color: Color
    position: float


class Paint(SceneModel):
    type: str
    visible: bool = True
    color: Optional[Color] = None
    opacity: Optional[float] = None
    gradient_stops: Optional[List[ColorStop]] = None
    image_hash: Optional[str] = None


class Vector(SceneModel):
    x: float
    y: float


class Effect(SceneModel):
    type: str
    visible: bool = True
    radius: Optional[float] = None
    offset: Optional[Vector] = None
    color: Optional[Color] = None
    spread: Optional[float] = None


class FontName(SceneModel):
    family: str
    style: str


class Dimension(SceneModel):
    """lineHeight / letterSpacing value: {unit, value?}"""
    unit: str
    value: Optional[float] = None


class Trigger(SceneModel):
    type: str


class Action(SceneModel):
    type: str
    destination_id: Optional[str] = None
    navigation: Optional[str] = None


class Reaction(SceneModel):
    trigger: Optional[Trigger] = None
    actions: List[Action] = Field(default_factory=list)


class SceneNode(SceneModel):
    """One node of the scene graph below page level"""

    id: str
    name: str
    type: str
    visible: bool = True

    width: Optional[float] = None
    height: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None
    children: Optional[List["SceneNode"]] = None

    # Auto-layout (containers)
    layout_mode: Optional[str] = None
    primary_axis_align_items: Optional[str] = None
    counter_axis_align_items: Optional[str] = None
    padding_left: Optional[float] = None
    padding_right: Optional[float] = None
    padding_top: Optional[float] = None
    padding_bottom: Optional[float] = None
    item_spacing: Optional[float] = None
    counter_axis_spacing: Optional[float] = None

    # Auto-layout (children)
    layout_align: Optional[str] = None
    layout_grow: Optional[float] = None

    # Components
    main_component_id: Optional[str] = None
    variant_properties: Optional[Dict[str, str]] = None
    component_property_definitions: Optional[Dict[str, Any]] = None

    # Visual style
    fills: Optional[List[Paint]] = None
    strokes: Optional[List[Paint]] = None
    effects: Optional[List[Effect]] = None
    opacity: Optional[float] = None
    blend_mode: Optional[str] = None
    corner_radius: Optional[Union[float, Mixed]] = None
    top_left_radius: Optional[float] = None
    top_right_radius: Optional[float] = None
    bottom_right_radius: Optional[float] = None
    bottom_left_radius: Optional[float] = None

    # Text
    characters: Optional[str] = None
    font_size: Optional[Union[float, Mixed]] = None
    font_name: Optional[Union[FontName, Mixed]] = None
    font_weight: Optional[Union[float, Mixed]] = None
    line_height: Optional[Union[Dimension, Mixed]] = None
    letter_spacing: Optional[Union[Dimension, Mixed]] = None
    text_align_horizontal: Optional[str] = None
    text_align_vertical: Optional[str] = None
    text_decoration: Optional[Union[str, Mixed]] = None
    text_case: Optional[Union[str, Mixed]] = None

    # Prototyping and bindings
    reactions: Optional[List[Reaction]] = None
    bound_variables: Optional[Dict[str, Any]] = None

    # namespace -> key -> value, shared between plugins
    shared_plugin_data: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    @property
    def is_container(self) -> bool:
        return self.children is not None or self.type in CONTAINER_TYPES

    @property
    def child_nodes(self) -> List["SceneNode"]:
        return self.children or []


class PageNode(SceneModel):
    id: str
    name: str
    type: Literal["PAGE"] = PAGE_TYPE
    children: List[SceneNode] = Field(default_factory=list)


class VariableMode(SceneModel):
    mode_id: str
    name: str


class VariableCollection(SceneModel):
    id: str
    name: str
    modes: List[VariableMode] = Field(default_factory=list)


class Variable(SceneModel):
    id: str
    name: str
    resolved_type: str
    variable_collection_id: Optional[str] = None
    values_by_mode: Dict[str, Any] = Field(default_factory=dict)
    scopes: List[str] = Field(default_factory=list)


class PaintStyle(SceneModel):
    id: str
    name: str
    paints: List[Paint] = Field(default_factory=list)


class TextStyle(SceneModel):
    id: str
    name: str
    font_size: float
    font_name: FontName
    line_height: Dimension = Field(default_factory=lambda: Dimension(unit="AUTO"))
    letter_spacing: Dimension = Field(default_factory=lambda: Dimension(unit="PIXELS", value=0))


class EffectStyle(SceneModel):
    id: str
    name: str
    effects: List[Effect] = Field(default_factory=list)


class DocumentData(SceneModel):
    """On-disk shape of a scene document export"""
    id: str = "0:0"
    name: str = "Untitled"
    current_page_id: Optional[str] = None
    selection: List[str] = Field(default_factory=list)
    pages: List[PageNode] = Field(default_factory=list)
    variables: List[Variable] = Field(default_factory=list)
    variable_collections: List[VariableCollection] = Field(default_factory=list)
    paint_styles: List[PaintStyle] = Field(default_factory=list)
    text_styles: List[TextStyle] = Field(default_factory=list)
    effect_styles: List[EffectStyle] = Field(default_factory=list)
