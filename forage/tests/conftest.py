"""
Shared fixtures: a small two-page scene document and the objects built on it.

Page "Components" (current page):
    1:1  COMPONENT_SET Button
         1:2 State=Default / 1:3 State=Hover / 1:4 State=Pressed
    1:10 FRAME "Frame 1" (vertical auto-layout, selected)
         1:11, 1:12 INSTANCE of 1:2 (1:11 has a click reaction)
         1:13 INSTANCE of a missing component
         1:14 TEXT "Text 3"
         1:15 GROUP "Group 2" > 1:16 RECTANGLE "Rectangle 5"
         1:17 RECTANGLE, hidden, mixed corner radii
    1:20 ELLIPSE Avatar
Page "Screens":
    2:1  FRAME Home > 2:2, 2:3, 2:4 INSTANCE of 1:2
"""

import copy

import pytest

from forage.app.services.annotations import AnnotationStore
from forage.app.services.sandbox.dispatcher import CommandDispatcher
from forage.app.services.sandbox.handlers import SceneCommandHandlers
from forage.app.services.scene.document import SceneDocument

BLUE = {"r": 0, "g": 0.4, "b": 1}
DARK_BLUE = {"r": 0, "g": 0.2, "b": 0.8}
BLACK = {"r": 0, "g": 0, "b": 0}


def _variant(node_id, name, color):
    return {
        "id": node_id,
        "name": name,
        "type": "COMPONENT",
        "width": 120,
        "height": 40,
        "cornerRadius": 8,
        "fills": [{"type": "SOLID", "color": color}],
        "children": [],
    }


def _instance(node_id, name, main_component_id, **extra):
    node = {
        "id": node_id,
        "name": name,
        "type": "INSTANCE",
        "width": 120,
        "height": 40,
        "mainComponentId": main_component_id,
        "children": [],
    }
    node.update(extra)
    return node


SAMPLE_DOCUMENT = {
    "id": "0:0",
    "name": "Design System",
    "currentPageId": "0:1",
    "selection": ["1:10"],
    "pages": [
        {
            "id": "0:1",
            "name": "Components",
            "children": [
                {
                    "id": "1:1",
                    "name": "Button",
                    "type": "COMPONENT_SET",
                    "width": 400,
                    "height": 60,
                    "componentPropertyDefinitions": {
                        "State": {
                            "type": "VARIANT",
                            "defaultValue": "Default",
                            "variantOptions": ["Default", "Hover", "Pressed"],
                        }
                    },
                    "children": [
                        _variant("1:2", "State=Default", BLUE),
                        _variant("1:3", "State=Hover", DARK_BLUE),
                        _variant("1:4", "State=Pressed", BLUE),
                    ],
                },
                {
                    "id": "1:10",
                    "name": "Frame 1",
                    "type": "FRAME",
                    "width": 400.4,
                    "height": 300.5,
                    "layoutMode": "VERTICAL",
                    "primaryAxisAlignItems": "MIN",
                    "counterAxisAlignItems": "CENTER",
                    "paddingLeft": 24,
                    "paddingRight": 24,
                    "paddingTop": 24,
                    "paddingBottom": 24,
                    "itemSpacing": 16,
                    "children": [
                        _instance(
                            "1:11",
                            "Button",
                            "1:2",
                            reactions=[{
                                "trigger": {"type": "ON_CLICK"},
                                "actions": [{"type": "NODE", "destinationId": "1:30", "navigation": "NAVIGATE"}],
                            }],
                        ),
                        _instance("1:12", "Button", "1:2"),
                        _instance("1:13", "Icon", "9:9"),
                        {
                            "id": "1:14",
                            "name": "Text 3",
                            "type": "TEXT",
                            "width": 80,
                            "height": 20,
                            "fills": [{"type": "SOLID", "color": BLACK}],
                            "characters": "Hello",
                            "fontSize": 16,
                            "fontName": {"family": "Inter", "style": "Regular"},
                            "fontWeight": 400,
                            "lineHeight": {"unit": "AUTO"},
                            "letterSpacing": {"unit": "PIXELS", "value": 0},
                            "textAlignHorizontal": "LEFT",
                            "textAlignVertical": "TOP",
                            "textDecoration": "NONE",
                            "textCase": "ORIGINAL",
                        },
                        {
                            "id": "1:15",
                            "name": "Group 2",
                            "type": "GROUP",
                            "children": [
                                {"id": "1:16", "name": "Rectangle 5", "type": "RECTANGLE", "width": 10, "height": 10},
                            ],
                        },
                        {
                            "id": "1:17",
                            "name": "Card background",
                            "type": "RECTANGLE",
                            "visible": False,
                            "width": 100,
                            "height": 50,
                            "cornerRadius": "mixed",
                            "topLeftRadius": 4,
                            "topRightRadius": 4,
                            "bottomRightRadius": 0,
                            "bottomLeftRadius": 0,
                        },
                    ],
                },
                {
                    "id": "1:20",
                    "name": "Avatar",
                    "type": "ELLIPSE",
                    "width": 32,
                    "height": 32,
                    "fills": [{"type": "SOLID", "color": BLUE}],
                },
            ],
        },
        {
            "id": "0:2",
            "name": "Screens",
            "children": [
                {
                    "id": "2:1",
                    "name": "Home",
                    "type": "FRAME",
                    "width": 375,
                    "height": 812,
                    "children": [
                        _instance("2:2", "Button", "1:2"),
                        _instance("2:3", "Button", "1:2"),
                        _instance("2:4", "Button", "1:2"),
                    ],
                },
            ],
        },
    ],
    "variableCollections": [
        {
            "id": "VC:1",
            "name": "Tokens",
            "modes": [{"modeId": "m1", "name": "Light"}, {"modeId": "m2", "name": "Dark"}],
        },
    ],
    "variables": [
        {
            "id": "V:1",
            "name": "color/primary",
            "resolvedType": "COLOR",
            "variableCollectionId": "VC:1",
            "valuesByMode": {"m1": {"r": 0, "g": 0.4, "b": 1, "a": 1}, "m2": {"r": 1, "g": 1, "b": 1, "a": 1}},
            "scopes": ["ALL_FILLS"],
        },
        {
            "id": "V:2",
            "name": "spacing/md",
            "resolvedType": "FLOAT",
            "variableCollectionId": "VC:1",
            "valuesByMode": {"m1": 16, "m2": 16},
            "scopes": ["GAP"],
        },
        {
            "id": "V:3",
            "name": "flag/beta",
            "resolvedType": "BOOLEAN",
            "variableCollectionId": "VC:1",
            "valuesByMode": {"m1": True, "m2": False},
        },
    ],
    "paintStyles": [
        {"id": "S:2", "name": "Brand/Primary", "paints": [{"type": "SOLID", "color": BLUE}]},
    ],
    "textStyles": [
        {
            "id": "S:1",
            "name": "Heading/H1",
            "fontSize": 32,
            "fontName": {"family": "Inter", "style": "Bold"},
            "lineHeight": {"unit": "PIXELS", "value": 40},
        },
    ],
    "effectStyles": [
        {
            "id": "S:3",
            "name": "Shadow/Card",
            "effects": [{
                "type": "DROP_SHADOW",
                "radius": 4,
                "offset": {"x": 0, "y": 2},
                "color": {"r": 0, "g": 0, "b": 0, "a": 0.25},
                "spread": 0,
            }],
        },
    ],
}


@pytest.fixture
def document_data():
    """Fresh copy of the sample document payload"""
    return copy.deepcopy(SAMPLE_DOCUMENT)


@pytest.fixture
def document(document_data):
    return SceneDocument.from_dict(document_data)


@pytest.fixture
def annotations(document):
    return AnnotationStore(document)


@pytest.fixture
def handlers(document):
    return SceneCommandHandlers(document)


@pytest.fixture
def dispatcher(handlers):
    return CommandDispatcher(handlers)
