"""
Sandbox command handler and dispatcher tests
"""

import base64

import pytest

from forage.app.models.protocol import Command, CommandMethod
from forage.app.services.sandbox.dispatcher import CommandDispatcher
from forage.app.services.sandbox.handlers import (
    ANNOTATION_SAVED_MESSAGE,
    INVALID_ANNOTATION_DATA_MESSAGE,
    NO_ANNOTATIONS_MESSAGE,
    NOTHING_SELECTED_MESSAGE,
    SceneCommandHandlers,
)
from forage.app.services.scene.document import SceneDocument
from forage.app.shared.error_handler import ErrorCode, InvalidParamsError, UnknownMethodError


async def _error_code(dispatcher, method, params=None):
    response = await dispatcher.handle_command(Command(id="1", method=method, params=params))
    assert not response.ok
    return response.error.code


# ------------------------------------------------------------
#  Discovery
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_pages(dispatcher):
    pages = await dispatcher.dispatch("getPages")

    assert pages == [
        {"id": "0:1", "name": "Components", "childCount": 3},
        {"id": "0:2", "name": "Screens", "childCount": 1},
    ]


@pytest.mark.asyncio
async def test_get_frames(dispatcher):
    frames = await dispatcher.dispatch("getFrames", {"pageId": "0:2"})

    assert [frame["id"] for frame in frames] == ["2:1"]
    assert frames[0]["childCount"] == 3


@pytest.mark.asyncio
async def test_get_selection(dispatcher):
    result = await dispatcher.dispatch("getSelection")

    assert [node["id"] for node in result["selection"]] == ["1:10"]
    assert result["pageId"] == "0:1"
    assert result["pageName"] == "Components"


@pytest.mark.asyncio
async def test_get_selection_when_empty(document_data):
    document_data["selection"] = []
    dispatcher = CommandDispatcher(SceneCommandHandlers(SceneDocument.from_dict(document_data)))

    result = await dispatcher.dispatch("getSelection")

    assert result == {"selection": [], "message": NOTHING_SELECTED_MESSAGE}


# ------------------------------------------------------------
#  Navigation and search
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_children(dispatcher):
    result = await dispatcher.dispatch("getChildren", {"nodeId": "1:15", "depth": 1})

    assert [child["id"] for child in result["children"]] == ["1:16"]


@pytest.mark.asyncio
async def test_get_variants(dispatcher):
    result = await dispatcher.dispatch("getVariants", {"nodeId": "1:1"})

    assert result["name"] == "Button"
    assert result["properties"]["State"]["variantOptions"] == ["Default", "Hover", "Pressed"]
    assert result["variants"][1] == {"id": "1:3", "name": "State=Hover", "properties": {"State": "Hover"}}


@pytest.mark.asyncio
async def test_search_by_type_and_query(dispatcher):
    by_type = await dispatcher.dispatch("searchNodes", {"type": "INSTANCE"})
    by_query = await dispatcher.dispatch("searchNodes", {"query": "button"})
    on_page = await dispatcher.dispatch("searchNodes", {"pageId": "0:2", "type": "INSTANCE"})

    assert by_type["total"] == 3
    assert by_type["capped"] is False
    assert [node["id"] for node in by_query["results"]] == ["1:1", "1:11", "1:12"]
    assert on_page["total"] == 3


@pytest.mark.asyncio
async def test_search_caps_results(document_data):
    document_data["pages"][0]["children"].extend(
        {"id": f"6:{i}", "name": f"Row {i}", "type": "RECTANGLE"} for i in range(150)
    )
    dispatcher = CommandDispatcher(SceneCommandHandlers(SceneDocument.from_dict(document_data)))

    result = await dispatcher.dispatch("searchNodes", {"type": "RECTANGLE"})

    assert len(result["results"]) == 100
    assert result["total"] == 152
    assert result["capped"] is True


# ------------------------------------------------------------
#  Detail
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_node_detail_with_reactions(dispatcher):
    detail = await dispatcher.dispatch("getNodeDetail", {"nodeId": "1:11"})

    assert detail["mainComponentId"] == "1:2"
    assert detail["reactions"] == [{
        "trigger": "ON_CLICK",
        "actions": [{"type": "NODE", "destinationId": "1:30", "navigation": "NAVIGATE"}],
    }]
    assert "css" not in detail


@pytest.mark.asyncio
async def test_get_node_detail_include_css(dispatcher):
    with_css = await dispatcher.dispatch("getNodeDetail", {"nodeId": "1:2", "includeCss": True})
    group = await dispatcher.dispatch("getNodeDetail", {"nodeId": "1:15", "includeCss": True})

    assert with_css["css"]["background"] == "#0066ff"
    assert "css" not in group
    assert group["children"][0]["id"] == "1:16"


@pytest.mark.asyncio
async def test_get_css_and_images(dispatcher):
    css = await dispatcher.dispatch("getCss", {"nodeId": "1:20"})
    image = await dispatcher.dispatch("getImages", {"nodeId": "1:20", "format": "SVG"})

    assert css["nodeId"] == "1:20"
    assert css["css"]["border-radius"] == "50%"
    assert base64.b64decode(image["data"]).startswith(b"<svg")


@pytest.mark.asyncio
async def test_design_system_commands(dispatcher):
    tokens = await dispatcher.dispatch("getDesignTokens", {"format": "tailwind"})
    variables = await dispatcher.dispatch("getVariables")
    styles = await dispatcher.dispatch("getStyles")

    assert tokens["theme"]["colors"] == {"color-primary": "#0066ff"}
    assert len(variables) == 3
    assert [style["id"] for style in styles["effectStyles"]] == ["S:3"]


# ------------------------------------------------------------
#  Analysis
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_analysis_commands(dispatcher):
    diff = await dispatcher.dispatch("compareVariants", {"nodeIdA": "1:2", "nodeIdB": "1:4"})
    reusable = await dispatcher.dispatch("findReusable")
    similar = await dispatcher.dispatch("findSimilar", {"nodeId": "1:2", "threshold": 0.9})
    states = await dispatcher.dispatch("inferStates", {"nodeId": "1:1"})
    lint = await dispatcher.dispatch("lintNaming", {"pageId": "0:1"})

    assert set(diff["differences"]) == {"id", "name"}
    assert reusable["total"] == 1
    assert similar["total"] == 1
    assert states["confidence"] == 0.4
    assert lint["pageName"] == "Components"
    assert lint["issueCount"] == 4


# ------------------------------------------------------------
#  Annotations
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_annotation_round_trip(dispatcher):
    empty = await dispatcher.dispatch("getAnnotations", {"nodeId": "1:1"})
    saved = await dispatcher.dispatch(
        "annotateState",
        {"nodeId": "1:1", "annotation": '{"states": ["Default", "Disabled"]}'},
    )
    stored = await dispatcher.dispatch("getAnnotations", {"nodeId": "1:1"})

    assert empty == {"nodeId": "1:1", "nodeName": "Button", "annotations": None, "message": NO_ANNOTATIONS_MESSAGE}
    assert saved["message"] == ANNOTATION_SAVED_MESSAGE
    assert stored == {"nodeId": "1:1", "nodeName": "Button", "annotations": {"states": ["Default", "Disabled"]}}


@pytest.mark.asyncio
async def test_get_annotations_with_unparseable_data(document, dispatcher):
    document.set_shared_plugin_data(document.find_node("1:2"), "forage", "state-rules", "{oops")

    result = await dispatcher.dispatch("getAnnotations", {"nodeId": "1:2"})

    assert result["annotations"] is None
    assert result["rawData"] == "{oops"
    assert result["message"] == INVALID_ANNOTATION_DATA_MESSAGE


# ------------------------------------------------------------
#  Error mapping
# ------------------------------------------------------------

@pytest.mark.asyncio
async def test_dispatch_unknown_method(dispatcher):
    with pytest.raises(UnknownMethodError, match="Unknown method: deleteNode"):
        await dispatcher.dispatch("deleteNode")


@pytest.mark.asyncio
async def test_dispatch_missing_param(dispatcher):
    with pytest.raises(InvalidParamsError, match="Missing required parameter: pageId"):
        await dispatcher.dispatch("getFrames", {})


@pytest.mark.asyncio
@pytest.mark.parametrize("method, params, code", [
    ("deleteNode", None, ErrorCode.UNKNOWN_METHOD),
    ("getVariants", {"nodeId": "1:10"}, ErrorCode.NOT_COMPONENT_SET),
    ("getNodeDetail", {"nodeId": "404:1"}, ErrorCode.NODE_NOT_FOUND),
    ("getFrames", {"pageId": "9:9"}, ErrorCode.PAGE_NOT_FOUND),
    ("getFrames", None, ErrorCode.INVALID_PARAMS),
    ("getCss", {"nodeId": "1:15"}, ErrorCode.CSS_NOT_SUPPORTED),
    ("getImages", {"nodeId": "1:15"}, ErrorCode.EXPORT_NOT_SUPPORTED),
    ("annotateState", {"nodeId": "1:1", "annotation": "nope"}, ErrorCode.INVALID_ANNOTATION),
])
async def test_handle_command_maps_errors(dispatcher, method, params, code):
    assert await _error_code(dispatcher, method, params) == code.value


@pytest.mark.asyncio
async def test_unexpected_failure_becomes_internal_error(dispatcher):
    async def explode(params=None):
        raise RuntimeError("boom")

    dispatcher._routes[CommandMethod.GET_PAGES] = explode

    response = await dispatcher.handle_command(Command(id="7", method="getPages"))

    assert response.to_wire() == {
        "id": "7",
        "type": "response",
        "error": {"code": "INTERNAL_ERROR", "message": "boom"},
    }


@pytest.mark.asyncio
async def test_handle_raw(dispatcher):
    ok = await dispatcher.handle_raw({"id": "3", "method": "getPages"})
    malformed = await dispatcher.handle_raw({"method": "getPages"})

    assert ok["id"] == "3"
    assert ok["type"] == "response"
    assert len(ok["result"]) == 2
    assert malformed is None
