"""
Scene document and tree navigator tests
"""

import json

import pytest
import yaml

from forage.app.services.scene.document import SceneDocument
from forage.app.services.scene.navigator import get_children
from forage.app.shared.error_handler import ErrorCode, InvalidParamsError, NodeNotFoundError


# ------------------------------------------------------------
#  Document
# ------------------------------------------------------------

def test_find_node_rejects_page_and_document_ids(document):
    with pytest.raises(NodeNotFoundError) as exc_info:
        document.find_node("0:1")
    assert exc_info.value.code == ErrorCode.NODE_NOT_FOUND.value

    with pytest.raises(NodeNotFoundError):
        document.find_node("0:0")

    with pytest.raises(NodeNotFoundError):
        document.find_node("404:1")


def test_find_page(document):
    assert document.find_page("0:2").name == "Screens"

    with pytest.raises(NodeNotFoundError) as exc_info:
        document.find_page("1:10")
    assert exc_info.value.code == ErrorCode.PAGE_NOT_FOUND.value


def test_current_page_falls_back_to_first_page(document_data):
    document_data["currentPageId"] = None
    document = SceneDocument.from_dict(document_data)

    assert document.current_page.id == "0:1"
    assert document.set_current_page("0:2").id == "0:2"
    assert document.current_page.id == "0:2"


def test_iter_descendants_is_pre_order(document):
    ids = [node.id for node in document.iter_descendants(document.find_node("1:10"))]

    assert ids == ["1:11", "1:12", "1:13", "1:14", "1:15", "1:16", "1:17"]


def test_parent_and_page_lookup(document):
    assert document.parent_of("1:16").id == "1:15"
    assert document.page_of("1:16").id == "0:1"
    assert document.page_of("2:3").id == "0:2"


def test_selection_resolves_node_ids(document):
    assert [node.id for node in document.selection] == ["1:10"]


def test_shared_plugin_data(document):
    node = document.find_node("1:2")

    assert document.get_shared_plugin_data(node, "forage", "state-rules") == ""
    document.set_shared_plugin_data(node, "forage", "state-rules", '{"states": []}')
    assert document.get_shared_plugin_data(node, "forage", "state-rules") == '{"states": []}'
    document.set_shared_plugin_data(node, "forage", "state-rules", "")
    assert document.get_shared_plugin_data(node, "forage", "state-rules") == ""


def test_load_json_and_save(tmp_path, document_data):
    path = tmp_path / "design.json"
    path.write_text(json.dumps(document_data), encoding="utf-8")

    document = SceneDocument.load(path)
    node = document.find_node("1:14")
    document.set_shared_plugin_data(node, "forage", "state-rules", '{"states": ["On"]}')
    document.save()

    reloaded = SceneDocument.load(path)
    assert reloaded.name == "Design System"
    assert reloaded.get_shared_plugin_data(reloaded.find_node("1:14"), "forage", "state-rules") == '{"states": ["On"]}'


def test_load_yaml(tmp_path, document_data):
    path = tmp_path / "design.yaml"
    path.write_text(yaml.safe_dump(document_data), encoding="utf-8")

    document = SceneDocument.load(path)

    assert [page.name for page in document.pages] == ["Components", "Screens"]
    assert document.find_node("2:1").name == "Home"


def test_save_without_path_is_a_noop(document):
    assert document.save() is None


# ------------------------------------------------------------
#  Navigator
# ------------------------------------------------------------

def test_get_children_default_depth(document):
    result = get_children(document, "1:10")

    assert result["id"] == "1:10"
    assert result["type"] == "FRAME"
    assert len(result["children"]) == 6
    assert all("children" not in child for child in result["children"])


def test_get_children_depth_two_expands_grandchildren(document):
    result = get_children(document, "1:10", depth=2)

    group = next(child for child in result["children"] if child["id"] == "1:15")
    assert [grandchild["id"] for grandchild in group["children"]] == ["1:16"]
    assert "children" not in group["children"][0]


def test_get_children_truncates_container_at_depth():
    document = SceneDocument.from_dict({
        "pages": [{
            "id": "0:1",
            "name": "Page 1",
            "children": [{
                "id": "5:1", "name": "Shell", "type": "FRAME",
                "children": [{
                    "id": "5:2", "name": "Body", "type": "FRAME",
                    "children": [{
                        "id": "5:3", "name": "Card", "type": "FRAME",
                        "children": [{"id": "5:4", "name": "Fill", "type": "RECTANGLE"}],
                    }],
                }],
            }],
        }],
    })

    result = get_children(document, "5:1", depth=2)

    body = result["children"][0]
    assert body["id"] == "5:2"
    card = body["children"][0]
    assert card["id"] == "5:3"
    assert card["childCount"] == 1
    assert "children" not in card


def test_get_children_of_leaf_is_empty(document):
    assert get_children(document, "1:16") == {
        "id": "1:16",
        "name": "Rectangle 5",
        "type": "RECTANGLE",
        "children": [],
    }


@pytest.mark.parametrize("depth", [0, 11, -1, True, "2", 1.5])
def test_get_children_rejects_bad_depth(document, depth):
    with pytest.raises(InvalidParamsError):
        get_children(document, "1:10", depth=depth)


def test_get_children_rejects_page_id(document):
    with pytest.raises(NodeNotFoundError):
        get_children(document, "0:1")
