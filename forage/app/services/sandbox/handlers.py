"""
Sandbox command handlers

One coroutine per CommandMethod. Handlers read the scene document, run the
projection/analysis engine and return plain JSON-ready structures; failures
are raised as tagged ForageError subclasses and turned into Response.error by
the dispatcher.
"""

import logging
from typing import Any, Dict, List, Optional

from forage.app.services.analysis import (
    StateInferenceEngine,
    compare_nodes,
    find_reusable,
    find_similar,
    lint_naming,
)
from forage.app.services.analysis.similarity import DEFAULT_THRESHOLD
from forage.app.services.analysis.state_inference import parse_variant_name
from forage.app.services.annotations import AnnotationStore
from forage.app.services.design_system import (
    design_tokens,
    export_node,
    generate_css,
    list_styles,
    list_variables,
)
from forage.app.services.scene import SceneDocument, get_children, project_node
from forage.app.shared.error_handler import (
    ErrorCode,
    InvalidParamsError,
    NodeNotFoundError,
    UnsupportedOperationError,
)

logger = logging.getLogger(__name__)

SEARCH_RESULT_CAP = 100

NOTHING_SELECTED_MESSAGE = "Nothing is selected in Figma"
NO_ANNOTATIONS_MESSAGE = "No annotations found on this node. Use forage_annotate_state to add state rules."
INVALID_ANNOTATION_DATA_MESSAGE = "Found annotation data but it is not valid JSON"
ANNOTATION_SAVED_MESSAGE = "State annotation saved successfully. It will persist in the Figma file."

Params = Optional[Dict[str, Any]]


def _require_str(params: Params, name: str) -> str:
    value = (params or {}).get(name)
    if not isinstance(value, str) or not value:
        raise InvalidParamsError(f"Missing required parameter: {name}")
    return value


def _optional_str(params: Params, name: str) -> Optional[str]:
    value = (params or {}).get(name)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise InvalidParamsError(f"Parameter {name} must be a string")
    return value


def _optional_number(params: Params, name: str) -> Optional[float]:
    value = (params or {}).get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParamsError(f"Parameter {name} must be a number")
    return value


class SceneCommandHandlers:
    """
    Command handlers bound to one scene document

    Example:
        >>> handlers = SceneCommandHandlers(SceneDocument.load("design.json"))
        >>> await handlers.get_pages()
        [{'id': '0:1', 'name': 'Page 1', 'childCount': 3}]
    """

    def __init__(self, document: SceneDocument, annotations: Optional[AnnotationStore] = None):
        self.document = document
        self.annotations = annotations or AnnotationStore(document)
        self.state_inference = StateInferenceEngine(self.annotations)

    # ============================================================
    #  Discovery
    # ============================================================

    async def get_pages(self, params: Params = None) -> List[Dict[str, Any]]:
        return [
            {"id": page.id, "name": page.name, "childCount": len(page.children)}
            for page in self.document.pages
        ]

    async def get_frames(self, params: Params = None) -> List[Dict[str, Any]]:
        page = self.document.find_page(_require_str(params, "pageId"))
        return [project_node(child) for child in page.children]

    async def get_selection(self, params: Params = None) -> Dict[str, Any]:
        selection = self.document.selection
        if not selection:
            return {"selection": [], "message": NOTHING_SELECTED_MESSAGE}

        page = self.document.current_page
        return {
            "selection": [project_node(node) for node in selection],
            "pageId": page.id,
            "pageName": page.name,
        }

    # ============================================================
    #  Navigation
    # ============================================================

    async def get_children(self, params: Params = None) -> Dict[str, Any]:
        depth = (params or {}).get("depth")
        return get_children(self.document, _require_str(params, "nodeId"), depth=depth)

    async def get_variants(self, params: Params = None) -> Dict[str, Any]:
        node_id = _require_str(params, "nodeId")
        node = self.document.find_node(node_id)
        if node.type != "COMPONENT_SET":
            raise NodeNotFoundError(
                f"Node {node_id} is a {node.type}, not a COMPONENT_SET. "
                f"Use this tool on a component set to list its variants.",
                code=ErrorCode.NOT_COMPONENT_SET,
            )

        variants = []
        for variant in node.child_nodes:
            entry: Dict[str, Any] = {"id": variant.id, "name": variant.name}
            if variant.type == "COMPONENT":
                entry["properties"] = parse_variant_name(variant.name)
            variants.append(entry)

        return {
            "id": node.id,
            "name": node.name,
            "properties": node.component_property_definitions or {},
            "variants": variants,
        }

    async def search_nodes(self, params: Params = None) -> Dict[str, Any]:
        page = self.document.resolve_page(_optional_str(params, "pageId"))
        node_type = _optional_str(params, "type")
        query = _optional_str(params, "query")

        results = self.document.find_all(page, lambda n: node_type is None or n.type == node_type)
        if query:
            needle = query.lower()
            results = [n for n in results if needle in n.name.lower()]

        return {
            "results": [project_node(n) for n in results[:SEARCH_RESULT_CAP]],
            "total": len(results),
            "capped": len(results) > SEARCH_RESULT_CAP,
        }

    # ============================================================
    #  Detail
    # ============================================================

    async def get_node_detail(self, params: Params = None) -> Dict[str, Any]:
        node = self.document.find_node(_require_str(params, "nodeId"))
        detail = project_node(node, include_children=True)

        if node.bound_variables:
            detail["boundVariables"] = node.bound_variables

        if node.reactions:
            detail["reactions"] = [
                {
                    "trigger": reaction.trigger.type if reaction.trigger is not None else None,
                    "actions": [
                        action.model_dump(by_alias=True, exclude_none=True)
                        for action in reaction.actions
                    ],
                }
                for reaction in node.reactions
            ]

        if (params or {}).get("includeCss"):
            try:
                detail["css"] = generate_css(node)
            except UnsupportedOperationError:
                logger.debug(f"No CSS for {node.type} node {node.id}")

        return detail

    async def get_css(self, params: Params = None) -> Dict[str, Any]:
        node = self.document.find_node(_require_str(params, "nodeId"))
        return {"nodeId": node.id, "css": generate_css(node)}

    async def get_images(self, params: Params = None) -> Dict[str, Any]:
        node = self.document.find_node(_require_str(params, "nodeId"))
        return export_node(
            node,
            image_format=_optional_str(params, "format"),
            scale=_optional_number(params, "scale"),
        )

    # ============================================================
    #  Design system
    # ============================================================

    async def get_design_tokens(self, params: Params = None) -> Dict[str, Any]:
        return design_tokens(self.document, _optional_str(params, "format"))

    async def get_variables(self, params: Params = None) -> List[Dict[str, Any]]:
        return list_variables(self.document)

    async def get_styles(self, params: Params = None) -> Dict[str, Any]:
        return list_styles(self.document)

    # ============================================================
    #  Analysis
    # ============================================================

    async def compare_variants(self, params: Params = None) -> Dict[str, Any]:
        node_a = self.document.find_node(_require_str(params, "nodeIdA"))
        node_b = self.document.find_node(_require_str(params, "nodeIdB"))
        return compare_nodes(node_a, node_b)

    async def find_reusable(self, params: Params = None) -> Dict[str, Any]:
        return find_reusable(self.document, self.document.current_page)

    async def find_similar(self, params: Params = None) -> Dict[str, Any]:
        target = self.document.find_node(_require_str(params, "nodeId"))
        threshold = _optional_number(params, "threshold")
        return find_similar(self.document, target, DEFAULT_THRESHOLD if threshold is None else threshold)

    async def infer_states(self, params: Params = None) -> Dict[str, Any]:
        node = self.document.find_node(_require_str(params, "nodeId"))
        return self.state_inference.infer(node).to_payload()

    async def lint_naming(self, params: Params = None) -> Dict[str, Any]:
        page = self.document.resolve_page(_optional_str(params, "pageId"))
        report = lint_naming(self.document.iter_descendants(page))
        return {"pageId": page.id, "pageName": page.name, **report}

    # ============================================================
    #  Annotations
    # ============================================================

    async def get_annotations(self, params: Params = None) -> Dict[str, Any]:
        node = self.document.find_node(_require_str(params, "nodeId"))
        result: Dict[str, Any] = {"nodeId": node.id, "nodeName": node.name}

        raw = self.annotations.read_raw(node)
        if not raw:
            result.update(annotations=None, message=NO_ANNOTATIONS_MESSAGE)
            return result

        parsed = self.annotations.read(node)
        if parsed is None:
            result.update(annotations=None, rawData=raw, message=INVALID_ANNOTATION_DATA_MESSAGE)
            return result

        result["annotations"] = parsed
        return result

    async def annotate_state(self, params: Params = None) -> Dict[str, Any]:
        node = self.document.find_node(_require_str(params, "nodeId"))
        annotation = (params or {}).get("annotation")
        if annotation is None:
            raise InvalidParamsError("Missing required parameter: annotation")

        parsed = self.annotations.write(node, annotation)
        return {
            "nodeId": node.id,
            "nodeName": node.name,
            "annotation": parsed,
            "message": ANNOTATION_SAVED_MESSAGE,
        }
