"""
Scene Document

In-memory scene host served by the sandbox. Loads a design-file export
(JSON or YAML), indexes every node by id, and offers the lookups the command
handlers need: node and page resolution, pre-order subtree walks, selection,
shared plugin data, variables and styles.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

import yaml

from forage.app.models.scene import (
    DOCUMENT_TYPE,
    DocumentData,
    PageNode,
    SceneNode,
)
from forage.app.shared.error_handler import ErrorCode, NodeNotFoundError

logger = logging.getLogger(__name__)

AnyNode = Union[SceneNode, PageNode]


class DocumentRoot:
    """The DOCUMENT node; never returned by find_node"""

    type = DOCUMENT_TYPE

    def __init__(self, node_id: str, name: str, pages: List[PageNode]):
        self.id = node_id
        self.name = name
        self.children = pages


class SceneDocument:
    """
    Scene graph held by the sandbox

    Example:
        >>> document = SceneDocument.load("design.json")
        >>> node = document.find_node("12:34")
        >>> [n.name for n in document.iter_descendants(document.current_page)]
    """

    def __init__(self, data: DocumentData, source_path: Optional[Path] = None):
        self.data = data
        self.source_path = source_path
        self.root = DocumentRoot(data.id, data.name, data.pages)
        self._index: Dict[str, Union[AnyNode, DocumentRoot]] = {}
        self._parents: Dict[str, str] = {}
        self.reindex()

    # ============================================================
    #  Loading and saving
    # ============================================================

    @classmethod
    def from_dict(cls, payload: Dict[str, Any], source_path: Optional[Path] = None) -> "SceneDocument":
        return cls(DocumentData.model_validate(payload), source_path=source_path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SceneDocument":
        """
        Load a document export

        Args:
            path: .json, .yaml or .yml file

        Returns:
            SceneDocument bound to the file, so save() writes back to it
        """
        file_path = Path(path).expanduser()
        text = file_path.read_text(encoding="utf-8")
        if file_path.suffix.lower() in (".yaml", ".yml"):
            payload = yaml.safe_load(text) or {}
        else:
            payload = json.loads(text)

        document = cls.from_dict(payload, source_path=file_path)
        logger.info(
            f"Loaded scene document {document.name!r} from {file_path} "
            f"({len(document.pages)} pages, {len(document.all_nodes())} nodes)"
        )
        return document

    def to_dict(self) -> Dict[str, Any]:
        return self.data.model_dump(by_alias=True, exclude_none=True)

    def save(self, path: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """Write the document back to disk; returns the path written, if any"""
        target = Path(path) if path else self.source_path
        if target is None:
            return None

        if target.suffix.lower() in (".yaml", ".yml"):
            text = yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)
        else:
            text = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        target.write_text(text, encoding="utf-8")
        logger.debug(f"Saved scene document to {target}")
        return target

    def reindex(self) -> None:
        """Rebuild the id index; call after structural edits"""
        self._index = {self.root.id: self.root}
        self._parents = {}
        for page in self.data.pages:
            self._index[page.id] = page
            self._parents[page.id] = self.root.id
            stack: List[tuple] = [(page.id, child) for child in reversed(page.children)]
            while stack:
                parent_id, node = stack.pop()
                self._index[node.id] = node
                self._parents[node.id] = parent_id
                for child in reversed(node.child_nodes):
                    stack.append((node.id, child))

    # ============================================================
    #  Lookups
    # ============================================================

    @property
    def name(self) -> str:
        return self.data.name

    @property
    def pages(self) -> List[PageNode]:
        return self.data.pages

    @property
    def current_page(self) -> PageNode:
        if not self.data.pages:
            raise NodeNotFoundError("Document has no pages", code=ErrorCode.PAGE_NOT_FOUND)
        if self.data.current_page_id:
            node = self._index.get(self.data.current_page_id)
            if isinstance(node, PageNode):
                return node
        return self.data.pages[0]

    def set_current_page(self, page_id: str) -> PageNode:
        page = self.find_page(page_id)
        self.data.current_page_id = page.id
        return page

    def get_node_by_id(self, node_id: str) -> Optional[Union[AnyNode, DocumentRoot]]:
        return self._index.get(node_id)

    def find_node(self, node_id: str) -> SceneNode:
        """Resolve a scene node; DOCUMENT and PAGE ids are not scene nodes"""
        node = self._index.get(node_id)
        if node is None or not isinstance(node, SceneNode):
            raise NodeNotFoundError(f"Node not found: {node_id}", code=ErrorCode.NODE_NOT_FOUND)
        return node

    def find_page(self, page_id: str) -> PageNode:
        node = self._index.get(page_id)
        if not isinstance(node, PageNode):
            raise NodeNotFoundError(f"Page not found: {page_id}", code=ErrorCode.PAGE_NOT_FOUND)
        return node

    def resolve_page(self, page_id: Optional[str] = None) -> PageNode:
        return self.find_page(page_id) if page_id else self.current_page

    def parent_of(self, node_id: str) -> Optional[Union[AnyNode, DocumentRoot]]:
        parent_id = self._parents.get(node_id)
        return self._index.get(parent_id) if parent_id else None

    def page_of(self, node_id: str) -> Optional[PageNode]:
        current = self._index.get(node_id)
        while current is not None and not isinstance(current, PageNode):
            current = self.parent_of(current.id)
        return current

    def iter_descendants(self, container: AnyNode) -> Iterator[SceneNode]:
        """Pre-order walk below container (container itself excluded)"""
        stack: List[SceneNode] = list(reversed(container.children or []))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.child_nodes))

    def find_all(
        self,
        container: AnyNode,
        predicate: Optional[Callable[[SceneNode], bool]] = None,
    ) -> List[SceneNode]:
        return [n for n in self.iter_descendants(container) if predicate is None or predicate(n)]

    def all_nodes(self) -> List[SceneNode]:
        """Every scene node of every page"""
        nodes: List[SceneNode] = []
        for page in self.pages:
            nodes.extend(self.iter_descendants(page))
        return nodes

    @property
    def selection(self) -> List[SceneNode]:
        nodes = []
        for node_id in self.data.selection:
            node = self._index.get(node_id)
            if isinstance(node, SceneNode):
                nodes.append(node)
        return nodes

    # ============================================================
    #  Shared plugin data
    # ============================================================

    def get_shared_plugin_data(self, node: SceneNode, namespace: str, key: str) -> str:
        return node.shared_plugin_data.get(namespace, {}).get(key, "")

    def set_shared_plugin_data(self, node: SceneNode, namespace: str, key: str, value: str) -> None:
        bucket = node.shared_plugin_data.setdefault(namespace, {})
        if value:
            bucket[key] = value
        else:
            bucket.pop(key, None)
