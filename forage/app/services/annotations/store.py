"""
Annotation Store

State annotations live in the node's shared plugin data under the
"forage" namespace, so they travel with the scene document itself.
"""

import json
import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from forage.app.models.annotation import StateAnnotation
from forage.app.models.scene import SceneNode
from forage.app.services.scene.document import SceneDocument
from forage.app.shared.config import PLUGIN_DATA_KEY_STATE_RULES, PLUGIN_NAMESPACE
from forage.app.shared.error_handler import InvalidPayloadError

logger = logging.getLogger(__name__)

_INVALID_MESSAGE = "Annotation must be valid JSON with states and transitions arrays"


class AnnotationStore:
    """Read/write state rules keyed by node identity"""

    def __init__(
        self,
        document: SceneDocument,
        namespace: str = PLUGIN_NAMESPACE,
        key: str = PLUGIN_DATA_KEY_STATE_RULES,
        autosave: bool = True,
    ):
        self.document = document
        self.namespace = namespace
        self.key = key
        self.autosave = autosave

    def read_raw(self, node: SceneNode) -> str:
        return self.document.get_shared_plugin_data(node, self.namespace, self.key)

    def read(self, node: SceneNode) -> Optional[Dict[str, Any]]:
        """Parsed annotation, or None when absent or unparseable"""
        raw = self.read_raw(node)
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Ignoring unparseable annotation on node {node.id}")
            return None
        return parsed if isinstance(parsed, dict) else None

    def write(self, node: SceneNode, annotation: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate and persist an annotation

        Args:
            node: target node
            annotation: JSON string or already-decoded object

        Returns:
            The parsed annotation as stored

        Raises:
            InvalidPayloadError: not JSON, or not {states, transitions, notes?}
        """
        if isinstance(annotation, str):
            try:
                parsed = json.loads(annotation)
            except json.JSONDecodeError:
                raise InvalidPayloadError(_INVALID_MESSAGE)
            raw = annotation
        elif isinstance(annotation, dict):
            parsed = annotation
            raw = json.dumps(annotation, ensure_ascii=False)
        else:
            raise InvalidPayloadError(_INVALID_MESSAGE)

        try:
            StateAnnotation.model_validate(parsed)
        except ValidationError as e:
            raise InvalidPayloadError(f"{_INVALID_MESSAGE}: {e.error_count()} validation error(s)")

        previous = self.read_raw(node)
        self.document.set_shared_plugin_data(node, self.namespace, self.key, raw)
        if self.autosave and self.document.source_path is not None:
            try:
                self.document.save()
            except OSError:
                self.document.set_shared_plugin_data(node, self.namespace, self.key, previous)
                logger.error(f"Failed to save annotation on node {node.id}; previous value restored")
                raise
        logger.info(f"Saved state annotation on node {node.id}")
        return parsed
