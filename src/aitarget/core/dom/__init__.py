"""Interactive element detection over an in-memory document."""

from aitarget.core.dom.clickable import (
    INTERACTIVE_ROLES,
    INTERACTIVE_TAGS,
    InteractionClassifier,
    is_interactive_candidate,
)
from aitarget.core.dom.document import Document, History, MutationObserver, MutationRecord, Viewport
from aitarget.core.dom.identity import IdentityAssigner, normalize_slug
from aitarget.core.dom.models import (
    ACTION_ATTRIBUTE,
    COMPONENT_ATTRIBUTE,
    DESCRIPTION_ATTRIBUTE,
    TARGET_ATTRIBUTE,
    BoundingBox,
    DOMNode,
    ElementDescriptor,
    ElementPosition,
    Identity,
    InteractionType,
    Point,
)
from aitarget.core.dom.registry import RegistryStore
from aitarget.core.dom.selector import PathComputer
from aitarget.core.dom.service import ElementScanner
from aitarget.core.dom.visibility import VisibilityClassifier

__all__ = [
    # Pipeline
    "ElementScanner",
    "RegistryStore",
    # Components
    "VisibilityClassifier",
    "InteractionClassifier",
    "IdentityAssigner",
    "PathComputer",
    "normalize_slug",
    # Document
    "Document",
    "History",
    "MutationObserver",
    "MutationRecord",
    "Viewport",
    # Models
    "DOMNode",
    "BoundingBox",
    "Point",
    "ElementPosition",
    "ElementDescriptor",
    "Identity",
    "InteractionType",
    # Markers
    "ACTION_ATTRIBUTE",
    "COMPONENT_ATTRIBUTE",
    "DESCRIPTION_ATTRIBUTE",
    "TARGET_ATTRIBUTE",
    # Allow-list
    "INTERACTIVE_ROLES",
    "INTERACTIVE_TAGS",
    "is_interactive_candidate",
]
