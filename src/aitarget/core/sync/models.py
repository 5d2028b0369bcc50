"""Wire models for the component map exchanged with the sync endpoint."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

COMPONENT_MAP_VERSION = "1.0.0"


def now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class ComponentMap(BaseModel):
    """
    The document stored by the collaborating service.

    ``components`` comes from the build-time injector and is passed through
    untouched; ``runtimeElements`` is replaced by each push. Unknown keys are
    kept so a push never drops data the service added.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    components: list[Any] = Field(default_factory=list)
    runtime_elements: list[dict[str, Any]] = Field(default_factory=list, alias="runtimeElements")
    generated_at: str = Field(default_factory=now_iso, alias="generatedAt")
    version: str = COMPONENT_MAP_VERSION
    page_contexts: dict[str, Any] = Field(default_factory=dict, alias="pageContexts")
    current_path: str | None = Field(default=None, alias="currentPath")

    @classmethod
    def empty(cls) -> ComponentMap:
        """Baseline used when the stored map cannot be fetched."""
        return cls()

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the camelCase keys the endpoint expects."""
        return self.model_dump(by_alias=True, exclude_none=True)
