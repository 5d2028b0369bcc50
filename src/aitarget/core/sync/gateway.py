"""HTTP sync gateway for pushing registry snapshots."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import httpx
import structlog
from pydantic import ValidationError

from aitarget.core.models.config import SyncConfig
from aitarget.core.sync.models import ComponentMap, now_iso

if TYPE_CHECKING:
    from aitarget.core.dom.models import ElementDescriptor

logger = structlog.get_logger(__name__)


class HttpSyncGateway:
    """
    Talks to the component-map endpoint.

    GET returns the stored map, POST replaces it. Every failure (transport,
    HTTP status, malformed JSON) is logged and turned into an empty baseline
    or a ``False`` result; nothing here raises to the caller.
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            config: Endpoint location and timeout
            transport: Optional httpx transport (used to stub the network)
        """
        self.config = config or SyncConfig()
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._http_client

    async def fetch(self) -> ComponentMap:
        """Fetch the stored component map, or an empty one on any failure."""
        client = self._get_client()
        try:
            response = await client.get(self.config.endpoint)
            response.raise_for_status()
            return ComponentMap.model_validate(response.json())
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.warning(
                "Failed to fetch component map",
                endpoint=self.config.endpoint,
                error=str(e),
            )
            return ComponentMap.empty()

    async def push(self, elements: Sequence[ElementDescriptor], current_path: str) -> bool:
        """
        Merge runtime elements into the stored map and POST it.

        Args:
            elements: Descriptors from the latest scan
            current_path: Path component of the page URL

        Returns:
            Whether the server accepted the update
        """
        previous = await self.fetch()
        updated = previous.model_copy(
            update={
                "runtime_elements": [element.to_dict() for element in elements],
                "current_path": current_path,
                "generated_at": now_iso(),
            }
        )

        client = self._get_client()
        try:
            response = await client.post(self.config.endpoint, json=updated.to_wire())
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "Failed to update component map",
                endpoint=self.config.endpoint,
                elements=len(elements),
                error=str(e),
            )
            return False

        logger.debug("Component map updated", elements=len(elements), path=current_path)
        return True

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
