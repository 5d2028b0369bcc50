"""Playwright bridge - mirrors a live page into an in-memory document."""

from __future__ import annotations

import asyncio
import contextlib
import json
from typing import TYPE_CHECKING, Any

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from aitarget.core.dom.clickable import InteractionClassifier
from aitarget.core.dom.document import Document, Viewport
from aitarget.core.dom.models import (
    ACTION_ATTRIBUTE,
    TARGET_ATTRIBUTE,
    BoundingBox,
    DOMNode,
)
from aitarget.core.dom.query import attribute_selector
from aitarget.core.dom.visibility import VisibilityClassifier
from aitarget.core.errors import PageLoadError

if TYPE_CHECKING:
    from aitarget.core.engine.registry_engine import RegistryEngine

logger = structlog.get_logger(__name__)

MIRRORED_STYLES = ("display", "visibility", "opacity", "pointer-events", "cursor", "z-index")

# Walks the body once. Every element is stored in window.__aitargetNodes under
# its index so later calls can address it; the hit-test result at each
# element's centre is reported as the index of the topmost element there.
MIRROR_SCRIPT = """
(styleNames) => {
    const nodes = [];
    const index = new Map();

    const extract = (element) => {
        const i = nodes.length;
        nodes.push(element);
        index.set(element, i);

        const rect = element.getBoundingClientRect();
        const style = window.getComputedStyle(element);
        const computedStyle = {};
        for (const name of styleNames) {
            computedStyle[name] = style.getPropertyValue(name);
        }

        const attributes = {};
        for (const attr of element.attributes) {
            attributes[attr.name] = attr.value;
        }

        let text = '';
        for (const child of element.childNodes) {
            if (child.nodeType === 3) {
                text += child.textContent;
            }
        }

        const node = {
            index: i,
            tag: element.tagName.toLowerCase(),
            text: text.trim(),
            attributes,
            computedStyle,
            box: {x: rect.x, y: rect.y, width: rect.width, height: rect.height},
            disabled: element.disabled === true,
            value: 'value' in element && typeof element.value === 'string' ? element.value : null,
            checked: 'checked' in element && typeof element.checked === 'boolean' ? element.checked : null,
            children: [],
        };
        for (const child of element.children) {
            node.children.push(extract(child));
        }
        return node;
    };

    if (!document.body) {
        return null;
    }
    const body = extract(document.body);

    const hits = [];
    for (const element of nodes) {
        const rect = element.getBoundingClientRect();
        if (rect.width <= 0 || rect.height <= 0) continue;
        const x = rect.x + rect.width / 2;
        const y = rect.y + rect.height / 2;
        if (x < 0 || y < 0 || x > window.innerWidth || y > window.innerHeight) continue;
        const hit = document.elementFromPoint(x, y);
        hits.push([x, y, hit && index.has(hit) ? index.get(hit) : -1]);
    }

    window.__aitargetNodes = nodes;
    return {
        url: window.location.href,
        title: document.title,
        viewport: {
            width: window.innerWidth,
            height: window.innerHeight,
            scrollX: window.scrollX,
            scrollY: window.scrollY,
        },
        body,
        hits,
    };
}
"""

PERSIST_SCRIPT = """
(entries) => {
    const nodes = window.__aitargetNodes || [];
    let written = 0;
    for (const [i, target, action] of entries) {
        const element = nodes[i];
        if (!element || !element.isConnected) continue;
        if (element.getAttribute('data-ai-target') !== target) {
            element.setAttribute('data-ai-target', target);
        }
        if (action && !element.hasAttribute('data-ai-action')) {
            element.setAttribute('data-ai-action', action);
        }
        written++;
    }
    return written;
}
"""

HANDLE_SCRIPT = "(i) => (window.__aitargetNodes || [])[i] || null"

SUBMIT_SCRIPT = """
(i) => {
    const form = (window.__aitargetNodes || [])[i];
    if (!form) return false;
    form.dispatchEvent(new Event('submit', {bubbles: true, cancelable: true}));
    return true;
}
"""

FILLABLE_TAGS = {"input", "textarea"}


class PlaywrightBridge:
    """
    Keeps a ``Document`` in step with a Playwright page.

    ``refresh()`` reads the page in one evaluate call and rebuilds the
    mirrored body, which produces ordinary mutation records for any
    observer. Main-frame navigations are forwarded to the document history.
    """

    def __init__(
        self,
        page: Any,
        document: Document | None = None,
        engine: RegistryEngine | None = None,
    ) -> None:
        """
        Initialize the bridge.

        Args:
            page: Playwright page
            document: Document to mirror into (created when omitted)
            engine: Engine whose registry gates click/fill/select
        """
        self.page = page
        self.document = document or Document(url=page.url)
        self.engine = engine
        self.classifier = InteractionClassifier(VisibilityClassifier(self.document))

        self._signature: str | None = None
        self._poll_task: asyncio.Task[None] | None = None
        self._refresh_lock = asyncio.Lock()
        self._attached = False

    def attach(self) -> None:
        """Start forwarding main-frame navigations."""
        if not self._attached:
            self.page.on("framenavigated", self._on_frame_navigated)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self.page.remove_listener("framenavigated", self._on_frame_navigated)
            self._attached = False

    def _on_frame_navigated(self, frame: Any) -> None:
        if frame != self.page.main_frame:
            return
        if frame.url != self.document.url:
            logger.debug("Page navigated", url=frame.url)
            self.document.history.push_state(frame.url)

    async def refresh(self) -> bool:
        """
        Re-read the page into the document.

        Returns:
            True when the mirrored body changed
        """
        async with self._refresh_lock:
            try:
                snapshot = await self.page.evaluate(MIRROR_SCRIPT, list(MIRRORED_STYLES))
            except PlaywrightError as e:
                logger.warning("Page mirror failed", url=self.page.url, error=str(e))
                return False

            if not snapshot:
                return False

            viewport = snapshot["viewport"]
            self.document.viewport = Viewport(
                width=int(viewport["width"]),
                height=int(viewport["height"]),
                scroll_x=float(viewport["scrollX"]),
                scroll_y=float(viewport["scrollY"]),
            )
            self.document.title = snapshot.get("title", "")

            if snapshot["url"] != self.document.url:
                self.document.history.push_state(snapshot["url"])

            signature = json.dumps([snapshot["body"], snapshot["hits"]], sort_keys=True)
            if signature == self._signature:
                return False
            self._signature = signature

            by_index: dict[int, DOMNode] = {}
            body = _build_node(snapshot["body"], by_index)
            self.document.replace_body_content(body)

            # replace_body_content keeps the existing body node
            if self.document.body is not None:
                by_index[snapshot["body"]["index"]] = self.document.body

            for x, y, hit in snapshot["hits"]:
                self.document.record_hit(x, y, by_index.get(hit))

            logger.debug("Page mirrored", url=self.document.url, nodes=len(by_index))
            return True

    async def persist_markers(self) -> int:
        """
        Write target and action markers back into the page.

        Returns:
            Number of page elements updated
        """
        if self.document.body is None:
            return 0

        entries = [
            [int(node.node_id), node.attributes[TARGET_ATTRIBUTE], node.attributes.get(ACTION_ATTRIBUTE)]
            for node in self.document.body.iter_descendants()
            if node.attributes.get(TARGET_ATTRIBUTE) and node.node_id.isdigit()
        ]
        if not entries:
            return 0

        try:
            written = await self.page.evaluate(PERSIST_SCRIPT, entries)
        except PlaywrightError as e:
            logger.warning("Persisting markers failed", error=str(e))
            return 0
        return int(written or 0)

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    async def click(self, target_id: str) -> bool:
        node = self._gated_node(target_id)
        if node is None:
            return False
        handle = await self._element_handle(node, target_id)
        if handle is None:
            return False
        try:
            await handle.click()
        except PlaywrightError as e:
            logger.warning("Click failed", target_id=target_id, error=str(e))
            return False
        logger.debug("Clicked element", target_id=target_id)
        return True

    async def fill(self, target_id: str, value: str) -> bool:
        node = self._gated_node(target_id)
        if node is None:
            return False
        handle = await self._element_handle(node, target_id)
        if handle is None:
            return False
        try:
            await handle.fill(value)
        except PlaywrightError as e:
            logger.warning("Fill failed", target_id=target_id, error=str(e))
            return False
        logger.debug("Filled element", target_id=target_id)
        return True

    async def select_option(self, target_id: str, value: str) -> bool:
        node = self._gated_node(target_id)
        if node is None:
            return False
        if node.tag != "select":
            logger.warning("Target is not a select element", target_id=target_id, tag=node.tag)
            return False
        handle = await self._element_handle(node, target_id)
        if handle is None:
            return False
        try:
            await handle.select_option(value)
        except PlaywrightError as e:
            logger.warning("Select failed", target_id=target_id, value=value, error=str(e))
            return False
        logger.debug("Selected option", target_id=target_id, value=value)
        return True

    async def fill_form(self, form_selector: str, data: dict[str, str]) -> bool:
        """
        Fill a form's fields by ``name``.

        Select fields get ``select_option``, inputs and textareas get
        ``fill``; other tags are left alone. Every field goes through the
        same registry gate as a direct action.

        Args:
            form_selector: Selector of the form inside the mirrored page
            data: Field name to value

        Returns:
            True only if every field was found and set
        """
        form = self._find_form(form_selector)
        if form is None:
            return False

        success = True
        for name, value in data.items():
            field = form.query_selector(attribute_selector("name", name))
            if field is None:
                logger.warning("Form field not found", selector=form_selector, name=name)
                success = False
                continue

            target_id = field.get_attribute(TARGET_ATTRIBUTE) or ""
            if field.tag == "select":
                success = await self.select_option(target_id, value) and success
            elif field.tag in FILLABLE_TAGS:
                success = await self.fill(target_id, value) and success
        return success

    async def submit_form(self, form_selector: str) -> bool:
        """
        Submit a form.

        Clicks the first submit button (``type="submit"``, a ``<button>``
        without a type, or a registered click target whose id mentions
        submit); without one, a ``submit`` event is dispatched on the form.
        """
        form = self._find_form(form_selector)
        if form is None:
            return False

        button = next((n for n in form.iter_descendants() if _is_submit_control(n)), None)
        if button is not None:
            return await self.click(button.get_attribute(TARGET_ATTRIBUTE) or "")

        if not form.node_id.isdigit():
            logger.warning("Form not in page", selector=form_selector)
            return False
        try:
            await self.page.evaluate(SUBMIT_SCRIPT, int(form.node_id))
        except PlaywrightError as e:
            logger.warning("Form submit failed", selector=form_selector, error=str(e))
            return False
        logger.debug("Submitted form", selector=form_selector)
        return True

    def _find_form(self, form_selector: str) -> DOMNode | None:
        try:
            form = self.document.query_selector(form_selector)
        except ValueError as e:
            logger.warning("Unsupported form selector", selector=form_selector, error=str(e))
            return None
        if form is None:
            logger.warning("Form not found", selector=form_selector)
        return form

    def _gated_node(self, target_id: str) -> DOMNode | None:
        if self.engine is not None and target_id not in self.engine.registry:
            logger.warning("Unknown target", target_id=target_id)
            return None

        node = self._find_node(target_id)
        if node is None or not node.node_id.isdigit():
            logger.warning("Target not in page", target_id=target_id)
            return None

        self.classifier.visibility.begin_frame()
        if not self.classifier.is_interactable(node):
            logger.warning("Target not interactable", target_id=target_id)
            return None
        return node

    async def _element_handle(self, node: DOMNode, target_id: str) -> Any | None:
        try:
            handle = await self.page.evaluate_handle(HANDLE_SCRIPT, int(node.node_id))
        except PlaywrightError as e:
            logger.warning("Element handle lookup failed", target_id=target_id, error=str(e))
            return None
        element = handle.as_element()
        if element is None:
            logger.warning("Target detached from page", target_id=target_id)
        return element

    def _find_node(self, target_id: str) -> DOMNode | None:
        if not target_id or self.document.body is None:
            return None
        for node in self.document.body.iter_descendants():
            if node.attributes.get(TARGET_ATTRIBUTE) == target_id:
                return node
        return None

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def start_polling(self, interval: float = 0.5) -> None:
        """Refresh the mirror every ``interval`` seconds."""
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.get_running_loop().create_task(self._poll(interval))

    async def stop_polling(self) -> None:
        if self._poll_task is not None:
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
            self._poll_task = None

    async def _poll(self, interval: float) -> None:
        while True:
            await self.refresh()
            await asyncio.sleep(interval)


def _is_submit_control(node: DOMNode) -> bool:
    if node.get_attribute("type") == "submit":
        return True
    if node.tag == "button" and not node.has_attribute("type"):
        return True
    return (
        node.get_attribute(ACTION_ATTRIBUTE) == "click"
        and "submit" in (node.get_attribute(TARGET_ATTRIBUTE) or "")
    )


def _build_node(raw: dict[str, Any], by_index: dict[int, DOMNode]) -> DOMNode:
    box = raw.get("box") or {}
    node = DOMNode(
        tag=raw["tag"],
        attributes=dict(raw.get("attributes", {})),
        text=raw.get("text", ""),
        computed_style={k: str(v) for k, v in raw.get("computedStyle", {}).items() if v != ""},
        bounding_box=BoundingBox.from_dict(box) if box else None,
        children=[_build_node(child, by_index) for child in raw.get("children", [])],
        node_id=str(raw["index"]),
        disabled=bool(raw.get("disabled")),
        value=raw.get("value"),
        checked=raw.get("checked"),
    )
    by_index[raw["index"]] = node
    return node


class PlaywrightBrowser:
    """Launches Chromium and opens pages for the bridge."""

    def __init__(self) -> None:
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def launch(
        self,
        *,
        headless: bool = True,
        viewport: dict[str, int] | None = None,
    ) -> None:
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=headless)

        context_options: dict[str, Any] = {}
        if viewport:
            context_options["viewport"] = viewport
        self._context = await self._browser.new_context(**context_options)
        logger.info("Playwright browser launched", headless=headless)

    async def open(self, url: str, *, wait_until: str = "load", timeout: float = 30000) -> Any:
        """Open a new page at ``url``."""
        if self._context is None:
            raise RuntimeError("Browser not launched")
        page = await self._context.new_page()
        try:
            await page.goto(url, wait_until=wait_until, timeout=timeout)
        except PlaywrightError as e:
            raise PageLoadError(f"Could not load {url}: {e}") from e
        return page

    async def close(self) -> None:
        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        logger.info("Playwright browser closed")
