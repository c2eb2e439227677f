from __future__ import annotations

import logging
from typing import Optional

from playwright.sync_api import Locator, Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..field_registry import FormLayout
from .errors import AmbiguousElement, ElementNotFound

LOGGER = logging.getLogger(__name__)


class FieldLocator:
    """Resolves logical field keys to exactly one live element on the page.

    Flat layouts match the interactive element directly. Composite widgets are
    matched through the input that carries the data attribute and then walked
    up ``container_hops`` parents to the element that actually takes clicks.
    Repeated blocks (the two company addresses) are told apart by ``item``;
    repeated option containers (radio groups) by ``option``.
    """

    def __init__(self, page: Page, layout: FormLayout, timeout_ms: int = 5000) -> None:
        self.page = page
        self.layout = layout
        self.timeout_ms = timeout_ms

    def selector_for(self, field_key: str, item: Optional[int] = None, option: Optional[str] = None) -> str:
        spec = self.layout.spec(field_key)
        if spec is None:
            raise ElementNotFound(field_key, "<unregistered>")
        item_ref = None
        if spec.indexed:
            if item not in self.layout.address_items:
                raise ValueError(f"{field_key} needs an item index in {sorted(self.layout.address_items)}")
            item_ref = self.layout.address_items[item]
        selector = spec.render(item_ref, option)
        if option is not None and spec.option_selector:
            selector = f"{selector}:has({spec.render_option(option)})"
        return selector

    def locate(self, field_key: str, item: Optional[int] = None, option: Optional[str] = None) -> Locator:
        selector = self.selector_for(field_key, item=item, option=option)
        locator = self.page.locator(selector)
        try:
            locator.first.wait_for(state="attached", timeout=self.timeout_ms)
        except PlaywrightTimeoutError:
            raise ElementNotFound(field_key, selector) from None
        count = locator.count()
        if count == 0:
            raise ElementNotFound(field_key, selector)
        if count > 1:
            raise AmbiguousElement(field_key, selector, count)

        for _ in range(self.layout.fields[field_key].container_hops):
            locator = locator.locator("..")
        LOGGER.debug("Resolved %s -> %s", field_key, selector)
        return locator
