from __future__ import annotations

import logging
import re
import time
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Set

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..config import CONFIG, Timings
from ..field_registry import FormLayout
from ..schemas import ApplicantRecord, FillReport, SectionEvent
from .errors import (
    AutomationError,
    ConfirmationFailed,
    FillFailed,
    InvalidTransition,
    ReceiptNotFound,
    SubmitFailed,
)
from .locator import FieldLocator
from .sections import SECTIONS, Section, SectionContext, run_section

LOGGER = logging.getLogger(__name__)

RECEIPT_RE = re.compile(r"＜\s*受付番号:\s*(\w+)\s*＞")


class AutomationState(str, Enum):
    INITIAL = "initial"
    FILLED = "filled"
    CONFIRMED = "confirmed"
    SUBMITTED = "submitted"
    FAILED = "failed"


TRANSITIONS: Dict[AutomationState, Set[AutomationState]] = {
    AutomationState.INITIAL: {AutomationState.FILLED, AutomationState.FAILED},
    AutomationState.FILLED: {AutomationState.CONFIRMED, AutomationState.FAILED},
    AutomationState.CONFIRMED: {AutomationState.SUBMITTED, AutomationState.FAILED},
    AutomationState.SUBMITTED: set(),
    AutomationState.FAILED: set(),
}


def extract_receipt_token(text: str) -> Optional[str]:
    match = RECEIPT_RE.search(text or "")
    return match.group(1) if match else None


class FormAutomationEngine:
    """Drives one page through fill, confirmation and submission.

    The engine never retries: a repeated click on the hosted form can file a
    duplicate application, so every failure ends the run in ``FAILED`` and is
    raised to the caller.
    """

    def __init__(
        self,
        page: Page,
        layout: FormLayout,
        timings: Optional[Timings] = None,
        sections: Optional[Iterable[Section]] = None,
        on_event: Optional[Callable[[SectionEvent], None]] = None,
    ) -> None:
        self.page = page
        self.layout = layout
        self.timings = timings or CONFIG.autofill.timings
        self.sections: List[Section] = list(SECTIONS if sections is None else sections)
        self.resolver = FieldLocator(page, layout, timeout_ms=self.timings.locate_timeout_ms)
        self.state = AutomationState.INITIAL
        self.events: List[SectionEvent] = []
        self.report: Optional[FillReport] = None
        self._on_event = on_event

    def _record_event(self, event: SectionEvent) -> None:
        self.events.append(event)
        if self._on_event is not None:
            self._on_event(event)

    def _require(self, state: AutomationState, action: str) -> None:
        if self.state != state:
            raise InvalidTransition(f"{action} needs state {state.value}, engine is {self.state.value}")

    def _transition(self, target: AutomationState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {target.value} is not allowed")
        LOGGER.info("Engine %s -> %s", self.state.value, target.value)
        self.state = target

    def _wait_ready(self, marker: Optional[str]) -> None:
        self.page.wait_for_load_state("networkidle", timeout=self.timings.network_idle_timeout_ms)
        if marker:
            self.page.wait_for_selector(marker, state="visible", timeout=self.timings.network_idle_timeout_ms)

    def fill(self, record: ApplicantRecord) -> FillReport:
        self._require(AutomationState.INITIAL, "fill")
        start_time = time.perf_counter()
        ctx = SectionContext(
            page=self.page,
            resolver=self.resolver,
            layout=self.layout,
            timings=self.timings,
            on_event=self._record_event,
        )
        for section in self.sections:
            try:
                run_section(ctx, section, record)
            except (AutomationError, PlaywrightError, ValueError) as exc:
                self._transition(AutomationState.FAILED)
                raise FillFailed(section.name, exc) from exc

        self._transition(AutomationState.FILLED)
        self.report = FillReport(
            layout=self.layout.name,
            events=list(self.events),
            fields_written=list(ctx.written),
            duration_ms=int((time.perf_counter() - start_time) * 1000),
        )
        return self.report

    def proceed_to_confirmation(self) -> None:
        self._require(AutomationState.FILLED, "proceed_to_confirmation")
        LOGGER.info("Moving to the confirmation view")
        try:
            self.page.locator(self.layout.confirm_selector).click(timeout=self.timings.locate_timeout_ms)
            self._wait_ready(self.layout.confirmation_marker)
        except PlaywrightError as exc:
            self._transition(AutomationState.FAILED)
            raise ConfirmationFailed(f"Confirmation view not reached: {exc}") from exc
        self._transition(AutomationState.CONFIRMED)

    def extract_receipt(self) -> Optional[str]:
        marker = self.page.get_by_text(RECEIPT_RE).first
        try:
            marker.wait_for(state="visible", timeout=self.timings.receipt_timeout_ms)
        except PlaywrightTimeoutError:
            return None
        return extract_receipt_token(marker.text_content() or "")

    def submit(self) -> str:
        self._require(AutomationState.CONFIRMED, "submit")
        LOGGER.info("Submitting the application")
        try:
            self.page.locator(self.layout.submit_selector).click(timeout=self.timings.locate_timeout_ms)
        except PlaywrightError as exc:
            self._transition(AutomationState.FAILED)
            raise SubmitFailed(f"Submit control could not be clicked: {exc}") from exc

        # From here on the hosted side may already hold the application.
        try:
            self._wait_ready(self.layout.completion_marker)
        except PlaywrightError as exc:
            self._transition(AutomationState.FAILED)
            raise ReceiptNotFound(
                f"Submit was clicked but the completion view never settled ({exc}); "
                "the application may have been accepted, check the hosted form before submitting again"
            ) from exc

        receipt = self.extract_receipt()
        if not receipt:
            self._transition(AutomationState.FAILED)
            raise ReceiptNotFound(
                "Submit was clicked but no receipt number appeared; "
                "check the hosted form before submitting again"
            )
        self._transition(AutomationState.SUBMITTED)
        LOGGER.info("Submission accepted, receipt %s", receipt)
        return receipt
