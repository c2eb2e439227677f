from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, ContextManager, Iterator, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from ..config import CONFIG, Timings, resolve_form_url
from ..field_registry import FormLayout, get_layout
from ..schemas import ApplicantRecord, FailureInfo, FillReport, SectionEvent, SubmissionOutcome
from .engine import FormAutomationEngine
from .errors import AutomationError, SessionError

LOGGER = logging.getLogger(__name__)

ConfirmGate = Callable[[ApplicantRecord, FillReport], bool]
SessionFactory = Callable[[Path], ContextManager[Page]]


def _append_run_log(run_dir: Path, message: str) -> None:
    timestamp = datetime.now(timezone.utc).isoformat()
    with (run_dir / "run.log").open("a", encoding="utf-8") as f:
        f.write(f"[{timestamp}] {message}\n")


def new_run_dir(base: Optional[Path] = None) -> Path:
    base = base or CONFIG.runs_dir
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    run_dir = base / f"run-{stamp}"
    run_dir.mkdir(parents=True, exist_ok=True)
    return run_dir


@contextmanager
def browser_session(
    run_dir: Path,
    headless: Optional[bool] = None,
    slow_mo_ms: Optional[int] = None,
) -> Iterator[Page]:
    """Launch Chromium with tracing and yield one page.

    The trace is written to ``run_dir/trace.zip`` and the browser closed on
    every exit path.
    """
    autofill_cfg = CONFIG.autofill
    headless = autofill_cfg.headless if headless is None else headless
    slow_mo_ms = autofill_cfg.slow_mo_ms if slow_mo_ms is None else slow_mo_ms
    trace_path = run_dir / "trace.zip"

    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=headless, slow_mo=slow_mo_ms)
        context = browser.new_context()
        context.tracing.start(screenshots=True, snapshots=True, sources=True)
        try:
            yield context.new_page()
        finally:
            try:
                context.tracing.stop(path=str(trace_path))
            except Exception as exc:  # noqa: BLE001
                LOGGER.warning("Trace capture failed: %s", exc)
            context.close()
            browser.close()


def _failure(exc: AutomationError) -> FailureInfo:
    return FailureInfo(kind=exc.kind, message=exc.message, section=exc.section, field_key=exc.field_key)


class SubmissionDriver:
    """Runs one record through a fresh browser session.

    The operator gate sits between fill and confirmation: nothing past the
    filled form is sent to the hosted side unless ``confirm`` returns True.
    """

    def __init__(
        self,
        layout: Optional[FormLayout] = None,
        form_url: Optional[str] = None,
        timings: Optional[Timings] = None,
        confirm: Optional[ConfirmGate] = None,
        session_factory: Optional[SessionFactory] = None,
        run_dir: Optional[Path] = None,
        fill_only: bool = False,
        on_event: Optional[Callable[[SectionEvent], None]] = None,
    ) -> None:
        self.layout = layout or get_layout(CONFIG.autofill.layout)
        self.form_url = resolve_form_url(form_url, self.layout.name)
        self.timings = timings or CONFIG.autofill.timings
        self.confirm = confirm
        self.session_factory = session_factory or browser_session
        self.run_dir = run_dir
        self.fill_only = fill_only
        self.on_event = on_event

    def _open(self, page: Page) -> None:
        try:
            page.goto(self.form_url, wait_until="domcontentloaded", timeout=self.timings.navigation_timeout_ms)
            page.wait_for_selector(
                self.layout.anchor_selector,
                state="visible",
                timeout=self.timings.ready_timeout_ms,
            )
        except PlaywrightError as exc:
            raise SessionError(f"Form at {self.form_url} did not become ready: {exc}") from exc

    def _drive(self, page: Page, record: ApplicantRecord, run_dir: Path) -> SubmissionOutcome:
        self._open(page)
        _append_run_log(run_dir, f"Form ready: {self.layout.anchor_selector}")

        def log_event(event: SectionEvent) -> None:
            _append_run_log(run_dir, f"Section {event.section}: {event.outcome} {event.fields}")
            if self.on_event is not None:
                self.on_event(event)

        engine = FormAutomationEngine(page, self.layout, timings=self.timings, on_event=log_event)
        report = engine.fill(record)

        if self.fill_only:
            _append_run_log(run_dir, "Fill-only run; leaving the form unsubmitted")
            return SubmissionOutcome(status="cancelled", report=report)

        if self.confirm is None or not self.confirm(record, report):
            _append_run_log(run_dir, "Operator declined submission")
            return SubmissionOutcome(status="cancelled", report=report)

        engine.proceed_to_confirmation()
        _append_run_log(run_dir, "Confirmation view reached")
        receipt = engine.submit()
        _append_run_log(run_dir, f"Submitted. Receipt: {receipt}")
        return SubmissionOutcome(status="submitted", receipt=receipt, report=report)

    def run(self, record: ApplicantRecord) -> SubmissionOutcome:
        run_dir = self.run_dir or new_run_dir()
        run_dir.mkdir(parents=True, exist_ok=True)
        start_time = time.perf_counter()
        _append_run_log(
            run_dir,
            f"Run start. Form URL: {self.form_url} | layout={self.layout.name} | fill_only={self.fill_only}",
        )

        outcome: Optional[SubmissionOutcome] = None
        try:
            try:
                with self.session_factory(run_dir) as page:
                    outcome = self._drive(page, record, run_dir)
            except AutomationError as exc:
                LOGGER.error("Run failed: %s", exc)
                _append_run_log(run_dir, f"Run failed ({exc.kind}): {exc.message}")
                outcome = SubmissionOutcome(status="failed", failure=_failure(exc))
            except PlaywrightError as exc:
                # Launch problems surface before any page exists.
                LOGGER.error("Browser session failed: %s", exc)
                _append_run_log(run_dir, f"Session failed: {exc}")
                outcome = SubmissionOutcome(status="failed", failure=_failure(SessionError(str(exc))))

            trace_path = run_dir / "trace.zip"
            if trace_path.exists():
                outcome = outcome.model_copy(update={"trace_path": str(trace_path)})
            return outcome
        finally:
            # Unexpected errors still propagate, but the log records where the run stopped.
            elapsed_ms = int((time.perf_counter() - start_time) * 1000)
            status = outcome.status if outcome is not None else "error"
            _append_run_log(run_dir, f"Run end: {status} in {elapsed_ms}ms")
