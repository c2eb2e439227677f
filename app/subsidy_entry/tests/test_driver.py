from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from unittest.mock import MagicMock, call

import pytest
from playwright.sync_api import Error as PlaywrightError

from subsidy_entry.automation.driver import SubmissionDriver
from subsidy_entry.automation.locator import FieldLocator
from subsidy_entry.field_registry import HOSTED_LAYOUT

FORM_URL = "https://forms.example.test/f/entry"


class FakeSession:
    def __init__(self, page: MagicMock) -> None:
        self.page = page
        self.opened = 0
        self.closed = 0

    @contextmanager
    def __call__(self, run_dir: Path):
        self.opened += 1
        try:
            yield self.page
        finally:
            self.closed += 1


def _page(receipt_text: str = "＜ 受付番号: R2024 ＞") -> MagicMock:
    page = MagicMock()
    page.locator.return_value.count.return_value = 1
    page.get_by_text.return_value.first.text_content.return_value = receipt_text
    return page


def _driver(tmp_path: Path, session: FakeSession, fast_timings, **kwargs) -> SubmissionDriver:
    return SubmissionDriver(
        layout=HOSTED_LAYOUT,
        form_url=FORM_URL,
        timings=fast_timings,
        session_factory=session,
        run_dir=tmp_path / "run",
        **kwargs,
    )


def test_confirmed_run_submits(tmp_path: Path, fast_timings, sample_record) -> None:
    session = FakeSession(_page())
    seen = []

    def gate(record, report) -> bool:
        seen.append(report)
        return True

    outcome = _driver(tmp_path, session, fast_timings, confirm=gate).run(sample_record)
    assert outcome.status == "submitted"
    assert outcome.receipt == "R2024"
    assert outcome.failure is None
    assert seen and "company.name" in seen[0].fields_written
    assert session.closed == 1
    session.page.goto.assert_called_once_with(FORM_URL, wait_until="domcontentloaded", timeout=10000)
    log = (tmp_path / "run" / "run.log").read_text(encoding="utf-8")
    assert "Receipt: R2024" in log
    assert "Section application_reason: filled" in log


def test_declined_run_sends_nothing_further(tmp_path: Path, fast_timings, sample_record) -> None:
    session = FakeSession(_page())
    outcome = _driver(tmp_path, session, fast_timings, confirm=lambda record, report: False).run(sample_record)
    assert outcome.status == "cancelled"
    assert outcome.receipt is None
    assert outcome.report is not None
    locator_calls = session.page.locator.call_args_list
    assert call(HOSTED_LAYOUT.confirm_selector) not in locator_calls
    assert call(HOSTED_LAYOUT.submit_selector) not in locator_calls
    assert session.closed == 1


def test_fill_only_run_skips_the_gate(tmp_path: Path, fast_timings, sample_record) -> None:
    gate = MagicMock(return_value=True)
    outcome = _driver(tmp_path, FakeSession(_page()), fast_timings, confirm=gate, fill_only=True).run(sample_record)
    assert outcome.status == "cancelled"
    gate.assert_not_called()


def test_navigation_failure_is_a_session_error(tmp_path: Path, fast_timings, sample_record) -> None:
    page = _page()
    page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
    session = FakeSession(page)
    outcome = _driver(tmp_path, session, fast_timings, confirm=lambda r, rep: True).run(sample_record)
    assert outcome.status == "failed"
    assert outcome.failure.kind == "SessionError"
    assert session.closed == 1


def test_fill_failure_is_reported_with_context(tmp_path: Path, fast_timings, sample_record) -> None:
    page = _page()
    page.locator.return_value.count.return_value = 0
    session = FakeSession(page)
    outcome = _driver(tmp_path, session, fast_timings, confirm=lambda r, rep: True).run(sample_record)
    assert outcome.status == "failed"
    assert outcome.failure.kind == "FillFailed"
    assert outcome.failure.section == "entity_type"
    assert outcome.failure.field_key == "entity_type"
    assert session.closed == 1


def test_missing_receipt_outcome(tmp_path: Path, fast_timings, sample_record) -> None:
    session = FakeSession(_page(receipt_text="送信が完了しました"))
    outcome = _driver(tmp_path, session, fast_timings, confirm=lambda r, rep: True).run(sample_record)
    assert outcome.status == "failed"
    assert outcome.failure.kind == "ReceiptNotFound"


def test_launch_failure(tmp_path: Path, fast_timings, sample_record) -> None:
    @contextmanager
    def broken_session(run_dir: Path):
        raise PlaywrightError("Executable doesn't exist")
        yield  # pragma: no cover

    driver = SubmissionDriver(
        layout=HOSTED_LAYOUT,
        form_url=FORM_URL,
        timings=fast_timings,
        session_factory=broken_session,
        run_dir=tmp_path / "run",
    )
    outcome = driver.run(sample_record)
    assert outcome.status == "failed"
    assert outcome.failure.kind == "SessionError"


def test_bad_item_index_is_a_fill_failure(tmp_path: Path, fast_timings, sample_record, monkeypatch) -> None:
    def no_such_item(self, field_key, item=None, option=None):
        raise ValueError(f"{field_key} has no item {item}")

    monkeypatch.setattr(FieldLocator, "selector_for", no_such_item)
    session = FakeSession(_page())
    outcome = _driver(tmp_path, session, fast_timings, confirm=lambda r, rep: True).run(sample_record)
    assert outcome.status == "failed"
    assert outcome.failure.kind == "FillFailed"
    assert outcome.failure.section == "entity_type"
    log = (tmp_path / "run" / "run.log").read_text(encoding="utf-8")
    assert "Run end: failed" in log


def test_unexpected_error_still_ends_the_run_log(tmp_path: Path, fast_timings, sample_record) -> None:
    @contextmanager
    def crashing_session(run_dir: Path):
        raise RuntimeError("disk full")
        yield  # pragma: no cover

    driver = SubmissionDriver(
        layout=HOSTED_LAYOUT,
        form_url=FORM_URL,
        timings=fast_timings,
        session_factory=crashing_session,
        run_dir=tmp_path / "run",
    )
    with pytest.raises(RuntimeError):
        driver.run(sample_record)
    log = (tmp_path / "run" / "run.log").read_text(encoding="utf-8")
    assert "Run end: error" in log
