from __future__ import annotations

from pathlib import Path

import pytest
from playwright.sync_api import sync_playwright

from subsidy_entry.automation.driver import SubmissionDriver, browser_session
from subsidy_entry.automation.engine import AutomationState, FormAutomationEngine
from subsidy_entry.automation.errors import AmbiguousElement
from subsidy_entry.automation.locator import FieldLocator
from subsidy_entry.field_registry import HOSTED_LAYOUT, NATIVE_LAYOUT
from subsidy_entry.schemas import ApplicantRecord

pytestmark = pytest.mark.slow


@pytest.fixture()
def hosted_page(hosted_form_url: str):
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=True)
        page = browser.new_page()
        page.goto(hosted_form_url, wait_until="domcontentloaded")
        yield page
        browser.close()


def _same_element(page, first, second) -> bool:
    return page.evaluate("([a, b]) => a === b", [first.element_handle(), second.element_handle()])


def test_locate_is_stable(hosted_page) -> None:
    resolver = FieldLocator(hosted_page, HOSTED_LAYOUT, timeout_ms=2000)
    first = resolver.locate("address.prefecture", item=1)
    second = resolver.locate("address.prefecture", item=1)
    assert _same_element(hosted_page, first, second)
    assert "v-select" in (first.get_attribute("class") or "")

    radio = resolver.locate("entity_type", option="法人")
    assert radio.locator("input").get_attribute("value") == "法人"


def test_radio_group_without_option_is_ambiguous(hosted_page) -> None:
    resolver = FieldLocator(hosted_page, HOSTED_LAYOUT, timeout_ms=2000)
    with pytest.raises(AmbiguousElement):
        resolver.locate("entity_type")


def test_hosted_fill_confirm_submit(hosted_page, fast_timings, make_payload) -> None:
    record = ApplicantRecord.model_validate(make_payload(secondaryAddress={"prefecture": "京都府", "city": "京都市"}))
    engine = FormAutomationEngine(hosted_page, HOSTED_LAYOUT, timings=fast_timings)
    report = engine.fill(record)

    page = hosted_page
    assert page.is_checked('input[value="法人"]')
    assert page.is_checked('input[value="紙申請"]')
    assert page.input_value('input[data-subheading="company_name"]') == "株式会社テスト"
    assert page.input_value('input[data-item-id="4"][data-subheading="prefecture"]') == "東京都"
    assert page.input_value('input[data-item-id="5"][data-subheading="prefecture"]') == "京都府"
    assert page.input_value('input[data-item-id="5"][data-subheading="zipcode"]') == ""
    assert page.input_value("#label6") == "50"
    assert page.input_value('input[data-subheading="reemail"]') == "hanako@example.com"
    assert page.input_value("#label15") == ""
    assert page.input_value("#label23") == "東京都のウェブサイト"
    assert [e.outcome for e in report.events if e.section == "agent"] == ["skipped"]

    engine.proceed_to_confirmation()
    assert engine.submit() == "ABC123"
    assert engine.state is AutomationState.SUBMITTED


def test_reason_missing_from_list_is_typed(hosted_page, fast_timings, make_payload) -> None:
    record = ApplicantRecord.model_validate(make_payload(applicationReason="東京都の案内（メール・チラシ等）"))
    engine = FormAutomationEngine(hosted_page, HOSTED_LAYOUT, timings=fast_timings)
    engine.fill(record)
    assert hosted_page.input_value("#label23") == "東京都の案内（メール・チラシ等）"


def test_driver_end_to_end_hosted(tmp_path: Path, hosted_form_url: str, fast_timings, sample_record) -> None:
    driver = SubmissionDriver(
        layout=HOSTED_LAYOUT,
        form_url=hosted_form_url,
        timings=fast_timings,
        confirm=lambda record, report: True,
        session_factory=lambda run_dir: browser_session(run_dir, headless=True, slow_mo_ms=0),
        run_dir=tmp_path / "run",
    )
    outcome = driver.run(sample_record)
    assert outcome.status == "submitted"
    assert outcome.receipt == "ABC123"
    assert outcome.trace_path and Path(outcome.trace_path).exists()
    assert (tmp_path / "run" / "run.log").exists()


def test_driver_declined_on_native(tmp_path: Path, native_form_url: str, fast_timings, sample_record) -> None:
    driver = SubmissionDriver(
        layout=NATIVE_LAYOUT,
        form_url=native_form_url,
        timings=fast_timings,
        confirm=lambda record, report: False,
        session_factory=lambda run_dir: browser_session(run_dir, headless=True, slow_mo_ms=0),
        run_dir=tmp_path / "run",
    )
    outcome = driver.run(sample_record)
    assert outcome.status == "cancelled"
    assert outcome.receipt is None
    assert "contact.email_confirm" in outcome.report.fields_written


def test_driver_end_to_end_native(tmp_path: Path, native_form_url: str, fast_timings, sample_record) -> None:
    driver = SubmissionDriver(
        layout=NATIVE_LAYOUT,
        form_url=native_form_url,
        timings=fast_timings,
        confirm=lambda record, report: True,
        session_factory=lambda run_dir: browser_session(run_dir, headless=True, slow_mo_ms=0),
        run_dir=tmp_path / "run",
    )
    outcome = driver.run(sample_record)
    assert outcome.status == "submitted"
    assert outcome.receipt == "N20250001"
