from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..config import Timings
from ..field_registry import SELECT, FormLayout
from ..schemas import ApplicantRecord, PersonName, SectionEvent
from .errors import AutomationError, ElementNotFound, MenuTimeout
from .locator import FieldLocator

LOGGER = logging.getLogger(__name__)

FILLED = "filled"
SKIPPED = "skipped"

# Three characters narrow the hosted autocomplete to a handful of entries
# without filtering out the target.
REASON_PREFIX_CHARS = 3


@dataclass
class SectionContext:
    page: Page
    resolver: FieldLocator
    layout: FormLayout
    timings: Timings
    on_event: Optional[Callable[[SectionEvent], None]] = None
    written: List[str] = field(default_factory=list)

    def pause(self, ms: int) -> None:
        if ms > 0:
            self.page.wait_for_timeout(ms)

    def emit(self, section: str, outcome: str, fields: List[str], message: Optional[str] = None) -> SectionEvent:
        event = SectionEvent(section=section, outcome=outcome, fields=fields, message=message)
        if outcome == "failed":
            LOGGER.error("Section %s failed: %s", section, message)
        else:
            LOGGER.info("Section %s %s (%d fields)", section, outcome, len(fields))
        if self.on_event is not None:
            self.on_event(event)
        return event


def _written_key(field_key: str, item: Optional[int]) -> str:
    return f"{field_key}[{item}]" if item is not None else field_key


def _exact_text(value: str) -> re.Pattern:
    return re.compile(rf"^\s*{re.escape(value)}\s*$")


def fill_text(ctx: SectionContext, field_key: str, value: str, item: Optional[int] = None) -> None:
    ctx.resolver.locate(field_key, item=item).fill(value)
    ctx.written.append(_written_key(field_key, item))


def click_radio(ctx: SectionContext, field_key: str, option: str) -> None:
    ctx.resolver.locate(field_key, option=option).click()
    # Choosing a radio re-renders dependent fields; there is no signal for when that ends.
    ctx.pause(ctx.timings.settle_ms)
    ctx.written.append(field_key)


def choose_prefecture(ctx: SectionContext, prefecture: str, item: int) -> None:
    field_key = "address.prefecture"
    target = ctx.resolver.locate(field_key, item=item)
    if ctx.layout.fields[field_key].kind == SELECT:
        target.select_option(label=prefecture)
        ctx.written.append(_written_key(field_key, item))
        return

    target.click()
    ctx.pause(ctx.timings.settle_ms)
    try:
        ctx.page.wait_for_selector(ctx.layout.menu_selector, timeout=ctx.timings.menu_timeout_ms)
    except PlaywrightTimeoutError:
        raise MenuTimeout(field_key, ctx.timings.menu_timeout_ms) from None
    option = ctx.page.locator(ctx.layout.menu_selector).get_by_role("option", name=prefecture, exact=True).first
    try:
        option.wait_for(state="visible", timeout=ctx.timings.menu_timeout_ms)
    except PlaywrightTimeoutError:
        raise ElementNotFound(field_key, f"option[name={prefecture!r}]") from None
    option.click()
    ctx.written.append(_written_key(field_key, item))


def pick_reason(ctx: SectionContext, reason: str) -> str:
    """Choose the application reason and return how it was set.

    The hosted autocomplete is typed into and the exact entry clicked; when
    the list never offers that entry the text is set directly and committed
    with Enter. Native layouts use a plain select.
    """
    field_key = "application_reason"
    reason_input = ctx.resolver.locate(field_key)
    if ctx.layout.fields[field_key].kind == SELECT:
        reason_input.select_option(label=reason)
        ctx.written.append(field_key)
        return "select"

    reason_input.click()
    ctx.pause(ctx.timings.reason_focus_ms)
    reason_input.fill("")
    reason_input.press_sequentially(reason[:REASON_PREFIX_CHARS])
    ctx.pause(ctx.timings.reason_filter_ms)

    item = (
        ctx.page.locator(f"{ctx.layout.reason_item_selector}:visible")
        .filter(has_text=_exact_text(reason))
        .first
    )
    try:
        item.wait_for(state="visible", timeout=ctx.timings.reason_menu_timeout_ms)
        item.click()
        mode = "menu"
    except PlaywrightTimeoutError:
        LOGGER.warning("Reason list did not offer %r; setting the value directly", reason)
        reason_input.fill(reason)
        reason_input.press("Enter")
        mode = "direct"
    ctx.written.append(field_key)
    return mode


def _fill_person(ctx: SectionContext, prefix: str, person: PersonName) -> None:
    fill_text(ctx, f"{prefix}.last_name", person.last_name)
    fill_text(ctx, f"{prefix}.first_name", person.first_name)
    fill_text(ctx, f"{prefix}.last_name_kana", person.last_name_kana)
    fill_text(ctx, f"{prefix}.first_name_kana", person.first_name_kana)


def fill_entity_type(ctx: SectionContext, record: ApplicantRecord) -> str:
    click_radio(ctx, "entity_type", record.entity_type.value)
    return FILLED


def fill_company(ctx: SectionContext, record: ApplicantRecord) -> str:
    fill_text(ctx, "company.name", record.company.name)
    fill_text(ctx, "company.name_kana", record.company.name_kana)
    return FILLED


def fill_representative(ctx: SectionContext, record: ApplicantRecord) -> str:
    _fill_person(ctx, "representative", record.representative)
    return FILLED


def fill_primary_address(ctx: SectionContext, record: ApplicantRecord) -> str:
    address = record.primary_address
    fill_text(ctx, "address.postal_code", address.postal_code, item=1)
    choose_prefecture(ctx, address.prefecture, item=1)
    fill_text(ctx, "address.city", address.city, item=1)
    fill_text(ctx, "address.street", address.street, item=1)
    return FILLED


def fill_secondary_address(ctx: SectionContext, record: ApplicantRecord) -> str:
    address = record.secondary_address
    if address is None or address.is_empty:
        return SKIPPED
    if address.postal_code:
        fill_text(ctx, "address.postal_code", address.postal_code, item=2)
    if address.prefecture:
        choose_prefecture(ctx, address.prefecture, item=2)
    if address.city:
        fill_text(ctx, "address.city", address.city, item=2)
    if address.street:
        fill_text(ctx, "address.street", address.street, item=2)
    return FILLED


def fill_worker_count(ctx: SectionContext, record: ApplicantRecord) -> str:
    fill_text(ctx, "worker_count", str(record.worker_count))
    return FILLED


def fill_application_method(ctx: SectionContext, record: ApplicantRecord) -> str:
    click_radio(ctx, "application_method", record.application_method.value)
    return FILLED


def fill_contact(ctx: SectionContext, record: ApplicantRecord) -> str:
    contact = record.contact
    _fill_person(ctx, "contact", contact)
    fill_text(ctx, "contact.phone", contact.phone)
    fill_text(ctx, "contact.email", contact.email)
    fill_text(ctx, "contact.email_confirm", contact.email)
    return FILLED


def fill_agent(ctx: SectionContext, record: ApplicantRecord) -> str:
    if not record.agent_name:
        return SKIPPED
    fill_text(ctx, "agent_name", record.agent_name)
    return FILLED


def fill_application_reason(ctx: SectionContext, record: ApplicantRecord) -> str:
    pick_reason(ctx, record.application_reason)
    return FILLED


@dataclass(frozen=True)
class Section:
    name: str
    fill: Callable[[SectionContext, ApplicantRecord], str]


# Earlier choices (entity type above all) change which later fields the
# hosted form shows, so this order is part of the contract.
SECTIONS: List[Section] = [
    Section("entity_type", fill_entity_type),
    Section("company", fill_company),
    Section("representative", fill_representative),
    Section("primary_address", fill_primary_address),
    Section("secondary_address", fill_secondary_address),
    Section("worker_count", fill_worker_count),
    Section("application_method", fill_application_method),
    Section("contact", fill_contact),
    Section("agent", fill_agent),
    Section("application_reason", fill_application_reason),
]


def run_section(ctx: SectionContext, section: Section, record: ApplicantRecord) -> SectionEvent:
    start = len(ctx.written)
    try:
        outcome = section.fill(ctx, record)
    except (AutomationError, PlaywrightError, ValueError) as exc:
        ctx.emit(section.name, "failed", ctx.written[start:], str(exc))
        raise
    return ctx.emit(section.name, outcome, ctx.written[start:])
