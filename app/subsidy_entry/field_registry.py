from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

TEXT = "text"
RADIO = "radio"
SELECT = "select"
DROPDOWN = "dropdown"
AUTOCOMPLETE = "autocomplete"


@dataclass(frozen=True)
class FieldSpec:
    key: str
    section: str
    kind: str
    selector: str
    label: str
    # Narrows a repeated container (e.g. every ".v-radio") to the one holding this option.
    option_selector: Optional[str] = None
    # How many parents up from the matched input the clickable surface sits.
    container_hops: int = 0
    indexed: bool = False

    def render(self, item: Optional[str] = None, option: Optional[str] = None) -> str:
        selector = self.selector
        if item is not None:
            selector = selector.replace("{item}", item)
        if option is not None:
            selector = selector.replace("{option}", option)
        return selector

    def render_option(self, option: str) -> Optional[str]:
        if self.option_selector is None:
            return None
        return self.option_selector.replace("{option}", option)


@dataclass(frozen=True)
class FormLayout:
    name: str
    fields: Dict[str, FieldSpec]
    address_items: Dict[int, str]
    anchor_selector: str
    confirm_selector: str
    submit_selector: str
    confirmation_marker: Optional[str] = None
    completion_marker: Optional[str] = None
    menu_selector: str = ".v-menu__content:visible"
    reason_item_selector: str = ".v-menu__content .v-list-item"
    field_order: List[str] = field(default_factory=list)

    def spec(self, key: str) -> Optional[FieldSpec]:
        return self.fields.get(key)


def _layout(name: str, specs: List[FieldSpec], **kwargs) -> FormLayout:
    return FormLayout(
        name=name,
        fields={spec.key: spec for spec in specs},
        field_order=[spec.key for spec in specs],
        **kwargs,
    )


HOSTED_FIELDS: List[FieldSpec] = [
    FieldSpec(
        key="entity_type",
        section="entity_type",
        kind=RADIO,
        selector=".v-radio",
        option_selector='input[value="{option}"]',
        label="法人種別",
    ),
    FieldSpec("company.name", "company", TEXT, 'input[data-subheading="company_name"]', "会社名"),
    FieldSpec("company.name_kana", "company", TEXT, 'input[data-subheading="company_furigana"]', "会社名フリガナ"),
    FieldSpec("representative.last_name", "representative", TEXT, 'input[data-subheading="lastname"]', "代表者氏"),
    FieldSpec("representative.first_name", "representative", TEXT, 'input[data-subheading="firstname"]', "代表者名"),
    FieldSpec(
        "representative.last_name_kana",
        "representative",
        TEXT,
        'input[data-subheading="lastfurigana"]',
        "代表者氏フリガナ",
    ),
    FieldSpec(
        "representative.first_name_kana",
        "representative",
        TEXT,
        'input[data-subheading="firstfurigana"]',
        "代表者名フリガナ",
    ),
    FieldSpec(
        "address.postal_code",
        "address",
        TEXT,
        'input[data-item-id="{item}"][data-subheading="zipcode"]',
        "郵便番号",
        indexed=True,
    ),
    FieldSpec(
        "address.prefecture",
        "address",
        DROPDOWN,
        'input[data-item-id="{item}"][data-subheading="prefecture"]',
        "都道府県",
        container_hops=2,
        indexed=True,
    ),
    FieldSpec(
        "address.city",
        "address",
        TEXT,
        'input[data-item-id="{item}"][data-subheading="address1"]',
        "市区町村",
        indexed=True,
    ),
    FieldSpec(
        "address.street",
        "address",
        TEXT,
        'input[data-item-id="{item}"][data-subheading="address2"]',
        "番地以降",
        indexed=True,
    ),
    FieldSpec("worker_count", "worker_count", TEXT, "#label6", "労働者数"),
    FieldSpec(
        key="application_method",
        section="application_method",
        kind=RADIO,
        selector=".v-radio",
        option_selector='input[value="{option}"]',
        label="申請方法",
    ),
    # The hosted form's own attribute spellings ("saff_", "staff_") are kept as-is.
    FieldSpec("contact.last_name", "contact", TEXT, 'input[data-subheading="saff_lastname"]', "担当者氏"),
    FieldSpec("contact.first_name", "contact", TEXT, 'input[data-subheading="saff_firstname"]', "担当者名"),
    FieldSpec(
        "contact.last_name_kana",
        "contact",
        TEXT,
        'input[data-subheading="saff_lastfurigana"]',
        "担当者氏フリガナ",
    ),
    FieldSpec(
        "contact.first_name_kana",
        "contact",
        TEXT,
        'input[data-subheading="staff_firstfurigana"]',
        "担当者名フリガナ",
    ),
    FieldSpec("contact.phone", "contact", TEXT, "#label20", "担当者電話番号"),
    FieldSpec("contact.email", "contact", TEXT, 'input[data-subheading="email"]', "担当者メールアドレス"),
    FieldSpec("contact.email_confirm", "contact", TEXT, 'input[data-subheading="reemail"]', "メールアドレス確認"),
    FieldSpec("agent_name", "agent", TEXT, "#label15", "代理人氏名"),
    FieldSpec("application_reason", "application_reason", AUTOCOMPLETE, "#label23", "申請理由"),
]

NATIVE_FIELDS: List[FieldSpec] = [
    FieldSpec("entity_type", "entity_type", RADIO, 'input[name="entityType"][value="{option}"]', "法人種別"),
    FieldSpec("company.name", "company", TEXT, 'input[name="companyName"]', "会社名"),
    FieldSpec("company.name_kana", "company", TEXT, 'input[name="companyNameKana"]', "会社名フリガナ"),
    FieldSpec("representative.last_name", "representative", TEXT, 'input[name="representativeLastName"]', "代表者氏"),
    FieldSpec("representative.first_name", "representative", TEXT, 'input[name="representativeFirstName"]', "代表者名"),
    FieldSpec(
        "representative.last_name_kana",
        "representative",
        TEXT,
        'input[name="representativeLastNameKana"]',
        "代表者氏フリガナ",
    ),
    FieldSpec(
        "representative.first_name_kana",
        "representative",
        TEXT,
        'input[name="representativeFirstNameKana"]',
        "代表者名フリガナ",
    ),
    FieldSpec("address.postal_code", "address", TEXT, 'input[name="address{item}PostalCode"]', "郵便番号", indexed=True),
    FieldSpec("address.prefecture", "address", SELECT, 'select[name="address{item}Prefecture"]', "都道府県", indexed=True),
    FieldSpec("address.city", "address", TEXT, 'input[name="address{item}City"]', "市区町村", indexed=True),
    FieldSpec("address.street", "address", TEXT, 'textarea[name="address{item}Street"]', "番地以降", indexed=True),
    FieldSpec("worker_count", "worker_count", TEXT, 'input[name="employeeCount"]', "労働者数"),
    FieldSpec(
        "application_method",
        "application_method",
        RADIO,
        'input[name="applicationMethod"][value="{option}"]',
        "申請方法",
    ),
    FieldSpec("contact.last_name", "contact", TEXT, 'input[name="contactLastName"]', "担当者氏"),
    FieldSpec("contact.first_name", "contact", TEXT, 'input[name="contactFirstName"]', "担当者名"),
    FieldSpec("contact.last_name_kana", "contact", TEXT, 'input[name="contactLastNameKana"]', "担当者氏フリガナ"),
    FieldSpec("contact.first_name_kana", "contact", TEXT, 'input[name="contactFirstNameKana"]', "担当者名フリガナ"),
    FieldSpec("contact.phone", "contact", TEXT, 'input[name="contactPhone"]', "担当者電話番号"),
    FieldSpec("contact.email", "contact", TEXT, 'input[name="contactEmail"]', "担当者メールアドレス"),
    FieldSpec("contact.email_confirm", "contact", TEXT, 'input[name="contactEmailConfirm"]', "メールアドレス確認"),
    FieldSpec("agent_name", "agent", TEXT, 'input[name="agentName"]', "代理人氏名"),
    FieldSpec("application_reason", "application_reason", SELECT, 'select[name="applicationReason"]', "申請理由"),
]

HOSTED_LAYOUT = _layout(
    "hosted",
    HOSTED_FIELDS,
    address_items={1: "4", 2: "5"},
    anchor_selector='input[data-subheading="company_name"]',
    confirm_selector='[data-testid="form-detail--to-confirm-button"]',
    submit_selector='[data-testid="form-detail--to-completion-button"]',
)

NATIVE_LAYOUT = _layout(
    "native",
    NATIVE_FIELDS,
    address_items={1: "1", 2: "2"},
    anchor_selector='input[name="companyName"]',
    confirm_selector="button#confirmBtn",
    submit_selector="button#submitBtn",
    confirmation_marker="#confirmationScreen",
    completion_marker="#completionScreen",
)

LAYOUTS: Dict[str, FormLayout] = {layout.name: layout for layout in (HOSTED_LAYOUT, NATIVE_LAYOUT)}


def get_layout(name: str) -> FormLayout:
    try:
        return LAYOUTS[name]
    except KeyError:
        raise ValueError(f"Unknown form layout: {name}") from None


def iter_fields(layout: FormLayout) -> Iterable[FieldSpec]:
    return [layout.fields[key] for key in layout.field_order]


def field_registry_payload(name: str) -> Dict[str, object]:
    layout = get_layout(name)
    return {
        "layout": layout.name,
        "fields": [
            {
                "key": spec.key,
                "section": spec.section,
                "kind": spec.kind,
                "label": spec.label,
                "selector": spec.selector,
                "indexed": spec.indexed,
            }
            for spec in iter_fields(layout)
        ],
        "address_items": {str(k): v for k, v in layout.address_items.items()},
        "anchor": layout.anchor_selector,
    }
