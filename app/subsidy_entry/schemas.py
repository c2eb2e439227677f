from __future__ import annotations

import re
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

KATAKANA_RE = re.compile(r"^[ァ-ヶー\s]+$")

PREFECTURES = (
    "北海道", "青森県", "岩手県", "宮城県", "秋田県", "山形県", "福島県",
    "茨城県", "栃木県", "群馬県", "埼玉県", "千葉県", "東京都", "神奈川県",
    "新潟県", "富山県", "石川県", "福井県", "山梨県", "長野県", "岐阜県",
    "静岡県", "愛知県", "三重県", "滋賀県", "京都府", "大阪府", "兵庫県",
    "奈良県", "和歌山県", "鳥取県", "島根県", "岡山県", "広島県", "山口県",
    "徳島県", "香川県", "愛媛県", "高知県", "福岡県", "佐賀県", "長崎県",
    "熊本県", "大分県", "宮崎県", "鹿児島県", "沖縄県",
)

# The native form's choices plus the hosted form's mail/flyer choice.
APPLICATION_REASONS = (
    "東京都のウェブサイト",
    "その他のウェブサイト",
    "SNS",
    "メールマガジン",
    "チラシ・パンフレット",
    "セミナー・説明会",
    "知人の紹介",
    "東京都の案内（メール・チラシ等）",
    "その他",
)


class EntityType(str, Enum):
    CORPORATION = "法人"
    SOLE_PROPRIETOR = "個人事業主"


class ApplicationMethod(str, Enum):
    PAPER = "紙申請"
    ELECTRONIC = "電子申請"


ENUM_ALIASES = {
    "corporation": EntityType.CORPORATION.value,
    "soleproprietor": EntityType.SOLE_PROPRIETOR.value,
    "sole_proprietor": EntityType.SOLE_PROPRIETOR.value,
    "paper": ApplicationMethod.PAPER.value,
    "electronic": ApplicationMethod.ELECTRONIC.value,
}


def is_katakana(value: str) -> bool:
    return bool(KATAKANA_RE.match(value))


def flat_to_nested(data: Dict[str, object]) -> Dict[str, object]:
    """Reshape the flat form-data layout used by the original scripts into the nested document."""

    def get(key: str, *fallbacks: str) -> object:
        for name in (key, *fallbacks):
            if name in data and data[name] is not None:
                return data[name]
        return ""

    return {
        "entityType": get("entityType"),
        "company": {"name": get("companyName"), "nameKana": get("companyNameKana")},
        "representative": {
            "lastName": get("representativeLastName"),
            "firstName": get("representativeFirstName"),
            "lastNameKana": get("representativeLastNameKana"),
            "firstNameKana": get("representativeFirstNameKana"),
        },
        "primaryAddress": {
            "postalCode": get("address1PostalCode"),
            "prefecture": get("address1Prefecture"),
            "city": get("address1City"),
            "street": get("address1Street"),
        },
        "secondaryAddress": {
            "postalCode": get("address2PostalCode"),
            "prefecture": get("address2Prefecture"),
            "city": get("address2City"),
            "street": get("address2Street"),
        },
        "workerCount": get("workerCount", "employeeCount"),
        "applicationMethod": get("applicationMethod"),
        "contact": {
            "lastName": get("contactLastName"),
            "firstName": get("contactFirstName"),
            "lastNameKana": get("contactLastNameKana"),
            "firstNameKana": get("contactFirstNameKana"),
            "phone": get("contactPhone"),
            "email": get("contactEmail"),
        },
        "agentName": get("agentName", "agent") or None,
        "applicationReason": get("applicationReason"),
    }


class _Model(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class Company(_Model):
    name: str = Field(min_length=1)
    name_kana: str = Field(min_length=1)

    @field_validator("name_kana")
    @classmethod
    def _kana(cls, value: str) -> str:
        if not is_katakana(value):
            raise ValueError("カタカナで入力してください")
        return value


class PersonName(_Model):
    last_name: str = Field(min_length=1)
    first_name: str = Field(min_length=1)
    last_name_kana: str = Field(min_length=1)
    first_name_kana: str = Field(min_length=1)

    @field_validator("last_name_kana", "first_name_kana")
    @classmethod
    def _kana(cls, value: str) -> str:
        if not is_katakana(value):
            raise ValueError("カタカナで入力してください")
        return value


class Contact(PersonName):
    phone: str = Field(min_length=1)
    email: str = Field(min_length=3)

    @field_validator("email")
    @classmethod
    def _email(cls, value: str) -> str:
        if not re.fullmatch(r"[^\s@]+@[^\s@]+\.[^\s@]+", value):
            raise ValueError("有効なメールアドレスを入力してください")
        return value


class Address(_Model):
    postal_code: str = Field(min_length=1)
    prefecture: str = Field(min_length=1)
    city: str = Field(min_length=1)
    street: str = Field(min_length=1)

    @field_validator("prefecture")
    @classmethod
    def _prefecture(cls, value: str) -> str:
        if value not in PREFECTURES:
            raise ValueError("都道府県を選択してください")
        return value


class SecondaryAddress(_Model):
    postal_code: str = ""
    prefecture: str = ""
    city: str = ""
    street: str = ""

    @field_validator("postal_code", "prefecture", "city", "street", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("prefecture")
    @classmethod
    def _prefecture(cls, value: str) -> str:
        if value and value not in PREFECTURES:
            raise ValueError("都道府県を選択してください")
        return value

    @property
    def is_empty(self) -> bool:
        return not any((self.postal_code, self.prefecture, self.city, self.street))


class ApplicantRecord(_Model):
    entity_type: EntityType
    company: Company
    representative: PersonName
    primary_address: Address
    secondary_address: Optional[SecondaryAddress] = None
    worker_count: int = Field(ge=2, le=300)
    application_method: ApplicationMethod
    contact: Contact
    agent_name: Optional[str] = None
    application_reason: str

    @field_validator("entity_type", "application_method", mode="before")
    @classmethod
    def _enum_alias(cls, value):
        if isinstance(value, str):
            return ENUM_ALIASES.get(value.strip().lower(), value.strip())
        return value

    @field_validator("application_reason")
    @classmethod
    def _reason(cls, value: str) -> str:
        if value not in APPLICATION_REASONS:
            raise ValueError("申請理由を選択してください")
        return value

    @field_validator("agent_name", mode="before")
    @classmethod
    def _blank_agent(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value

    @field_validator("secondary_address")
    @classmethod
    def _drop_empty_secondary(cls, value: Optional[SecondaryAddress]) -> Optional[SecondaryAddress]:
        if value is not None and value.is_empty:
            return None
        return value

    @classmethod
    def from_flat(cls, data: Dict[str, object]) -> "ApplicantRecord":
        """Build a record from the flat layout as given, without input normalization."""
        return cls.model_validate(flat_to_nested(data))

    def to_flat(self) -> Dict[str, object]:
        secondary = self.secondary_address or SecondaryAddress()
        return {
            "entityType": self.entity_type.value,
            "companyName": self.company.name,
            "companyNameKana": self.company.name_kana,
            "representativeLastName": self.representative.last_name,
            "representativeFirstName": self.representative.first_name,
            "representativeLastNameKana": self.representative.last_name_kana,
            "representativeFirstNameKana": self.representative.first_name_kana,
            "address1PostalCode": self.primary_address.postal_code,
            "address1Prefecture": self.primary_address.prefecture,
            "address1City": self.primary_address.city,
            "address1Street": self.primary_address.street,
            "address2PostalCode": secondary.postal_code,
            "address2Prefecture": secondary.prefecture,
            "address2City": secondary.city,
            "address2Street": secondary.street,
            "employeeCount": self.worker_count,
            "applicationMethod": self.application_method.value,
            "contactLastName": self.contact.last_name,
            "contactFirstName": self.contact.first_name,
            "contactLastNameKana": self.contact.last_name_kana,
            "contactFirstNameKana": self.contact.first_name_kana,
            "contactPhone": self.contact.phone,
            "contactEmail": self.contact.email,
            "agentName": self.agent_name or "",
            "applicationReason": self.application_reason,
        }


class SectionEvent(BaseModel):
    section: str
    outcome: Literal["filled", "skipped", "failed"]
    fields: List[str] = Field(default_factory=list)
    message: Optional[str] = None


class FillReport(BaseModel):
    layout: str
    events: List[SectionEvent] = Field(default_factory=list)
    fields_written: List[str] = Field(default_factory=list)
    duration_ms: int = 0


class FailureInfo(BaseModel):
    kind: str
    message: str
    section: Optional[str] = None
    field_key: Optional[str] = None


class SubmissionOutcome(BaseModel):
    status: Literal["submitted", "cancelled", "failed"]
    receipt: Optional[str] = None
    failure: Optional[FailureInfo] = None
    report: Optional[FillReport] = None
    trace_path: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "submitted"


class ValidationIssue(BaseModel):
    field: str
    severity: str
    rule: str
    message: str
    current_value: Optional[str] = None


class ValidationReport(BaseModel):
    ok: bool
    issues: List[ValidationIssue] = Field(default_factory=list)
    step: Optional[str] = None
