from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..schemas import (
    APPLICATION_REASONS,
    PREFECTURES,
    EntityType,
    ApplicationMethod,
    ValidationIssue,
    ValidationReport,
    is_katakana,
)

RE_POSTAL = re.compile(r"^\d{3}-\d{4}$")
RE_PHONE = re.compile(r"^0\d{1,4}-\d{1,4}-\d{4}$")
RE_MOBILE_PREFIX = re.compile(r"^0[789]0")
RE_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

TOKYO = "東京都"


@dataclass
class RuleResult:
    is_valid: bool
    reasons: List[str] = field(default_factory=list)
    rule: str = ""


def _ok() -> RuleResult:
    return RuleResult(True)


def _fail(rule: str, message: str) -> RuleResult:
    return RuleResult(False, [message], rule)


def is_postal_code(value: str) -> bool:
    return bool(RE_POSTAL.match(value))


def is_landline_phone(value: str) -> bool:
    return bool(RE_PHONE.match(value)) and not RE_MOBILE_PREFIX.match(value)


def validate_katakana(value: str) -> RuleResult:
    return _ok() if is_katakana(value) else _fail("katakana", "カタカナで入力してください")


def validate_postal_code(value: str) -> RuleResult:
    if is_postal_code(value):
        return _ok()
    return _fail("postal_code", "郵便番号は XXX-XXXX の形式で入力してください")


def validate_phone(value: str) -> RuleResult:
    if is_landline_phone(value):
        return _ok()
    return _fail("phone", "固定電話番号を入力してください（携帯電話不可）")


def validate_email(value: str) -> RuleResult:
    return _ok() if RE_EMAIL.match(value) else _fail("email", "有効なメールアドレスを入力してください")


def validate_prefecture(value: str) -> RuleResult:
    return _ok() if value in PREFECTURES else _fail("prefecture", "都道府県を選択してください")


def validate_reason(value: str) -> RuleResult:
    return _ok() if value in APPLICATION_REASONS else _fail("reason", "申請理由を選択してください")


def validate_entity_type(value: str) -> RuleResult:
    if value in {member.value for member in EntityType}:
        return _ok()
    return _fail("choice", "法人種別を選択してください")


def validate_application_method(value: str) -> RuleResult:
    if value in {member.value for member in ApplicationMethod}:
        return _ok()
    return _fail("choice", "申請方法を選択してください")


def validate_worker_count(value: str) -> RuleResult:
    try:
        count = int(str(value).strip())
    except ValueError:
        return _fail("worker_count", "整数を入力してください")
    if count < 2:
        return _fail("worker_count", "労働者数は2名以上である必要があります")
    if count > 300:
        return _fail("worker_count", "労働者数は300名以下である必要があります")
    return _ok()


Check = Callable[[str], RuleResult]


@dataclass(frozen=True)
class FieldRule:
    path: str
    required_message: Optional[str]
    checks: Tuple[Check, ...] = ()


# Paths use the camelCase names of the nested record document.
FIELD_RULES: Sequence[FieldRule] = (
    FieldRule("entityType", "法人種別を選択してください", (validate_entity_type,)),
    FieldRule("company.name", "会社名を入力してください"),
    FieldRule("company.nameKana", "会社名フリガナを入力してください", (validate_katakana,)),
    FieldRule("representative.lastName", "代表者の氏を入力してください"),
    FieldRule("representative.firstName", "代表者の名を入力してください"),
    FieldRule("representative.lastNameKana", "代表者のフリガナ（氏）を入力してください", (validate_katakana,)),
    FieldRule("representative.firstNameKana", "代表者のフリガナ（名）を入力してください", (validate_katakana,)),
    FieldRule("primaryAddress.postalCode", "郵便番号を入力してください", (validate_postal_code,)),
    FieldRule("primaryAddress.prefecture", "都道府県を選択してください", (validate_prefecture,)),
    FieldRule("primaryAddress.city", "市区町村を入力してください"),
    FieldRule("primaryAddress.street", "番地以降を入力してください"),
    FieldRule("secondaryAddress.postalCode", None, (validate_postal_code,)),
    FieldRule("secondaryAddress.prefecture", None, (validate_prefecture,)),
    FieldRule("workerCount", "労働者数を入力してください", (validate_worker_count,)),
    FieldRule("applicationMethod", "申請方法を選択してください", (validate_application_method,)),
    FieldRule("contact.lastName", "担当者の氏を入力してください"),
    FieldRule("contact.firstName", "担当者の名を入力してください"),
    FieldRule("contact.lastNameKana", "担当者のフリガナ（氏）を入力してください", (validate_katakana,)),
    FieldRule("contact.firstNameKana", "担当者のフリガナ（名）を入力してください", (validate_katakana,)),
    FieldRule("contact.phone", "電話番号を入力してください", (validate_phone,)),
    FieldRule("contact.email", "メールアドレスを入力してください", (validate_email,)),
    FieldRule("applicationReason", "申請理由を選択してください", (validate_reason,)),
)


def get_value(payload: Dict, path: str) -> Optional[str]:
    value: object = payload
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    if value is None:
        return None
    return str(value)


def validate_field(rule: FieldRule, value: Optional[str]) -> RuleResult:
    value = (value or "").strip()
    if not value:
        if rule.required_message:
            return _fail("required", rule.required_message)
        return _ok()
    for check in rule.checks:
        result = check(value)
        if not result.is_valid:
            return result
    return _ok()


def _address_issues(payload: Dict) -> List[ValidationIssue]:
    entity_type = get_value(payload, "entityType")
    primary = get_value(payload, "primaryAddress.prefecture") or ""
    secondary = get_value(payload, "secondaryAddress.prefecture") or ""
    issues: List[ValidationIssue] = []

    if entity_type == EntityType.CORPORATION.value:
        if primary != TOKYO and secondary != TOKYO:
            issues.append(
                ValidationIssue(
                    field="primaryAddress.prefecture",
                    severity="error",
                    rule="tokyo_address",
                    message="法人の場合、東京都内の住所が必要です",
                    current_value=primary or None,
                )
            )
        if primary != TOKYO and not secondary:
            issues.append(
                ValidationIssue(
                    field="secondaryAddress",
                    severity="error",
                    rule="tokyo_branch",
                    message="本店が都外の場合、都内支店の住所（会社所在地２）が必要です",
                )
            )
    elif entity_type == EntityType.SOLE_PROPRIETOR.value and primary != TOKYO:
        issues.append(
            ValidationIssue(
                field="primaryAddress.prefecture",
                severity="error",
                rule="tokyo_address",
                message="個人事業主の場合、都内の事業所住所が必要です",
                current_value=primary or None,
            )
        )
    return issues


def validate_record_payload(payload: Dict, paths: Optional[Sequence[str]] = None) -> ValidationReport:
    """Check a nested record document field by field.

    ``paths`` limits the check to fields whose path starts with one of the
    given prefixes (one step of the native form). Cross-field rules only run
    when the address fields are in scope.
    """
    issues: List[ValidationIssue] = []

    def in_scope(path: str) -> bool:
        return paths is None or any(path == p or path.startswith(f"{p}.") for p in paths)

    for rule in FIELD_RULES:
        if not in_scope(rule.path):
            continue
        value = get_value(payload, rule.path)
        result = validate_field(rule, value)
        if not result.is_valid:
            issues.append(
                ValidationIssue(
                    field=rule.path,
                    severity="error",
                    rule=result.rule,
                    message=result.reasons[0],
                    current_value=value,
                )
            )

    if in_scope("contact.email"):
        confirmation = get_value(payload, "contact.emailConfirm")
        email = get_value(payload, "contact.email")
        if confirmation is not None and confirmation.strip() != (email or "").strip():
            issues.append(
                ValidationIssue(
                    field="contact.emailConfirm",
                    severity="error",
                    rule="email_confirm",
                    message="メールアドレスが一致しません",
                    current_value=confirmation,
                )
            )

    if in_scope("primaryAddress"):
        issues.extend(_address_issues(payload))

    return ValidationReport(ok=not issues, issues=issues)
