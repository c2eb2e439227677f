from __future__ import annotations

import re
import unicodedata
from typing import Dict, Optional

from ..schemas import ENUM_ALIASES

# Hiragana and katakana blocks are a fixed distance apart.
_KANA_OFFSET = ord("ァ") - ord("ぁ")

KANA_PATHS = (
    ("company", "nameKana"),
    ("representative", "lastNameKana"),
    ("representative", "firstNameKana"),
    ("contact", "lastNameKana"),
    ("contact", "firstNameKana"),
)


def format_postal_code(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    digits = re.sub(r"[^0-9]", "", unicodedata.normalize("NFKC", value))
    if len(digits) <= 3:
        return digits
    return f"{digits[0:3]}-{digits[3:7]}"


def normalize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = unicodedata.normalize("NFKC", value)
    return re.sub(r"\s+", " ", cleaned).strip()


def to_katakana(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    # NFKC folds half-width katakana to full width before the shift.
    value = unicodedata.normalize("NFKC", value).strip()
    return "".join(chr(ord(ch) + _KANA_OFFSET) if "ぁ" <= ch <= "ゖ" else ch for ch in value)


def normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return unicodedata.normalize("NFKC", value).strip()


def normalize_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = unicodedata.normalize("NFKC", value).strip()
    return re.sub(r"[‐－―ー−]", "-", value)


def normalize_choice(value: Optional[str]) -> Optional[str]:
    """Map English spellings such as "Corporation" or "Paper" to the form's labels."""
    if value is None:
        return None
    return ENUM_ALIASES.get(value.strip().lower(), value.strip())


def normalize_payload(payload: Dict) -> Dict:
    """Return a copy of a nested record document with input quirks smoothed.

    Full-width digits, hiragana in kana fields and stray whitespace are the
    usual differences between hand-typed input and what the form accepts.
    """
    data = {key: (dict(value) if isinstance(value, dict) else value) for key, value in payload.items()}

    for group in ("company", "representative", "contact", "primaryAddress", "secondaryAddress"):
        section = data.get(group)
        if not isinstance(section, dict):
            continue
        for key, value in list(section.items()):
            if isinstance(value, str):
                section[key] = normalize_text(value)

    for group, key in KANA_PATHS:
        section = data.get(group)
        if isinstance(section, dict) and isinstance(section.get(key), str):
            section[key] = to_katakana(section[key])

    for group in ("primaryAddress", "secondaryAddress"):
        section = data.get(group)
        if isinstance(section, dict) and isinstance(section.get("postalCode"), str) and section["postalCode"]:
            section["postalCode"] = format_postal_code(section["postalCode"])

    contact = data.get("contact")
    if isinstance(contact, dict):
        for key in ("email", "emailConfirm"):
            if isinstance(contact.get(key), str):
                contact[key] = normalize_email(contact[key])
        if isinstance(contact.get("phone"), str):
            contact["phone"] = normalize_phone(contact["phone"])

    for key in ("entityType", "applicationMethod"):
        if isinstance(data.get(key), str):
            data[key] = normalize_choice(data[key])

    for key in ("agentName", "applicationReason"):
        if isinstance(data.get(key), str):
            data[key] = normalize_text(data[key])
    return data
