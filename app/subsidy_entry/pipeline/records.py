from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Union

from pydantic import ValidationError

from ..automation.errors import InputInvalid
from ..schemas import ApplicantRecord, flat_to_nested
from .normalize import normalize_payload

LOGGER = logging.getLogger(__name__)

# Keys only the flat form-data document has.
FLAT_MARKERS = {"companyName", "address1PostalCode", "contactEmail"}


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def parse_record(data: Dict) -> ApplicantRecord:
    if not isinstance(data, dict):
        raise InputInvalid("Record document must be a JSON object")
    try:
        if FLAT_MARKERS & set(data):
            data = flat_to_nested(data)
        return ApplicantRecord.model_validate(normalize_payload(data))
    except ValidationError as exc:
        raise InputInvalid(f"Invalid record: {_describe(exc)}") from exc


def load_record(path: Union[str, Path]) -> ApplicantRecord:
    path = Path(path)
    if not path.exists():
        raise InputInvalid(f"Input file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InputInvalid(f"Could not read {path}: {exc}") from exc
    record = parse_record(data)
    LOGGER.info("Loaded record for %s from %s", record.company.name, path)
    return record
