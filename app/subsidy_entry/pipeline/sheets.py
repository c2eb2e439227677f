from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

import requests

from ..config import CONFIG, SheetsConfig
from ..schemas import ApplicantRecord

LOGGER = logging.getLogger(__name__)

Cell = Union[str, int]

# (flat record key, spreadsheet header) in column order; the sheet's Apps
# Script appends rows in exactly this order.
SHEET_COLUMNS: Sequence[tuple] = (
    ("submittedAt", "送信日時"),
    ("entityType", "法人種別"),
    ("companyName", "会社名"),
    ("companyNameKana", "会社名フリガナ"),
    ("representativeLastName", "代表者氏"),
    ("representativeFirstName", "代表者名"),
    ("representativeLastNameKana", "代表者氏フリガナ"),
    ("representativeFirstNameKana", "代表者名フリガナ"),
    ("address1PostalCode", "所在地1郵便番号"),
    ("address1Prefecture", "所在地1都道府県"),
    ("address1City", "所在地1市区町村"),
    ("address1Street", "所在地1番地以降"),
    ("address2PostalCode", "所在地2郵便番号"),
    ("address2Prefecture", "所在地2都道府県"),
    ("address2City", "所在地2市区町村"),
    ("address2Street", "所在地2番地以降"),
    ("employeeCount", "労働者数"),
    ("applicationMethod", "申請方法"),
    ("contactLastName", "担当者氏"),
    ("contactFirstName", "担当者名"),
    ("contactLastNameKana", "担当者氏フリガナ"),
    ("contactFirstNameKana", "担当者名フリガナ"),
    ("contactPhone", "担当者電話番号"),
    ("contactEmail", "担当者メールアドレス"),
    ("agentName", "代理人氏名"),
    ("applicationReason", "申請理由"),
)

SHEET_HEADERS: List[str] = [header for _, header in SHEET_COLUMNS]


class SheetsError(RuntimeError):
    pass


def build_row(record: ApplicantRecord, submitted_at: Optional[datetime] = None) -> List[Cell]:
    flat = record.to_flat()
    flat["submittedAt"] = (submitted_at or datetime.now(timezone.utc)).isoformat()
    return [flat[key] for key, _ in SHEET_COLUMNS]


class SheetsClient:
    """Writes submissions to the spreadsheet behind an Apps Script web app."""

    def __init__(self, config: Optional[SheetsConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or CONFIG.sheets
        self.session = session or requests.Session()

    def _endpoint(self) -> str:
        if not self.config.endpoint:
            raise SheetsError("SUBSIDY_SHEETS_ENDPOINT is not set")
        return self.config.endpoint

    def submit(self, record: ApplicantRecord) -> str:
        """Append one row and return a local submission id."""
        endpoint = self._endpoint()
        payload: Dict[str, object] = dict(record.to_flat())
        payload["row"] = build_row(record)
        try:
            response = self.session.post(endpoint, json=payload, timeout=self.config.timeout)
        except requests.RequestException as exc:
            raise SheetsError(f"Sheets request failed: {exc}") from exc

        if not self.config.fire_and_forget:
            if response.status_code >= 400:
                raise SheetsError(f"Sheets endpoint returned {response.status_code}")
            try:
                body = response.json()
            except ValueError as exc:
                raise SheetsError("Sheets endpoint returned a non-JSON body") from exc
            if body.get("status") != "success":
                raise SheetsError(f"Sheets endpoint rejected the row: {body.get('message', 'unknown error')}")

        submission_id = str(uuid.uuid4())
        LOGGER.info("Row appended for %s (%s)", record.contact.email, submission_id)
        return submission_id

    def check_duplicate_email(self, email: str) -> bool:
        endpoint = self._endpoint()
        try:
            response = self.session.get(
                endpoint,
                params={"action": "checkEmail", "email": email},
                timeout=self.config.timeout,
            )
            response.raise_for_status()
            return bool(response.json().get("exists", False))
        except (requests.RequestException, ValueError) as exc:
            # Only blocks a submission on a confirmed duplicate.
            LOGGER.warning("Duplicate check failed for %s: %s", email, exc)
            return False
