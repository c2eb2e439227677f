from __future__ import annotations

import pytest
from pydantic import ValidationError

from subsidy_entry.schemas import ApplicantRecord, ApplicationMethod, EntityType, SubmissionOutcome


def test_nested_record_parses(sample_payload: dict) -> None:
    record = ApplicantRecord.model_validate(sample_payload)
    assert record.entity_type is EntityType.CORPORATION
    assert record.application_method is ApplicationMethod.PAPER
    assert record.worker_count == 50
    assert record.secondary_address is None
    assert record.agent_name is None


def test_english_enum_names_are_accepted(make_payload) -> None:
    record = ApplicantRecord.model_validate(
        make_payload(entityType="SoleProprietor", applicationMethod="Electronic")
    )
    assert record.entity_type is EntityType.SOLE_PROPRIETOR
    assert record.application_method is ApplicationMethod.ELECTRONIC


@pytest.mark.parametrize("count", [1, 301])
def test_worker_count_range(make_payload, count: int) -> None:
    with pytest.raises(ValidationError):
        ApplicantRecord.model_validate(make_payload(workerCount=count))


def test_kana_must_be_katakana(make_payload) -> None:
    with pytest.raises(ValidationError):
        ApplicantRecord.model_validate(make_payload(company={"name": "株式会社テスト", "nameKana": "かぶしき"}))


def test_primary_address_must_be_complete(make_payload) -> None:
    address = {"postalCode": "100-0001", "prefecture": "東京都", "city": "", "street": "1-1"}
    with pytest.raises(ValidationError):
        ApplicantRecord.model_validate(make_payload(primaryAddress=address))


def test_reason_outside_the_fixed_set_is_rejected(make_payload) -> None:
    with pytest.raises(ValidationError):
        ApplicantRecord.model_validate(make_payload(applicationReason="テレビ"))


def test_empty_secondary_address_is_dropped(make_payload) -> None:
    secondary = {"postalCode": "", "prefecture": None, "city": "", "street": ""}
    record = ApplicantRecord.model_validate(make_payload(secondaryAddress=secondary))
    assert record.secondary_address is None


def test_partial_secondary_address_is_kept(make_payload) -> None:
    record = ApplicantRecord.model_validate(make_payload(secondaryAddress={"prefecture": "大阪府"}))
    assert record.secondary_address is not None
    assert record.secondary_address.prefecture == "大阪府"
    assert record.secondary_address.city == ""


def test_records_are_frozen(sample_record: ApplicantRecord) -> None:
    with pytest.raises(ValidationError):
        sample_record.worker_count = 10


def test_flat_round_trip(sample_record: ApplicantRecord) -> None:
    flat = sample_record.to_flat()
    assert flat["companyName"] == "株式会社テスト"
    assert flat["employeeCount"] == 50
    assert flat["address2Prefecture"] == ""
    assert ApplicantRecord.from_flat(flat) == sample_record


def test_flat_accepts_legacy_keys(sample_record: ApplicantRecord) -> None:
    flat = sample_record.to_flat()
    flat["workerCount"] = flat.pop("employeeCount")
    flat["agent"] = "鈴木一郎"
    flat.pop("agentName")
    record = ApplicantRecord.from_flat(flat)
    assert record.worker_count == 50
    assert record.agent_name == "鈴木一郎"


def test_outcome_ok_only_when_submitted() -> None:
    assert SubmissionOutcome(status="submitted", receipt="ABC123").ok
    assert not SubmissionOutcome(status="cancelled").ok
