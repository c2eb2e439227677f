import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from subsidy_entry.config import Timings  # noqa: E402
from subsidy_entry.schemas import ApplicantRecord  # noqa: E402

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"
HOSTED_FORM_PATH = FIXTURES_DIR / "hosted_form.html"
NATIVE_FORM_PATH = FIXTURES_DIR / "native_form.html"


def record_payload(**overrides) -> dict:
    payload = {
        "entityType": "法人",
        "company": {"name": "株式会社テスト", "nameKana": "カブシキガイシャテスト"},
        "representative": {
            "lastName": "山田",
            "firstName": "太郎",
            "lastNameKana": "ヤマダ",
            "firstNameKana": "タロウ",
        },
        "primaryAddress": {
            "postalCode": "100-0001",
            "prefecture": "東京都",
            "city": "千代田区",
            "street": "千代田1-1",
        },
        "workerCount": 50,
        "applicationMethod": "紙申請",
        "contact": {
            "lastName": "佐藤",
            "firstName": "花子",
            "lastNameKana": "サトウ",
            "firstNameKana": "ハナコ",
            "phone": "03-1234-5678",
            "email": "hanako@example.com",
        },
        "applicationReason": "東京都のウェブサイト",
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def sample_payload() -> dict:
    return record_payload()


@pytest.fixture()
def sample_record() -> ApplicantRecord:
    return ApplicantRecord.model_validate(record_payload())


@pytest.fixture(scope="session")
def fast_timings() -> Timings:
    return Timings(
        settle_ms=0,
        menu_timeout_ms=2000,
        reason_focus_ms=0,
        reason_filter_ms=0,
        reason_menu_timeout_ms=500,
        locate_timeout_ms=2000,
        ready_timeout_ms=5000,
        network_idle_timeout_ms=5000,
        receipt_timeout_ms=1000,
        navigation_timeout_ms=10000,
    )


@pytest.fixture(scope="session")
def hosted_form_url() -> str:
    if not HOSTED_FORM_PATH.exists():
        pytest.fail(f"Hosted form fixture missing at {HOSTED_FORM_PATH}")
    return HOSTED_FORM_PATH.resolve().as_uri()


@pytest.fixture(scope="session")
def native_form_url() -> str:
    if not NATIVE_FORM_PATH.exists():
        pytest.fail(f"Native form fixture missing at {NATIVE_FORM_PATH}")
    return NATIVE_FORM_PATH.resolve().as_uri()


@pytest.fixture()
def make_payload():
    return record_payload
