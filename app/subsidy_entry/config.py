from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).parent
FORM_URL_ENV = "SUBSIDY_FORM_URL"

DEFAULT_FORM_URLS = {
    "hosted": "https://logoform.jp/f/XqHqF",
    "native": "http://localhost:5173/",
}


def _load_dotenv() -> None:
    repo_root = Path(__file__).resolve().parents[2]
    candidates = [repo_root / ".env", Path.cwd() / ".env"]
    for env_path in candidates:
        if not env_path.exists():
            continue
        try:
            for line in env_path.read_text().splitlines():
                stripped = line.strip()
                if not stripped or stripped.startswith("#") or "=" not in stripped:
                    continue
                key, value = stripped.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
        except OSError:
            continue
        break


_load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class Timings:
    """Wait windows for the hosted form, in milliseconds.

    The hosted form exposes no "UI is stable" signal after a radio click or a
    dropdown opening, so those steps use fixed settle pauses; everything else
    is a bounded condition wait.
    """

    settle_ms: int = _env_int("SUBSIDY_SETTLE_MS", 500)
    menu_timeout_ms: int = _env_int("SUBSIDY_MENU_TIMEOUT_MS", 5000)
    reason_focus_ms: int = _env_int("SUBSIDY_REASON_FOCUS_MS", 1000)
    reason_filter_ms: int = _env_int("SUBSIDY_REASON_FILTER_MS", 500)
    reason_menu_timeout_ms: int = _env_int("SUBSIDY_REASON_MENU_TIMEOUT_MS", 3000)
    locate_timeout_ms: int = _env_int("SUBSIDY_LOCATE_TIMEOUT_MS", 5000)
    ready_timeout_ms: int = _env_int("SUBSIDY_READY_TIMEOUT_MS", 30000)
    network_idle_timeout_ms: int = _env_int("SUBSIDY_NETWORK_IDLE_TIMEOUT_MS", 15000)
    receipt_timeout_ms: int = _env_int("SUBSIDY_RECEIPT_TIMEOUT_MS", 5000)
    navigation_timeout_ms: int = _env_int("SUBSIDY_NAVIGATION_TIMEOUT_MS", 45000)


@dataclass(frozen=True)
class AutofillConfig:
    headless: bool = os.getenv("SUBSIDY_AUTOFILL_HEADLESS", "false").lower() == "true"
    slow_mo_ms: int = _env_int("SUBSIDY_AUTOFILL_SLOW_MO_MS", 300)
    layout: str = os.getenv("SUBSIDY_LAYOUT", "hosted")
    timings: Timings = field(default_factory=Timings)


@dataclass(frozen=True)
class SheetsConfig:
    endpoint: str = os.getenv("SUBSIDY_SHEETS_ENDPOINT", "")
    timeout: float = float(os.getenv("SUBSIDY_SHEETS_TIMEOUT", "30"))
    # Apps Script web apps answer POSTs with a redirect whose body is not
    # always readable; in that mode only transport errors count.
    fire_and_forget: bool = os.getenv("SUBSIDY_SHEETS_FIRE_AND_FORGET", "false").lower() in {"1", "true", "yes"}
    check_duplicates: bool = os.getenv("SUBSIDY_SHEETS_CHECK_DUPLICATES", "true").lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class AppConfig:
    log_level: str = os.getenv("SUBSIDY_LOG_LEVEL", "INFO")
    runs_dir: Path = BASE_DIR / "runs"
    autofill: AutofillConfig = field(default_factory=AutofillConfig)
    sheets: SheetsConfig = field(default_factory=SheetsConfig)


CONFIG = AppConfig()


def resolve_form_url(override: Optional[str] = None, layout: Optional[str] = None) -> str:
    if override:
        return override
    env_value = os.getenv(FORM_URL_ENV)
    if env_value:
        return env_value
    return DEFAULT_FORM_URLS.get(layout or CONFIG.autofill.layout, DEFAULT_FORM_URLS["hosted"])
