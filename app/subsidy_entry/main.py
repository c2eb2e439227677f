from __future__ import annotations

import logging
from typing import Dict, Optional

import anyio
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .automation.driver import SubmissionDriver, new_run_dir
from .automation.errors import InputInvalid, InvalidTransition
from .config import CONFIG
from .field_registry import field_registry_payload, get_layout
from .pipeline.normalize import normalize_payload
from .pipeline.postal_code import lookup_address
from .pipeline.records import parse_record
from .pipeline.rules import validate_record_payload
from .pipeline.sheets import SheetsClient, SheetsError
from .pipeline.steps import STEP_FIELDS, parse_step

RUNS_DIR = CONFIG.runs_dir

logging.basicConfig(level=CONFIG.log_level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
LOGGER = logging.getLogger("subsidy_entry")

app = FastAPI(title="Subsidy Entry")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_sheets_client() -> SheetsClient:
    return SheetsClient(CONFIG.sheets)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/field_registry")
async def field_registry(layout: str = "hosted"):
    try:
        return field_registry_payload(layout)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=404)


@app.get("/postal_code/{code}")
async def postal_code(code: str):
    address = await anyio.to_thread.run_sync(lookup_address, code)
    if address is None:
        return JSONResponse({"error": "Address not found", "postal_code": code}, status_code=404)
    return {"postal_code": code, **address}


@app.post("/validate")
async def validate(payload: Dict, step: Optional[str] = None):
    if not isinstance(payload, dict):
        return JSONResponse({"error": "Invalid payload"}, status_code=400)
    paths = None
    if step:
        try:
            form_step = parse_step(step)
        except InvalidTransition as exc:
            return JSONResponse({"error": exc.message}, status_code=400)
        paths = STEP_FIELDS.get(form_step, ())
    report = validate_record_payload(normalize_payload(payload), paths)
    if step:
        report = report.model_copy(update={"step": step})
    return report.model_dump()


@app.post("/submit")
async def submit(payload: Dict, sheets: SheetsClient = Depends(get_sheets_client)):
    if not isinstance(payload, dict):
        return JSONResponse({"error": "Invalid payload"}, status_code=400)
    normalized = normalize_payload(payload)
    report = validate_record_payload(normalized)
    if not report.ok:
        return JSONResponse({"error": "VALIDATION_FAILED", "report": report.model_dump()}, status_code=422)
    try:
        record = parse_record(normalized)
    except InputInvalid as exc:
        return JSONResponse({"error": exc.message}, status_code=422)

    if sheets.config.check_duplicates:
        duplicate = await anyio.to_thread.run_sync(sheets.check_duplicate_email, record.contact.email)
        if duplicate:
            return JSONResponse(
                {"error": "DUPLICATE_EMAIL", "message": "このメールアドレスは既に登録されています"},
                status_code=409,
            )
    try:
        submission_id = await anyio.to_thread.run_sync(sheets.submit, record)
    except SheetsError as exc:
        LOGGER.error("Submission sink failed: %s", exc)
        return JSONResponse({"error": "SUBMISSION_FAILED", "message": str(exc)}, status_code=502)
    return {"submission_id": submission_id, "step": "completion"}


@app.post("/autofill")
async def autofill(payload: Dict):
    """Fill the target form for review. Submission stays with the operator."""
    if not isinstance(payload, dict):
        return JSONResponse({"error": "Invalid payload"}, status_code=400)
    options = dict(payload.pop("_autofill", None) or {})
    try:
        record = parse_record(payload)
        layout = get_layout(options.get("layout") or CONFIG.autofill.layout)
    except InputInvalid as exc:
        return JSONResponse({"error": exc.message}, status_code=422)
    except ValueError as exc:
        return JSONResponse({"error": str(exc)}, status_code=400)

    run_dir = new_run_dir(RUNS_DIR)
    driver = SubmissionDriver(
        layout=layout,
        form_url=options.get("form_url"),
        run_dir=run_dir,
        fill_only=True,
    )
    outcome = await anyio.to_thread.run_sync(driver.run, record)
    status_code = 500 if outcome.status == "failed" else 200
    return JSONResponse({"run_id": run_dir.name, **outcome.model_dump()}, status_code=status_code)
