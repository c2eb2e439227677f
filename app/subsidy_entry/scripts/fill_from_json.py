from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from subsidy_entry.automation.driver import SubmissionDriver, browser_session
from subsidy_entry.automation.errors import InputInvalid
from subsidy_entry.config import CONFIG
from subsidy_entry.field_registry import get_layout
from subsidy_entry.pipeline.records import load_record
from subsidy_entry.schemas import ApplicantRecord, FillReport

DEFAULT_INPUT = Path.cwd() / "form-data.json"


def print_summary(record: ApplicantRecord) -> None:
    print("以下のデータでフォームを入力します:")
    print(f"  会社名: {record.company.name}")
    print(f"  代表者: {record.representative.last_name} {record.representative.first_name}")
    print(f"  労働者数: {record.worker_count}名")


def make_prompt_gate(read_line: Callable[[str], str] = input) -> Callable[[ApplicantRecord, FillReport], bool]:
    def gate(record: ApplicantRecord, report: FillReport) -> bool:
        print(f"フォーム入力が完了しました（{len(report.fields_written)}項目）")
        print("内容を確認してください。")
        try:
            answer = read_line("送信する場合は 'y' を、キャンセルする場合は 'n' を入力してください: ")
        except EOFError:
            return False
        return answer.strip().lower() == "y"

    return gate


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Fill the subsidy pre-entry form from a JSON record.")
    parser.add_argument("path", nargs="?", type=Path, default=DEFAULT_INPUT, help="Record JSON (nested or flat)")
    parser.add_argument("--layout", choices=["hosted", "native"], default=CONFIG.autofill.layout)
    parser.add_argument("--form-url", default=None, help="Override the form URL")
    parser.add_argument("--headless", action="store_true", help="Run Chromium without a window")
    parser.add_argument("--fill-only", action="store_true", help="Fill and stop without asking to submit")
    parser.add_argument("--run-dir", type=Path, default=None, help="Where run.log and trace.zip go")
    args = parser.parse_args(argv)

    logging.basicConfig(level=CONFIG.log_level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")

    try:
        record = load_record(args.path)
    except InputInvalid as exc:
        print(f"入力エラー: {exc.message}", file=sys.stderr)
        print("使用方法: python -m subsidy_entry.scripts.fill_from_json [JSONファイルパス]", file=sys.stderr)
        return 1

    print_summary(record)

    driver = SubmissionDriver(
        layout=get_layout(args.layout),
        form_url=args.form_url,
        confirm=make_prompt_gate(),
        session_factory=lambda run_dir: browser_session(run_dir, headless=args.headless or None),
        run_dir=args.run_dir,
        fill_only=args.fill_only,
    )
    outcome = driver.run(record)

    if outcome.status == "submitted":
        print(f"フォームを送信しました。受付番号: {outcome.receipt}")
        return 0
    if outcome.status == "cancelled":
        print("送信をキャンセルしました" if not args.fill_only else "入力のみ完了しました（未送信）")
        return 0
    failure = outcome.failure
    print(f"エラーが発生しました: {failure.kind}: {failure.message}", file=sys.stderr)
    if outcome.trace_path:
        print(f"トレース: {outcome.trace_path}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
