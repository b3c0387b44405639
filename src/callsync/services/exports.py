from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path

from openpyxl import Workbook

from callsync.domain.models import SyncFailure, SyncStats

FAILURE_HEADERS = ["uuid", "number", "error", "timestamp"]
SUMMARY_FIELDS = ["total", "processed", "success", "skipped", "failed", "contact_matched", "company_matched"]


def export_failures(stats: SyncStats, out_path: Path) -> None:
    if out_path.suffix.lower() == ".csv":
        export_failures_csv(stats.errors, out_path)
    else:
        export_excel(stats, out_path)


def export_excel(stats: SyncStats, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    wb.remove(wb.active)

    summary = wb.create_sheet(title="summary")
    summary.append(["metric", "value"])
    for name in SUMMARY_FIELDS:
        summary.append([name, getattr(stats, name)])
    summary.append(["success_rate", stats.success_rate])
    summary.append(["match_rate", stats.match_rate])

    failures = wb.create_sheet(title="failures")
    _write_sheet(failures, stats.errors)
    wb.save(out_path)


def export_failures_csv(failures: Iterable[SyncFailure], out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(FAILURE_HEADERS)
        for failure in failures:
            writer.writerow([getattr(failure, h) for h in FAILURE_HEADERS])


def _write_sheet(ws, failures: Iterable[SyncFailure]) -> None:
    ws.append(FAILURE_HEADERS)
    for failure in failures:
        ws.append([getattr(failure, h) for h in FAILURE_HEADERS])
