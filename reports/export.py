# reports/export.py

import csv
from pathlib import Path

BASE_COLUMNS = ["id", "project", "alias", "spec_version", "created_at", "last_updated"]


def flatten_report(report: dict) -> dict:
    row = {col: report.get(col) for col in BASE_COLUMNS}
    row.update(report.get("submitted") or {})
    return row


def export_reports_to_csv(reports, output_path: str):
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if not reports:
        return {"status": "ok", "rows_written": 0}

    rows = [flatten_report(r) for r in reports]

    # answered fields differ between reports and form versions
    fieldnames = list(BASE_COLUMNS)
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, restval="")
        writer.writeheader()
        writer.writerows(rows)

    return {
        "status": "ok",
        "rows_written": len(rows),
        "path": str(path),
    }
