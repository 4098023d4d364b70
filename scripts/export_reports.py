"""
Export an organisation's SMS reports to CSV.

    python -m scripts.export_reports hfrn-test data/exports/hfrn.csv [project]
"""
import sys

from config import get_settings
from reports.export import export_reports_to_csv
from reports.storage import ReportStore


def export_reports(org, output_path, project=None):
    settings = get_settings()
    store = ReportStore(settings.sms_db_path)
    store.init_db()

    print(f"Exporting SMS reports for {org} to {output_path}")
    result = export_reports_to_csv(store.get_reports(org, project), output_path)
    print(f"Export complete: {result['rows_written']} report(s).")
    return result


if __name__ == "__main__":
    if len(sys.argv) not in (3, 4):
        print(__doc__)
        sys.exit(1)
    export_reports(*sys.argv[1:])
