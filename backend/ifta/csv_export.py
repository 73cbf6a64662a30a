"""
IFTA Engine - CSV Export

Renders report data as CSV text. Where the text ends up (download, file,
email attachment) is up to the caller.

IFTA CSV Format:
- Comma-separated values, "\\n" line endings
- Fixed header row (see IFTA_CSV_HEADERS)
- One row per jurisdiction, numbers with 2 decimal places
"""

import csv
import io
from datetime import date
from typing import Dict, Iterable, List, Optional

from .models import FuelEntry, TaxReport


# IFTA report column headers
IFTA_CSV_HEADERS = [
    "Jurisdiction",
    "Total Miles Driven",
    "Total Fuel Purchased (Gallons)",
    "Total Fuel Cost ($)",
]

# Transaction list column headers
TRANSACTION_CSV_HEADERS = [
    "Date",
    "Truck Number",
    "Odometer",
    "City",
    "State",
    "Fuel Type",
    "Amount (Gallons)",
    "Cost ($)",
    "Receipt",
]


def format_amount(value: float) -> str:
    return f"{value:.2f}"


def format_number(value: float) -> str:
    """Raw reading as entered: 120500.0 -> "120500", 52.3 -> "52.3"."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def _write_csv(headers: List[str], rows: Iterable[Dict[str, str]]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=headers, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


def _summary_rows(report: TaxReport, quarter: int, year: int) -> List[Dict[str, str]]:
    """Summary block laid out in the report columns, followed by a blank spacer row."""
    first, second = IFTA_CSV_HEADERS[0], IFTA_CSV_HEADERS[1]
    blank = {header: "" for header in IFTA_CSV_HEADERS}
    return [
        {**blank, first: "IFTA Report Summary"},
        {**blank, first: "Quarter", second: f"Q{quarter}"},
        {**blank, first: "Year", second: str(year)},
        {**blank, first: "Overall Fleet MPG", second: format_amount(report.mpg)},
        dict(blank),
    ]


def render_tax_report_csv(
    report: TaxReport,
    quarter: Optional[int] = None,
    year: Optional[int] = None,
) -> str:
    """
    Render the jurisdiction table as CSV.

    When both quarter and year are given, a summary block (quarter, year,
    overall fleet mpg) is inserted between the header and the data rows.
    """
    rows: List[Dict[str, str]] = []
    if quarter is not None and year is not None:
        rows.extend(_summary_rows(report, quarter, year))

    for row in report.rows:
        rows.append({
            "Jurisdiction": row.jurisdiction,
            "Total Miles Driven": format_amount(row.total_miles),
            "Total Fuel Purchased (Gallons)": format_amount(row.total_fuel),
            "Total Fuel Cost ($)": format_amount(row.total_cost),
        })

    return _write_csv(IFTA_CSV_HEADERS, rows)


def render_transactions_csv(entries: Iterable[FuelEntry]) -> str:
    """Render a detailed transaction list, one row per entry."""
    rows = []
    for entry in entries:
        rows.append({
            "Date": entry.timestamp.strftime("%Y-%m-%d"),
            "Truck Number": entry.vehicle_ref,
            "Odometer": format_number(entry.odometer_reading),
            "City": entry.city or "",
            "State": entry.jurisdiction_code,
            "Fuel Type": entry.display_fuel_type,
            "Amount (Gallons)": format_number(entry.quantity),
            "Cost ($)": format_amount(entry.cost),
            "Receipt": entry.receipt_url or "No",
        })
    return _write_csv(TRANSACTION_CSV_HEADERS, rows)


def tax_report_filename(quarter: int, year: int) -> str:
    return f"IFTA_Report_Q{quarter}_{year}.csv"


def transactions_filename(start: date, end: date) -> str:
    return f"Fuel_Transactions_{start.isoformat()}_to_{end.isoformat()}.csv"
