"""
Unit Tests for CSV Export

Run with: pytest tests/test_csv_export.py -v
"""

import pytest
from datetime import date, datetime

from ifta.csv_export import (
    IFTA_CSV_HEADERS,
    format_amount,
    format_number,
    render_tax_report_csv,
    render_transactions_csv,
    tax_report_filename,
    transactions_filename,
)
from ifta.models import FuelCategory, FuelEntry, JurisdictionAllocation, TaxReport


HEADER_LINE = "Jurisdiction,Total Miles Driven,Total Fuel Purchased (Gallons),Total Fuel Cost ($)"


@pytest.fixture
def report():
    return TaxReport(
        rows=[
            JurisdictionAllocation(jurisdiction="CA", total_miles=600, total_fuel=100, total_cost=455),
            JurisdictionAllocation(jurisdiction="NV", total_miles=750.456, total_fuel=85.5, total_cost=325.999),
        ],
        mpg=6.136363,
    )


class TestTaxReportCSV:
    """Test the jurisdiction table export."""

    def test_header_and_rows(self, report):
        lines = render_tax_report_csv(report).split("\n")

        assert lines[0] == HEADER_LINE
        assert lines[1] == "CA,600.00,100.00,455.00"
        assert lines[2] == "NV,750.46,85.50,326.00"
        assert lines[3] == ""
        assert len(lines) == 4

    def test_header_constant(self):
        assert ",".join(IFTA_CSV_HEADERS) == HEADER_LINE

    def test_empty_report_has_header_only(self):
        assert render_tax_report_csv(TaxReport()) == HEADER_LINE + "\n"

    def test_summary_block_after_header(self, report):
        """Test quarter, year and mpg sit between the header and the data rows."""
        lines = render_tax_report_csv(report, quarter=1, year=2024).split("\n")

        assert lines[:7] == [
            HEADER_LINE,
            "IFTA Report Summary,,,",
            "Quarter,Q1,,",
            "Year,2024,,",
            "Overall Fleet MPG,6.14,,",
            ",,,",
            "CA,600.00,100.00,455.00",
        ]

    def test_summary_needs_quarter_and_year(self, report):
        text = render_tax_report_csv(report, quarter=1)
        assert "IFTA Report Summary" not in text


class TestTransactionsCSV:
    """Test the detailed transaction export."""

    def test_transaction_rows(self):
        entries = [
            FuelEntry(
                id="1",
                vehicle_ref="101",
                timestamp=datetime(2024, 3, 5, 14, 30),
                odometer_reading=120500,
                jurisdiction_code="NV",
                fuel_category=FuelCategory.OTHER,
                fuel_category_label="Reefer",
                quantity=42.5,
                cost=160.25,
                city="Reno",
            ),
            FuelEntry(
                id="2",
                vehicle_ref="102",
                timestamp=datetime(2024, 3, 6, 8, 0),
                odometer_reading=80000.5,
                jurisdiction_code="CA",
                quantity=50,
                cost=200,
                city="Sacramento, CA",
                receipt_url="https://receipts.example.com/2.jpg",
            ),
        ]

        lines = render_transactions_csv(entries).split("\n")

        assert lines[0] == (
            "Date,Truck Number,Odometer,City,State,Fuel Type,Amount (Gallons),Cost ($),Receipt"
        )
        assert lines[1] == "2024-03-05,101,120500,Reno,NV,Reefer,42.5,160.25,No"
        assert lines[2] == (
            '2024-03-06,102,80000.5,"Sacramento, CA",CA,taxed_fuel,50,200.00,'
            "https://receipts.example.com/2.jpg"
        )

    def test_missing_city_blank(self):
        entry = FuelEntry(
            id="1",
            vehicle_ref="101",
            timestamp=datetime(2024, 3, 5),
            jurisdiction_code="NV",
        )

        line = render_transactions_csv([entry]).split("\n")[1]

        assert line == "2024-03-05,101,0,,NV,taxed_fuel,0,0.00,No"


class TestFormatting:
    """Test number formatting and filenames."""

    @pytest.mark.parametrize("value,expected", [
        (0, "0.00"),
        (1.005, "1.00"),
        (1234.5, "1234.50"),
        (99.999, "100.00"),
    ])
    def test_format_amount(self, value, expected):
        assert format_amount(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (120500.0, "120500"),
        (52.3, "52.3"),
        (1234567, "1234567"),
    ])
    def test_format_number(self, value, expected):
        assert format_number(value) == expected

    def test_filenames(self):
        assert tax_report_filename(3, 2024) == "IFTA_Report_Q3_2024.csv"
        assert transactions_filename(date(2024, 7, 1), date(2024, 9, 30)) == (
            "Fuel_Transactions_2024-07-01_to_2024-09-30.csv"
        )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
