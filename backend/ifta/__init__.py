"""
IFTA Engine Module

Derives fuel-tax reporting data and fleet insights from fuel purchases:
- Jurisdiction allocation of miles, fuel and cost
- Fleet and per-vehicle fuel economy
- Efficiency ranking, fuel-price optimization, anomaly flags
- Next-quarter cost forecast and month-level dashboard metrics
- CSV rendering of reports and transaction lists

Module Structure:
- models.py: Pydantic value types and result shapes
- sequencing.py: Entry filter and per-vehicle ordering
- allocation.py: Mileage allocator and jurisdiction aggregator
- insights.py: Efficiency, price and anomaly analyzers
- forecast.py: Cost forecast and period metrics
- report_builder.py: Pipeline and report assembly
- csv_export.py: CSV output
"""

from .models import (
    FuelCategory,
    FuelEntry,
    Vehicle,
    ReportWindow,
    ReportStatus,
    JurisdictionAllocation,
    MileageSegment,
    MileageAllocation,
    VehicleEfficiency,
    JurisdictionPrice,
    OdometerRollback,
    AnomalyFlags,
    FleetInsights,
    TaxReport,
    IFTAReportResult,
)
from .sequencing import filter_entries, group_by_vehicle
from .allocation import (
    allocate_mileage,
    aggregate_jurisdictions,
    calculate_mpg,
    overall_mpg,
    vehicle_mpg,
)
from .insights import (
    rank_efficiency,
    optimize_fuel_prices,
    detect_anomalies,
    flag_cost_outliers,
    flag_off_hours,
    flag_odometer_rollbacks,
)
from .forecast import forecast_next_quarter, monthly_cost_trend, period_metrics, compare_months
from .report_builder import IFTAReportCalculator, generate_ifta_report
from .csv_export import (
    IFTA_CSV_HEADERS,
    render_tax_report_csv,
    render_transactions_csv,
    tax_report_filename,
    transactions_filename,
)

__all__ = [
    # Models
    "FuelCategory",
    "FuelEntry",
    "Vehicle",
    "ReportWindow",
    "ReportStatus",
    "JurisdictionAllocation",
    "MileageSegment",
    "MileageAllocation",
    "VehicleEfficiency",
    "JurisdictionPrice",
    "OdometerRollback",
    "AnomalyFlags",
    "FleetInsights",
    "TaxReport",
    "IFTAReportResult",
    # Pipeline stages
    "filter_entries",
    "group_by_vehicle",
    "allocate_mileage",
    "aggregate_jurisdictions",
    "calculate_mpg",
    "overall_mpg",
    "vehicle_mpg",
    # Insights
    "rank_efficiency",
    "optimize_fuel_prices",
    "detect_anomalies",
    "flag_cost_outliers",
    "flag_off_hours",
    "flag_odometer_rollbacks",
    "forecast_next_quarter",
    "monthly_cost_trend",
    "period_metrics",
    "compare_months",
    # Report
    "IFTAReportCalculator",
    "generate_ifta_report",
    # CSV
    "IFTA_CSV_HEADERS",
    "render_tax_report_csv",
    "render_transactions_csv",
    "tax_report_filename",
    "transactions_filename",
]
