"""
IFTA Engine - Report Assembler

Runs the reporting pipeline for one window and assembles its outputs:

    entries -> filter -> per-truck sequences -> mileage allocation
            -> jurisdiction aggregation -> tax report
    filtered entries -> efficiency / pricing / anomalies -> insights
    full history (trailing months) -> forecast -> insights

Every run builds its own accumulators from scratch; nothing is cached
between runs, so concurrent runs need no coordination.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
import logging
import uuid

from config import Settings
from logging_config import clear_report_context, set_report_context
from sentry_integration import capture_exception

from .allocation import aggregate_jurisdictions, allocate_mileage, overall_mpg
from .forecast import forecast_next_quarter
from .insights import (
    detect_anomalies,
    optimize_fuel_prices,
    rank_efficiency,
)
from .models import (
    AnomalyFlags,
    EfficiencyRanking,
    FleetInsights,
    FuelEntry,
    IFTAReportResult,
    JurisdictionAllocation,
    PriceOptimization,
    ReportStatus,
    ReportWindow,
    TaxReport,
    Vehicle,
)
from .sequencing import filter_entries, group_by_vehicle

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_MESSAGE = (
    "Not enough data to generate a report. "
    "At least two fuel entries are required for mileage calculation."
)


# ==================== ASSEMBLY ====================

def assemble_tax_report(rows: List[JurisdictionAllocation], mpg: float) -> TaxReport:
    return TaxReport(rows=rows, mpg=mpg)


def assemble_insights(
    efficiency: EfficiencyRanking,
    cost_optimization: PriceOptimization,
    anomalies: AnomalyFlags,
    forecast: float,
) -> FleetInsights:
    return FleetInsights(
        efficiency=efficiency,
        cost_optimization=cost_optimization,
        anomalies=anomalies,
        forecast=forecast,
    )


# ==================== CALCULATION ENGINE ====================

class IFTAReportCalculator:
    """
    Fuel tax report and fleet insights for one reporting window.

    Supports:
    - Jurisdiction allocation of miles, fuel and cost
    - Overall fleet mpg (taxed fuel only)
    - Efficiency ranking, price optimization, anomaly flags
    - Next-quarter cost forecast from trailing history
    """

    def __init__(
        self,
        entries: Iterable[FuelEntry],
        window: ReportWindow,
        vehicles: Optional[Iterable[Vehicle]] = None,
        now: Optional[datetime] = None,
        settings: Optional[Settings] = None,
        report_id: Optional[str] = None,
    ):
        self.entries = list(entries)
        self.window = window
        self.vehicles = list(vehicles or [])
        # Entry timestamps are wall-clock, so the reference time is too
        self.now = (now or datetime.now()).replace(tzinfo=None)
        self.report_id = report_id or str(uuid.uuid4())

        settings = settings or Settings()
        self.min_entries = settings.MIN_REPORT_ENTRIES
        self.list_size = settings.INSIGHT_LIST_SIZE
        self.stddevs = settings.ANOMALY_STDDEV_MULTIPLIER
        self.off_hours_start = settings.OFF_HOURS_START
        self.off_hours_end = settings.OFF_HOURS_END
        self.trailing_months = settings.FORECAST_TRAILING_MONTHS
        self.horizon_months = settings.FORECAST_HORIZON_MONTHS

        self.result = IFTAReportResult()

    def calculate(self) -> IFTAReportResult:
        """Run the full pipeline with the report id attached to every log line"""
        set_report_context(report_id=self.report_id)
        try:
            return self._run()
        finally:
            clear_report_context()

    def _run(self) -> IFTAReportResult:
        try:
            self.result.inputs_snapshot = {
                "report_id": self.report_id,
                "entry_count": len(self.entries),
                "vehicle_count": len(self.vehicles),
                "window_start": str(self.window.start),
                "window_end": str(self.window.end),
                "now": self.now.isoformat(),
            }

            filtered = filter_entries(self.entries, self.window)
            self.result.inputs_snapshot["filtered_count"] = len(filtered)

            if len(filtered) < self.min_entries:
                logger.info(
                    f"Insufficient data for {self.window.start} to {self.window.end}: "
                    f"{len(filtered)} qualifying entries"
                )
                self.result.status = ReportStatus.INSUFFICIENT_DATA
                self.result.message = INSUFFICIENT_DATA_MESSAGE
                return self.result

            self._check_vehicle_refs(filtered)

            sequences = group_by_vehicle(filtered)
            allocation = allocate_mileage(sequences)

            self.result.tax_report = assemble_tax_report(
                aggregate_jurisdictions(allocation, filtered),
                overall_mpg(allocation, filtered),
            )

            anomalies = detect_anomalies(
                filtered,
                sequences,
                stddevs=self.stddevs,
                off_hours_start=self.off_hours_start,
                off_hours_end=self.off_hours_end,
            )
            self.result.insights = assemble_insights(
                rank_efficiency(sequences, self.list_size, self._vehicle_labels()),
                optimize_fuel_prices(filtered, self.list_size),
                anomalies,
                forecast_next_quarter(
                    self.entries,
                    now=self.now,
                    trailing_months=self.trailing_months,
                    horizon_months=self.horizon_months,
                ),
            )

            if anomalies.odometer_rollbacks:
                self.result.warnings.append(
                    f"{len(anomalies.odometer_rollbacks)} odometer decrease(s) counted as 0 miles"
                )

            self.result.status = ReportStatus.OK
            logger.info(
                f"IFTA report built: {len(self.result.tax_report.rows)} jurisdictions, "
                f"{allocation.total_miles:,.1f} miles, mpg {self.result.tax_report.mpg:.2f}"
            )

        except Exception as e:
            logger.exception(f"IFTA report calculation error: {e}")
            capture_exception(e, **self.result.inputs_snapshot)
            self.result.status = ReportStatus.ERROR
            self.result.tax_report = None
            self.result.insights = None
            self.result.errors.append(f"Calculation error: {str(e)}")

        return self.result

    def _vehicle_labels(self) -> Dict[str, str]:
        return {vehicle.id: vehicle.display_number for vehicle in self.vehicles}

    def _check_vehicle_refs(self, entries: List[FuelEntry]):
        """Warn about entries whose vehicle is not in the fleet list"""
        if not self.vehicles:
            return

        known = {vehicle.id for vehicle in self.vehicles}
        unknown = sorted({entry.vehicle_ref for entry in entries} - known)
        if unknown:
            self.result.warnings.append(
                f"Entries reference unknown vehicles: {', '.join(unknown)}"
            )


# ==================== HELPER FUNCTIONS ====================

def generate_ifta_report(
    entries: Iterable[FuelEntry],
    window: ReportWindow,
    vehicles: Optional[Iterable[Vehicle]] = None,
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Main entry point for report generation.

    Args:
        entries: Full entry history (filtering happens here)
        window: Reporting window
        vehicles: Fleet vehicles, used for labels and reference checks
        now: Reference time for the forecast (defaults to current time)
        settings: Engine tunables (defaults to Settings() from the environment)

    Returns:
        Report envelope as dict (taxReport / insights in external shape)
    """
    calculator = IFTAReportCalculator(
        entries=entries,
        window=window,
        vehicles=vehicles,
        now=now,
        settings=settings,
    )
    return calculator.calculate().to_dict()
