"""
IFTA Engine - Forecaster and Period Metrics

Cost projection from a trailing window of fuel history, independent of the
report window, plus the month-level figures shown on the fleet dashboard:
- forecast_next_quarter: average monthly cost over the last 6 months x 3
- monthly_cost_trend: cost per calendar month, oldest first
- period_metrics / compare_months: miles, expenses, gallons, mpg this month
  against last month

Month arithmetic uses calendar months (dateutil relativedelta), so
"6 months before 31 August" is 28/29 February.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from dateutil.relativedelta import relativedelta

from .allocation import allocate_mileage, calculate_mpg, taxed_gallons
from .models import FuelEntry
from .sequencing import active_entries, entries_between, group_by_vehicle

logger = logging.getLogger(__name__)


# ==================== DEFAULTS ====================

FORECAST_TRAILING_MONTHS = 6
FORECAST_HORIZON_MONTHS = 3  # Next quarter


# ==================== FORECASTER ====================

def _wall_clock(now: Optional[datetime]) -> datetime:
    # Entry timestamps carry no offset, so comparisons need a naive reference time
    return (now or datetime.now()).replace(tzinfo=None)


def forecast_next_quarter(
    entries: Iterable[FuelEntry],
    now: Optional[datetime] = None,
    trailing_months: int = FORECAST_TRAILING_MONTHS,
    horizon_months: int = FORECAST_HORIZON_MONTHS,
) -> float:
    """
    Project fuel cost for the next period.

    Takes the full entry history (excluded entries are skipped), sums the
    cost of entries recorded in the trailing window ending at `now`, and
    scales the monthly average to the horizon. An empty window gives 0.
    """
    now = _wall_clock(now)
    if trailing_months <= 0:
        return 0

    window_start = now - relativedelta(months=trailing_months)
    trailing = entries_between(entries, window_start, now)
    if not trailing:
        return 0

    total_cost = sum(entry.cost for entry in trailing)
    forecast = total_cost / trailing_months * horizon_months
    logger.debug(
        f"Forecast from {len(trailing)} entries since {window_start:%Y-%m-%d}: {forecast:.2f}"
    )
    return forecast


@dataclass
class MonthlyCost:
    """Total fuel cost for one calendar month"""
    month: str   # YYYY-MM
    label: str   # Short month name
    cost: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def monthly_cost_trend(
    entries: Iterable[FuelEntry],
    now: Optional[datetime] = None,
    months: int = FORECAST_TRAILING_MONTHS,
) -> List[MonthlyCost]:
    """Cost per calendar month for the last `months` months including the current one."""
    now = _wall_clock(now)
    active = active_entries(entries)

    trend = []
    for offset in range(months - 1, -1, -1):
        month_start = (now - relativedelta(months=offset)).replace(
            day=1, hour=0, minute=0, second=0, microsecond=0
        )
        cost = sum(
            entry.cost for entry in active
            if (entry.timestamp.year, entry.timestamp.month) == (month_start.year, month_start.month)
        )
        trend.append(MonthlyCost(
            month=month_start.strftime("%Y-%m"),
            label=month_start.strftime("%b"),
            cost=cost,
        ))
    return trend


# ==================== PERIOD METRICS ====================

@dataclass
class PeriodMetrics:
    """Fleet totals for an arbitrary set of entries"""
    miles: float = 0
    expenses: float = 0
    gallons: float = 0  # Taxed fuel only
    mpg: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MonthComparison:
    """Current month against the previous one"""
    current: PeriodMetrics
    previous: PeriodMetrics
    change_pct: Dict[str, Optional[float]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current.to_dict(),
            "previous": self.previous.to_dict(),
            "change_pct": self.change_pct,
        }


def period_metrics(entries: Iterable[FuelEntry]) -> PeriodMetrics:
    """
    Miles, expenses, taxed gallons and mpg for the given entries.

    Miles follow the report clamp policy: per-vehicle positive odometer
    deltas only.
    """
    entries = list(entries)
    if not entries:
        return PeriodMetrics()

    miles = allocate_mileage(group_by_vehicle(entries)).total_miles
    gallons = taxed_gallons(entries)
    return PeriodMetrics(
        miles=miles,
        expenses=sum(entry.cost for entry in entries),
        gallons=gallons,
        mpg=calculate_mpg(miles, gallons),
    )


def percent_change(current: float, previous: float) -> Optional[float]:
    """Relative change in percent, None when there is no previous value."""
    if previous == 0:
        return None
    return (current - previous) / previous * 100


def compare_months(entries: Iterable[FuelEntry], now: Optional[datetime] = None) -> MonthComparison:
    now = _wall_clock(now)
    current_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    previous_start = current_start - relativedelta(months=1)

    active = active_entries(entries)
    current = period_metrics(e for e in active if e.timestamp >= current_start)
    previous = period_metrics(
        e for e in active if previous_start <= e.timestamp < current_start
    )

    return MonthComparison(
        current=current,
        previous=previous,
        change_pct={
            field: percent_change(getattr(current, field), getattr(previous, field))
            for field in ("miles", "expenses", "gallons", "mpg")
        },
    )
