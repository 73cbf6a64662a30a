"""
IFTA Engine - Fleet Insight Analyzers

Independent read-only passes over the filtered entries of a report:
- Efficiency Ranker: best and worst vehicles by mpg
- Price Optimizer: cheapest and most expensive jurisdictions per gallon
- Anomaly Detector: cost outliers, off-hours purchases, odometer rollbacks

None of these mutate their input, so running one twice gives the same result.
"""

import logging
import statistics
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .allocation import build_segments, vehicle_mpg
from .models import (
    AnomalyFlags,
    EfficiencyRanking,
    FuelEntry,
    JurisdictionPrice,
    OdometerRollback,
    PriceOptimization,
    VehicleEfficiency,
)
from .sequencing import group_by_vehicle

logger = logging.getLogger(__name__)


# ==================== DEFAULTS ====================

INSIGHT_LIST_SIZE = 3
COST_OUTLIER_STDDEVS = 2.0
OFF_HOURS_START = 0  # Inclusive hour
OFF_HOURS_END = 4    # Exclusive hour


# ==================== EFFICIENCY RANKER ====================

def rank_efficiency(
    sequences: Mapping[str, Sequence[FuelEntry]],
    limit: int = INSIGHT_LIST_SIZE,
    labels: Optional[Mapping[str, str]] = None,
) -> EfficiencyRanking:
    """
    Rank vehicles by fuel economy.

    Only vehicles with at least two entries and a positive mpg are ranked;
    a vehicle without taxed-fuel gallons has no mpg and is left out.

    Returns:
        top: best first. bottom: worst first.
    """
    labels = labels or {}
    ranked = []
    for vehicle, sequence in sequences.items():
        if len(sequence) < 2:
            continue
        mpg = vehicle_mpg(sequence)
        if mpg > 0:
            ranked.append(VehicleEfficiency(vehicle=vehicle, mpg=mpg, label=labels.get(vehicle)))

    ranked.sort(key=lambda item: item.mpg, reverse=True)

    if limit <= 0:
        return EfficiencyRanking()
    return EfficiencyRanking(top=ranked[:limit], bottom=ranked[-limit:][::-1])


# ==================== PRICE OPTIMIZER ====================

def jurisdiction_prices(entries: Iterable[FuelEntry]) -> List[JurisdictionPrice]:
    """Cost per gallon for each jurisdiction with fuel, cheapest first."""
    totals: Dict[str, Dict[str, float]] = {}
    for entry in entries:
        bucket = totals.setdefault(entry.jurisdiction_code, {"cost": 0.0, "gallons": 0.0})
        bucket["cost"] += entry.cost
        bucket["gallons"] += entry.quantity

    prices = [
        JurisdictionPrice(jurisdiction=code, price_per_gallon=bucket["cost"] / bucket["gallons"])
        for code, bucket in totals.items()
        if bucket["gallons"] > 0
    ]
    prices.sort(key=lambda item: item.price_per_gallon)
    return prices


def optimize_fuel_prices(
    entries: Iterable[FuelEntry],
    limit: int = INSIGHT_LIST_SIZE,
) -> PriceOptimization:
    prices = jurisdiction_prices(entries)
    if limit <= 0:
        return PriceOptimization()
    return PriceOptimization(cheapest=prices[:limit], expensive=prices[-limit:][::-1])


# ==================== ANOMALY DETECTOR ====================

def flag_cost_outliers(
    entries: Sequence[FuelEntry],
    stddevs: float = COST_OUTLIER_STDDEVS,
) -> List[FuelEntry]:
    """
    Entries costing more than mean + stddevs * population stddev.

    Needs at least two entries; otherwise nothing is flagged.
    """
    if len(entries) < 2:
        return []

    costs = [entry.cost for entry in entries]
    mean = statistics.fmean(costs)
    threshold = mean + stddevs * statistics.pstdev(costs, mu=mean)
    return [entry for entry in entries if entry.cost > threshold]


def flag_off_hours(
    entries: Iterable[FuelEntry],
    start_hour: int = OFF_HOURS_START,
    end_hour: int = OFF_HOURS_END,
) -> List[FuelEntry]:
    """Purchases whose recorded hour falls in [start_hour, end_hour)."""
    return [entry for entry in entries if start_hour <= entry.timestamp.hour < end_hour]


def flag_odometer_rollbacks(sequences: Mapping[str, Sequence[FuelEntry]]) -> List[OdometerRollback]:
    """Adjacent pairs where the later odometer reading is lower."""
    rollbacks = []
    for vehicle, sequence in sequences.items():
        for segment in build_segments(vehicle, sequence):
            if segment.is_rollback:
                rollbacks.append(OdometerRollback(
                    vehicle=vehicle,
                    previous_entry_id=segment.from_entry_id,
                    entry_id=segment.to_entry_id,
                    delta=segment.raw_delta,
                ))
    return rollbacks


def detect_anomalies(
    entries: Sequence[FuelEntry],
    sequences: Optional[Mapping[str, Sequence[FuelEntry]]] = None,
    stddevs: float = COST_OUTLIER_STDDEVS,
    off_hours_start: int = OFF_HOURS_START,
    off_hours_end: int = OFF_HOURS_END,
) -> AnomalyFlags:
    """
    Run every anomaly check over the same entries.

    The lists are reported separately; an entry may appear in more than one.
    """
    if sequences is None:
        sequences = group_by_vehicle(entries)

    flags = AnomalyFlags(
        high_cost=flag_cost_outliers(entries, stddevs),
        off_hours=flag_off_hours(entries, off_hours_start, off_hours_end),
        odometer_rollbacks=flag_odometer_rollbacks(sequences),
    )
    logger.debug(
        f"Anomalies: {len(flags.high_cost)} high cost, {len(flags.off_hours)} off hours, "
        f"{len(flags.odometer_rollbacks)} odometer rollbacks"
    )
    return flags
