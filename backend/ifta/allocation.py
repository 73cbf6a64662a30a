"""
IFTA Engine - Mileage Allocator and Aggregator

Mileage is estimated from odometer differences between consecutive fuel
stops of the same vehicle. Each segment is credited to the jurisdiction
the vehicle departed from. Fuel and cost are credited per purchase to the
jurisdiction where the purchase was made.

Clamp policy:
- A later reading lower than the previous one (rollback, odometer swap,
  typo) contributes 0 miles. The signed delta is kept on the segment so
  the anomaly detector can report it.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Sequence

from .models import (
    FuelEntry,
    JurisdictionAllocation,
    MileageAllocation,
    MileageSegment,
)

logger = logging.getLogger(__name__)


# ==================== MILEAGE ALLOCATOR ====================

def build_segments(vehicle_ref: str, sequence: Sequence[FuelEntry]) -> List[MileageSegment]:
    """Segments for every adjacent pair of one vehicle's ordered entries."""
    segments = []
    for previous, current in zip(sequence, sequence[1:]):
        raw_delta = current.odometer_reading - previous.odometer_reading
        segments.append(MileageSegment(
            vehicle_ref=vehicle_ref,
            jurisdiction=previous.jurisdiction_code,
            from_entry_id=previous.id,
            to_entry_id=current.id,
            raw_delta=raw_delta,
            miles=max(raw_delta, 0.0),
        ))
    return segments


def allocate_mileage(sequences: Mapping[str, Sequence[FuelEntry]]) -> MileageAllocation:
    """
    Derive inter-stop distances for every vehicle.

    Args:
        sequences: vehicle_ref -> entries ordered by timestamp

    Returns:
        MileageAllocation with one segment per adjacent pair and the fleet total
    """
    allocation = MileageAllocation()

    for vehicle_ref, sequence in sequences.items():
        segments = build_segments(vehicle_ref, sequence)
        for segment in segments:
            if segment.is_rollback:
                logger.warning(
                    f"Odometer decreased for vehicle {vehicle_ref}: "
                    f"{segment.from_entry_id} -> {segment.to_entry_id} ({segment.raw_delta:,.1f})"
                )
            allocation.total_miles += segment.miles
        allocation.segments.extend(segments)

    return allocation


# ==================== AGGREGATOR ====================

def calculate_mpg(miles: float, gallons: float) -> float:
    """Miles per gallon. Zero gallons gives 0, never an error."""
    if gallons <= 0:
        return 0
    return miles / gallons


def taxed_gallons(entries: Iterable[FuelEntry]) -> float:
    return sum(entry.quantity for entry in entries if entry.is_taxed_fuel)


def aggregate_jurisdictions(
    allocation: MileageAllocation,
    entries: Iterable[FuelEntry],
) -> List[JurisdictionAllocation]:
    """
    Roll up miles, fuel and cost per jurisdiction.

    Miles come from the mileage segments; fuel and cost from every entry,
    all fuel categories pooled. One row per observed jurisdiction, sorted
    by code.
    """
    by_jurisdiction: Dict[str, JurisdictionAllocation] = {}

    def _row(code: str) -> JurisdictionAllocation:
        if code not in by_jurisdiction:
            by_jurisdiction[code] = JurisdictionAllocation(jurisdiction=code)
        return by_jurisdiction[code]

    for segment in allocation.segments:
        _row(segment.jurisdiction).total_miles += segment.miles

    for entry in entries:
        row = _row(entry.jurisdiction_code)
        row.total_fuel += entry.quantity
        row.total_cost += entry.cost

    return [by_jurisdiction[code] for code in sorted(by_jurisdiction)]


def overall_mpg(allocation: MileageAllocation, entries: Iterable[FuelEntry]) -> float:
    """Fleet miles over fleet taxed-fuel gallons."""
    return calculate_mpg(allocation.total_miles, taxed_gallons(entries))


def vehicle_mpg(sequence: Sequence[FuelEntry]) -> float:
    """
    Fuel economy of one vehicle over its ordered entries.

    Uses the same clamp policy as the fleet figure. A single entry has
    no mileage, so its mpg is 0.
    """
    if len(sequence) < 2:
        return 0
    miles = sum(segment.miles for segment in build_segments(sequence[0].vehicle_ref, sequence))
    return calculate_mpg(miles, taxed_gallons(sequence))
