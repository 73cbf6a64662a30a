"""
IFTA Engine - Entry Filter and Per-Truck Sequencer

Selects the entries that take part in a report and orders them per vehicle.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import FuelEntry, ReportWindow

logger = logging.getLogger(__name__)


def active_entries(entries: Iterable[FuelEntry]) -> List[FuelEntry]:
    """Entries not marked as excluded, in input order."""
    return [entry for entry in entries if not entry.excluded]


def filter_entries(entries: Iterable[FuelEntry], window: ReportWindow) -> List[FuelEntry]:
    """
    Select active entries inside the reporting window.

    Both boundaries are inclusive; the end date covers the whole day.
    The input is left untouched and input order is preserved.
    """
    selected = [entry for entry in active_entries(entries) if window.contains(entry.timestamp)]
    logger.debug(
        f"Filtered {len(selected)} entries for window {window.start} to {window.end}"
    )
    return selected


def entries_between(
    entries: Iterable[FuelEntry],
    start: datetime,
    end: Optional[datetime] = None,
) -> List[FuelEntry]:
    """Active entries with start <= timestamp (<= end when given)."""
    return [
        entry for entry in active_entries(entries)
        if entry.timestamp >= start and (end is None or entry.timestamp <= end)
    ]


def sort_chronologically(entries: Iterable[FuelEntry]) -> List[FuelEntry]:
    # sorted() is stable, so equal timestamps keep their input order
    return sorted(entries, key=lambda entry: entry.timestamp)


def group_by_vehicle(entries: Iterable[FuelEntry]) -> Dict[str, List[FuelEntry]]:
    """
    Group entries by vehicle_ref, each group ordered by timestamp.

    Returns:
        Mapping of vehicle_ref to its chronological entry sequence
    """
    grouped: Dict[str, List[FuelEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.vehicle_ref, []).append(entry)

    return {vehicle: sort_chronologically(group) for vehicle, group in grouped.items()}
