"""
IFTA Engine - Domain Models

Value types and result shapes for the fleet fuel reporting engine:
- FuelEntry: A single fuel purchase (immutable)
- Vehicle: Fleet vehicle used to label outputs
- ReportWindow: Inclusive reporting date range
- JurisdictionAllocation: Per-jurisdiction accumulator (rebuilt per report)
- MileageSegment / MileageAllocation: Odometer deltas between stops
- Insight models: efficiency, pricing, anomaly flags
- TaxReport / FleetInsights / IFTAReportResult: Assembled outputs

All derived models are transient. Nothing here is persisted.
"""

from calendar import monthrange
from datetime import datetime, date, time, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ==================== ENUMS ====================

class FuelCategory(str, Enum):
    """Fuel category of a purchase. Only TAXED_FUEL counts toward mpg."""
    TAXED_FUEL = "taxed_fuel"    # Diesel
    EXEMPT_FUEL = "exempt_fuel"  # DEF
    OTHER = "other"              # Custom, see fuel_category_label


# Fuel type strings used by the mobile app records
FUEL_TYPE_CATEGORIES = {
    "diesel": FuelCategory.TAXED_FUEL,
    "def": FuelCategory.EXEMPT_FUEL,
    "custom": FuelCategory.OTHER,
}


class ReportStatus(str, Enum):
    """Outcome of a report run"""
    OK = "ok"
    INSUFFICIENT_DATA = "insufficient_data"
    ERROR = "error"


# ==================== INPUT MODELS ====================

class FuelEntry(BaseModel):
    """A recorded fuel purchase. Produced externally, never mutated."""
    model_config = ConfigDict(frozen=True)

    id: str
    vehicle_ref: str
    timestamp: datetime  # Wall-clock, as recorded
    odometer_reading: float = Field(default=0, ge=0)
    jurisdiction_code: str
    fuel_category: FuelCategory = FuelCategory.TAXED_FUEL
    fuel_category_label: Optional[str] = None  # Only meaningful for OTHER
    quantity: float = Field(default=0, ge=0)  # Gallons
    cost: float = Field(default=0, ge=0)
    excluded: bool = False

    # Descriptive fields carried through to transaction exports
    city: Optional[str] = None
    receipt_url: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def drop_label_for_known_categories(cls, data: Any) -> Any:
        if isinstance(data, dict):
            category = data.get("fuel_category", FuelCategory.TAXED_FUEL)
            if category != FuelCategory.OTHER:
                data = {**data, "fuel_category_label": None}
        return data

    @field_validator("jurisdiction_code")
    @classmethod
    def normalise_jurisdiction(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("timestamp")
    @classmethod
    def keep_wall_clock(cls, value: datetime) -> datetime:
        # Offsets are dropped, not converted: the recorded local time is what counts
        return value.replace(tzinfo=None)

    @property
    def is_taxed_fuel(self) -> bool:
        return self.fuel_category == FuelCategory.TAXED_FUEL

    @property
    def display_fuel_type(self) -> str:
        if self.fuel_category == FuelCategory.OTHER and self.fuel_category_label:
            return self.fuel_category_label
        return self.fuel_category.value

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "FuelEntry":
        """
        Build an entry from a mobile app record.

        Expected keys: id, truckNumber, dateTime, odometer, state, fuelType,
        customFuelType, amount, cost, isIgnored, city, receiptUrl.
        Unknown fuel types are treated as custom fuel.
        """
        fuel_type = str(record.get("fuelType") or "diesel").lower()
        category = FUEL_TYPE_CATEGORIES.get(fuel_type, FuelCategory.OTHER)
        label = record.get("customFuelType")
        if category == FuelCategory.OTHER and not label and fuel_type not in FUEL_TYPE_CATEGORIES:
            label = record.get("fuelType")

        return cls(
            id=str(record["id"]),
            vehicle_ref=str(record["truckNumber"]),
            timestamp=record["dateTime"],
            odometer_reading=float(record.get("odometer") or 0),
            jurisdiction_code=str(record["state"]),
            fuel_category=category,
            fuel_category_label=label,
            quantity=float(record.get("amount") or 0),
            cost=float(record.get("cost") or 0),
            excluded=record.get("isIgnored") or False,
            city=record.get("city"),
            receipt_url=record.get("receiptUrl"),
        )


class Vehicle(BaseModel):
    """Fleet vehicle. Entries reference it by vehicle_ref == id."""
    model_config = ConfigDict(frozen=True)

    id: str
    display_number: str
    make_model: Optional[str] = None


class ReportWindow(BaseModel):
    """Inclusive reporting window. The end date extends to end of day."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self) -> "ReportWindow":
        if self.end < self.start:
            raise ValueError(f"Window end {self.end} is before start {self.start}")
        return self

    @property
    def start_at(self) -> datetime:
        return datetime.combine(self.start, time.min)

    @property
    def end_at(self) -> datetime:
        return datetime.combine(self.end, time.max)

    def contains(self, moment: datetime) -> bool:
        return self.start_at <= moment <= self.end_at

    @classmethod
    def for_quarter(cls, year: int, quarter: int) -> "ReportWindow":
        """Calendar quarter window (Q1 = Jan-Mar)."""
        if quarter not in (1, 2, 3, 4):
            raise ValueError(f"Quarter must be 1-4, got {quarter}")
        first_month = (quarter - 1) * 3 + 1
        last_month = first_month + 2
        return cls(
            start=date(year, first_month, 1),
            end=date(year, last_month, monthrange(year, last_month)[1]),
        )


# ==================== ACCUMULATORS ====================

class JurisdictionAllocation(BaseModel):
    """Per-jurisdiction totals. One instance per code, per report run."""
    jurisdiction: str
    total_miles: float = 0
    total_fuel: float = 0
    total_cost: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jurisdiction": self.jurisdiction,
            "totalMiles": self.total_miles,
            "totalFuel": self.total_fuel,
            "totalCost": self.total_cost,
        }


class MileageSegment(BaseModel):
    """Distance between two consecutive stops of one vehicle"""
    vehicle_ref: str
    jurisdiction: str  # Jurisdiction of departure
    from_entry_id: str
    to_entry_id: str
    raw_delta: float  # Signed odometer difference
    miles: float      # max(raw_delta, 0)

    @property
    def is_rollback(self) -> bool:
        return self.raw_delta < 0


class MileageAllocation(BaseModel):
    """All segments for a report run plus the fleet-wide mileage"""
    segments: List[MileageSegment] = Field(default_factory=list)
    total_miles: float = 0


# ==================== INSIGHT MODELS ====================

class VehicleEfficiency(BaseModel):
    vehicle: str
    mpg: float
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"vehicle": self.vehicle, "mpg": self.mpg}
        if self.label is not None:
            data["label"] = self.label
        return data


class EfficiencyRanking(BaseModel):
    top: List[VehicleEfficiency] = Field(default_factory=list)
    bottom: List[VehicleEfficiency] = Field(default_factory=list)


class JurisdictionPrice(BaseModel):
    jurisdiction: str
    price_per_gallon: float

    def to_dict(self) -> Dict[str, Any]:
        return {"jurisdiction": self.jurisdiction, "pricePerGallon": self.price_per_gallon}


class PriceOptimization(BaseModel):
    cheapest: List[JurisdictionPrice] = Field(default_factory=list)
    expensive: List[JurisdictionPrice] = Field(default_factory=list)


class OdometerRollback(BaseModel):
    """A later reading lower than the one before it"""
    vehicle: str
    previous_entry_id: str
    entry_id: str
    delta: float  # Negative

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vehicle": self.vehicle,
            "previousEntry": self.previous_entry_id,
            "entry": self.entry_id,
            "delta": self.delta,
        }


class AnomalyFlags(BaseModel):
    """Flag lists are independent and may share entries"""
    high_cost: List[FuelEntry] = Field(default_factory=list)
    off_hours: List[FuelEntry] = Field(default_factory=list)
    odometer_rollbacks: List[OdometerRollback] = Field(default_factory=list)


class FleetInsights(BaseModel):
    efficiency: EfficiencyRanking = Field(default_factory=EfficiencyRanking)
    cost_optimization: PriceOptimization = Field(default_factory=PriceOptimization)
    anomalies: AnomalyFlags = Field(default_factory=AnomalyFlags)
    forecast: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "efficiency": {
                "top": [v.to_dict() for v in self.efficiency.top],
                "bottom": [v.to_dict() for v in self.efficiency.bottom],
            },
            "costOptimization": {
                "cheapest": [p.to_dict() for p in self.cost_optimization.cheapest],
                "expensive": [p.to_dict() for p in self.cost_optimization.expensive],
            },
            "anomalies": {
                "highCost": [e.id for e in self.anomalies.high_cost],
                "offHours": [e.id for e in self.anomalies.off_hours],
                "odometerRollbacks": [r.to_dict() for r in self.anomalies.odometer_rollbacks],
            },
            "forecast": self.forecast,
        }


# ==================== REPORT MODELS ====================

class TaxReport(BaseModel):
    """Jurisdiction allocation table plus overall fleet mpg"""
    rows: List[JurisdictionAllocation] = Field(default_factory=list)
    mpg: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"rows": [row.to_dict() for row in self.rows], "mpg": self.mpg}


class IFTAReportResult(BaseModel):
    """Complete result of a report run"""
    status: ReportStatus = ReportStatus.OK
    message: Optional[str] = None

    tax_report: Optional[TaxReport] = None
    insights: Optional[FleetInsights] = None

    # Validation
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    # Audit trail
    calculation_date: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    inputs_snapshot: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.status == ReportStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "message": self.message,
            "taxReport": self.tax_report.to_dict() if self.tax_report else None,
            "insights": self.insights.to_dict() if self.insights else None,
            "warnings": self.warnings,
            "errors": self.errors,
            "calculationDate": self.calculation_date,
            "inputsSnapshot": self.inputs_snapshot,
        }
