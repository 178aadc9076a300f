"""
Trip Input Models
Pydantic V2 validation for trip records handed to the engine.

A record that fails validation (no vehicle reference, unparseable timestamps,
missing odometer readings) is treated as invalid input: the caller skips it
and carries on with the rest of the batch.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class TripRecord(BaseModel):
    """A single trip as supplied by the caller."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    trip_id: str = Field(..., min_length=1, validation_alias=AliasChoices("trip_id", "id"))
    vehicle_id: str = Field(..., min_length=1)
    vehicle_registration: Optional[str] = None
    trip_serial_number: Optional[str] = None
    driver_id: Optional[str] = None

    trip_start_date: datetime
    trip_end_date: datetime

    start_km: float
    end_km: float

    fuel_quantity: Optional[float] = None
    calculated_kmpl: Optional[float] = None

    destinations: List[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def lift_vehicle_registration(cls, data: Any) -> Any:
        # Joined rows carry the registration under vehicles.registration_number
        if isinstance(data, dict) and not data.get("vehicle_registration"):
            vehicle = data.get("vehicles")
            if isinstance(vehicle, dict) and vehicle.get("registration_number"):
                data = {**data, "vehicle_registration": vehicle["registration_number"]}
        return data

    @field_validator("vehicle_id", "trip_id")
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("identifier must not be blank")
        return v

    @field_validator("destinations", mode="before")
    @classmethod
    def none_destinations_to_empty(cls, v: Any) -> Any:
        if v is None:
            return []
        return v

    @model_validator(mode="after")
    def check_timestamp_awareness(self):
        start_aware = self.trip_start_date.tzinfo is not None
        end_aware = self.trip_end_date.tzinfo is not None
        if start_aware != end_aware:
            raise ValueError(
                "trip_start_date and trip_end_date must both be timezone-aware or both naive"
            )
        return self

    @property
    def distance(self) -> float:
        return self.end_km - self.start_km

    @property
    def duration_hours(self) -> float:
        return (self.trip_end_date - self.trip_start_date).total_seconds() / 3600

    @property
    def search_text(self) -> str:
        """Destinations and notes as one lower-cased string for keyword matching."""
        return f"{' '.join(self.destinations)} {self.notes or ''}".lower()

    def trip_details(self) -> dict:
        return {
            "serial": self.trip_serial_number,
            "distance": self.distance,
            "duration_hours": round(self.duration_hours, 2),
            "efficiency": self.calculated_kmpl,
            "destinations": list(self.destinations),
        }


def as_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
