from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal


class CountSubmission(BaseModel):
    """A counter's reading for one unit and one stage.

    Exactly one target: ``stock_line_id`` for quantity lines, or
    ``serial_unit_id`` / ``serial_number`` for serial units.
    """

    stage: int = Field(..., ge=1, le=4)
    stock_line_id: Optional[int] = None
    serial_unit_id: Optional[int] = None
    serial_number: Optional[str] = Field(None, max_length=100)
    quantity: Optional[Decimal] = None
    found: Optional[bool] = None
    found_location_id: Optional[int] = None
    skipped: bool = False
    counted_at: Optional[datetime] = None

    @model_validator(mode="after")
    def validate_target(self):
        targets = [
            self.stock_line_id is not None,
            self.serial_unit_id is not None or self.serial_number is not None,
        ]
        if sum(targets) != 1:
            raise ValueError("Provide either stock_line_id or serial_unit_id/serial_number.")
        return self

    @property
    def is_serial(self) -> bool:
        return self.stock_line_id is None


class CountObservationResponse(BaseModel):
    inventory_id: int
    unit_kind: str
    unit_id: int
    stage: int
    quantity: Optional[Decimal] = None
    found: Optional[bool] = None
    found_location_id: Optional[int] = None
    skipped: bool = False
    counted_by: Optional[int] = None
    counted_at: datetime
    applied: bool = True
