from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class SerialDiscrepancyView(BaseModel):
    id: int
    inventory_id: int
    serial_number: str
    product_id: int
    discrepancy_type: str
    expected_location_id: Optional[int] = None
    found_location_id: Optional[int] = None
    found_by: Optional[int] = None
    found_at: Optional[datetime] = None
    count_stage: Optional[str] = None
    status: str
    resolution_notes: Optional[str] = None
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    migrated_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SerialDiscrepancyListResponse(BaseModel):
    items: List[SerialDiscrepancyView]
    total: int
    page: int
    page_size: int
    total_pages: int


class DiscrepancyStatusCounts(BaseModel):
    pending: int = 0
    resolved: int = 0
    migrated: int = 0


class SerialDiscrepancySummary(BaseModel):
    inventory_id: int
    total_discrepancies: int = 0
    location_mismatches: int = 0
    not_found: int = 0
    unexpected_found: int = 0
    by_status: DiscrepancyStatusCounts = Field(default_factory=DiscrepancyStatusCounts)


class DiscrepancyProcessResponse(BaseModel):
    success: bool = True
    message: str
    summary: SerialDiscrepancySummary
    items: List[SerialDiscrepancyView]


class DiscrepancyResolveRequest(BaseModel):
    resolution_notes: Optional[str] = Field(None, max_length=1000)
