from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class InventoryCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    location_ids: Optional[List[int]] = None


class InventoryCancelRequest(BaseModel):
    reason: str = Field(..., min_length=3, max_length=500)


class InventoryResponse(BaseModel):
    id: int
    code: str
    description: Optional[str] = None
    status: str
    cancellation_reason: Optional[str] = None
    erp_migrated: bool
    erp_migrated_at: Optional[datetime] = None
    erp_migrated_by: Optional[int] = None
    created_by: Optional[int] = None
    frozen_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InventoryDetailResponse(InventoryResponse):
    stock_line_count: int = 0
    serial_unit_count: int = 0


class InventoryListResponse(BaseModel):
    items: List[InventoryResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class UnresolvedUnit(BaseModel):
    unit_kind: str
    unit_id: int
    label: str


class StageProgress(BaseModel):
    inventory_id: int
    stage: int
    assigned: int
    observed: int
    skipped: int
    pending: int
    unresolved: List[UnresolvedUnit] = Field(default_factory=list)


class StatusTransitionResponse(BaseModel):
    inventory_id: int
    old_status: str
    new_status: str
    message: str
    lines_requiring_count3: int = 0
    serials_requiring_count3: int = 0
