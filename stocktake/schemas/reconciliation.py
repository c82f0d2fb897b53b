from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class LineReconciliationView(BaseModel):
    stock_line_id: int
    product_id: int
    location_id: int
    expected_quantity: Decimal
    count1: Optional[Decimal] = None
    count2: Optional[Decimal] = None
    count3: Optional[Decimal] = None
    count4: Optional[Decimal] = None
    final_quantity: Optional[Decimal] = None
    is_divergent: bool = False
    is_incomplete: bool = True
    stage_used: Optional[str] = None
    divergence_quantity: Optional[Decimal] = None
    divergence_percent: Optional[Decimal] = None
    computed_at: Optional[datetime] = None


class ReconciliationSummary(BaseModel):
    inventory_id: int
    total_lines: int
    divergent_lines: int
    incomplete_lines: int
    items: List[LineReconciliationView]
