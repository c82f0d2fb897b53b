from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from decimal import Decimal


class ERPStockUpdateItem(BaseModel):
    """One record of the adjustment batch, in the ERP's field names."""

    model_config = ConfigDict(populate_by_name=True)

    product_code: str = Field(..., alias="productCode")
    location_id: int = Field(..., alias="locationId")
    final_quantity: float = Field(..., alias="finalQuantity")
    inventory_code: str = Field(..., alias="inventoryCode")


class AdjustmentItem(BaseModel):
    stock_line_id: int
    product_id: int
    sku: str
    location_id: int
    expected_quantity: Decimal
    final_quantity: Decimal
    quantity_delta: Decimal
    unit_cost: Decimal
    value_delta: Decimal


class MigrationValidationResponse(BaseModel):
    inventory_id: int
    can_migrate: bool
    reason: Optional[str] = None
    items_to_migrate: int = 0
    total_adjustment_value: Decimal = Decimal("0")


class MigrationResponse(BaseModel):
    success: bool
    inventory_id: int
    adjustment_count: int
    total_adjustment_value: Decimal = Decimal("0")
    message: str
    items: List[AdjustmentItem] = Field(default_factory=list)
