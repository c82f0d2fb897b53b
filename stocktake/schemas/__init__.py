from stocktake.schemas.inventory import (
    InventoryCreate,
    InventoryCancelRequest,
    InventoryResponse,
    InventoryDetailResponse,
    InventoryListResponse,
    UnresolvedUnit,
    StageProgress,
    StatusTransitionResponse,
)
from stocktake.schemas.count import CountSubmission, CountObservationResponse
from stocktake.schemas.reconciliation import LineReconciliationView, ReconciliationSummary
from stocktake.schemas.serial_discrepancy import (
    SerialDiscrepancyView,
    SerialDiscrepancyListResponse,
    SerialDiscrepancySummary,
    DiscrepancyProcessResponse,
    DiscrepancyResolveRequest,
)
from stocktake.schemas.integration import (
    ERPStockUpdateItem,
    AdjustmentItem,
    MigrationValidationResponse,
    MigrationResponse,
)
