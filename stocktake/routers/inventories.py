"""
Inventory Router — Thin Controller (SRP / DIP)
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from stocktake.database import get_db
from stocktake.models.user import User
from stocktake.schemas.inventory import (
    InventoryCreate,
    InventoryCancelRequest,
    InventoryDetailResponse,
    InventoryListResponse,
    StageProgress,
    StatusTransitionResponse,
)
from stocktake.schemas.count import CountSubmission, CountObservationResponse
from stocktake.schemas.reconciliation import ReconciliationSummary
from stocktake.dependencies import get_current_user, require_roles
from stocktake.services.inventory_service import InventoryService
from stocktake.services.counting_service import CountingService
from stocktake.services.reconciliation_service import ReconciliationService

router = APIRouter(prefix="/inventories", tags=["Inventories"])

SUPERVISOR_ROLES = ["admin", "manager", "supervisor"]
COUNTER_ROLES = ["admin", "manager", "supervisor", "counter"]


def get_inventory_service(db: Session = Depends(get_db)) -> InventoryService:
    return InventoryService(db)


def get_counting_service(db: Session = Depends(get_db)) -> CountingService:
    return CountingService(db)


def get_reconciliation_service(db: Session = Depends(get_db)) -> ReconciliationService:
    return ReconciliationService(db)


@router.post("", response_model=InventoryDetailResponse, status_code=status.HTTP_201_CREATED)
def create_inventory(
    data: InventoryCreate,
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_roles(SUPERVISOR_ROLES)),
):
    return service.create_inventory(data, current_user.id)


@router.get("", response_model=InventoryListResponse)
def list_inventories(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[str] = None,
    service: InventoryService = Depends(get_inventory_service),
    _: User = Depends(get_current_user),
):
    return service.list_inventories(page=page, page_size=page_size, status=status)


@router.get("/{inventory_id}", response_model=InventoryDetailResponse)
def get_inventory(
    inventory_id: int,
    service: InventoryService = Depends(get_inventory_service),
    _: User = Depends(get_current_user),
):
    return service.get_inventory_detail(inventory_id)


@router.post("/{inventory_id}/start-count", response_model=StatusTransitionResponse)
def start_count(
    inventory_id: int,
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_roles(SUPERVISOR_ROLES)),
):
    return service.start_count(inventory_id, current_user.id)


@router.post("/{inventory_id}/stages/{stage}/close", response_model=StatusTransitionResponse)
def close_stage(
    inventory_id: int,
    stage: int,
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_roles(SUPERVISOR_ROLES)),
):
    return service.close_stage(inventory_id, stage, current_user.id)


@router.get("/{inventory_id}/stages/{stage}/progress", response_model=StageProgress)
def stage_progress(
    inventory_id: int,
    stage: int,
    service: InventoryService = Depends(get_inventory_service),
    _: User = Depends(get_current_user),
):
    return service.get_stage_progress(inventory_id, stage)


@router.post("/{inventory_id}/close", response_model=StatusTransitionResponse)
def close_inventory(
    inventory_id: int,
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_roles(SUPERVISOR_ROLES)),
):
    return service.close_inventory(inventory_id, current_user.id)


@router.post("/{inventory_id}/cancel", response_model=StatusTransitionResponse)
def cancel_inventory(
    inventory_id: int,
    data: InventoryCancelRequest,
    service: InventoryService = Depends(get_inventory_service),
    current_user: User = Depends(require_roles(SUPERVISOR_ROLES)),
):
    return service.cancel_inventory(inventory_id, data.reason, current_user.id)


@router.post("/{inventory_id}/counts", response_model=CountObservationResponse)
def submit_count(
    inventory_id: int,
    data: CountSubmission,
    service: CountingService = Depends(get_counting_service),
    current_user: User = Depends(require_roles(COUNTER_ROLES)),
):
    return service.submit(inventory_id, data, current_user.id)


@router.get("/{inventory_id}/reconciliation", response_model=ReconciliationSummary)
def get_reconciliation(
    inventory_id: int,
    divergent_only: bool = False,
    incomplete_only: bool = False,
    service: ReconciliationService = Depends(get_reconciliation_service),
    _: User = Depends(get_current_user),
):
    return service.get_summary(inventory_id, divergent_only=divergent_only, incomplete_only=incomplete_only)
