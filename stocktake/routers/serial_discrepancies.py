"""
Serial Discrepancy Router — Thin Controller (SRP / DIP)
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from stocktake.database import get_db
from stocktake.models.user import User
from stocktake.schemas.serial_discrepancy import (
    DiscrepancyProcessResponse,
    DiscrepancyResolveRequest,
    SerialDiscrepancyListResponse,
    SerialDiscrepancySummary,
    SerialDiscrepancyView,
)
from stocktake.dependencies import get_current_user, require_roles
from stocktake.services.discrepancy_service import DiscrepancyService

router = APIRouter(tags=["Serial Discrepancies"])

SUPERVISOR_ROLES = ["admin", "manager", "supervisor"]


def get_discrepancy_service(db: Session = Depends(get_db)) -> DiscrepancyService:
    return DiscrepancyService(db)


@router.post(
    "/inventories/{inventory_id}/serial-discrepancies/process",
    response_model=DiscrepancyProcessResponse,
)
def process_discrepancies(
    inventory_id: int,
    service: DiscrepancyService = Depends(get_discrepancy_service),
    current_user: User = Depends(require_roles(SUPERVISOR_ROLES)),
):
    return service.process(inventory_id, current_user.id)


@router.get(
    "/inventories/{inventory_id}/serial-discrepancies",
    response_model=SerialDiscrepancyListResponse,
)
def list_discrepancies(
    inventory_id: int,
    discrepancy_type: Optional[str] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    service: DiscrepancyService = Depends(get_discrepancy_service),
    _: User = Depends(get_current_user),
):
    return service.list_discrepancies(
        inventory_id, discrepancy_type=discrepancy_type, status=status, page=page, page_size=page_size,
    )


@router.get(
    "/inventories/{inventory_id}/serial-discrepancies/summary",
    response_model=SerialDiscrepancySummary,
)
def discrepancy_summary(
    inventory_id: int,
    service: DiscrepancyService = Depends(get_discrepancy_service),
    _: User = Depends(get_current_user),
):
    return service.get_summary(inventory_id)


@router.post("/serial-discrepancies/{discrepancy_id}/resolve", response_model=SerialDiscrepancyView)
def resolve_discrepancy(
    discrepancy_id: int,
    data: DiscrepancyResolveRequest,
    service: DiscrepancyService = Depends(get_discrepancy_service),
    current_user: User = Depends(require_roles(SUPERVISOR_ROLES)),
):
    return service.resolve(discrepancy_id, data.resolution_notes, current_user.id)
