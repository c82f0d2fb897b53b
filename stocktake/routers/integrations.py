from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stocktake.database import get_db
from stocktake.models.user import User
from stocktake.dependencies import get_current_user, get_erp_client
from stocktake.schemas.integration import MigrationResponse, MigrationValidationResponse
from stocktake.services.erp_client import ERPClient
from stocktake.services.migration_service import MigrationService


router = APIRouter(prefix="/integrations", tags=["ERP Integration"])


def get_migration_service(
    db: Session = Depends(get_db),
    erp_client: ERPClient = Depends(get_erp_client),
) -> MigrationService:
    return MigrationService(db, erp_client=erp_client)


@router.get("/erp/inventories/{inventory_id}/validate", response_model=MigrationValidationResponse)
def validate_migration(
    inventory_id: int,
    service: MigrationService = Depends(get_migration_service),
    current_user: User = Depends(get_current_user),
):
    return service.validate(inventory_id, current_user)


# Role eligibility is a migration precondition, checked in order by the service.
@router.post("/erp/inventories/{inventory_id}/migrate", response_model=MigrationResponse)
def migrate_inventory(
    inventory_id: int,
    service: MigrationService = Depends(get_migration_service),
    current_user: User = Depends(get_current_user),
):
    return service.request_migration(inventory_id, current_user)
