"""
Domain Exceptions

Services raise these; the global handler in ``stocktake.main`` turns them
into structured JSON responses, so routers never catch them.
"""
from typing import Any, List, Optional

from fastapi import HTTPException, status


class StockTakeException(Exception):
    code = "STOCKTAKE_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class EntityNotFoundException(StockTakeException):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} with id {entity_id} not found.")
        self.entity = entity
        self.entity_id = entity_id


class ValidationException(StockTakeException):
    """Bad input: rejected synchronously, never persisted."""

    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST


class StateTransitionException(StockTakeException):
    """Operation illegal in the current lifecycle state.

    ``details`` enumerates the blocking conditions (e.g. the units still
    missing an observation for the stage being closed).
    """

    code = "STATE_ERROR"
    status_code = status.HTTP_409_CONFLICT


class PermissionDeniedException(StockTakeException):
    code = "PERMISSION_DENIED"
    status_code = status.HTTP_403_FORBIDDEN


class ExternalServiceException(StockTakeException):
    """An external collaborator (ERP) was unreachable or rejected the call."""

    code = "EXTERNAL_FAILURE"
    status_code = status.HTTP_502_BAD_GATEWAY


def to_http_exception(exc: StockTakeException) -> HTTPException:
    detail = {"code": exc.code, "message": exc.message}
    if exc.details:
        detail["details"] = exc.details
    return HTTPException(status_code=exc.status_code, detail=detail)
