"""
FastAPI dependencies shared by the routers.

There is no authentication layer: the caller names itself with the
``X-User-Id`` header and is looked up among the active users.
"""
from typing import Callable, List, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from stocktake.core.exceptions import PermissionDeniedException, to_http_exception
from stocktake.database import get_db
from stocktake.models.user import User
from stocktake.repositories.user_repository import UserRepository
from stocktake.services.erp_client import ERPClient


def get_current_user(
    x_user_id: Optional[int] = Header(None, alias="X-User-Id"),
    db: Session = Depends(get_db),
) -> User:
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "UNAUTHENTICATED", "message": "X-User-Id header is required."},
        )
    user = UserRepository(db).get_active(x_user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "UNAUTHENTICATED", "message": f"Unknown or inactive user {x_user_id}."},
        )
    return user


def require_roles(roles: List[str]) -> Callable[..., User]:
    def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise to_http_exception(PermissionDeniedException(
                f"Role '{user.role}' is not allowed here.",
                details=[{"allowed_roles": roles}],
            ))
        return user
    return _checker


def get_erp_client() -> ERPClient:
    return ERPClient()
