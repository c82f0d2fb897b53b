import json
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from stocktake.repositories.base import BaseRepository
from stocktake.models.audit_log import AuditLog


class AuditLogRepository(BaseRepository[AuditLog]):

    def __init__(self, db: Session):
        super().__init__(AuditLog, db)

    def record(
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: Any,
        user_id: Optional[int] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """Stage an audit row in the caller's transaction (flush, no commit)."""
        entry = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            old_values=json.dumps(old_values, default=str) if old_values is not None else None,
            new_values=json.dumps(new_values, default=str) if new_values is not None else None,
            metadata_json=json.dumps(metadata, default=str) if metadata is not None else None,
        )
        return self.create(entry, commit=False)

    def list_for_entity(self, entity_type: str, entity_id: Any, action: Optional[str] = None) -> List[AuditLog]:
        q = self.db.query(AuditLog).filter(
            AuditLog.entity_type == entity_type,
            AuditLog.entity_id == str(entity_id),
        )
        if action:
            q = q.filter(AuditLog.action == action)
        return q.order_by(AuditLog.id).all()
