from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from stocktake.repositories.base import BaseRepository
from stocktake.models.reconciliation import LineReconciliation
from stocktake.models.snapshot import FrozenStockLine


class ReconciliationRepository(BaseRepository[LineReconciliation]):

    def __init__(self, db: Session):
        super().__init__(LineReconciliation, db)

    def by_stock_line(self, inventory_id: int) -> Dict[int, LineReconciliation]:
        rows = self.db.query(LineReconciliation).filter(LineReconciliation.inventory_id == inventory_id).all()
        return {row.stock_line_id: row for row in rows}

    def list_with_lines(
        self,
        inventory_id: int,
        divergent_only: bool = False,
        incomplete_only: bool = False,
    ) -> List[tuple]:
        q = (
            self.db.query(FrozenStockLine, LineReconciliation)
            .outerjoin(LineReconciliation, LineReconciliation.stock_line_id == FrozenStockLine.id)
            .filter(FrozenStockLine.inventory_id == inventory_id)
        )
        if divergent_only:
            q = q.filter(LineReconciliation.is_divergent.is_(True))
        if incomplete_only:
            q = q.filter(LineReconciliation.is_incomplete.is_(True))
        return q.order_by(FrozenStockLine.id).all()

    def get_for_line(self, stock_line_id: int) -> Optional[LineReconciliation]:
        return (
            self.db.query(LineReconciliation)
            .filter(LineReconciliation.stock_line_id == stock_line_id)
            .first()
        )
