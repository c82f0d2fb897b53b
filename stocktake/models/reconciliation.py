from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    func,
)
from stocktake.database import Base


class LineReconciliation(Base):
    """Materialized result of the three-count rule for one frozen stock line."""

    __tablename__ = "line_reconciliations"
    __table_args__ = (
        CheckConstraint(
            "stage_used IS NULL OR stage_used IN ('stock', 'count2', 'count3', 'count4')",
            name="ck_line_reconciliations_stage_used",
        ),
        CheckConstraint(
            "is_incomplete = false OR final_quantity IS NULL",
            name="ck_line_reconciliations_incomplete_has_no_final",
        ),
        Index("ix_line_reconciliations_inventory_divergent", "inventory_id", "is_divergent"),
    )

    id = Column(Integer, primary_key=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False, index=True)
    stock_line_id = Column(
        Integer,
        ForeignKey("frozen_stock_lines.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    final_quantity = Column(Numeric(12, 2), nullable=True)
    is_divergent = Column(Boolean, nullable=False, default=False)
    is_incomplete = Column(Boolean, nullable=False, default=True)
    stage_used = Column(String(10), nullable=True)
    divergence_quantity = Column(Numeric(12, 2), nullable=True)
    divergence_percent = Column(Numeric(10, 2), nullable=True)
    computed_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
