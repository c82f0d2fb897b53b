from sqlalchemy import (
    Column,
    Integer,
    Numeric,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
)
from stocktake.database import Base


class QuantityCount(Base):
    __tablename__ = "quantity_counts"
    __table_args__ = (
        UniqueConstraint("stock_line_id", "stage", name="uq_quantity_count_line_stage"),
        CheckConstraint("stage IN (1, 2, 3, 4)", name="ck_quantity_counts_stage"),
        CheckConstraint("quantity IS NULL OR quantity >= 0", name="ck_quantity_counts_non_negative"),
        CheckConstraint("skipped = true OR quantity IS NOT NULL", name="ck_quantity_counts_value_or_skipped"),
    )

    id = Column(Integer, primary_key=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False, index=True)
    stock_line_id = Column(
        Integer,
        ForeignKey("frozen_stock_lines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stage = Column(Integer, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=True)
    skipped = Column(Boolean, nullable=False, default=False)
    counted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    counted_at = Column(DateTime, nullable=False)


class SerialCount(Base):
    __tablename__ = "serial_counts"
    __table_args__ = (
        UniqueConstraint("serial_unit_id", "stage", name="uq_serial_count_unit_stage"),
        CheckConstraint("stage IN (1, 2, 3, 4)", name="ck_serial_counts_stage"),
    )

    id = Column(Integer, primary_key=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False, index=True)
    serial_unit_id = Column(
        Integer,
        ForeignKey("frozen_serial_units.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    stage = Column(Integer, nullable=False)
    found = Column(Boolean, nullable=False, default=False)
    found_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    skipped = Column(Boolean, nullable=False, default=False)
    counted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    counted_at = Column(DateTime, nullable=False)
