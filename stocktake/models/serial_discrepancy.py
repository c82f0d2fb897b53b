from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    ForeignKey,
    Text,
    CheckConstraint,
    UniqueConstraint,
    Index,
    func,
)
from stocktake.database import Base


class SerialDiscrepancy(Base):
    __tablename__ = "serial_discrepancies"
    __table_args__ = (
        UniqueConstraint(
            "inventory_id", "serial_number", "discrepancy_type",
            name="uq_serial_discrepancy_inventory_serial_type",
        ),
        CheckConstraint(
            "discrepancy_type IN ('LOCATION_MISMATCH', 'NOT_FOUND', 'UNEXPECTED_FOUND')",
            name="ck_serial_discrepancies_type",
        ),
        CheckConstraint(
            "status IN ('PENDING', 'RESOLVED', 'MIGRATED')",
            name="ck_serial_discrepancies_status",
        ),
        CheckConstraint(
            "count_stage IS NULL OR count_stage IN ('count1', 'count2', 'count3', 'count4')",
            name="ck_serial_discrepancies_count_stage",
        ),
        Index("ix_serial_discrepancies_inventory_type", "inventory_id", "discrepancy_type"),
        Index("ix_serial_discrepancies_inventory_status", "inventory_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False, index=True)
    serial_number = Column(String(100), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    discrepancy_type = Column(String(20), nullable=False)
    expected_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    found_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    found_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    found_at = Column(DateTime, nullable=True)
    count_stage = Column(String(10), nullable=True)
    status = Column(String(10), nullable=False, default="PENDING")
    resolution_notes = Column(Text, nullable=True)
    resolved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    resolved_at = Column(DateTime, nullable=True)
    migrated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)
