from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
    func,
)
from sqlalchemy.orm import relationship

from stocktake.database import Base


class Inventory(Base):
    __tablename__ = "inventories"
    __table_args__ = (
        CheckConstraint(
            "status IN ('open', 'count1_open', 'count1_closed', 'count2_open', 'count2_closed', "
            "'count3_required', 'count3_open', 'count3_closed', 'closed', 'cancelled')",
            name="ck_inventories_status",
        ),
        CheckConstraint(
            "status != 'cancelled' OR cancellation_reason IS NOT NULL",
            name="ck_inventories_cancel_reason",
        ),
        CheckConstraint(
            "erp_migrated = false OR status = 'closed'",
            name="ck_inventories_migrated_only_when_closed",
        ),
        Index("ix_inventories_status_created", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="open")
    cancellation_reason = Column(Text, nullable=True)

    erp_migrated = Column(Boolean, nullable=False, default=False)
    erp_migration_in_progress = Column(Boolean, nullable=False, default=False)
    erp_migrated_at = Column(DateTime, nullable=True)
    erp_migrated_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    frozen_at = Column(DateTime, nullable=True)
    closed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    stock_lines = relationship(
        "FrozenStockLine",
        back_populates="inventory",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    serial_units = relationship(
        "FrozenSerialUnit",
        back_populates="inventory",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
