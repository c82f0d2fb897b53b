from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship

from stocktake.database import Base


class FrozenStockLine(Base):
    """Expected quantity of one product at one location, as of freeze time.

    Written once when the inventory is created and never updated.
    """

    __tablename__ = "frozen_stock_lines"
    __table_args__ = (
        UniqueConstraint(
            "inventory_id", "product_id", "location_id",
            name="uq_frozen_stock_line_inventory_product_location",
        ),
        CheckConstraint("expected_quantity >= 0", name="ck_frozen_stock_lines_expected_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    expected_quantity = Column(Numeric(12, 2), nullable=False)
    unit_cost = Column(Numeric(12, 4), nullable=False, default=0)

    inventory = relationship("Inventory", back_populates="stock_lines")


class FrozenSerialUnit(Base):
    """Expected placement of one serial number, as of freeze time."""

    __tablename__ = "frozen_serial_units"
    __table_args__ = (
        UniqueConstraint("inventory_id", "serial_number", name="uq_frozen_serial_unit_inventory_serial"),
        Index("ix_frozen_serial_units_inventory_location", "inventory_id", "expected_location_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    inventory_id = Column(Integer, ForeignKey("inventories.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    serial_number = Column(String(100), nullable=False)
    expected_location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    expected_present = Column(Boolean, nullable=False, default=True)

    inventory = relationship("Inventory", back_populates="serial_units")
