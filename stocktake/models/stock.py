from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    UniqueConstraint,
    Index,
    func,
)
from stocktake.database import Base


class StockBalance(Base):
    """Live on-hand quantity per product and location; source of the freeze."""

    __tablename__ = "stock_balances"
    __table_args__ = (
        UniqueConstraint("product_id", "location_id", name="uq_stock_balance_product_location"),
        CheckConstraint("on_hand_qty >= 0", name="ck_stock_balances_on_hand_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    on_hand_qty = Column(Numeric(12, 2), nullable=False, default=0)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())


class SerialAsset(Base):
    """Live serial register: last recorded placement of each physical unit."""

    __tablename__ = "serial_assets"
    __table_args__ = (
        Index("ix_serial_assets_product_location", "product_id", "location_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    serial_number = Column(String(100), unique=True, nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False, index=True)
    is_present = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())
