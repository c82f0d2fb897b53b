from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Boolean,
    DateTime,
    CheckConstraint,
    func,
)
from stocktake.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("unit_cost >= 0", name="ck_products_unit_cost_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    # Fixed at catalog time: serialized products are counted by presence only.
    has_serial_control = Column(Boolean, nullable=False, default=False)
    unit_cost = Column(Numeric(12, 4), nullable=False, default=0)
    created_at = Column(DateTime, default=func.now(), nullable=False)


class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=func.now(), nullable=False)
