from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint, func
from stocktake.database import Base

USER_ROLES = ("admin", "manager", "supervisor", "counter", "viewer")


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'manager', 'supervisor', 'counter', 'viewer')",
            name="ck_users_role",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="counter")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now(), nullable=False)
