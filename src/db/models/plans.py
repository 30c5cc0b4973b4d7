"""
Plan Database Models

Subscription plans (Bronze/Silver/Gold) grouped by plan type.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import Base, SoftDeleteMixin, TimestampMixin


class PlanType(TimestampMixin, SoftDeleteMixin, Base):
    """Category of plans (e.g. main, custom)."""

    __tablename__ = "plan_types"

    name = Column(String(100), nullable=False, unique=True)
    display_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    plans = relationship("Plan", back_populates="plan_type")

    def __repr__(self) -> str:
        return f"<PlanType {self.id} {self.name!r}>"


class Plan(TimestampMixin, SoftDeleteMixin, Base):
    """A subscription tier that drives pricing and fee rates for a company."""

    __tablename__ = "plans"

    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    level = Column(Integer, default=1, nullable=False)

    monthly_price = Column(Numeric(10, 2), nullable=False, default=0)
    annual_price = Column(Numeric(10, 2), nullable=False, default=0)

    max_users = Column(Integer, nullable=True)
    max_transactions_per_month = Column(Integer, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    icon = Column(String(100), nullable=True)
    color = Column(String(32), nullable=True)

    plan_type_id = Column(Integer, ForeignKey("plan_types.id", ondelete="SET NULL"), nullable=True, index=True)

    plan_type = relationship("PlanType", back_populates="plans")
    companies = relationship("Company", back_populates="plan")
    currency_rates = relationship("PlanCurrencyRate", back_populates="plan", cascade="all, delete-orphan")
    markup_rates = relationship("TransferMarkupRate", back_populates="plan", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Plan {self.id} {self.name!r} level={self.level}>"
