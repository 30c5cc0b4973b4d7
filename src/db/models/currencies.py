"""
Currency Database Models

Currency groups and the per-plan conversion markup applied to each group.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, TimestampMixin


class CurrencyGroup(TimestampMixin, Base):
    """A named group of currencies sharing one conversion markup."""

    __tablename__ = "currency_groups"

    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    currencies = relationship("Currency", back_populates="group")
    plan_rates = relationship("PlanCurrencyRate", back_populates="group")

    def __repr__(self) -> str:
        return f"<CurrencyGroup {self.id} {self.name!r}>"


class Currency(TimestampMixin, Base):
    __tablename__ = "currencies"

    code = Column(String(3), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    symbol = Column(String(10), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    group_id = Column(Integer, ForeignKey("currency_groups.id", ondelete="SET NULL"), nullable=True, index=True)

    group = relationship("CurrencyGroup", back_populates="currencies")

    def __repr__(self) -> str:
        return f"<Currency {self.code}>"


class PlanCurrencyRate(TimestampMixin, Base):
    """
    Conversion markup for a (plan, currency group) pair.

    conversion_rate = aw_rate (Airwallex cost) + mp_rate (Magna Porta margin).
    """

    __tablename__ = "plan_currency_rates"
    __table_args__ = (
        UniqueConstraint("plan_id", "group_id", name="uq_plan_currency_rates_plan_group"),
    )

    plan_id = Column(Integer, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("currency_groups.id", ondelete="CASCADE"), nullable=False, index=True)

    conversion_rate = Column(Numeric(10, 4), nullable=False)
    aw_rate = Column(Numeric(10, 4), nullable=False, default=2.0)
    mp_rate = Column(Numeric(10, 4), nullable=False, default=0)

    is_active = Column(Boolean, default=True, nullable=False)
    notes = Column(Text, nullable=True)

    plan = relationship("Plan", back_populates="currency_rates")
    group = relationship("CurrencyGroup", back_populates="plan_rates")

    def __repr__(self) -> str:
        return f"<PlanCurrencyRate plan={self.plan_id} group={self.group_id} rate={self.conversion_rate}>"
