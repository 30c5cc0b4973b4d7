"""
Transfer Markup Rate Database Model

Fee schedule rows keyed by plan, country, currency and transfer method.
"""

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, SoftDeleteMixin, TimestampMixin


class TransferMarkupRate(TimestampMixin, SoftDeleteMixin, Base):
    """
    Surcharge applied to an outgoing transfer.

    SHA fees apply when costs are shared, OUR fees when the sender pays all.
    `transaction_type` distinguishes schemes within a corridor (e.g. SEPA).
    """

    __tablename__ = "transfer_markup_rates"
    __table_args__ = (
        UniqueConstraint(
            "plan_id",
            "country_code",
            "currency",
            "transfer_method",
            "transaction_type",
            name="uq_transfer_markup_rates_corridor",
        ),
    )

    plan_id = Column(Integer, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False, index=True)

    region = Column(String(100), nullable=False)
    country = Column(String(100), nullable=False)
    country_code = Column(String(2), nullable=False, index=True)
    currency = Column(String(3), nullable=False, index=True)
    transaction_type = Column(String(50), nullable=True)
    transfer_method = Column(String(10), nullable=False)  # local | swift

    fee_sha_percentage = Column(Numeric(10, 3), nullable=True)
    fee_sha_minimum = Column(Numeric(10, 2), nullable=True)
    fee_our_percentage = Column(Numeric(10, 3), nullable=False)
    fee_our_minimum = Column(Numeric(10, 2), nullable=False)
    fee_currency = Column(String(3), nullable=False)

    plan = relationship("Plan", back_populates="markup_rates")

    def __repr__(self) -> str:
        return (
            f"<TransferMarkupRate {self.id} plan={self.plan_id} "
            f"{self.country_code}/{self.currency}/{self.transfer_method}>"
        )
