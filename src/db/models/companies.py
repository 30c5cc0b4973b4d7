"""
Company and User Database Models

Companies own an Airwallex connected account and subscribe to a plan.
Users belong to a company and receive its webhook notifications.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, SoftDeleteMixin, TimestampMixin


class Company(TimestampMixin, SoftDeleteMixin, Base):
    """A customer company on the platform."""

    __tablename__ = "companies"

    name = Column(String(255), nullable=False, unique=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)

    # Airwallex connected account (x-on-behalf-of)
    airwallex_account_id = Column(String(255), nullable=True, index=True)

    plan_id = Column(Integer, ForeignKey("plans.id", ondelete="SET NULL"), nullable=True, index=True)

    plan = relationship("Plan", back_populates="companies")
    users = relationship("User", back_populates="company")

    def __repr__(self) -> str:
        return f"<Company {self.id} {self.name!r}>"


class User(TimestampMixin, Base):
    """A company user. Credentials and roles are managed by the identity service."""

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    phone_number = Column(String(64), nullable=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    role = Column(String(64), nullable=True)

    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True, index=True)

    company = relationship("Company", back_populates="users")

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"
