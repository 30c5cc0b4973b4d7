"""Plan and plan type request/response models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Plan types
# =============================================================================


class CreatePlanTypeRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    is_active: bool = True


class UpdatePlanTypeRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    display_name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    is_active: bool | None = None


class PlanTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_name: str
    description: str | None
    is_active: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Plans
# =============================================================================


class CreatePlanRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    level: int = Field(1, ge=1)
    monthly_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    annual_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    max_users: int | None = Field(None, ge=0)
    max_transactions_per_month: int | None = Field(None, ge=0)
    is_active: bool = True
    icon: str | None = None
    color: str | None = None
    plan_type_id: int | None = None


class UpdatePlanRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    level: int | None = Field(None, ge=1)
    monthly_price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    annual_price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    max_users: int | None = Field(None, ge=0)
    max_transactions_per_month: int | None = Field(None, ge=0)
    is_active: bool | None = None
    icon: str | None = None
    color: str | None = None
    plan_type_id: int | None = None


class AssignPlanRequest(BaseModel):
    plan_id: int


class PlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    level: int
    monthly_price: float
    annual_price: float
    max_users: int | None
    max_transactions_per_month: int | None
    is_active: bool
    is_deleted: bool
    icon: str | None
    color: str | None
    plan_type_id: int | None
    created_at: datetime
    updated_at: datetime


class SeedResult(BaseModel):
    created: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
