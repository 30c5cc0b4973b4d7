"""Currency group and plan currency rate request/response models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class CurrencyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    symbol: str | None
    is_active: bool
    group_id: int | None


class CurrencyGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CurrencyGroupDetailResponse(CurrencyGroupResponse):
    currencies: list[CurrencyResponse] = Field(default_factory=list)


class CurrencyInput(BaseModel):
    code: str = Field(..., min_length=3, max_length=3)
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str | None = Field(None, max_length=10)


class CreateCurrencyGroupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    is_active: bool = True
    currencies: list[CurrencyInput] = Field(default_factory=list)


# =============================================================================
# Plan currency rates
# =============================================================================


class CreatePlanCurrencyRateRequest(BaseModel):
    plan_id: int
    group_id: int
    conversion_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    aw_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    mp_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    is_active: bool = True
    notes: str | None = None


class UpdatePlanCurrencyRateRequest(BaseModel):
    plan_id: int | None = None
    group_id: int | None = None
    conversion_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    aw_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    mp_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    is_active: bool | None = None
    notes: str | None = None


class BulkRateItem(BaseModel):
    group_id: int
    conversion_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    aw_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    mp_rate: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=4)
    is_active: bool = True
    notes: str | None = None


class BulkCreatePlanCurrencyRatesRequest(BaseModel):
    plan_id: int
    rates: list[BulkRateItem] = Field(..., min_length=1)


class DuplicatePlanRatesRequest(BaseModel):
    source_plan_id: int
    target_plan_id: int


class PlanCurrencyRateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: int
    group_id: int
    conversion_rate: float
    aw_rate: float
    mp_rate: float
    is_active: bool
    notes: str | None
    created_at: datetime
    updated_at: datetime
