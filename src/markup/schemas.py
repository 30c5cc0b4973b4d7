"""Transfer markup rate request/response models."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

TransferMethod = Literal["local", "swift"]


class CreateTransferMarkupRateRequest(BaseModel):
    plan_id: int
    region: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    country_code: str = Field(..., min_length=2, max_length=2)
    currency: str = Field(..., min_length=3, max_length=3)
    transaction_type: str | None = Field(None, max_length=50)
    transfer_method: TransferMethod
    fee_sha_percentage: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=3)
    fee_sha_minimum: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    fee_our_percentage: Decimal = Field(..., ge=0, max_digits=10, decimal_places=3)
    fee_our_minimum: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    fee_currency: str | None = Field(None, min_length=3, max_length=3)

    @field_validator("transfer_method", mode="before")
    @classmethod
    def normalize_transfer_method(cls, value):
        return value.lower() if isinstance(value, str) else value


class UpdateTransferMarkupRateRequest(BaseModel):
    plan_id: int | None = None
    region: str | None = Field(None, min_length=1, max_length=100)
    country: str | None = Field(None, min_length=1, max_length=100)
    country_code: str | None = Field(None, min_length=2, max_length=2)
    currency: str | None = Field(None, min_length=3, max_length=3)
    transaction_type: str | None = Field(None, max_length=50)
    transfer_method: TransferMethod | None = None
    fee_sha_percentage: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=3)
    fee_sha_minimum: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    fee_our_percentage: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=3)
    fee_our_minimum: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    fee_currency: str | None = Field(None, min_length=3, max_length=3)

    @field_validator("transfer_method", mode="before")
    @classmethod
    def normalize_transfer_method(cls, value):
        return value.lower() if isinstance(value, str) else value


class BulkUpdateItem(BaseModel):
    id: int
    fee_sha_percentage: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=3)
    fee_sha_minimum: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    fee_our_percentage: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=3)
    fee_our_minimum: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    fee_currency: str | None = Field(None, min_length=3, max_length=3)


class BulkUpdateRequest(BaseModel):
    rates: list[BulkUpdateItem] = Field(..., min_length=1)


class BulkUpdateFailure(BaseModel):
    id: int
    error: str


class BulkUpdateResult(BaseModel):
    success: bool
    successCount: int
    failureCount: int
    successfulIds: list[int]
    failures: list[BulkUpdateFailure]


class DuplicateMarkupRatesRequest(BaseModel):
    source_plan_id: int
    target_plan_id: int


class TransferMarkupRateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan_id: int
    region: str
    country: str
    country_code: str
    currency: str
    transaction_type: str | None
    transfer_method: str
    fee_sha_percentage: float | None
    fee_sha_minimum: float | None
    fee_our_percentage: float
    fee_our_minimum: float
    fee_currency: str
    is_deleted: bool
    created_at: datetime
    updated_at: datetime


class PlanRateSummary(BaseModel):
    plan_id: int
    plan_name: str
    total_rates: int
    local_rates: int
    swift_rates: int
    countries: int
    regions: int


class CountryOption(BaseModel):
    country: str
    country_code: str
    region: str
