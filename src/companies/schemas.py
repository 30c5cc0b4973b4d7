"""Company request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreateCompanyRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    airwallex_account_id: str | None = Field(None, max_length=255)
    plan_id: int | None = None
    # Accepted for compatibility; new companies always start unverified and inactive.
    is_verified: bool | None = None
    is_active: bool | None = None


class UpdateCompanyRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    airwallex_account_id: str | None = Field(None, max_length=255)
    plan_id: int | None = None
    is_verified: bool | None = None
    is_active: bool | None = None


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    is_verified: bool
    is_active: bool
    is_deleted: bool
    airwallex_account_id: str | None
    plan_id: int | None
    created_at: datetime
    updated_at: datetime


class CompanyUserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    phone_number: str | None
    is_active: bool
