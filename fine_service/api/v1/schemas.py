"""Pydantic schemas for API request/response validation"""

import json
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field, field_serializer, field_validator

from fine_service.config import settings
from fine_service.domain.models import FineStatus

FlagsPayload = Union[str, Dict[str, Any]]

# Leaves headroom under MAX_AMOUNT for the overdue penalty and surcharge
MAX_FINE_AMOUNT = Decimal("99999999.99")


def _check_flags_size(value: Optional[FlagsPayload]) -> Optional[FlagsPayload]:
    if value is None:
        return value
    encoded = value if isinstance(value, str) else json.dumps(value, separators=(",", ":"))
    if len(encoded.encode("utf-8")) > settings.business_flags_max_bytes:
        raise ValueError(f"business_flags exceeds max size {settings.business_flags_max_bytes}")
    return value


def _check_dob(value: Optional[date]) -> Optional[date]:
    if value is not None and value > date.today():
        raise ValueError("offender_dob cannot be in the future")
    return value


class FineUpdate(BaseModel):
    """Request body for PATCH /v1/fines/{fine_id} - every field optional"""

    offender_name: Optional[str] = Field(None, min_length=1, max_length=255)
    offender_dob: Optional[date] = None
    offence_type: Optional[str] = Field(None, min_length=1, max_length=255)
    fine_amount: Optional[Decimal] = Field(None, ge=0, le=MAX_FINE_AMOUNT, description="Amount in dollars")
    date_issued: Optional[date] = None
    status: Optional[FineStatus] = None
    business_flags: Optional[FlagsPayload] = None

    @field_validator("business_flags")
    @classmethod
    def check_flags_size(cls, value: Optional[FlagsPayload]) -> Optional[FlagsPayload]:
        return _check_flags_size(value)

    @field_validator("offender_dob")
    @classmethod
    def check_dob(cls, value: Optional[date]) -> Optional[date]:
        return _check_dob(value)


class FineReplace(FineUpdate):
    """Request body for PUT /v1/fines/{fine_id}"""

    offence_type: str = Field(..., min_length=1, max_length=255)
    fine_amount: Decimal = Field(..., ge=0, le=MAX_FINE_AMOUNT, description="Amount in dollars")
    date_issued: date


class FineCreate(FineReplace):
    """Request body for POST /v1/fines"""

    offender_name: str = Field(..., min_length=1, max_length=255)
    status: FineStatus = FineStatus.UNPAID


class FineResponse(BaseModel):
    """A fine with business rules applied"""

    id: int
    offender_id: int
    offender_name: Optional[str] = None
    offence_type: str
    fine_amount: Decimal
    date_issued: date
    date_paid: Optional[date] = None
    status: FineStatus
    business_flags: str

    @field_serializer("fine_amount")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)


class FineMutationResponse(BaseModel):
    """Response for create/update/pay operations"""

    success: bool = True
    fine: FineResponse
    message: str


class DeleteResponse(BaseModel):
    """Response for DELETE /v1/fines/{fine_id}"""

    success: bool = True
    message: str


class CalculateRequest(BaseModel):
    """Request body for POST /v1/fines/calculate"""

    amount: Decimal
    date_issued: str = Field(..., description="YYYY-MM-DD")
    status: FineStatus


class CalculateResponse(BaseModel):
    """Quoted amount due today"""

    amount: Decimal

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)

