"""Driver domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...constants import DRIVER_SERVICE_TYPES, DRIVER_STATUSES
from ...shared.validators import normalize_phone, validate_car_number


class DriverRegister(BaseModel):
    """Schema for driver self-registration"""

    fullName: str
    phone: str
    serviceType: str
    carNumber: str

    @field_validator("fullName")
    @classmethod
    def validate_full_name(cls, v):
        v = " ".join(v.split())
        if not v:
            raise ValueError("Full name is required")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return normalize_phone(v)

    @field_validator("serviceType")
    @classmethod
    def validate_service_type(cls, v):
        if v not in DRIVER_SERVICE_TYPES:
            raise ValueError(f"Service type must be one of: {', '.join(DRIVER_SERVICE_TYPES)}")
        return v

    @field_validator("carNumber")
    @classmethod
    def validate_car(cls, v):
        return validate_car_number(v)


class DriverStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in DRIVER_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(DRIVER_STATUSES)}")
        return v


class DriverResponse(BaseModel):
    """Schema for driver response"""

    id: int
    fullName: str
    phone: str
    serviceType: str
    carNumber: str
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DriverSummaryResponse(DriverResponse):
    """Driver row in the admin list, with completed-order earnings"""

    completedOrders: int = 0
    gross: int = 0
    commission: int = 0
    net: int = 0
