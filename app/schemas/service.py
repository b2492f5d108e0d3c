from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field


class ServiceBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)
    description: str | None = None
    default_price: Decimal | None = Field(default=None, ge=0)
    unit: str = Field(default="ცალი", max_length=50)
    is_active: bool = True


class ServiceCreate(ServiceBase):
    pass


class ServiceUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=255)
    description: str | None = None
    default_price: Decimal | None = Field(default=None, ge=0)
    unit: str | None = Field(default=None, max_length=50)
    is_active: bool | None = None


class ServiceRead(ServiceBase):
    id: UUID
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class ServiceSearchResponse(BaseModel):
    services: list[ServiceRead]
    total: int


class ServiceUsage(BaseModel):
    total_usage: int = 0
    total_revenue: Decimal = Decimal("0")
    average_price: Decimal = Decimal("0")
    unique_clients: int = 0


class ServiceStatsRow(ServiceRead):
    statistics: ServiceUsage = Field(default_factory=ServiceUsage)


class ServiceHighlight(BaseModel):
    id: UUID
    name: str
    value: Decimal


class ServiceStatsSummary(BaseModel):
    total_services: int = 0
    total_usage: int = 0
    total_revenue: Decimal = Decimal("0")
    average_price: Decimal = Decimal("0")
    most_used_service: ServiceHighlight | None = None
    highest_revenue_service: ServiceHighlight | None = None


class ServiceStatsResponse(BaseModel):
    services: list[ServiceStatsRow]
    summary: ServiceStatsSummary
