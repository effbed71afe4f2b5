from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class OrganizationBase(BaseModel):
    org_name: str = Field(min_length=1, max_length=255)
    member_parking_free: Optional[bool] = True
    visitor_hourly_rate: Optional[Decimal] = Field(default=Decimal("0"), ge=0)

    model_config = {
        "from_attributes": True
    }


class OrganizationCreate(OrganizationBase):
    pass


class OrganizationOut(OrganizationBase):
    id: int
    total_slots: int
    available_slots: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrganizationsResponse(BaseModel):
    organizations: List[OrganizationOut]
    total: int

    model_config = {"from_attributes": True}
