from pydantic import BaseModel, Field
from typing import Optional


class ParkingLotBase(BaseModel):
    organization_id: int
    lot_name: str = Field(min_length=1, max_length=255)
    lot_description: Optional[str] = None
    total_slots: int = Field(gt=0)
    priority_order: int = Field(default=1, ge=1)

    model_config = {
        "from_attributes": True
    }


class ParkingLotCreate(ParkingLotBase):
    pass


class ParkingLotUpdate(BaseModel):
    lot_id: int
    lot_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    lot_description: Optional[str] = None
    total_slots: Optional[int] = Field(default=None, gt=0)
    priority_order: Optional[int] = Field(default=None, ge=1)
    is_active: Optional[bool] = None


class ParkingLotOut(ParkingLotBase):
    lot_id: int
    is_active: bool
    slot_prefix: str
