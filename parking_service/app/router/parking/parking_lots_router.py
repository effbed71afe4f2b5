from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shared.core.database import get_parking_db as get_db
from ...crud.parking import inventory_crud as crud
from ...schemas.parking.parking_lot_schemas import ParkingLotCreate, ParkingLotOut, ParkingLotUpdate

router = APIRouter(
    prefix="/api/parking-lots",
    tags=["parking-lots"]
)


@router.get("/{organization_id}", response_model=List[ParkingLotOut])
def get_parking_lots(
    organization_id: int,
    active_only: bool = Query(False),
    db: Session = Depends(get_db)
):
    crud.get_organization(db, organization_id)
    return crud.get_parking_lots(db, organization_id, active_only)


@router.post("/", response_model=ParkingLotOut)
def create_parking_lot(lot: ParkingLotCreate, db: Session = Depends(get_db)):
    return crud.create_parking_lot(db, lot)


@router.put("/", response_model=ParkingLotOut)
def update_parking_lot(lot: ParkingLotUpdate, db: Session = Depends(get_db)):
    return crud.update_parking_lot(db, lot)
