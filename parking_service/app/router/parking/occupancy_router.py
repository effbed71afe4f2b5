from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shared.core.database import get_parking_db as get_db
from ...crud.parking import occupancy_reconciler as crud
from ...crud.parking.lifecycle_sweep import run_lifecycle_sweep
from ...schemas.parking.occupancy_schemas import (
    OccupancyStatus,
    ReconcileResult,
    ReconcileSummary,
    SweepSummary,
)

router = APIRouter(prefix="/api/occupancy", tags=["occupancy"])


@router.get("/status/{organization_id}", response_model=OccupancyStatus)
def get_occupancy_status(organization_id: int, db: Session = Depends(get_db)):
    return crud.get_occupancy_status(db, organization_id)


@router.post("/reconcile/{organization_id}", response_model=ReconcileResult)
def reconcile_organization(organization_id: int, db: Session = Depends(get_db)):
    return crud.reconcile_organization(db, organization_id)


@router.post("/reconcile-all", response_model=ReconcileSummary)
def reconcile_all(db: Session = Depends(get_db)):
    return crud.reconcile_all(db)


@router.post("/sweep", response_model=SweepSummary)
def run_sweep(db: Session = Depends(get_db)):
    return run_lifecycle_sweep(db)
