import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...enum.booking_enum import ReconcileSource
from ...models.parking.organizations import Organization
from ...models.parking.reconciliation_logs import ReconciliationLog
from ...schemas.parking.occupancy_schemas import (
    LotOccupancy,
    OccupancyStatus,
    ReconcileResult,
    ReconcileSummary,
)
from .inventory_crud import get_organization, get_parking_lots, lock_organization
from .occupancy import clamp_available, compute_available, occupied_by_lot

logger = logging.getLogger(__name__)


def build_lot_occupancy(db: Session, organization_id: int, active_only: bool) -> List[LotOccupancy]:
    occupied = occupied_by_lot(db, organization_id)
    lots = []
    for lot in get_parking_lots(db, organization_id, active_only=active_only):
        used = occupied.get(lot.lot_id, 0)
        lots.append(LotOccupancy(
            lot_id=lot.lot_id,
            lot_name=lot.lot_name,
            priority_order=lot.priority_order,
            is_active=lot.is_active,
            total_slots=lot.total_slots,
            occupied_slots=used,
            available_slots=clamp_available(lot.total_slots, used),
            occupancy_rate=round(used / lot.total_slots * 100, 2) if lot.total_slots else 0.0
        ))
    return lots


# ----------------- Reconcile one -----------------
def reconcile_organization(
    db: Session,
    organization_id: int,
    source: ReconcileSource = ReconcileSource.reconcile
) -> ReconcileResult:
    """Repair the stored available_slots counter from committed bookings.

    Only ``organizations.available_slots`` (and an audit row when it was
    wrong) is written; bookings are read, never modified. Running it again
    with nothing changed in between reports ``delta == 0``.
    """
    try:
        org = lock_organization(db, organization_id)
        previous = org.available_slots
        corrected, occupied = compute_available(db, org)
        delta = corrected - previous

        if delta != 0:
            org.available_slots = corrected
            db.add(ReconciliationLog(
                organization_id=org.id,
                previous_available=previous,
                corrected_available=corrected,
                delta=delta,
                occupied_count=occupied,
                source=source.value
            ))
            logger.warning(
                "Drift detected for organization %s: available_slots %s -> %s (%+d)",
                org.id, previous, corrected, delta)

        lots = build_lot_occupancy(db, org.id, active_only=True)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    return ReconcileResult(
        organization_id=organization_id,
        previous_available=previous,
        corrected_available=corrected,
        delta=delta,
        occupied_count=occupied,
        lots=lots
    )


# ----------------- Reconcile all -----------------
def reconcile_all(
    db: Session,
    source: ReconcileSource = ReconcileSource.reconcile_all
) -> ReconcileSummary:
    org_ids = [org_id for (org_id,) in db.query(
        Organization.id).order_by(Organization.id.asc()).all()]

    # one transaction per organization so a long pass never holds every lock
    results = [reconcile_organization(db, org_id, source) for org_id in org_ids]
    corrected = [r for r in results if r.delta != 0]

    logger.info("Reconciled %s organizations, corrected %s (net delta %+d)",
                len(results), len(corrected), sum(r.delta for r in corrected))

    return ReconcileSummary(
        checked=len(results),
        corrected=len(corrected),
        total_delta=sum(r.delta for r in corrected),
        results=results
    )


# ----------------- Status view -----------------
def get_occupancy_status(db: Session, organization_id: int) -> OccupancyStatus:
    """Live occupancy computed from bookings, next to the stored counter."""
    org = get_organization(db, organization_id)
    available, occupied = compute_available(db, org)

    return OccupancyStatus(
        organization_id=org.id,
        total_slots=org.total_slots,
        occupied_slots=occupied,
        available_slots=available,
        stored_available_slots=org.available_slots,
        lots=build_lot_occupancy(db, org.id, active_only=False)
    )
