import logging
from typing import List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...core.exceptions import CapacityError, NotFound, ParkingServiceError
from ...models.parking.bookings import Booking
from ...models.parking.organizations import Organization
from ...models.parking.parking_lots import ParkingLot
from ...schemas.parking.organization_schemas import OrganizationCreate
from ...schemas.parking.parking_lot_schemas import ParkingLotCreate, ParkingLotUpdate
from .occupancy import OCCUPYING_VALUES, refresh_available_slots

logger = logging.getLogger(__name__)


# ---------------- ORGANIZATIONS ----------------
def register_organization(db: Session, data: OrganizationCreate) -> Organization:
    org = Organization(
        **data.model_dump(exclude_none=True),
        total_slots=0,
        available_slots=0
    )
    db.add(org)
    db.commit()
    db.refresh(org)

    logger.info("Registered organization %s (%s)", org.id, org.org_name)
    return org


def get_organization(db: Session, organization_id: int) -> Organization:
    org = db.query(Organization).filter(
        Organization.id == organization_id).first()
    if not org:
        raise NotFound(f"Organization {organization_id} not found")
    return org


def lock_organization(db: Session, organization_id: int) -> Organization:
    """Load the organization row with a write lock held until commit/rollback.

    Every operation that changes occupancy or capacity goes through here, which
    serializes them per organization.
    """
    org = (
        db.query(Organization)
        .filter(Organization.id == organization_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if not org:
        raise NotFound(f"Organization {organization_id} not found")
    return org


def list_organizations(db: Session, skip: int = 0, limit: int = None):
    query = db.query(Organization)
    total = query.count()
    orgs = query.order_by(Organization.id.asc()).offset(skip).limit(limit).all()
    return {"organizations": orgs, "total": total}


def sync_total_slots(db: Session, org: Organization) -> int:
    total = db.query(func.coalesce(func.sum(ParkingLot.total_slots), 0)).filter(
        ParkingLot.organization_id == org.id
    ).scalar()
    org.total_slots = int(total)
    # keep the row within its check constraints until the recount
    org.available_slots = min(org.available_slots, org.total_slots)
    return org.total_slots


# ---------------- PARKING LOTS ----------------
def get_parking_lots(db: Session, organization_id: int, active_only: bool = False) -> List[ParkingLot]:
    query = db.query(ParkingLot).filter(
        ParkingLot.organization_id == organization_id)
    if active_only:
        query = query.filter(ParkingLot.is_active == True)
    return query.order_by(ParkingLot.priority_order.asc(), ParkingLot.lot_id.asc()).all()


def get_parking_lot(db: Session, lot_id: int) -> ParkingLot:
    lot = db.query(ParkingLot).filter(ParkingLot.lot_id == lot_id).first()
    if not lot:
        raise NotFound(f"Parking lot {lot_id} not found")
    return lot


def ensure_lot_unique(db: Session, organization_id: int, lot_id: int = None,
                      lot_name: str = None, priority_order: int = None):
    base = db.query(ParkingLot).filter(
        ParkingLot.organization_id == organization_id)
    if lot_id is not None:
        base = base.filter(ParkingLot.lot_id != lot_id)

    if priority_order is not None and base.filter(
            ParkingLot.priority_order == priority_order).first():
        raise CapacityError(
            f"Priority {priority_order} is already used by another lot")

    if lot_name is not None and base.filter(
            func.lower(ParkingLot.lot_name) == lot_name.lower()).first():
        raise CapacityError(f"Parking lot '{lot_name}' already exists")


def create_parking_lot(db: Session, data: ParkingLotCreate) -> ParkingLot:
    try:
        org = lock_organization(db, data.organization_id)
        ensure_lot_unique(db, org.id, lot_name=data.lot_name,
                          priority_order=data.priority_order)

        lot = ParkingLot(**data.model_dump())
        db.add(lot)
        db.flush()

        sync_total_slots(db, org)
        refresh_available_slots(db, org)
        db.commit()
    except (SQLAlchemyError, ParkingServiceError):
        db.rollback()
        raise

    db.refresh(lot)
    logger.info("Created lot %s (%s, %s slots, priority %s) for organization %s",
                lot.lot_id, lot.slot_prefix, lot.total_slots, lot.priority_order, org.id)
    return lot


def highest_occupied_index(db: Session, lot_id: int) -> int:
    return db.query(func.coalesce(func.max(Booking.slot_index), 0)).filter(
        Booking.parking_lot_id == lot_id,
        Booking.booking_status.in_(OCCUPYING_VALUES)
    ).scalar()


def update_parking_lot(db: Session, data: ParkingLotUpdate) -> ParkingLot:
    """Change a lot's name, capacity, priority or active flag.

    Shrinking is refused while an occupying booking sits on an index that
    would disappear. Deactivating keeps the lot's bookings (and so its
    occupied slots) but removes it from allocation.
    """
    lot = get_parking_lot(db, data.lot_id)
    changes = data.model_dump(exclude_unset=True, exclude={"lot_id"})

    try:
        org = lock_organization(db, lot.organization_id)
        ensure_lot_unique(db, org.id, lot_id=lot.lot_id,
                          lot_name=changes.get("lot_name"),
                          priority_order=changes.get("priority_order"))

        new_total = changes.get("total_slots")
        if new_total is not None and new_total < lot.total_slots:
            in_use = highest_occupied_index(db, lot.lot_id)
            if in_use > new_total:
                raise CapacityError(
                    f"Slot {in_use} of lot {lot.lot_id} is still occupied; "
                    f"cannot shrink to {new_total}")

        for key, value in changes.items():
            setattr(lot, key, value)
        db.flush()

        sync_total_slots(db, org)
        refresh_available_slots(db, org)
        db.commit()
    except (SQLAlchemyError, ParkingServiceError):
        db.rollback()
        raise

    db.refresh(lot)
    logger.info("Updated lot %s: %s", lot.lot_id, changes)
    return lot
