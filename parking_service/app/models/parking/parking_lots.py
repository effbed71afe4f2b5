from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Text,
    UniqueConstraint, event, func, select
)
from sqlalchemy.orm import relationship
from shared.core.database import Base

SLOT_PREFIX_LETTER = "L"


def next_slot_prefix(existing_lot_count: int) -> str:
    return f"{SLOT_PREFIX_LETTER}{existing_lot_count + 1}"


class ParkingLot(Base):
    __tablename__ = "parking_lots"

    lot_id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey(
        "organizations.id"), nullable=False, index=True)
    lot_name = Column(String(255), nullable=False)
    lot_description = Column(Text)
    total_slots = Column(Integer, nullable=False)
    # lower = filled first
    priority_order = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True, nullable=False)

    # opaque slot key prefix (L1, L2 ...), fixed at creation and never
    # derived from lot_name
    slot_prefix = Column(String(16), nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(),
                        onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("total_slots > 0", name="ck_lot_total_slots"),
        UniqueConstraint("organization_id", "priority_order",
                         name="uq_lot_priority_per_org"),
        UniqueConstraint("organization_id", "lot_name",
                         name="uq_lot_name_per_org"),
        UniqueConstraint("organization_id", "slot_prefix",
                         name="uq_lot_slot_prefix_per_org"),
    )

    # relationships
    organization = relationship("Organization", back_populates="lots")
    bookings = relationship("Booking", back_populates="parking_lot")


# Auto-generate the slot prefix from the organization's lot count
@event.listens_for(ParkingLot, "before_insert")
def generate_slot_prefix(mapper, connection, target):
    # Skip if slot_prefix is already set
    if target.slot_prefix:
        return

    existing = connection.execute(
        select(func.count()).select_from(ParkingLot.__table__).where(
            ParkingLot.__table__.c.organization_id == target.organization_id)
    ).scalar()

    target.slot_prefix = next_slot_prefix(existing or 0)
