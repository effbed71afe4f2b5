from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, Numeric, String, func, text
)
from sqlalchemy.orm import relationship
from shared.core.database import Base
from ...enum.booking_enum import OCCUPYING_STATUSES, BookingStatus, PaymentStatus

OCCUPIED_SLOT_INDEX = "uq_bookings_occupied_slot"

OCCUPYING_SQL = text(
    "booking_status IN ({})".format(
        ", ".join(f"'{s.value}'" for s in OCCUPYING_STATUSES))
)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey(
        "organizations.id"), nullable=False, index=True)
    parking_lot_id = Column(Integer, ForeignKey(
        "parking_lots.lot_id"), nullable=False, index=True)

    slot_index = Column(Integer, nullable=False)
    slot_number = Column(String(50), nullable=False)  # L1-004 etc

    user_id = Column(Integer, nullable=False, index=True)
    # member of the owning organization; pricing input only
    is_member = Column(Boolean, default=False, nullable=False)
    vehicle_number = Column(String(50), nullable=False, index=True)

    booking_start_time = Column(DateTime, nullable=False, index=True)
    booking_end_time = Column(DateTime, nullable=False)
    duration_hours = Column(Numeric(6, 2), nullable=False)
    amount = Column(Numeric(10, 2), default=0, nullable=False)

    booking_status = Column(String(24), nullable=False,
                            default=BookingStatus.confirmed.value, index=True)
    payment_status = Column(String(24), nullable=False,
                            default=PaymentStatus.pending.value)

    entry_time = Column(DateTime)
    exit_time = Column(DateTime)
    overstay_minutes = Column(Integer, default=0, nullable=False)
    penalty_amount = Column(Numeric(10, 2), default=0, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(),
                        onupdate=func.now(), nullable=False)

    __table_args__ = (
        # at most one slot-holding booking per physical slot
        Index(
            OCCUPIED_SLOT_INDEX,
            "parking_lot_id",
            "slot_index",
            unique=True,
            postgresql_where=OCCUPYING_SQL,
            sqlite_where=OCCUPYING_SQL,
        ),
    )

    # relationships
    organization = relationship("Organization", back_populates="bookings")
    parking_lot = relationship("ParkingLot", back_populates="bookings")
