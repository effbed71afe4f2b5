from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String, func
from sqlalchemy.orm import relationship
from shared.core.database import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    org_name = Column(String(255), nullable=False)

    # total_slots is always the sum of the lots' capacities
    total_slots = Column(Integer, nullable=False, default=0)
    # derived: total_slots - occupying bookings, kept in step by every
    # allocation/transition and repaired by the reconciler
    available_slots = Column(Integer, nullable=False, default=0)

    member_parking_free = Column(Boolean, default=True, nullable=False)
    visitor_hourly_rate = Column(Numeric(10, 2), default=0, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(),
                        onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("total_slots >= 0", name="ck_org_total_slots"),
        CheckConstraint("available_slots >= 0", name="ck_org_available_min"),
        CheckConstraint("available_slots <= total_slots",
                        name="ck_org_available_max"),
    )

    # relationships
    lots = relationship("ParkingLot", back_populates="organization",
                        order_by="ParkingLot.priority_order")
    bookings = relationship("Booking", back_populates="organization")
