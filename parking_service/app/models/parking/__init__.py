from .organizations import Organization
from .parking_lots import ParkingLot
from .bookings import Booking
from .reconciliation_logs import ReconciliationLog
