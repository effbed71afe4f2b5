from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from shared.core.database import Base


class ReconciliationLog(Base):
    """Audit row written whenever the stored available_slots had drifted."""

    __tablename__ = "reconciliation_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey(
        "organizations.id"), nullable=False, index=True)
    previous_available = Column(Integer, nullable=False)
    corrected_available = Column(Integer, nullable=False)
    # corrected - previous
    delta = Column(Integer, nullable=False)
    occupied_count = Column(Integer, nullable=False)
    source = Column(String(24), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
