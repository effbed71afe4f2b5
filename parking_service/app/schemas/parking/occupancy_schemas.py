from pydantic import BaseModel
from typing import List


class LotOccupancy(BaseModel):
    lot_id: int
    lot_name: str
    priority_order: int
    is_active: bool
    total_slots: int
    occupied_slots: int
    available_slots: int
    occupancy_rate: float


class OccupancyStatus(BaseModel):
    organization_id: int
    total_slots: int
    occupied_slots: int
    available_slots: int
    stored_available_slots: int
    lots: List[LotOccupancy]


class ReconcileResult(BaseModel):
    organization_id: int
    previous_available: int
    corrected_available: int
    delta: int
    occupied_count: int
    lots: List[LotOccupancy] = []


class ReconcileSummary(BaseModel):
    checked: int
    corrected: int
    total_delta: int
    results: List[ReconcileResult]


class SweepSummary(BaseModel):
    activated: int
    no_shows: int
    overstays: int
    auto_completed: int
    penalties_updated: int
    reconciliation: ReconcileSummary
