"""
Read-only projections: occupancy, kitchen summary, cards and import results
"""

from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class TableOccupancy(BaseModel):
    """Seats taken versus capacity for one table"""
    count: int
    capacity: int
    is_full: bool


class TableBreakdown(BaseModel):
    """Per-table kitchen summary"""
    table_num: int
    guest_count: int = 0
    capacity: Optional[int] = None
    meal_counts: Dict[str, int] = Field(default_factory=dict)
    dietary: List[str] = Field(default_factory=list)


class Aggregates(BaseModel):
    """Kitchen summary over a guest collection"""
    total_guests: int
    assigned_count: int
    unassigned_count: int
    meal_counts: Dict[str, int]
    dietary_counts: Dict[str, int]
    per_table: Dict[int, TableBreakdown]


class PlaceCardEntry(BaseModel):
    name: str
    table_num: int
    meal_selection: Optional[str] = None


class PlaceCardTable(BaseModel):
    """Place cards for one table"""
    table_num: int
    cards: List[PlaceCardEntry]


class DuplicateKind(str, Enum):
    EXACT = "exact"
    NEAR = "near"


class DuplicateWarning(BaseModel):
    """A candidate name that looks like an existing guest"""
    name: str
    kind: DuplicateKind
    match: str
    similarity: float

    @property
    def message(self) -> str:
        if self.kind == DuplicateKind.EXACT:
            return f"{self.name} (exact match)"
        return f'{self.name} (similar to "{self.match}")'


class DuplicatePolicy(str, Enum):
    ABORT = "abort"
    PROCEED = "proceed"
    SKIP = "skip"


class ImportLine(BaseModel):
    """One parsed guest-list line"""
    name: str
    table_num: Optional[int] = None


class ImportResult(BaseModel):
    """Outcome of a guest-list import"""
    success: bool
    errors: List[str] = Field(default_factory=list)
    duplicates: List[DuplicateWarning] = Field(default_factory=list)
    imported: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    unplaced: List[str] = Field(default_factory=list)


class ImportTextRequest(BaseModel):
    """Pasted guest list, one name per line"""
    text: str
    on_duplicate: DuplicatePolicy = DuplicatePolicy.ABORT


class DuplicateCheckRequest(BaseModel):
    names: List[str]
