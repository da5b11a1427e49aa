"""
Room layout Pydantic schemas: tables, fixtures, room settings and snapshots
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

from seating_planner.schemas.guest import Group, Guest


class TableShape(str, Enum):
    ROUND = "round"
    RECT = "rect"


class FixtureType(str, Enum):
    DOOR = "door"
    WINDOW = "window"
    STAGE = "stage"
    DANCE_FLOOR = "dance-floor"
    DJ_BOOTH = "dj-booth"
    PILLAR = "pillar"
    TEXT = "text"
    SWEETHEART_TABLE = "sweetheart-table"
    HEAD_TABLE = "head-table"
    BAR = "bar"
    BUFFET = "buffet"
    CAKE_TABLE = "cake-table"
    GIFT_TABLE = "gift-table"
    ESCORT_CARD_TABLE = "escort-card-table"


class LayoutType(str, Enum):
    CEREMONY = "ceremony"
    COCKTAIL = "cocktail"
    RECEPTION = "reception"


class RoomSettings(BaseModel):
    """Room bounds and grid behaviour"""
    width: int = 1200
    height: int = 800
    background: str = "#f8fafc"
    grid_enabled: bool = True
    grid_size: int = 20
    snap_to_grid: bool = True
    allow_overlap: bool = False
    scale: float = 20


class Table(BaseModel):
    """A guest table placed in the room"""
    id: str
    name: str
    number: int = Field(gt=0)
    x: float = 100
    y: float = 100
    width: float = 120
    height: float = 120
    capacity: int = Field(8, gt=0)
    shape: TableShape = TableShape.ROUND
    rotation: float = 0
    locked: bool = False
    notes: Optional[str] = None
    guests: List[str] = Field(default_factory=list)


class Fixture(BaseModel):
    """A decorative or structural item in the room; never seats guests"""
    id: str
    type: FixtureType
    x: float = 100
    y: float = 100
    width: float = 120
    height: float = 80
    rotation: float = 0
    locked: bool = False
    label: Optional[str] = None
    color: Optional[str] = None


class TablePreset(BaseModel):
    """Named table template"""
    name: str
    shape: TableShape
    width: float
    height: float
    capacity: int = Field(gt=0)


class LayoutSnapshot(BaseModel):
    """Complete layout state exchanged with persistence"""
    room: RoomSettings = Field(default_factory=RoomSettings)
    tables: List[Table] = Field(default_factory=list)
    fixtures: List[Fixture] = Field(default_factory=list)
    guests: List[Guest] = Field(default_factory=list)
    groups: List[Group] = Field(default_factory=list)


class TableCreate(BaseModel):
    """Schema for adding a table, from a preset name or a bare shape"""
    preset: Optional[str] = None
    shape: TableShape = TableShape.ROUND
    x: Optional[float] = None
    y: Optional[float] = None
    capacity: Optional[int] = Field(None, gt=0)


class TableDetailsUpdate(BaseModel):
    """Schema for non-geometric table edits"""
    name: Optional[str] = None
    capacity: Optional[int] = None
    notes: Optional[str] = None


class FixtureCreate(BaseModel):
    """Schema for adding a fixture"""
    type: FixtureType
    x: float = 100
    y: float = 100
    label: Optional[str] = None
    color: Optional[str] = None


class FixtureDetailsUpdate(BaseModel):
    """Schema for fixture label and colour edits"""
    label: Optional[str] = None
    color: Optional[str] = None


class PositionUpdate(BaseModel):
    x: float
    y: float


class SizeUpdate(BaseModel):
    width: float
    height: float


class RotationUpdate(BaseModel):
    rotation: float


class RoomSettingsUpdate(BaseModel):
    """Partial room settings update"""
    width: Optional[int] = None
    height: Optional[int] = None
    background: Optional[str] = None
    grid_enabled: Optional[bool] = None
    grid_size: Optional[int] = None
    snap_to_grid: Optional[bool] = None
    allow_overlap: Optional[bool] = None
    scale: Optional[float] = None
