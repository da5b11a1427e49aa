"""
Pydantic schemas package
"""

from .common import *
from .guest import *
from .layout import *
from .summary import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "Guest",
    "Group",
    "GuestCreate",
    "GuestUpdate",
    "GuestAddResult",
    "MealSelection",
    "Side",
    "Table",
    "Fixture",
    "RoomSettings",
    "TablePreset",
    "TableShape",
    "FixtureType",
    "LayoutType",
    "LayoutSnapshot",
    "TableOccupancy",
    "Aggregates",
    "DuplicateWarning",
    "DuplicatePolicy",
    "ImportResult",
]
