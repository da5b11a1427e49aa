"""
Guest and group Pydantic schemas
"""

from enum import Enum
from typing import Iterable, List, Optional
from pydantic import BaseModel, Field, field_validator


def unique_strings(values: Iterable[str]) -> List[str]:
    """Strip, drop blanks and deduplicate while keeping first-seen order"""
    seen: List[str] = []
    for value in values:
        text = str(value).strip()
        if text and text not in seen:
            seen.append(text)
    return seen


class MealSelection(str, Enum):
    CHICKEN = "chicken"
    FISH = "fish"
    BEEF = "beef"
    VEGETARIAN = "vegetarian"
    VEGAN = "vegan"
    PASTA = "pasta"
    SALAD = "salad"


class Side(str, Enum):
    BRIDE = "bride"
    GROOM = "groom"
    BOTH = "both"


DIETARY_CODES = ["GF", "DF", "NF", "Kosher", "Halal", "Vegan", "Vegetarian"]


def _normalize_meal(value):
    if isinstance(value, str):
        value = value.strip().lower()
        return value or None
    return value


class Guest(BaseModel):
    """A guest on the event roster"""
    id: str
    name: str
    table_num: Optional[int] = None
    notes: str = ""
    tags: List[str] = Field(default_factory=list)
    partner_id: Optional[str] = None
    group_id: Optional[str] = None
    meal_selection: Optional[MealSelection] = None
    dietary_restrictions: List[str] = Field(default_factory=list)
    keep_apart_with: List[str] = Field(default_factory=list)
    is_vip: bool = False
    is_child: bool = False
    side: Optional[Side] = None

    @field_validator("tags", "dietary_restrictions", "keep_apart_with")
    @classmethod
    def _dedupe(cls, value: List[str]) -> List[str]:
        return unique_strings(value)

    @field_validator("meal_selection", mode="before")
    @classmethod
    def _meal(cls, value):
        return _normalize_meal(value)


class Group(BaseModel):
    """A named, coloured set of guests"""
    id: str
    name: str
    color: str = "#3b82f6"


class GuestCreate(BaseModel):
    """Schema for adding a guest"""
    name: str
    table_num: Optional[int] = None
    notes: str = ""
    tags: List[str] = Field(default_factory=list)
    meal_selection: Optional[MealSelection] = None
    dietary_restrictions: List[str] = Field(default_factory=list)
    is_vip: bool = False
    is_child: bool = False
    side: Optional[Side] = None

    @field_validator("meal_selection", mode="before")
    @classmethod
    def _meal(cls, value):
        return _normalize_meal(value)


class GuestUpdate(BaseModel):
    """Schema for updating a guest; unset fields are left alone"""
    name: Optional[str] = None
    table_num: Optional[int] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    partner_id: Optional[str] = None
    group_id: Optional[str] = None
    meal_selection: Optional[MealSelection] = None
    dietary_restrictions: Optional[List[str]] = None
    keep_apart_with: Optional[List[str]] = None
    is_vip: Optional[bool] = None
    is_child: Optional[bool] = None
    side: Optional[Side] = None

    @field_validator("meal_selection", mode="before")
    @classmethod
    def _meal(cls, value):
        return _normalize_meal(value)


class GuestAddResult(BaseModel):
    """Outcome of adding a guest with an optional requested table"""
    guest: Guest
    requested_table: Optional[int] = None
    table_full: bool = False


class AssignRequest(BaseModel):
    """Guest to table assignment request"""
    table_id: str


class GroupCreate(BaseModel):
    """Schema for creating a group"""
    name: str
    color: Optional[str] = None


class GroupUpdate(BaseModel):
    """Schema for renaming or recolouring a group"""
    name: Optional[str] = None
    color: Optional[str] = None
