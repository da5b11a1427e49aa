"""
Seating model: guests, tables, fixtures, groups and room layout kept consistent in memory
"""

import logging
import math
import secrets
from itertools import combinations
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from seating_planner.core.errors import CapacityExceeded, ValidationFailed
from seating_planner.schemas.guest import (
    Group,
    Guest,
    GuestAddResult,
    MealSelection,
    Side,
    unique_strings,
)
from seating_planner.schemas.layout import (
    Fixture,
    FixtureType,
    LayoutSnapshot,
    RoomSettings,
    Table,
    TablePreset,
    TableShape,
)
from seating_planner.schemas.summary import Aggregates, TableOccupancy
from seating_planner.services.summary_service import SummaryService

logger = logging.getLogger(__name__)

DEFAULT_X = 100.0
DEFAULT_Y = 100.0
DEFAULT_CAPACITY = 8

TABLE_PRESETS: List[TablePreset] = [
    TablePreset(name='Round 60"', shape=TableShape.ROUND, width=120, height=120, capacity=8),
    TablePreset(name='Round 72"', shape=TableShape.ROUND, width=144, height=144, capacity=10),
    TablePreset(name="Rect 6ft", shape=TableShape.RECT, width=180, height=120, capacity=8),
    TablePreset(name="Rect 8ft", shape=TableShape.RECT, width=240, height=120, capacity=10),
    TablePreset(name="Cocktail", shape=TableShape.ROUND, width=80, height=80, capacity=4),
    TablePreset(name="Head Table", shape=TableShape.RECT, width=300, height=100, capacity=12),
    TablePreset(name="Sweetheart", shape=TableShape.ROUND, width=100, height=100, capacity=2),
]

SHAPE_DEFAULTS: Dict[TableShape, Tuple[float, float]] = {
    TableShape.ROUND: (120, 120),
    TableShape.RECT: (140, 100),
}

# type -> (label, width, height)
FIXTURE_CATALOGUE: Dict[FixtureType, Tuple[str, float, float]] = {
    FixtureType.SWEETHEART_TABLE: ("Sweetheart Table", 100, 100),
    FixtureType.HEAD_TABLE: ("Head Table", 300, 100),
    FixtureType.DANCE_FLOOR: ("Dance Floor", 240, 240),
    FixtureType.DJ_BOOTH: ("DJ Booth", 120, 80),
    FixtureType.BAR: ("Bar", 180, 60),
    FixtureType.BUFFET: ("Buffet", 240, 80),
    FixtureType.CAKE_TABLE: ("Cake Table", 80, 80),
    FixtureType.GIFT_TABLE: ("Gift Table", 120, 80),
    FixtureType.ESCORT_CARD_TABLE: ("Escort Cards", 120, 60),
    FixtureType.STAGE: ("Stage", 300, 160),
    FixtureType.DOOR: ("Door", 60, 20),
    FixtureType.WINDOW: ("Window", 80, 20),
    FixtureType.PILLAR: ("Pillar", 40, 40),
    FixtureType.TEXT: ("Text", 120, 40),
}

GROUP_COLORS = [
    "#ef4444", "#f97316", "#eab308", "#22c55e", "#06b6d4",
    "#3b82f6", "#8b5cf6", "#ec4899", "#84cc16", "#f59e0b",
]

GUEST_FIELDS = {
    "name", "table_num", "notes", "tags", "partner_id", "group_id", "meal_selection",
    "dietary_restrictions", "keep_apart_with", "is_vip", "is_child", "side",
}

Item = Union[Table, Fixture]


def new_id(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(4)}"


def snap(value: float, grid_size: int, enabled: bool = True) -> float:
    """Round ``value`` to the nearest multiple of ``grid_size``; halves round up."""
    if not enabled or grid_size <= 0:
        return value
    return math.floor(value / grid_size + 0.5) * grid_size


def find_preset(name: str) -> Optional[TablePreset]:
    wanted = name.strip().lower()
    return next((p for p in TABLE_PRESETS if p.name.lower() == wanted), None)


def _coerce(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ValidationFailed(f"Invalid {enum_cls.__name__} '{value}'") from None


class SeatingModel:
    """
    Owns the state of one layout and is the only place it is mutated.

    Table membership is stored on both sides (``Guest.table_num`` and
    ``Table.guests``); every change goes through ``_seat``/``_release`` so the
    two never drift apart. Unknown ids are treated as no-ops and reported with
    a ``False``/``None`` return value; capacity and validation problems raise
    before anything is touched.
    """

    def __init__(self, room: Optional[RoomSettings] = None):
        self.room: RoomSettings = room or RoomSettings()
        self.tables: List[Table] = []
        self.fixtures: List[Fixture] = []
        self.guests: List[Guest] = []
        self.groups: List[Group] = []

    # -------- snapshots --------

    @classmethod
    def from_snapshot(cls, snapshot: LayoutSnapshot) -> "SeatingModel":
        """Build a model from a stored snapshot, repairing inconsistent membership"""
        data = snapshot.model_copy(deep=True)
        model = cls(room=data.room)
        model.tables = data.tables
        model.fixtures = data.fixtures
        model.guests = data.guests
        model.groups = data.groups
        model._reindex()
        return model

    def to_snapshot(self) -> LayoutSnapshot:
        return LayoutSnapshot(
            room=self.room,
            tables=self.tables,
            fixtures=self.fixtures,
            guests=self.guests,
            groups=self.groups,
        ).model_copy(deep=True)

    def _reindex(self) -> None:
        # Guest.table_num is canonical when loading
        used: set = set()
        taken = {t.number for t in self.tables}
        for table in self.tables:
            if table.number in used:
                old = table.number
                table.number = self.next_table_number(exclude=used | taken)
                logger.warning(f"Duplicate table number {old} renumbered to {table.number}")
            used.add(table.number)
            table.guests = []

        by_number = {table.number: table for table in self.tables}
        for guest in self.guests:
            if guest.table_num is None:
                continue
            table = by_number.get(guest.table_num)
            if table is None:
                logger.warning(f"Guest {guest.id} referenced missing table {guest.table_num}; unassigned")
                guest.table_num = None
            elif len(table.guests) >= table.capacity:
                logger.warning(f"Table {table.number} over capacity on load; guest {guest.id} unassigned")
                guest.table_num = None
            else:
                table.guests.append(guest.id)

        guest_ids = {guest.id for guest in self.guests}
        group_ids = {group.id for group in self.groups}
        for guest in self.guests:
            if guest.partner_id is not None and guest.partner_id not in guest_ids:
                guest.partner_id = None
            guest.keep_apart_with = [g for g in guest.keep_apart_with if g in guest_ids and g != guest.id]
            if guest.group_id is not None and guest.group_id not in group_ids:
                guest.group_id = None

    # -------- lookups --------

    def get_guest(self, guest_id: str) -> Optional[Guest]:
        return next((g for g in self.guests if g.id == guest_id), None)

    def get_table(self, table_id: str) -> Optional[Table]:
        return next((t for t in self.tables if t.id == table_id), None)

    def get_table_by_number(self, number: int) -> Optional[Table]:
        return next((t for t in self.tables if t.number == number), None)

    def get_fixture(self, fixture_id: str) -> Optional[Fixture]:
        return next((f for f in self.fixtures if f.id == fixture_id), None)

    def get_group(self, group_id: str) -> Optional[Group]:
        return next((g for g in self.groups if g.id == group_id), None)

    # -------- room --------

    def snap(self, value: float) -> float:
        return snap(value, self.room.grid_size, self.room.snap_to_grid)

    def _snap_size(self, value: float) -> float:
        # never collapse an item below one grid cell
        snapped = self.snap(value)
        if self.room.snap_to_grid and snapped < self.room.grid_size:
            return self.room.grid_size
        return snapped

    def update_room_settings(self, **fields: Any) -> RoomSettings:
        """Apply a partial room settings update; stored geometry is not re-snapped"""
        unknown = set(fields) - set(RoomSettings.model_fields)
        if unknown:
            raise ValidationFailed(f"Unknown room settings: {', '.join(sorted(unknown))}")
        merged = {**self.room.model_dump(), **{k: v for k, v in fields.items() if v is not None}}
        try:
            room = RoomSettings(**merged)
        except ValidationError as exc:
            raise ValidationFailed(str(exc)) from exc
        if room.grid_size <= 0:
            raise ValidationFailed("Grid size must be positive")
        if room.width <= 0 or room.height <= 0:
            raise ValidationFailed("Room width and height must be positive")
        if room.scale <= 0:
            raise ValidationFailed("Scale must be positive")
        self.room = room
        return room

    # -------- geometry helpers shared by tables and fixtures --------

    def _move(self, item: Optional[Item], x: float, y: float) -> bool:
        if item is None or item.locked:
            return False
        item.x = self.snap(x)
        item.y = self.snap(y)
        return True

    def _resize(self, item: Optional[Item], width: float, height: float) -> bool:
        if width <= 0 or height <= 0:
            raise ValidationFailed("Width and height must be positive")
        if item is None or item.locked:
            return False
        item.width = self._snap_size(width)
        item.height = self._snap_size(height)
        item.x = self.snap(item.x)
        item.y = self.snap(item.y)
        return True

    @staticmethod
    def _rotate(item: Optional[Item], rotation: float) -> bool:
        if item is None or item.locked:
            return False
        item.rotation = rotation % 360
        return True

    @staticmethod
    def _toggle_lock(item: Optional[Item]) -> bool:
        if item is None:
            return False
        item.locked = not item.locked
        return True

    # -------- tables --------

    def next_table_number(self, exclude: Optional[set] = None) -> int:
        """Smallest positive integer not used by any table"""
        used = exclude if exclude is not None else {t.number for t in self.tables}
        number = 1
        while number in used:
            number += 1
        return number

    def add_table(
        self,
        preset: Optional[TablePreset] = None,
        shape: TableShape = TableShape.ROUND,
        x: Optional[float] = None,
        y: Optional[float] = None,
        capacity: Optional[int] = None,
    ) -> Table:
        """Add a table from a preset or a bare shape"""
        if capacity is not None and capacity <= 0:
            raise ValidationFailed("Capacity must be a positive integer")

        if preset is not None:
            shape, width, height = preset.shape, preset.width, preset.height
            default_capacity = preset.capacity
        else:
            shape = _coerce(TableShape, shape)
            width, height = SHAPE_DEFAULTS[shape]
            default_capacity = DEFAULT_CAPACITY

        number = self.next_table_number()
        table = Table(
            id=new_id("table"),
            name=preset.name if preset is not None else f"Table {number}",
            number=number,
            x=self.snap(DEFAULT_X if x is None else x),
            y=self.snap(DEFAULT_Y if y is None else y),
            width=width,
            height=height,
            capacity=capacity or default_capacity,
            shape=shape,
        )
        self.tables.append(table)
        logger.info(f"Added table {table.number} ({table.name}, {table.capacity} seats)")
        return table

    def update_table_position(self, table_id: str, x: float, y: float) -> bool:
        return self._move(self.get_table(table_id), x, y)

    def update_table_size(self, table_id: str, width: float, height: float) -> bool:
        return self._resize(self.get_table(table_id), width, height)

    def update_table_rotation(self, table_id: str, rotation: float) -> bool:
        return self._rotate(self.get_table(table_id), rotation)

    def toggle_table_lock(self, table_id: str) -> bool:
        return self._toggle_lock(self.get_table(table_id))

    def update_table_details(
        self,
        table_id: str,
        name: Optional[str] = None,
        capacity: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> bool:
        table = self.get_table(table_id)
        if table is None:
            return False
        if name is not None and not name.strip():
            raise ValidationFailed("Table name cannot be empty")
        if capacity is not None:
            if capacity <= 0:
                raise ValidationFailed("Capacity must be a positive integer")
            if capacity < len(table.guests):
                raise ValidationFailed(
                    f"Table {table.number} already seats {len(table.guests)} guests"
                )

        if name is not None:
            table.name = name.strip()
        if capacity is not None:
            table.capacity = capacity
        if notes is not None:
            table.notes = notes
        return True

    def delete_table(self, table_id: str) -> bool:
        """Remove a table, releasing its guests to the unassigned list"""
        table = self.get_table(table_id)
        if table is None:
            return False
        for guest in self.guests:
            if guest.id in table.guests:
                guest.table_num = None
        self.tables = [t for t in self.tables if t.id != table_id]
        logger.info(f"Deleted table {table.number}; released {len(table.guests)} guests")
        return True

    # -------- fixtures --------

    def add_fixture(
        self,
        fixture_type: Union[FixtureType, str],
        x: float = DEFAULT_X,
        y: float = DEFAULT_Y,
        label: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Fixture:
        fixture_type = _coerce(FixtureType, fixture_type)
        default_label, width, height = FIXTURE_CATALOGUE[fixture_type]
        fixture = Fixture(
            id=new_id("fixture"),
            type=fixture_type,
            x=self.snap(x),
            y=self.snap(y),
            width=width,
            height=height,
            label=label if label is not None else default_label,
            color=color,
        )
        self.fixtures.append(fixture)
        return fixture

    def update_fixture_position(self, fixture_id: str, x: float, y: float) -> bool:
        return self._move(self.get_fixture(fixture_id), x, y)

    def update_fixture_size(self, fixture_id: str, width: float, height: float) -> bool:
        return self._resize(self.get_fixture(fixture_id), width, height)

    def update_fixture_rotation(self, fixture_id: str, rotation: float) -> bool:
        return self._rotate(self.get_fixture(fixture_id), rotation)

    def toggle_fixture_lock(self, fixture_id: str) -> bool:
        return self._toggle_lock(self.get_fixture(fixture_id))

    def update_fixture_details(
        self, fixture_id: str, label: Optional[str] = None, color: Optional[str] = None
    ) -> bool:
        fixture = self.get_fixture(fixture_id)
        if fixture is None:
            return False
        if label is not None:
            fixture.label = label
        if color is not None:
            fixture.color = color
        return True

    def delete_fixture(self, fixture_id: str) -> bool:
        if self.get_fixture(fixture_id) is None:
            return False
        self.fixtures = [f for f in self.fixtures if f.id != fixture_id]
        return True

    # -------- assignment --------

    def _release(self, guest: Guest) -> None:
        for table in self.tables:
            if guest.id in table.guests:
                table.guests.remove(guest.id)
        guest.table_num = None

    def _seat(self, guest: Guest, table: Table) -> None:
        # capacity must already have been checked
        self._release(guest)
        table.guests.append(guest.id)
        guest.table_num = table.number

    @staticmethod
    def _ensure_free_seat(table: Table) -> None:
        if len(table.guests) >= table.capacity:
            raise CapacityExceeded(table.number, table.capacity)

    def assign_guest_to_table(self, guest_id: str, table_id: str) -> bool:
        """
        Seat a guest at a table, moving them from any previous table.

        Raises ``CapacityExceeded`` without changing anything when the table
        is full. Returns ``False`` when either id is unknown.
        """
        guest = self.get_guest(guest_id)
        table = self.get_table(table_id)
        if guest is None or table is None:
            return False
        if guest.id in table.guests:
            return True
        self._ensure_free_seat(table)
        previous = guest.table_num
        self._seat(guest, table)
        logger.info(f"Guest {guest.id} moved from table {previous} to table {table.number}")
        return True

    def assign_guest_to_table_number(self, guest_id: str, number: int) -> bool:
        guest = self.get_guest(guest_id)
        if guest is None:
            return False
        table = self.get_table_by_number(number)
        if table is None:
            raise ValidationFailed(f"Table {number} does not exist")
        return self.assign_guest_to_table(guest_id, table.id)

    def unassign_guest(self, guest_id: str) -> bool:
        guest = self.get_guest(guest_id)
        if guest is None:
            return False
        self._release(guest)
        return True

    def reset_assignments(self) -> int:
        """Unassign every guest, keeping the guest list; returns how many were seated"""
        seated = sum(1 for g in self.guests if g.table_num is not None)
        for table in self.tables:
            table.guests = []
        for guest in self.guests:
            guest.table_num = None
        return seated

    # -------- guests --------

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        text = (name or "").strip()
        if not text:
            raise ValidationFailed("Guest name cannot be empty")
        return text

    def _validate_guest_fields(self, fields: Dict[str, Any], guest_id: Optional[str] = None) -> Dict[str, Any]:
        unknown = set(fields) - GUEST_FIELDS
        if unknown:
            raise ValidationFailed(f"Unknown guest fields: {', '.join(sorted(unknown))}")

        changes: Dict[str, Any] = {}
        for key, value in fields.items():
            if key == "name":
                value = self._clean_name(value)
            elif key in ("tags", "dietary_restrictions"):
                value = unique_strings(value or [])
            elif key == "keep_apart_with":
                value = unique_strings(value or [])
                for other_id in value:
                    if other_id == guest_id or self.get_guest(other_id) is None:
                        raise ValidationFailed(f"Unknown keep-apart guest '{other_id}'")
            elif key == "partner_id":
                if value is not None and (value == guest_id or self.get_guest(value) is None):
                    raise ValidationFailed(f"Unknown partner '{value}'")
            elif key == "group_id":
                if value is not None and self.get_group(value) is None:
                    raise ValidationFailed(f"Unknown group '{value}'")
            elif key == "meal_selection":
                value = _coerce(MealSelection, value or None)
            elif key == "side":
                value = _coerce(Side, value or None)
            elif key in ("is_vip", "is_child"):
                value = bool(value)
            elif key == "notes":
                value = "" if value is None else str(value)
            elif key == "table_num":
                if value is not None and self.get_table_by_number(value) is None:
                    raise ValidationFailed(f"Table {value} does not exist")
            changes[key] = value
        return changes

    def add_guest(self, name: str, table_num: Optional[int] = None, **fields: Any) -> GuestAddResult:
        """
        Create a guest, optionally seated at ``table_num``.

        A full requested table does not block creation: the guest is left
        unassigned and ``table_full`` is set on the result.
        """
        changes = self._validate_guest_fields({"name": name, "table_num": table_num, **fields})
        changes.pop("table_num")
        table = self.get_table_by_number(table_num) if table_num is not None else None

        try:
            guest = Guest(id=new_id("guest"), **changes)
        except ValidationError as exc:
            raise ValidationFailed(str(exc)) from exc
        self.guests.append(guest)

        table_full = False
        if table is not None:
            if len(table.guests) >= table.capacity:
                table_full = True
                logger.info(f"Table {table.number} is full; {guest.name} added without a table")
            else:
                self._seat(guest, table)
        return GuestAddResult(guest=guest, requested_table=table_num, table_full=table_full)

    def remove_guest(self, guest_id: str) -> bool:
        """Delete a guest and every reference to them"""
        guest = self.get_guest(guest_id)
        if guest is None:
            return False
        self._release(guest)
        self.guests = [g for g in self.guests if g.id != guest_id]
        for other in self.guests:
            if other.partner_id == guest_id:
                other.partner_id = None
            if guest_id in other.keep_apart_with:
                other.keep_apart_with = [g for g in other.keep_apart_with if g != guest_id]
        return True

    def update_guest_fields(self, guest_id: str, **fields: Any) -> Optional[Guest]:
        """
        Update any subset of a guest's fields.

        A ``table_num`` change is routed through the same capacity check as
        ``assign_guest_to_table``; nothing is applied if any field is rejected.
        """
        guest = self.get_guest(guest_id)
        if guest is None:
            return None
        changes = self._validate_guest_fields(fields, guest_id=guest.id)

        move_to: Optional[Table] = None
        release = False
        if "table_num" in changes:
            number = changes.pop("table_num")
            if number is None:
                release = guest.table_num is not None
            elif number != guest.table_num:
                move_to = self.get_table_by_number(number)
                self._ensure_free_seat(move_to)

        for key, value in changes.items():
            setattr(guest, key, value)
        if release:
            self._release(guest)
        if move_to is not None:
            self._seat(guest, move_to)
        return guest

    # -------- groups --------

    def add_group(self, name: str, color: Optional[str] = None) -> Group:
        name = (name or "").strip()
        if not name:
            raise ValidationFailed("Group name cannot be empty")
        group = Group(
            id=new_id("group"),
            name=name,
            color=color or GROUP_COLORS[len(self.groups) % len(GROUP_COLORS)],
        )
        self.groups.append(group)
        return group

    def update_group(self, group_id: str, name: Optional[str] = None, color: Optional[str] = None) -> Optional[Group]:
        group = self.get_group(group_id)
        if group is None:
            return None
        if name is not None:
            if not name.strip():
                raise ValidationFailed("Group name cannot be empty")
            group.name = name.strip()
        if color is not None:
            group.color = color
        return group

    def delete_group(self, group_id: str) -> bool:
        """Delete a group; member guests stay, with their group cleared"""
        if self.get_group(group_id) is None:
            return False
        released = 0
        for guest in self.guests:
            if guest.group_id == group_id:
                guest.group_id = None
                released += 1
        self.groups = [g for g in self.groups if g.id != group_id]
        logger.info(f"Deleted group {group_id}; cleared {released} guests")
        return True

    # -------- derived data --------

    def compute_table_occupancy(self, table_id: str) -> Optional[TableOccupancy]:
        table = self.get_table(table_id)
        if table is None:
            return None
        count = len(table.guests)
        return TableOccupancy(count=count, capacity=table.capacity, is_full=count >= table.capacity)

    def aggregates(self) -> Aggregates:
        return SummaryService.compute_aggregates(self.guests, self.tables)

    def overlapping_items(self) -> List[Tuple[str, str]]:
        """Pairs of table/fixture ids whose bounding boxes intersect (advisory)"""
        items: List[Item] = [*self.tables, *self.fixtures]
        overlaps = []
        for a, b in combinations(items, 2):
            if (
                a.x < b.x + b.width
                and b.x < a.x + a.width
                and a.y < b.y + b.height
                and b.y < a.y + a.height
            ):
                overlaps.append((a.id, b.id))
        return overlaps

    def check_consistency(self) -> List[str]:
        """Describe every broken invariant; empty when the model is consistent"""
        problems: List[str] = []
        numbers = [t.number for t in self.tables]
        for number in sorted({n for n in numbers if numbers.count(n) > 1}):
            problems.append(f"Table number {number} is used more than once")

        guests_by_id = {g.id: g for g in self.guests}
        seen: Dict[str, int] = {}
        for table in self.tables:
            if len(table.guests) > table.capacity:
                problems.append(f"Table {table.number} seats {len(table.guests)} of {table.capacity}")
            for guest_id in table.guests:
                guest = guests_by_id.get(guest_id)
                if guest is None:
                    problems.append(f"Table {table.number} lists unknown guest {guest_id}")
                elif guest.table_num != table.number:
                    problems.append(f"Guest {guest_id} listed at table {table.number} but has table {guest.table_num}")
                if guest_id in seen:
                    problems.append(f"Guest {guest_id} listed at tables {seen[guest_id]} and {table.number}")
                seen[guest_id] = table.number

        group_ids = {g.id for g in self.groups}
        for guest in self.guests:
            if guest.table_num is not None:
                table = self.get_table_by_number(guest.table_num)
                if table is None:
                    problems.append(f"Guest {guest.id} references missing table {guest.table_num}")
                elif guest.id not in table.guests:
                    problems.append(f"Guest {guest.id} missing from table {guest.table_num}")
            if guest.partner_id is not None and guest.partner_id not in guests_by_id:
                problems.append(f"Guest {guest.id} has unknown partner {guest.partner_id}")
            for other_id in guest.keep_apart_with:
                if other_id not in guests_by_id:
                    problems.append(f"Guest {guest.id} keeps apart from unknown guest {other_id}")
            if guest.group_id is not None and guest.group_id not in group_ids:
                problems.append(f"Guest {guest.id} has unknown group {guest.group_id}")
        return problems
