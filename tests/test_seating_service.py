"""
Tests for the seating model: assignment, capacity and layout geometry
"""

import random

import pytest

from seating_planner.core.errors import CapacityExceeded, ValidationFailed
from seating_planner.schemas.guest import Guest
from seating_planner.schemas.layout import FixtureType, LayoutSnapshot, RoomSettings, Table, TableShape
from seating_planner.services.seating_service import SeatingModel, find_preset, snap


@pytest.fixture
def model():
    """Empty model with the default 20px snapping grid"""
    return SeatingModel()


@pytest.fixture
def table_five(model):
    """One table numbered 5 with two seats, guests Alice, Bob and Carol unassigned"""
    for _ in range(5):
        model.add_table(capacity=2)
    table = model.get_table_by_number(5)
    for other in [t for t in model.tables if t.number != 5]:
        model.delete_table(other.id)
    for name in ["Alice", "Bob", "Carol"]:
        model.add_guest(name)
    return table


def guest_named(model, name):
    return next(g for g in model.guests if g.name == name)


def test_fill_table_to_capacity(model, table_five):
    """Third guest at a two-seat table is refused and nothing changes"""
    alice, bob, carol = (guest_named(model, n) for n in ["Alice", "Bob", "Carol"])

    assert model.assign_guest_to_table(alice.id, table_five.id)
    assert table_five.guests == [alice.id]
    assert model.assign_guest_to_table(bob.id, table_five.id)
    assert set(table_five.guests) == {alice.id, bob.id}

    with pytest.raises(CapacityExceeded) as exc_info:
        model.assign_guest_to_table(carol.id, table_five.id)

    assert exc_info.value.table_number == 5
    assert exc_info.value.capacity == 2
    assert set(table_five.guests) == {alice.id, bob.id}
    assert carol.table_num is None
    assert model.check_consistency() == []


def test_reassign_moves_exactly_one_seat(model):
    """Moving a guest frees a seat at the old table and takes one at the new table"""
    table_a = model.add_table(capacity=4)
    table_b = model.add_table(capacity=4)
    guest = model.add_guest("Dana", table_a.number).guest

    assert model.compute_table_occupancy(table_a.id).count == 1
    assert model.assign_guest_to_table(guest.id, table_b.id)

    assert model.compute_table_occupancy(table_a.id).count == 0
    assert model.compute_table_occupancy(table_b.id).count == 1
    assert guest.table_num == table_b.number
    assert guest.id not in table_a.guests
    assert model.check_consistency() == []


def test_assign_to_current_full_table_is_noop(model):
    """Re-assigning a seated guest to their own full table succeeds without change"""
    table = model.add_table(capacity=1)
    guest = model.add_guest("Eve", table.number).guest

    assert model.assign_guest_to_table(guest.id, table.id)
    assert table.guests == [guest.id]


def test_assign_unknown_ids_is_noop(model):
    table = model.add_table()
    guest = model.add_guest("Finn").guest

    assert model.assign_guest_to_table("guest_missing", table.id) is False
    assert model.assign_guest_to_table(guest.id, "table_missing") is False
    assert guest.table_num is None
    assert table.guests == []


def test_unassign_guest(model):
    table = model.add_table()
    guest = model.add_guest("Gus", table.number).guest

    assert model.unassign_guest(guest.id)
    assert guest.table_num is None
    assert table.guests == []
    assert model.unassign_guest("guest_missing") is False


def test_delete_table_releases_guests(model):
    """Deleting a table leaves its guests unassigned and the table gone"""
    table = model.add_table(capacity=3)
    other = model.add_table(capacity=3)
    seated = [model.add_guest(f"Guest {i}", table.number).guest for i in range(3)]
    elsewhere = model.add_guest("Elsewhere", other.number).guest

    assert model.delete_table(table.id)

    assert all(g.table_num is None for g in seated)
    assert elsewhere.table_num == other.number
    assert model.get_table(table.id) is None
    assert model.delete_table(table.id) is False
    assert model.check_consistency() == []


def test_table_numbers_reuse_smallest_free(model):
    """A deleted table's number is handed out again before higher numbers"""
    first = model.add_table()
    second = model.add_table()
    third = model.add_table()
    assert [first.number, second.number, third.number] == [1, 2, 3]

    model.delete_table(second.id)
    replacement = model.add_table()

    assert replacement.number == 2
    assert sorted(t.number for t in model.tables) == [1, 2, 3]


def test_add_table_from_preset():
    model = SeatingModel()
    preset = find_preset("round 72\"")

    table = model.add_table(preset=preset)

    assert table.name == 'Round 72"'
    assert table.capacity == 10
    assert table.shape == TableShape.ROUND
    assert (table.x, table.y) == (100, 100)
    assert (table.width, table.height) == (144, 144)


def test_add_table_rejects_non_positive_capacity(model):
    with pytest.raises(ValidationFailed):
        model.add_table(capacity=0)
    assert model.tables == []


def test_add_guest_to_full_table_still_creates_guest(model):
    """A full requested table leaves the new guest unassigned"""
    table = model.add_table(capacity=1)
    model.add_guest("Hana", table.number)

    result = model.add_guest("Ivan", table.number)

    assert result.table_full
    assert result.requested_table == table.number
    assert result.guest.table_num is None
    assert result.guest in model.guests
    assert len(table.guests) == 1


def test_add_guest_validation(model):
    with pytest.raises(ValidationFailed):
        model.add_guest("   ")
    with pytest.raises(ValidationFailed):
        model.add_guest("Jo", table_num=42)
    assert model.guests == []


def test_add_guest_starts_with_empty_collections(model):
    guest = model.add_guest("  Kim  ").guest

    assert guest.name == "Kim"
    assert guest.notes == ""
    assert guest.tags == []
    assert guest.dietary_restrictions == []
    assert guest.keep_apart_with == []
    assert not guest.is_vip and not guest.is_child


def test_remove_guest_clears_references(model):
    """Removing a guest frees the seat and clears partner and keep-apart links"""
    table = model.add_table()
    leaving = model.add_guest("Lee", table.number).guest
    partner = model.add_guest("Max").guest
    wary = model.add_guest("Nia").guest
    model.update_guest_fields(partner.id, partner_id=leaving.id)
    model.update_guest_fields(wary.id, keep_apart_with=[leaving.id, partner.id])

    assert model.remove_guest(leaving.id)

    assert model.get_guest(leaving.id) is None
    assert table.guests == []
    assert partner.partner_id is None
    assert wary.keep_apart_with == [partner.id]
    assert model.check_consistency() == []


def test_update_guest_fields(model):
    group = model.add_group("College friends")
    guest = model.add_guest("Omar").guest

    updated = model.update_guest_fields(
        guest.id,
        notes="Needs wheelchair access",
        tags=["college", "college", " band "],
        meal_selection="Fish",
        dietary_restrictions=["GF", "NF", "GF"],
        is_vip=True,
        side="groom",
        group_id=group.id,
    )

    assert updated is guest
    assert guest.notes == "Needs wheelchair access"
    assert guest.tags == ["college", "band"]
    assert guest.meal_selection.value == "fish"
    assert guest.dietary_restrictions == ["GF", "NF"]
    assert guest.is_vip
    assert guest.side.value == "groom"
    assert guest.group_id == group.id


def test_update_guest_table_respects_capacity(model):
    """Changing table through a field update uses the capacity check"""
    full = model.add_table(capacity=1)
    model.add_guest("Pat", full.number)
    guest = model.add_guest("Quinn", notes="original").guest

    with pytest.raises(CapacityExceeded):
        model.update_guest_fields(guest.id, table_num=full.number, notes="changed")

    assert guest.table_num is None
    assert guest.notes == "original"
    assert len(full.guests) == 1


def test_update_guest_table_moves_and_clears(model):
    table_a = model.add_table()
    table_b = model.add_table()
    guest = model.add_guest("Rae", table_a.number).guest

    model.update_guest_fields(guest.id, table_num=table_b.number)
    assert guest.id in table_b.guests and guest.id not in table_a.guests

    model.update_guest_fields(guest.id, table_num=None)
    assert guest.table_num is None
    assert table_b.guests == []


def test_update_guest_rejects_bad_references(model):
    guest = model.add_guest("Sol").guest

    with pytest.raises(ValidationFailed):
        model.update_guest_fields(guest.id, partner_id=guest.id)
    with pytest.raises(ValidationFailed):
        model.update_guest_fields(guest.id, keep_apart_with=["guest_missing"])
    with pytest.raises(ValidationFailed):
        model.update_guest_fields(guest.id, group_id="group_missing")
    with pytest.raises(ValidationFailed):
        model.update_guest_fields(guest.id, meal_selection="lobster")
    with pytest.raises(ValidationFailed):
        model.update_guest_fields(guest.id, name="")
    with pytest.raises(ValidationFailed):
        model.update_guest_fields(guest.id, favourite_colour="blue")

    assert model.update_guest_fields("guest_missing", notes="x") is None


def test_partner_is_not_mirrored(model):
    """Partner links are one-directional annotations"""
    a = model.add_guest("Tom").guest
    b = model.add_guest("Uma").guest

    model.update_guest_fields(a.id, partner_id=b.id)

    assert a.partner_id == b.id
    assert b.partner_id is None


def test_delete_group_keeps_guests(model):
    """Deleting a group clears it from its three members and keeps them"""
    group = model.add_group("Cousins")
    members = [model.add_guest(f"Cousin {i}").guest for i in range(3)]
    for guest in members:
        model.update_guest_fields(guest.id, group_id=group.id)

    assert model.delete_group(group.id)

    assert model.get_group(group.id) is None
    assert len(model.guests) == 3
    assert all(g.group_id is None for g in members)


def test_reset_assignments(model):
    table = model.add_table()
    for i in range(3):
        model.add_guest(f"Guest {i}", table.number)

    assert model.reset_assignments() == 3
    assert table.guests == []
    assert all(g.table_num is None for g in model.guests)


def test_update_table_capacity_cannot_drop_below_occupancy(model):
    table = model.add_table(capacity=4)
    for i in range(3):
        model.add_guest(f"Guest {i}", table.number)

    with pytest.raises(ValidationFailed):
        model.update_table_details(table.id, capacity=2)
    assert table.capacity == 4

    assert model.update_table_details(table.id, capacity=3, name="Family")
    assert model.compute_table_occupancy(table.id).is_full
    assert table.name == "Family"


def test_occupancy(model):
    table = model.add_table(capacity=2)
    model.add_guest("Vic", table.number)

    occupancy = model.compute_table_occupancy(table.id)

    assert occupancy.count == 1
    assert occupancy.capacity == 2
    assert not occupancy.is_full
    assert model.compute_table_occupancy("table_missing") is None


def test_random_operations_keep_invariants():
    """Capacity and membership invariants hold after a long random sequence"""
    rng = random.Random(7)
    model = SeatingModel()
    for _ in range(4):
        model.add_table(capacity=rng.randint(1, 4))
    for i in range(15):
        model.add_guest(f"Guest {i}")

    for _ in range(300):
        op = rng.choice(["assign", "unassign", "delete_table", "add_table", "remove", "add_guest"])
        guest = rng.choice(model.guests) if model.guests else None
        table = rng.choice(model.tables) if model.tables else None
        try:
            if op == "assign" and guest and table:
                model.assign_guest_to_table(guest.id, table.id)
            elif op == "unassign" and guest:
                model.unassign_guest(guest.id)
            elif op == "delete_table" and table and len(model.tables) > 2:
                model.delete_table(table.id)
            elif op == "add_table":
                model.add_table(capacity=rng.randint(1, 4))
            elif op == "remove" and guest and len(model.guests) > 5:
                model.remove_guest(guest.id)
            elif op == "add_guest":
                model.add_guest(f"Late {rng.random():.5f}", table.number if table else None)
        except CapacityExceeded:
            pass

        assert model.check_consistency() == []
        for t in model.tables:
            assert len(t.guests) <= t.capacity


# -------- geometry --------

@pytest.mark.parametrize("value", [-35, -10, 0, 9, 10, 11, 23, 47, 199.9, 1234.5])
def test_snap_is_idempotent(value):
    once = snap(value, 20)
    assert snap(once, 20) == once
    assert once % 20 == 0


def test_snap_rounds_half_up():
    assert snap(10, 20) == 20
    assert snap(30, 20) == 40
    assert snap(23, 20, enabled=False) == 23


def test_add_fixture_snaps_position(model):
    """addFixture('door', 23, 47) with a 20px grid lands on (20, 40)"""
    fixture = model.add_fixture("door", 23, 47)

    assert (fixture.x, fixture.y) == (20, 40)
    assert fixture.type == FixtureType.DOOR
    assert fixture.label == "Door"
    assert (fixture.width, fixture.height) == (60, 20)


def test_add_fixture_without_snapping():
    model = SeatingModel(room=RoomSettings(snap_to_grid=False))

    fixture = model.add_fixture(FixtureType.STAGE, 23, 47)

    assert (fixture.x, fixture.y) == (23, 47)


def test_add_fixture_rejects_unknown_type(model):
    with pytest.raises(ValidationFailed):
        model.add_fixture("hot-tub", 0, 0)


def test_table_geometry_snaps(model):
    table = model.add_table()

    assert model.update_table_position(table.id, 151, 289)
    assert (table.x, table.y) == (160, 280)
    assert model.update_table_size(table.id, 131, 5)
    assert (table.width, table.height) == (140, 20)
    assert model.update_table_rotation(table.id, 405)
    assert table.rotation == 45


def test_locked_table_refuses_geometry(model):
    table = model.add_table()
    assert model.toggle_table_lock(table.id)
    assert table.locked

    assert model.update_table_position(table.id, 500, 500) is False
    assert model.update_table_size(table.id, 300, 300) is False
    assert model.update_table_rotation(table.id, 90) is False
    assert (table.x, table.y, table.width, table.rotation) == (100, 100, 120, 0)

    assert model.toggle_table_lock(table.id)
    assert model.update_table_position(table.id, 500, 500)


def test_room_settings_change_does_not_resnap(model):
    table = model.add_table(x=40, y=60)

    model.update_room_settings(grid_size=50)

    assert (table.x, table.y) == (40, 60)
    assert model.update_table_position(table.id, 40, 60)
    assert (table.x, table.y) == (50, 50)


def test_room_settings_validation(model):
    with pytest.raises(ValidationFailed):
        model.update_room_settings(grid_size=0)
    with pytest.raises(ValidationFailed):
        model.update_room_settings(colour="red")
    assert model.room.grid_size == 20


def test_overlapping_items(model):
    a = model.add_table(x=100, y=100)
    b = model.add_table(x=200, y=100)
    far = model.add_fixture("pillar", 800, 600)

    assert model.overlapping_items() == [(a.id, b.id)]
    assert all(far.id not in pair for pair in model.overlapping_items())


def test_snapshot_round_trip_repairs_membership(model):
    """Loading rebuilds table member lists from guests' table numbers"""
    table = model.add_table(capacity=2)
    for name in ["Wes", "Xia"]:
        model.add_guest(name, table.number)
    snapshot = model.to_snapshot()

    snapshot.tables[0].guests = []
    snapshot.guests.append(snapshot.guests[0].model_copy(update={"id": "guest_extra", "name": "Yan"}))
    snapshot.guests.append(snapshot.guests[0].model_copy(update={"id": "guest_lost", "table_num": 99}))

    loaded = SeatingModel.from_snapshot(snapshot)

    assert loaded.check_consistency() == []
    assert len(loaded.tables[0].guests) == 2
    assert loaded.get_guest("guest_extra").table_num is None
    assert loaded.get_guest("guest_lost").table_num is None


def test_snapshot_is_a_copy(model):
    table = model.add_table()
    snapshot = model.to_snapshot()

    model.update_table_position(table.id, 500, 500)

    assert snapshot.tables[0].x == 100


def test_assign_by_table_number(model):
    model.add_table()
    table = model.add_table(capacity=1)
    guest = model.add_guest("Zoe").guest

    assert model.assign_guest_to_table_number(guest.id, table.number)
    assert table.guests == [guest.id]
    assert model.assign_guest_to_table_number("guest_missing", table.number) is False
    with pytest.raises(ValidationFailed):
        model.assign_guest_to_table_number(guest.id, 42)


def test_load_renumbers_duplicate_table_without_moving_guests():
    """A repeated table number is replaced by one no other table holds"""
    snapshot = LayoutSnapshot(
        tables=[
            Table(id="A", name="A", number=1),
            Table(id="B", name="B", number=1),
            Table(id="C", name="C", number=2),
        ],
        guests=[
            Guest(id="g1", name="Ada", table_num=1),
            Guest(id="g2", name="Ben", table_num=2),
        ],
    )

    model = SeatingModel.from_snapshot(snapshot)

    assert [t.number for t in model.tables] == [1, 3, 2]
    assert model.get_table("A").guests == ["g1"]
    assert model.get_table("B").guests == []
    assert model.get_table("C").guests == ["g2"]
    assert model.get_guest("g2").table_num == 2
    assert model.check_consistency() == []


def test_resize_snaps_stored_position():
    model = SeatingModel(room=RoomSettings(snap_to_grid=False))
    table = model.add_table(x=23, y=47)
    model.update_room_settings(snap_to_grid=True)

    assert model.update_table_size(table.id, 120, 120)

    assert (table.x, table.y) == (20, 40)
