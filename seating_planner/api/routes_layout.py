"""
Layout API routes - requires authentication

Each request loads the layout for its scope, applies one model operation and
saves the resulting snapshot.
"""

from typing import Any, Callable, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from seating_planner.core.config import settings
from seating_planner.core.db import get_db
from seating_planner.core.errors import NotFound, SeatingError, ValidationFailed
from seating_planner.schemas.guest import (
    DIETARY_CODES,
    AssignRequest,
    GroupCreate,
    GroupUpdate,
    GuestCreate,
    GuestUpdate,
    MealSelection,
)
from seating_planner.schemas.layout import (
    FixtureCreate,
    FixtureDetailsUpdate,
    LayoutType,
    PositionUpdate,
    RoomSettingsUpdate,
    RotationUpdate,
    SizeUpdate,
    TableCreate,
    TableDetailsUpdate,
)
from seating_planner.schemas.summary import DuplicateCheckRequest, DuplicatePolicy, ImportTextRequest
from seating_planner.services.duplicates import find_duplicates
from seating_planner.services.guest_list_service import GuestListService
from seating_planner.services.layout_service import LayoutService, LayoutStore
from seating_planner.services.repositories import scope_key
from seating_planner.services.seating_service import (
    FIXTURE_CATALOGUE,
    TABLE_PRESETS,
    SeatingModel,
    find_preset,
)
from seating_planner.services.summary_service import SummaryService
from seating_planner.utils.responses import error_response, seating_error_response, success_response
from seating_planner.utils.security import verify_admin_token

router = APIRouter()

LAYOUT = "/{event_id}/{layout_type}"

EXPORT_MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _open(event_id: str, layout_type: LayoutType, db: Session) -> Tuple[LayoutStore, str, SeatingModel]:
    store = LayoutStore(db)
    key = scope_key(event_id, layout_type)
    return store, key, LayoutService.open(store, key)


def _require(item, kind: str, item_id: str):
    if item is None:
        raise NotFound(kind, item_id)
    return item


def _committed(store: LayoutStore, key: str, model: SeatingModel, message: str, data: Optional[Dict[str, Any]] = None) -> JSONResponse:
    saved = LayoutService.commit(store, key, model)
    if not saved:
        message = f"{message} (changes kept but not saved)"
    return success_response(message=message, data={"saved": saved, **(data or {})})


def _geometry(
    event_id: str,
    layout_type: LayoutType,
    db: Session,
    kind: str,
    item_id: str,
    lookup: Callable[[SeatingModel, str], Any],
    action: Callable[[SeatingModel], bool],
    message: str,
) -> JSONResponse:
    store, key, model = _open(event_id, layout_type, db)
    try:
        _require(lookup(model, item_id), kind, item_id)
        changed = action(model)
    except SeatingError as exc:
        return seating_error_response(exc)

    item = lookup(model, item_id).model_dump(mode="json")
    if not changed:
        return success_response(message=f"{kind} is locked; nothing changed", data={"changed": False, "item": item})
    return _committed(store, key, model, message, {"changed": True, "item": item})


# -------- catalogue --------

@router.get("/catalogue")
async def get_catalogue(token: str = Depends(verify_admin_token)):
    """Table presets, fixture types, meal options and dietary codes"""
    return success_response(
        message="Catalogue retrieved",
        data={
            "table_presets": [p.model_dump(mode="json") for p in TABLE_PRESETS],
            "fixtures": [
                {"type": fixture_type.value, "label": label, "width": width, "height": height}
                for fixture_type, (label, width, height) in FIXTURE_CATALOGUE.items()
            ],
            "meals": [meal.value for meal in MealSelection],
            "dietary_codes": DIETARY_CODES,
        }
    )


# -------- layout --------

@router.get(LAYOUT)
async def get_layout(
    event_id: str,
    layout_type: LayoutType,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Full layout snapshot"""
    _, _, model = _open(event_id, layout_type, db)
    return success_response(
        message="Layout retrieved",
        data={
            **model.to_snapshot().model_dump(mode="json"),
            "overlaps": [list(pair) for pair in model.overlapping_items()],
        }
    )


@router.patch(LAYOUT + "/room")
async def update_room(
    event_id: str,
    layout_type: LayoutType,
    body: RoomSettingsUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    try:
        room = model.update_room_settings(**body.model_dump(exclude_unset=True))
    except SeatingError as exc:
        return seating_error_response(exc)
    return _committed(store, key, model, "Room settings updated", {"room": room.model_dump(mode="json")})


# -------- tables --------

@router.post(LAYOUT + "/tables")
async def add_table(
    event_id: str,
    layout_type: LayoutType,
    body: TableCreate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    try:
        preset = None
        if body.preset:
            preset = find_preset(body.preset)
            if preset is None:
                raise ValidationFailed(f"Unknown table preset '{body.preset}'")
        table = model.add_table(preset=preset, shape=body.shape, x=body.x, y=body.y, capacity=body.capacity)
    except SeatingError as exc:
        return seating_error_response(exc)
    return _committed(store, key, model, f"Table {table.number} added", {"table": table.model_dump(mode="json")})


@router.patch(LAYOUT + "/tables/{table_id}")
async def update_table(
    event_id: str,
    layout_type: LayoutType,
    table_id: str,
    body: TableDetailsUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    try:
        _require(model.get_table(table_id), "Table", table_id)
        model.update_table_details(table_id, **body.model_dump(exclude_unset=True))
    except SeatingError as exc:
        return seating_error_response(exc)
    return _committed(store, key, model, "Table updated", {"table": model.get_table(table_id).model_dump(mode="json")})


@router.put(LAYOUT + "/tables/{table_id}/position")
async def move_table(
    event_id: str,
    layout_type: LayoutType,
    table_id: str,
    body: PositionUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    return _geometry(
        event_id, layout_type, db, "Table", table_id, SeatingModel.get_table,
        lambda m: m.update_table_position(table_id, body.x, body.y), "Table moved",
    )


@router.put(LAYOUT + "/tables/{table_id}/size")
async def resize_table(
    event_id: str,
    layout_type: LayoutType,
    table_id: str,
    body: SizeUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    return _geometry(
        event_id, layout_type, db, "Table", table_id, SeatingModel.get_table,
        lambda m: m.update_table_size(table_id, body.width, body.height), "Table resized",
    )


@router.put(LAYOUT + "/tables/{table_id}/rotation")
async def rotate_table(
    event_id: str,
    layout_type: LayoutType,
    table_id: str,
    body: RotationUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    return _geometry(
        event_id, layout_type, db, "Table", table_id, SeatingModel.get_table,
        lambda m: m.update_table_rotation(table_id, body.rotation), "Table rotated",
    )


@router.post(LAYOUT + "/tables/{table_id}/lock")
async def toggle_table_lock(
    event_id: str,
    layout_type: LayoutType,
    table_id: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    return _geometry(
        event_id, layout_type, db, "Table", table_id, SeatingModel.get_table,
        lambda m: m.toggle_table_lock(table_id), "Table lock toggled",
    )


@router.get(LAYOUT + "/tables/{table_id}/occupancy")
async def get_table_occupancy(
    event_id: str,
    layout_type: LayoutType,
    table_id: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    _, _, model = _open(event_id, layout_type, db)
    occupancy = model.compute_table_occupancy(table_id)
    if occupancy is None:
        return seating_error_response(NotFound("Table", table_id))
    return success_response(message="Occupancy retrieved", data=occupancy.model_dump())


@router.delete(LAYOUT + "/tables/{table_id}")
async def delete_table(
    event_id: str,
    layout_type: LayoutType,
    table_id: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    if not model.delete_table(table_id):
        return seating_error_response(NotFound("Table", table_id))
    return _committed(store, key, model, "Table deleted")


# -------- fixtures --------

@router.post(LAYOUT + "/fixtures")
async def add_fixture(
    event_id: str,
    layout_type: LayoutType,
    body: FixtureCreate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    fixture = model.add_fixture(body.type, body.x, body.y, label=body.label, color=body.color)
    return _committed(store, key, model, "Fixture added", {"fixture": fixture.model_dump(mode="json")})


@router.patch(LAYOUT + "/fixtures/{fixture_id}")
async def update_fixture(
    event_id: str,
    layout_type: LayoutType,
    fixture_id: str,
    body: FixtureDetailsUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    if not model.update_fixture_details(fixture_id, **body.model_dump(exclude_unset=True)):
        return seating_error_response(NotFound("Fixture", fixture_id))
    return _committed(store, key, model, "Fixture updated", {"fixture": model.get_fixture(fixture_id).model_dump(mode="json")})


@router.put(LAYOUT + "/fixtures/{fixture_id}/position")
async def move_fixture(
    event_id: str,
    layout_type: LayoutType,
    fixture_id: str,
    body: PositionUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    return _geometry(
        event_id, layout_type, db, "Fixture", fixture_id, SeatingModel.get_fixture,
        lambda m: m.update_fixture_position(fixture_id, body.x, body.y), "Fixture moved",
    )


@router.put(LAYOUT + "/fixtures/{fixture_id}/size")
async def resize_fixture(
    event_id: str,
    layout_type: LayoutType,
    fixture_id: str,
    body: SizeUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    return _geometry(
        event_id, layout_type, db, "Fixture", fixture_id, SeatingModel.get_fixture,
        lambda m: m.update_fixture_size(fixture_id, body.width, body.height), "Fixture resized",
    )


@router.put(LAYOUT + "/fixtures/{fixture_id}/rotation")
async def rotate_fixture(
    event_id: str,
    layout_type: LayoutType,
    fixture_id: str,
    body: RotationUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    return _geometry(
        event_id, layout_type, db, "Fixture", fixture_id, SeatingModel.get_fixture,
        lambda m: m.update_fixture_rotation(fixture_id, body.rotation), "Fixture rotated",
    )


@router.post(LAYOUT + "/fixtures/{fixture_id}/lock")
async def toggle_fixture_lock(
    event_id: str,
    layout_type: LayoutType,
    fixture_id: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    return _geometry(
        event_id, layout_type, db, "Fixture", fixture_id, SeatingModel.get_fixture,
        lambda m: m.toggle_fixture_lock(fixture_id), "Fixture lock toggled",
    )


@router.delete(LAYOUT + "/fixtures/{fixture_id}")
async def delete_fixture(
    event_id: str,
    layout_type: LayoutType,
    fixture_id: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    if not model.delete_fixture(fixture_id):
        return seating_error_response(NotFound("Fixture", fixture_id))
    return _committed(store, key, model, "Fixture deleted")


# -------- guests --------

@router.post(LAYOUT + "/guests")
async def add_guest(
    event_id: str,
    layout_type: LayoutType,
    body: GuestCreate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    fields = body.model_dump(exclude={"name", "table_num"})
    try:
        result = model.add_guest(body.name, body.table_num, **fields)
    except SeatingError as exc:
        return seating_error_response(exc)

    message = "Guest added"
    if result.table_full:
        message = f"Table {result.requested_table} is full. Guest added without a table"
    return _committed(store, key, model, message, result.model_dump(mode="json"))


@router.patch(LAYOUT + "/guests/{guest_id}")
async def update_guest(
    event_id: str,
    layout_type: LayoutType,
    guest_id: str,
    body: GuestUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    try:
        guest = _require(
            model.update_guest_fields(guest_id, **body.model_dump(exclude_unset=True)),
            "Guest", guest_id,
        )
    except SeatingError as exc:
        return seating_error_response(exc)
    return _committed(store, key, model, "Guest updated", {"guest": guest.model_dump(mode="json")})


@router.delete(LAYOUT + "/guests/{guest_id}")
async def remove_guest(
    event_id: str,
    layout_type: LayoutType,
    guest_id: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    if not model.remove_guest(guest_id):
        return seating_error_response(NotFound("Guest", guest_id))
    return _committed(store, key, model, "Guest removed")


@router.post(LAYOUT + "/guests/{guest_id}/assign")
async def assign_guest(
    event_id: str,
    layout_type: LayoutType,
    guest_id: str,
    body: AssignRequest,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    try:
        _require(model.get_guest(guest_id), "Guest", guest_id)
        _require(model.get_table(body.table_id), "Table", body.table_id)
        model.assign_guest_to_table(guest_id, body.table_id)
    except SeatingError as exc:
        return seating_error_response(exc)
    return _committed(
        store, key, model, "Guest assigned",
        {
            "guest": model.get_guest(guest_id).model_dump(mode="json"),
            "occupancy": model.compute_table_occupancy(body.table_id).model_dump(),
        }
    )


@router.post(LAYOUT + "/guests/{guest_id}/unassign")
async def unassign_guest(
    event_id: str,
    layout_type: LayoutType,
    guest_id: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    if not model.unassign_guest(guest_id):
        return seating_error_response(NotFound("Guest", guest_id))
    return _committed(store, key, model, "Guest unassigned", {"guest": model.get_guest(guest_id).model_dump(mode="json")})


@router.delete(LAYOUT + "/assignments")
async def reset_assignments(
    event_id: str,
    layout_type: LayoutType,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Remove all table assignments but keep the guest list"""
    store, key, model = _open(event_id, layout_type, db)
    released = model.reset_assignments()
    return _committed(store, key, model, f"{released} guests unassigned", {"released": released})


# -------- groups --------

@router.post(LAYOUT + "/groups")
async def add_group(
    event_id: str,
    layout_type: LayoutType,
    body: GroupCreate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    try:
        group = model.add_group(body.name, body.color)
    except SeatingError as exc:
        return seating_error_response(exc)
    return _committed(store, key, model, "Group created", {"group": group.model_dump(mode="json")})


@router.patch(LAYOUT + "/groups/{group_id}")
async def update_group(
    event_id: str,
    layout_type: LayoutType,
    group_id: str,
    body: GroupUpdate,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    try:
        group = _require(model.update_group(group_id, body.name, body.color), "Group", group_id)
    except SeatingError as exc:
        return seating_error_response(exc)
    return _committed(store, key, model, "Group updated", {"group": group.model_dump(mode="json")})


@router.delete(LAYOUT + "/groups/{group_id}")
async def delete_group(
    event_id: str,
    layout_type: LayoutType,
    group_id: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    store, key, model = _open(event_id, layout_type, db)
    if not model.delete_group(group_id):
        return seating_error_response(NotFound("Group", group_id))
    return _committed(store, key, model, "Group deleted")


# -------- summaries --------

@router.get(LAYOUT + "/summary")
async def get_summary(
    event_id: str,
    layout_type: LayoutType,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Kitchen summary: meal and dietary counts overall and per table"""
    _, _, model = _open(event_id, layout_type, db)
    return success_response(message="Summary retrieved", data=model.aggregates().model_dump(mode="json"))


@router.get(LAYOUT + "/place-cards")
async def get_place_cards(
    event_id: str,
    layout_type: LayoutType,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    _, _, model = _open(event_id, layout_type, db)
    cards = SummaryService.place_cards(model.guests)
    return success_response(message="Place cards retrieved", data=[t.model_dump(mode="json") for t in cards])


@router.get(LAYOUT + "/escort-cards")
async def get_escort_cards(
    event_id: str,
    layout_type: LayoutType,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    _, _, model = _open(event_id, layout_type, db)
    cards = SummaryService.escort_cards(model.guests)
    return success_response(message="Escort cards retrieved", data=[c.model_dump(mode="json") for c in cards])


# -------- import / export --------

@router.post(LAYOUT + "/duplicates")
async def check_duplicates(
    event_id: str,
    layout_type: LayoutType,
    body: DuplicateCheckRequest,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Advisory duplicate check for names about to be imported"""
    _, _, model = _open(event_id, layout_type, db)
    warnings = find_duplicates(body.names, [g.name for g in model.guests])
    return success_response(
        message=f"{len(warnings)} potential duplicates",
        data=[{**w.model_dump(mode="json"), "message": w.message} for w in warnings]
    )


@router.post(LAYOUT + "/import/text")
async def import_text(
    event_id: str,
    layout_type: LayoutType,
    body: ImportTextRequest,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Import a pasted guest list; ``Name @7`` seats the guest at table 7"""
    store, key, model = _open(event_id, layout_type, db)
    lines = GuestListService.parse_text(body.text)
    result = GuestListService.process_import(model, lines, body.on_duplicate)
    if not result.success:
        return error_response(
            message="Guest list import rejected",
            error_code="IMPORT_REJECTED",
            details=result.model_dump(mode="json"),
            status_code=422
        )
    return _committed(store, key, model, f"{len(result.imported)} guests imported", result.model_dump(mode="json"))


@router.post(LAYOUT + "/import/file")
async def import_file(
    event_id: str,
    layout_type: LayoutType,
    file: UploadFile = File(...),
    on_duplicate: DuplicatePolicy = Form(DuplicatePolicy.ABORT),
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Import guest names from the first column of a CSV, Excel or text file"""
    filename = file.filename or ""
    if not filename.lower().endswith((".csv", ".txt", ".xlsx")):
        return error_response(
            message="Invalid file format. Please upload a CSV, Excel or text file",
            status_code=400
        )

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        return error_response(message="File too large", status_code=413)

    store, key, model = _open(event_id, layout_type, db)
    try:
        lines = GuestListService.read_lines(content, filename)
    except ValueError as e:
        return error_response(
            message="Error parsing file. Please ensure it's a valid CSV or Excel file.",
            details=[str(e)],
            status_code=422
        )

    result = GuestListService.process_import(model, lines, on_duplicate)
    if not result.success:
        return error_response(
            message="Guest list import rejected",
            error_code="IMPORT_REJECTED",
            details=result.model_dump(mode="json"),
            status_code=422
        )
    return _committed(store, key, model, f"{len(result.imported)} guests imported", result.model_dump(mode="json"))


@router.get(LAYOUT + "/export.{fmt}")
async def export_guest_list(
    event_id: str,
    layout_type: LayoutType,
    fmt: str,
    db: Session = Depends(get_db),
    token: str = Depends(verify_admin_token)
):
    """Export the guest list with table assignments"""
    if fmt not in EXPORT_MEDIA_TYPES:
        return error_response(message=f"Unsupported export format: {fmt}", status_code=400)

    _, _, model = _open(event_id, layout_type, db)
    content = GuestListService.export_guest_list(model, fmt)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f"attachment; filename={event_id}_{layout_type.value}_seating_plan.{fmt}"}
    )
