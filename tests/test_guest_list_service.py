"""
Tests for guest list parsing, import policies and export
"""

import io

import pandas as pd
import pytest

from seating_planner.schemas.summary import DuplicatePolicy, ImportLine
from seating_planner.services.guest_list_service import GuestListService
from seating_planner.services.seating_service import SeatingModel


@pytest.fixture
def model():
    """Two tables (numbers 1 and 2, two seats each) and Jon Smith already on the roster"""
    model = SeatingModel()
    model.add_table(capacity=2)
    model.add_table(capacity=2)
    model.add_guest("Jon Smith")
    return model


def test_parse_line_with_table():
    assert GuestListService.parse_line("  Sam Lee @7 ") == ImportLine(name="Sam Lee", table_num=7)
    assert GuestListService.parse_line("Sam Lee") == ImportLine(name="Sam Lee")
    assert GuestListService.parse_line("   ") is None


def test_parse_line_only_reads_trailing_suffix():
    assert GuestListService.parse_line("me@home.com") == ImportLine(name="me@home.com")
    assert GuestListService.parse_line("@3") == ImportLine(name="", table_num=3)


def test_parse_text_skips_blank_lines():
    lines = GuestListService.parse_text("Amy\n\n  \nBo @2\r\nCy\n")

    assert [line.name for line in lines] == ["Amy", "Bo", "Cy"]
    assert lines[1].table_num == 2


def test_validate_lines(model):
    lines = [ImportLine(name="Amy"), ImportLine(name="", table_num=1), ImportLine(name="Bo", table_num=9)]

    valid, errors = GuestListService.validate_lines(lines, model)

    assert not valid
    assert errors == ["Line 2: guest name is empty", "Line 3: table 9 does not exist"]


def test_validate_empty_batch(model):
    valid, errors = GuestListService.validate_lines([], model)

    assert not valid
    assert errors == ["No valid guest names found"]


def test_invalid_batch_imports_nothing(model):
    lines = GuestListService.parse_text("Amy\nBo @9")

    result = GuestListService.process_import(model, lines, DuplicatePolicy.PROCEED)

    assert not result.success
    assert result.errors == ["Line 2: table 9 does not exist"]
    assert [g.name for g in model.guests] == ["Jon Smith"]


def test_import_seats_guests(model):
    lines = GuestListService.parse_text("Amy @1\nBo @2\nCy")

    result = GuestListService.process_import(model, lines)

    assert result.success
    assert len(result.imported) == 3
    seated = {g.name: g.table_num for g in model.guests}
    assert seated == {"Jon Smith": None, "Amy": 1, "Bo": 2, "Cy": None}
    assert model.check_consistency() == []


def test_import_into_full_table_leaves_guest_unplaced(model):
    lines = GuestListService.parse_text("Amy @1\nBo @1\nCy @1")

    result = GuestListService.process_import(model, lines)

    assert result.success
    assert result.unplaced == ["Cy"]
    assert len(model.get_table_by_number(1).guests) == 2


def test_duplicates_abort_by_default(model):
    """A near duplicate stops the whole batch unless told otherwise"""
    lines = GuestListService.parse_text("Jon Smyth\nMaria Lopez")

    result = GuestListService.process_import(model, lines)

    assert not result.success
    assert result.errors == ["Potential duplicates found: 1"]
    assert [d.name for d in result.duplicates] == ["Jon Smyth"]
    assert len(model.guests) == 1


def test_duplicates_skip(model):
    lines = GuestListService.parse_text("jon smith\nMaria Lopez")

    result = GuestListService.process_import(model, lines, DuplicatePolicy.SKIP)

    assert result.success
    assert result.skipped == ["jon smith"]
    assert [g.name for g in model.guests] == ["Jon Smith", "Maria Lopez"]


def test_duplicates_proceed(model):
    lines = GuestListService.parse_text("jon smith\nMaria Lopez")

    result = GuestListService.process_import(model, lines, DuplicatePolicy.PROCEED)

    assert result.success
    assert len(result.duplicates) == 1
    assert [g.name for g in model.guests] == ["Jon Smith", "jon smith", "Maria Lopez"]


def test_read_names_from_csv():
    content = b"Name\nAmy\n\nBo @2\n"

    assert GuestListService.read_names(content, "guests.csv") == ["Amy", "Bo @2"]


def test_read_names_from_excel():
    buffer = io.BytesIO()
    pd.DataFrame({"Guest Name": ["Amy", "Bo @2", None, "Cy"]}).to_excel(buffer, index=False)

    names = GuestListService.read_names(buffer.getvalue(), "guests.xlsx")

    assert names == ["Amy", "Bo @2", "Cy"]


def test_read_names_from_text_file():
    content = "\ufeffAmy\r\nBo @2\r\n\r\n".encode("utf-8")

    assert GuestListService.read_names(content, "guests.txt") == ["Amy", "Bo @2"]


def test_read_lines_keeps_table_shorthand():
    lines = GuestListService.read_lines(b"Amy\nBo @2\n", "guests.csv")

    assert lines == [ImportLine(name="Amy"), ImportLine(name="Bo", table_num=2)]


def test_export_csv(model):
    guest = model.add_guest("Amy", 1).guest
    model.update_guest_fields(guest.id, meal_selection="fish", dietary_restrictions=["GF", "NF"], tags=["family"])

    df = pd.read_csv(io.BytesIO(GuestListService.export_guest_list(model, "csv")), dtype=str, keep_default_na=False)

    assert list(df.columns) == ["Name", "Table", "Meal", "Dietary", "Notes", "Tags"]
    rows = df.set_index("Name").to_dict("index")
    assert rows["Amy"] == {"Table": "Table 1", "Meal": "fish", "Dietary": "GF;NF", "Notes": "", "Tags": "family"}
    assert rows["Jon Smith"]["Table"] == "Unassigned"


def test_export_xlsx(model):
    content = GuestListService.export_guest_list(model, "xlsx")

    df = pd.read_excel(io.BytesIO(content), sheet_name="Guest List")

    assert df["Name"].tolist() == ["Jon Smith"]


def test_export_unknown_format(model):
    with pytest.raises(ValueError):
        GuestListService.export_guest_list(model, "pdf")


def test_read_names_rejects_broken_workbook():
    with pytest.raises(ValueError):
        GuestListService.read_names(b"PK\x03\x04garbage", "guests.xlsx")


def test_read_names_rejects_empty_csv():
    with pytest.raises(ValueError):
        GuestListService.read_names(b"", "guests.csv")
