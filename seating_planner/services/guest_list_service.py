"""
Guest list import/export: pasted text, CSV and Excel
"""

import io
import logging
import re
from typing import List, Optional, Tuple

import pandas as pd

from seating_planner.schemas.summary import DuplicatePolicy, ImportLine, ImportResult
from seating_planner.services.duplicates import find_duplicates
from seating_planner.services.seating_service import SeatingModel

logger = logging.getLogger(__name__)

TABLE_SUFFIX = re.compile(r"@(\d+)$")
HEADER_NAMES = {"name", "guest name"}
EXPORT_COLUMNS = ["Name", "Table", "Meal", "Dietary", "Notes", "Tags"]


class GuestListService:
    """Service for turning guest lists into guests and back"""

    @staticmethod
    def parse_line(line: str) -> Optional[ImportLine]:
        """Parse ``"Sam Lee @7"`` into a name and a table number; blank lines give None"""
        text = line.strip()
        if not text:
            return None
        match = TABLE_SUFFIX.search(text)
        if match:
            return ImportLine(name=text[:match.start()].strip(), table_num=int(match.group(1)))
        return ImportLine(name=text)

    @staticmethod
    def parse_text(text: str) -> List[ImportLine]:
        """Parse pasted text, one guest per line"""
        lines = []
        for raw in text.splitlines():
            parsed = GuestListService.parse_line(raw)
            if parsed is not None:
                lines.append(parsed)
        return lines

    @staticmethod
    def read_names(content: bytes, filename: str) -> List[str]:
        """
        Read guest names from the first column of a CSV, Excel or text file.

        Raises ``ValueError`` when the file cannot be read.
        """
        lower = filename.lower()
        if not lower.endswith((".xlsx", ".csv")):
            text = content.decode("utf-8-sig")
            return [line.strip() for line in text.splitlines() if line.strip()]

        try:
            if lower.endswith(".xlsx"):
                df = pd.read_excel(io.BytesIO(content), header=None, dtype=str, engine="openpyxl")
            else:
                df = pd.read_csv(io.BytesIO(content), header=None, dtype=str, skip_blank_lines=True)
        except Exception as e:
            raise ValueError(f"Could not read {filename}: {e}") from e

        if df.empty:
            return []

        names = []
        for value in df.iloc[:, 0].tolist():
            if pd.isna(value):
                continue
            name = str(value).strip()
            if not name or name.lower() == "nan":
                continue
            names.append(name)

        if names and names[0].lower() in HEADER_NAMES:
            names = names[1:]
        return names

    @staticmethod
    def read_lines(content: bytes, filename: str) -> List[ImportLine]:
        lines = []
        for name in GuestListService.read_names(content, filename):
            parsed = GuestListService.parse_line(name)
            if parsed is not None:
                lines.append(parsed)
        return lines

    @staticmethod
    def validate_lines(lines: List[ImportLine], model: SeatingModel) -> Tuple[bool, List[str]]:
        """Check names and table shorthands before anything is imported"""
        errors = []

        if not lines:
            errors.append("No valid guest names found")

        for index, line in enumerate(lines, start=1):
            if not line.name:
                errors.append(f"Line {index}: guest name is empty")
            if line.table_num is not None and model.get_table_by_number(line.table_num) is None:
                errors.append(f"Line {index}: table {line.table_num} does not exist")

        return len(errors) == 0, errors

    @staticmethod
    def process_import(
        model: SeatingModel,
        lines: List[ImportLine],
        on_duplicate: DuplicatePolicy = DuplicatePolicy.ABORT,
    ) -> ImportResult:
        """Validate, check for duplicates and add the guests through the model"""
        valid, errors = GuestListService.validate_lines(lines, model)
        if not valid:
            return ImportResult(success=False, errors=errors)

        duplicates = find_duplicates([line.name for line in lines], [g.name for g in model.guests])
        if duplicates and on_duplicate == DuplicatePolicy.ABORT:
            return ImportResult(
                success=False,
                errors=[f"Potential duplicates found: {len(duplicates)}"],
                duplicates=duplicates,
            )

        flagged = {warning.name.lower() for warning in duplicates}
        result = ImportResult(success=True, duplicates=duplicates)
        for line in lines:
            if on_duplicate == DuplicatePolicy.SKIP and line.name.lower() in flagged:
                result.skipped.append(line.name)
                continue
            added = model.add_guest(line.name, line.table_num)
            result.imported.append(added.guest.id)
            if added.table_full:
                result.unplaced.append(added.guest.name)

        logger.info(
            f"Imported {len(result.imported)} guests "
            f"({len(result.skipped)} skipped, {len(result.unplaced)} without a table)"
        )
        return result

    @staticmethod
    def export_guest_list(model: SeatingModel, fmt: str = "csv") -> bytes:
        """Export the guest list as CSV or Excel"""
        data = []
        for guest in model.guests:
            meal = guest.meal_selection
            data.append({
                "Name": guest.name,
                "Table": f"Table {guest.table_num}" if guest.table_num is not None else "Unassigned",
                "Meal": getattr(meal, "value", meal) or "",
                "Dietary": ";".join(guest.dietary_restrictions),
                "Notes": guest.notes,
                "Tags": ";".join(guest.tags),
            })

        df = pd.DataFrame(data, columns=EXPORT_COLUMNS)

        if fmt == "csv":
            return df.to_csv(index=False).encode("utf-8")
        if fmt == "xlsx":
            buffer = io.BytesIO()
            with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
                df.to_excel(writer, index=False, sheet_name="Guest List")
            return buffer.getvalue()
        raise ValueError(f"Unsupported export format: {fmt}")
