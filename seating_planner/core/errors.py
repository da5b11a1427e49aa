"""
Error types raised by the seating model
"""

from typing import Optional


class SeatingError(Exception):
    """Base class for recoverable seating errors"""


class CapacityExceeded(SeatingError):
    """Raised when a table has no free seat left"""

    def __init__(self, table_number: int, capacity: int):
        self.table_number = table_number
        self.capacity = capacity
        super().__init__(f"Table {table_number} is full ({capacity}).")


class NotFound(SeatingError):
    """Raised by callers that need a hard failure for a stale id"""

    def __init__(self, kind: str, item_id: Optional[str] = None):
        self.kind = kind
        self.item_id = item_id
        message = f"{kind} not found" if item_id is None else f"{kind} '{item_id}' not found"
        super().__init__(message)


class ValidationFailed(SeatingError):
    """Raised when input is rejected before any state changes"""
