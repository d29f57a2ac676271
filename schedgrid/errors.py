class GridError(Exception):
    """Base class for rejected grid mutations. The prior state is always intact."""


class OutOfBounds(GridError):
    def __init__(self, start_column, span, column_count):
        self.start_column = start_column
        self.span = span
        self.column_count = column_count
        super().__init__(
            f"columns {start_column}..{start_column + span - 1} outside grid of {column_count}"
        )


class InvalidSpan(GridError):
    def __init__(self, span, max_span):
        self.span = span
        super().__init__(f"span must be between 1 and {max_span}, got {span}")


class Conflict(GridError):
    def __init__(self, conflicting_ids):
        self.conflicting_ids = list(conflicting_ids)
        super().__init__("overlaps booking(s) " + ", ".join(self.conflicting_ids))


class BookingNotFound(GridError):
    def __init__(self, booking_id):
        self.booking_id = booking_id
        super().__init__(f"booking {booking_id} not found")


class StaleWrite(GridError):
    """A write landed after a newer snapshot already replaced the local copy."""


class WriteFailed(GridError):
    """The storage collaborator rejected a write."""

    def __init__(self, operation, reason):
        self.operation = operation
        self.reason = str(reason)
        super().__init__(f"{operation} failed: {self.reason}")


class AssignmentRejected(GridError):
    """A resource cannot take the requested position in a booking."""
