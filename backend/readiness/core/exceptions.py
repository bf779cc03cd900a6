"""Exceptions raised for contract violations.

Business-logic outcomes such as "not enough history" or "no insight" are
ordinary return values (``None`` or an empty list) and never raise.
"""


class ReadinessError(Exception):
    """Base exception for readiness engine errors."""

    pass


class RecordOrderError(ReadinessError):
    """Daily records are not in strictly ascending date order."""

    def __init__(self, index: int, previous: object, current: object) -> None:
        self.index = index
        self.previous = previous
        self.current = current
        super().__init__(
            f"Record {index} ({current}) is not after record {index - 1} ({previous}). "
            "Daily records must be sorted by date, one per day."
        )


class ImportFormatError(ReadinessError):
    """An export or input file could not be read."""

    pass
