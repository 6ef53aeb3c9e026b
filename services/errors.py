from __future__ import annotations

from typing import Optional


class EnergyAccountingError(Exception):
    """Base for every failure raised by the aggregation services."""


class NotFoundError(EnergyAccountingError):
    pass


class MeterDataMissingError(NotFoundError):
    """Neither the main nor the check ABT meter has data for the period."""

    def __init__(self, message: str, notes: Optional[dict] = None):
        super().__init__(message)
        self.notes = notes or {}


class InvalidInputError(EnergyAccountingError):
    pass


class InvalidPolarityError(InvalidInputError):
    def __init__(self, pn):
        super().__init__(f"pn must be 1 or -1, got {pn!r}")
        self.pn = pn
