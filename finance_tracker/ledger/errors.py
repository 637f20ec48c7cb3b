"""Exceptions raised by ledger operations."""


NOT_ENOUGH_MONTHS_MESSAGE = (
    "You need at least two months to update. Add more months first."
)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class EntityNotFoundError(LedgerError):
    """A referenced debt or goal does not exist in the month."""

    def __init__(self, entity_type: str, entity_id, month_id: str | None = None):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.month_id = month_id
        where = f" in {month_id}" if month_id else ""
        super().__init__(f"{entity_type.capitalize()} {self.entity_id} not found{where}")


class MonthNotFoundError(LedgerError):
    """The requested month is not tracked."""

    def __init__(self, month_id: str):
        self.month_id = month_id
        super().__init__(f"Month {month_id} is not tracked")


class InvalidPaymentError(LedgerError):
    """Payment or contribution amount is not a positive number."""
    pass


class NotEnoughMonthsError(LedgerError):
    """Propagation needs at least two months."""

    def __init__(self, message: str = NOT_ENOUGH_MONTHS_MESSAGE):
        super().__init__(message)


class PropagationError(LedgerError):
    """Propagation failed; the input ledger was left untouched."""
    pass
