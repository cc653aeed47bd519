"""Domain exceptions for the dues engine.

Every hard failure derives from DuesError, which carries a machine-readable
code the API layer turns into an error response. AmountMismatchWarning is a
soft signal: it is returned to the caller, never raised.
"""

from decimal import Decimal


class DuesError(Exception):
    """Base exception for dues engine errors."""

    code = "dues_error"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidPeriodFormatError(DuesError, ValueError):
    """Period key text does not match the canonical format of its interval."""

    code = "invalid_period"

    def __init__(self, text: object, interval: object = None):
        interval = getattr(interval, "value", interval)
        self.text = text
        self.interval = interval
        expected = f" for {interval} interval" if interval else ""
        super().__init__(f"Invalid period key {text!r}{expected}")


class MemberNotFoundError(DuesError, LookupError):
    """No member exists with the requested id."""

    code = "member_not_found"

    def __init__(self, member_id: int):
        self.member_id = member_id
        super().__init__(f"Member {member_id} not found")


class NoBillingConfiguredError(DuesError):
    """Member has no contribution amount or interval.

    Raised only where an amount is required (transaction suggestions);
    schedules and status treat an unbilled member as a valid steady state.
    """

    code = "no_billing_configured"

    def __init__(self, member_id: int):
        self.member_id = member_id
        super().__init__(f"Member {member_id} has no contribution configured")


class AmountMismatchWarning(UserWarning):
    """Paid or linked amount differs from the scheduled contribution."""

    def __init__(self, expected: Decimal, actual: Decimal, source: str):
        self.expected = expected
        self.actual = actual
        self.source = source
        super().__init__(f"{source} amount {actual} differs from scheduled amount {expected}")

    @property
    def message(self) -> str:
        return str(self)


__all__ = [
    "DuesError",
    "InvalidPeriodFormatError",
    "MemberNotFoundError",
    "NoBillingConfiguredError",
    "AmountMismatchWarning",
]
