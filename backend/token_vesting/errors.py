"""Vesting error taxonomy.

Every failure a caller can observe is a ``VestingError`` subclass carrying a
stable ``code`` (returned to API clients), a default message, and the HTTP
status the API layer answers with. Errors are raised before any state is
mutated, so a raised error always means the schedule and its escrow are
untouched.
"""
from typing import Any, Dict, Optional


class VestingError(Exception):
    """Base class for all vesting ledger errors."""

    code = "VestingError"
    message = "Vesting operation failed"
    status_code = 400

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


# ==================== Parameter validation ====================


class ValidationError(VestingError):
    """Raised synchronously during create, before any mutation."""
    status_code = 400


class InvalidAmount(ValidationError):
    code = "InvalidAmount"
    message = "Vesting amount must be greater than zero"


class DurationTooShort(ValidationError):
    code = "DurationTooShort"
    message = "Vesting duration must be at least 1 day"


class DurationTooLong(ValidationError):
    code = "DurationTooLong"
    message = "Vesting duration cannot exceed 10 years"


class CliffTooLong(ValidationError):
    code = "CliffTooLong"
    message = "Cliff duration cannot exceed vesting duration"


class CliffPercentageTooHigh(ValidationError):
    code = "CliffPercentageTooHigh"
    message = "Cliff cannot exceed 50% of vesting duration"


class StartTimeInPast(ValidationError):
    code = "StartTimeInPast"
    message = "Vesting start time must be in the future"


class InvalidAddress(ValidationError):
    code = "InvalidAddress"
    message = "Address must be a base58-encoded 32-byte key"


# ==================== State gates ====================


class StateError(VestingError):
    """Raised when the schedule's state or the clock does not permit a transition."""
    status_code = 409


class CliffNotReached(StateError):
    code = "CliffNotReached"
    message = "Cannot claim during cliff period"


class NothingToClaim(StateError):
    code = "NothingToClaim"
    message = "No tokens available for claiming"


class VestingRevoked(StateError):
    code = "VestingRevoked"
    message = "This vesting schedule has been revoked"


class VestingCompleted(StateError):
    code = "VestingCompleted"
    message = "Cannot revoke completed vesting schedule"


class ScheduleAlreadyExists(StateError):
    code = "ScheduleAlreadyExists"
    message = "A vesting schedule already exists for this admin, beneficiary and mint"


class ConcurrentModification(StateError):
    code = "ConcurrentModification"
    message = "Vesting schedule was modified by another transaction"


class ScheduleNotFound(VestingError):
    code = "ScheduleNotFound"
    message = "Vesting schedule not found"
    status_code = 404


class CorruptRecord(VestingError):
    code = "CorruptRecord"
    message = "Stored record does not carry the vesting schedule discriminator"
    status_code = 500


class Unauthorized(VestingError):
    code = "Unauthorized"
    message = "Signer is not permitted to perform this operation"
    status_code = 403


# ==================== Arithmetic ====================


class CalculationOverflow(VestingError):
    code = "CalculationOverflow"
    message = "Calculation overflow"
    status_code = 422


# ==================== Asset transfer ====================


class TransferError(VestingError):
    """Raised by the token ledger; no balance has moved when this is raised."""
    status_code = 400


class InsufficientFunds(TransferError):
    code = "InsufficientFunds"
    message = "Source holding has insufficient balance"


class MintMismatch(TransferError):
    code = "MintMismatch"
    message = "Source and destination holdings hold different mints"


class InvalidAuthority(TransferError):
    code = "InvalidAuthority"
    message = "Authority does not control the source holding"
    status_code = 403


class AccountNotFound(TransferError):
    code = "AccountNotFound"
    message = "Token holding not found"
    status_code = 404
