"""
Exceptions raised by dj_transfers.

Validation errors are user-correctable and carry a stable ``reason`` code plus a
message that is safe to show to the end user. Execution errors never expose the
underlying cause in their message; it is chained for logging only.
"""

GENERIC_FAILURE_MESSAGE = "Transfer failed. Please try again."


class TransferException(Exception):
    """Base exception for all dj_transfers errors."""


class TransferValidationError(TransferException):
    reason = "validation_error"
    default_message = "The transfer request is invalid."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingRequiredField(TransferValidationError):
    reason = "missing_required_field"
    default_message = "Please fill in all required fields"


class InvalidAmount(TransferValidationError):
    reason = "invalid_amount"
    default_message = "Please enter a valid amount"


class InsufficientFunds(TransferValidationError):
    reason = "insufficient_funds"
    default_message = "Insufficient funds in selected account"


class AccountInactive(TransferValidationError):
    reason = "account_inactive"
    default_message = "Source account not found or inactive"


class MissingDestination(TransferValidationError):
    reason = "missing_destination"
    default_message = "Please select a destination account"


class DestinationInactive(TransferValidationError):
    reason = "destination_inactive"
    default_message = "Destination account not found or inactive"


class SameAccount(TransferValidationError):
    reason = "same_account"
    default_message = "Cannot transfer to the same account"


class MissingRecipientDetails(TransferValidationError):
    reason = "missing_recipient_details"
    default_message = "Please fill in all recipient details"


VALIDATION_ERRORS = {
    exc.reason: exc
    for exc in (
        MissingRequiredField,
        InvalidAmount,
        InsufficientFunds,
        AccountInactive,
        MissingDestination,
        DestinationInactive,
        SameAccount,
        MissingRecipientDetails,
    )
}


class TransferFailed(TransferException):
    """A collaborator failed while the transfer was being applied."""

    reason = "transfer_failed"

    def __init__(self, message=GENERIC_FAILURE_MESSAGE, reference=None):
        self.message = message
        self.reference = reference
        super().__init__(message)


class PartiallyApplied(TransferFailed):
    """
    A failed transfer could not be fully compensated.

    ``applied_steps`` lists the mutations still in effect so that an operator
    can reconcile the ledger by hand.
    """

    reason = "partially_applied"

    def __init__(self, reference, applied_steps, message=GENERIC_FAILURE_MESSAGE):
        self.applied_steps = list(applied_steps)
        super().__init__(message, reference=reference)


class ConcurrentModification(TransferException):
    """An account balance changed between read and write."""

    reason = "concurrent_modification"


class AccountNotFound(TransferException):
    reason = "account_not_found"


class LedgerImmutable(TransferException):
    """Ledger transactions are append-only."""


class InvalidTransition(TransferException):
    """The transfer session cannot perform the requested action in its state."""
