"""
Validation of transfer requests against account state.

Checks run in a fixed order and stop at the first failure so the customer
always sees the same message for the same input.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from .conf import transfer_settings
from .exceptions import (
    VALIDATION_ERRORS,
    AccountInactive,
    DestinationInactive,
    InsufficientFunds,
    InvalidAmount,
    MissingDestination,
    MissingRecipientDetails,
    MissingRequiredField,
    SameAccount,
)
from .fees import TRANSFER_EXTERNAL, TRANSFER_INTERNAL

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    reason: str = ""
    message: str = ""
    amount: Decimal = None

    @classmethod
    def valid(cls, amount):
        return cls(is_valid=True, amount=amount)

    @classmethod
    def invalid(cls, error_class, amount=None):
        return cls(
            is_valid=False,
            reason=error_class.reason,
            message=error_class.default_message,
            amount=amount,
        )

    def __bool__(self):
        return self.is_valid

    def raise_for_reason(self):
        """Raise the validation error matching this result, if any."""
        if not self.is_valid:
            raise VALIDATION_ERRORS[self.reason](self.message)


def parse_amount(value):
    """
    Return ``value`` as a positive finite Decimal, or raise InvalidAmount.
    """
    if isinstance(value, float):
        # Convert to string first to avoid float precision issues
        value = str(value)
    try:
        amount = Decimal(str(value).strip())
    except (ValueError, InvalidOperation):
        raise InvalidAmount() from None
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount()
    quantum = Decimal(1).scaleb(-transfer_settings.MATH_SCALE)
    try:
        quantized = amount.quantize(quantum)
    except InvalidOperation:
        raise InvalidAmount() from None
    if quantized != amount:
        raise InvalidAmount()
    return quantized


def _blank(value):
    return value is None or str(value).strip() == ""


def validate(request, source_account, destination_account=None):
    """
    Validate ``request`` against the looked-up accounts.

    ``source_account`` and ``destination_account`` may be None when the
    identifiers could not be resolved. Returns a ValidationResult; never
    mutates anything.
    """
    if _blank(request.from_account_id) or _blank(request.amount):
        return _reject(request, MissingRequiredField)

    try:
        amount = parse_amount(request.amount)
    except InvalidAmount:
        return _reject(request, InvalidAmount)

    if source_account is None or not source_account.is_active:
        return _reject(request, AccountInactive, amount)

    # The fee is not part of this check; it is debited separately afterwards
    if amount > source_account.balance:
        return _reject(request, InsufficientFunds, amount)

    if request.transfer_type == TRANSFER_INTERNAL:
        if _blank(request.to_account_id) or destination_account is None:
            return _reject(request, MissingDestination, amount)
        if not destination_account.is_active:
            return _reject(request, DestinationInactive, amount)
        if destination_account.account_id == source_account.account_id:
            return _reject(request, SameAccount, amount)

    if request.transfer_type == TRANSFER_EXTERNAL and (
        _blank(request.recipient_name)
        or _blank(request.account_number)
        or _blank(request.routing_number)
    ):
        return _reject(request, MissingRecipientDetails, amount)

    return ValidationResult.valid(amount)


def _reject(request, error_class, amount=None):
    logger.info(
        "Transfer request from %s rejected: %s",
        request.from_account_id or "<none>",
        error_class.reason,
    )
    return ValidationResult.invalid(error_class, amount)
