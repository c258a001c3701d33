"""
Transfer orchestration: the caller-facing API and the review/confirm session.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Optional

from .exceptions import (
    InvalidTransition,
    TransferFailed,
    TransferValidationError,
)
from .fees import processing_time, resolve_fee
from .ledger import LedgerMutator
from .requests import TransferRequest
from .signals import transfer_completed, transfer_failed
from .utils import get_account_repository, get_transaction_repository
from .validators import validate

logger = logging.getLogger(__name__)

_DECIMAL_FIELDS = ("amount", "fee", "total", "new_source_balance", "new_destination_balance")


@dataclass
class TransferReceipt:
    reference: str
    transfer_type: str
    amount: Decimal
    fee: Decimal
    total: Decimal
    status: str
    processing_time: str
    new_source_balance: Decimal
    new_destination_balance: Optional[Decimal] = None
    idempotent_replay: bool = False

    def to_dict(self):
        data = asdict(self)
        for name in _DECIMAL_FIELDS:
            if data[name] is not None:
                data[name] = str(data[name])
        return data

    @classmethod
    def from_dict(cls, data, **overrides):
        values = dict(data)
        for name in _DECIMAL_FIELDS:
            if values.get(name) is not None:
                values[name] = Decimal(values[name])
        values.update(overrides)
        return cls(**values)


class _IdempotencyConflict(Exception):
    """Another request with the same key committed first."""

    def __init__(self, response):
        self.response = response
        super().__init__(response.get("reference"))


class TransferEngine:
    """
    Validates, prices and applies transfers.

    Repositories default to the ones named in DJ_TRANSFERS settings.
    """

    def __init__(self, accounts=None, transactions=None):
        self.accounts = accounts if accounts is not None else get_account_repository()()
        self.transactions = (
            transactions if transactions is not None else get_transaction_repository()()
        )
        self.ledger = LedgerMutator(self.accounts, self.transactions)

    def compute_fee(self, transfer_type):
        return resolve_fee(transfer_type)

    def validate_transfer_request(self, request):
        source = self.accounts.get(request.from_account_id)
        destination = self.accounts.get(request.to_account_id)
        return validate(request, source, destination)

    def execute_transfer(self, request):
        """
        Validate and apply ``request``.

        Raises a TransferValidationError subclass for user-correctable input
        and TransferFailed for anything that went wrong while applying it.
        Requests carrying an idempotency key are applied at most once.
        """
        key = request.idempotency_key
        if not key:
            return self._execute(request, key)

        with self.transactions.hold_key(key):
            stored = self.transactions.get_processed(key)
            if stored is not None:
                return TransferReceipt.from_dict(stored, idempotent_replay=True)
            return self._execute(request, key)

    def _execute(self, request, key):
        result = self.validate_transfer_request(request)
        result.raise_for_reason()
        fee = self.compute_fee(request.transfer_type)

        try:
            with self.accounts.atomic():
                outcome = self.ledger.apply_transfer(request, fee, amount=result.amount)
                receipt = TransferReceipt(
                    reference=outcome.reference,
                    transfer_type=outcome.transfer_type,
                    amount=outcome.amount,
                    fee=outcome.fee,
                    total=outcome.amount + outcome.fee,
                    status=outcome.status,
                    processing_time=processing_time(outcome.transfer_type),
                    new_source_balance=outcome.new_source_balance,
                    new_destination_balance=outcome.new_destination_balance,
                )
                if key:
                    stored = self.transactions.save_processed(
                        key, receipt.reference, receipt.to_dict()
                    )
                    if stored.get("reference") != receipt.reference:
                        raise _IdempotencyConflict(stored)
        except _IdempotencyConflict as conflict:
            return TransferReceipt.from_dict(conflict.response, idempotent_replay=True)
        except TransferValidationError:
            raise
        except TransferFailed as exc:
            self._report_failure(request, exc)
            raise
        except Exception as exc:
            self._report_failure(request, exc)
            raise TransferFailed() from exc

        logger.info(
            "Transfer %s completed: type=%s amount=%s fee=%s status=%s",
            receipt.reference,
            receipt.transfer_type,
            receipt.amount,
            receipt.fee,
            receipt.status,
        )
        transfer_completed.send(sender=self.__class__, receipt=receipt, request=request)
        return receipt

    def _report_failure(self, request, error):
        logger.exception(
            "Transfer from %s (%s, amount=%s) failed",
            request.from_account_id,
            request.transfer_type,
            request.amount,
        )
        transfer_failed.send(sender=self.__class__, request=request, error=error)


class TransferSession:
    """
    Collect -> review -> confirm flow for a single transfer.

    A failed confirmation can only be left through restart().
    """

    STATE_COLLECTING = "collecting"
    STATE_REVIEWING = "reviewing"
    STATE_COMPLETED = "completed"
    STATE_FAILED = "failed"

    def __init__(self, engine=None, request=None, **fields):
        self.engine = engine if engine is not None else TransferEngine()
        self.request = request if request is not None else TransferRequest(**fields)
        self.state = self.STATE_COLLECTING
        self._clear()

    def _clear(self):
        self.error = ""
        self.error_reason = ""
        self.amount = None
        self.fee = None
        self.total = None
        self.receipt = None

    def _require(self, *states):
        if self.state not in states:
            raise InvalidTransition(
                f"Cannot do that while the transfer is {self.state}."
            )

    def update(self, **fields):
        self._require(self.STATE_COLLECTING)
        for name, value in fields.items():
            if not hasattr(self.request, name):
                raise TypeError(f"TransferRequest has no field '{name}'")
            setattr(self.request, name, value)
        self.error = ""
        self.error_reason = ""

    def review(self):
        self._require(self.STATE_COLLECTING)
        result = self.engine.validate_transfer_request(self.request)
        if not result:
            self.error = result.message
            self.error_reason = result.reason
            return result
        self.error = ""
        self.error_reason = ""
        self.amount = result.amount
        self.fee = self.engine.compute_fee(self.request.transfer_type)
        self.total = self.amount + self.fee
        self.state = self.STATE_REVIEWING
        return result

    def back(self):
        self._require(self.STATE_REVIEWING)
        self._clear()
        self.state = self.STATE_COLLECTING

    def confirm(self):
        self._require(self.STATE_REVIEWING)
        try:
            self.receipt = self.engine.execute_transfer(self.request)
        except TransferValidationError as exc:
            # Account state moved since review; let the customer correct it
            self._clear()
            self.error = exc.message
            self.error_reason = exc.reason
            self.state = self.STATE_COLLECTING
            return None
        except TransferFailed as exc:
            self.error = exc.message
            self.error_reason = exc.reason
            self.state = self.STATE_FAILED
            return None
        self.state = self.STATE_COMPLETED
        return self.receipt

    def restart(self, keep_request=False):
        self._require(self.STATE_COMPLETED, self.STATE_FAILED)
        if not keep_request:
            self.request = TransferRequest()
        self._clear()
        self.state = self.STATE_COLLECTING

    @property
    def processing_time(self):
        return processing_time(self.request.transfer_type)
