"""
The only code path that writes account balances or appends ledger rows.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from django.utils import timezone

from .exceptions import (
    AccountNotFound,
    DestinationInactive,
    InsufficientFunds,
    PartiallyApplied,
    TransferFailed,
)
from .fees import (
    TRANSFER_EXTERNAL,
    TRANSFER_INTERNAL,
    TRANSFER_INTERNATIONAL,
    TRANSFER_MOBILE,
    TRANSFER_WIRE,
    fee_description,
)
from .models import LedgerTransaction
from .references import fee_reference, generate_reference, reversal_reference
from .signals import balance_changed, transaction_created
from .validators import parse_amount

logger = logging.getLogger(__name__)

RECIPIENT_FIELDS = (
    "recipient_name",
    "recipient_bank",
    "routing_number",
    "account_number",
    "swift_code",
    "recipient_country",
    "recipient_address",
    "purpose_of_transfer",
)


@dataclass
class TransferOutcome:
    reference: str
    transfer_type: str
    amount: Decimal
    fee: Decimal
    status: str
    new_source_balance: Decimal
    new_destination_balance: Optional[Decimal] = None
    records: list = field(default_factory=list)


def outbound_details(request):
    """Return ``(description, status)`` for the principal debit of an outbound transfer."""
    recipient = request.recipient_name
    if request.transfer_type == TRANSFER_WIRE:
        return f"Wire Transfer to {recipient}", LedgerTransaction.STATUS_COMPLETED
    if request.transfer_type == TRANSFER_INTERNATIONAL:
        return (
            f"International Wire to {recipient} ({request.recipient_country})",
            LedgerTransaction.STATUS_PENDING,
        )
    if request.transfer_type == TRANSFER_EXTERNAL:
        return f"External Transfer to {recipient}", LedgerTransaction.STATUS_PENDING
    if request.transfer_type == TRANSFER_MOBILE:
        return f"Mobile Payment to {recipient}", LedgerTransaction.STATUS_COMPLETED
    return f"Transfer to {recipient}", LedgerTransaction.STATUS_PENDING


class LedgerMutator:
    """
    Applies a validated transfer as one unit.

    With a transactional account repository every write happens inside one
    database transaction and a failure rolls all of them back. Otherwise each
    applied step is journaled and undone in reverse order on failure.
    """

    def __init__(self, accounts, transactions):
        self.accounts = accounts
        self.transactions = transactions

    def apply_transfer(self, request, fee, amount=None):
        amount = parse_amount(request.amount) if amount is None else amount
        fee = Decimal(fee)
        internal = request.transfer_type == TRANSFER_INTERNAL
        account_ids = [request.from_account_id]
        if internal:
            account_ids.append(request.to_account_id)

        with self.accounts.atomic():
            with self.accounts.lock(*account_ids) as locked:
                source = locked.get(str(request.from_account_id))
                if source is None:
                    raise AccountNotFound(f"Account {request.from_account_id} does not exist.")
                destination = None
                if internal:
                    destination = locked.get(str(request.to_account_id))
                    if destination is None:
                        raise AccountNotFound(
                            f"Account {request.to_account_id} does not exist."
                        )
                    if not destination.is_active:
                        raise DestinationInactive()

                # Re-checked against the locked balance; the earlier check may be stale
                if amount > source.balance:
                    raise InsufficientFunds(
                        f"Insufficient funds. Balance: {source.balance}, Required: {amount}"
                    )

                reference = generate_reference(self.transactions.reference_exists)
                journal = []
                try:
                    if internal:
                        return self._apply_internal(
                            request, source, destination, amount, reference, journal
                        )
                    return self._apply_outbound(
                        request, source, amount, fee, reference, journal
                    )
                except Exception as exc:
                    if self.accounts.transactional:
                        raise
                    self._compensate(reference, journal)
                    raise TransferFailed(reference=reference) from exc

    def _apply_internal(self, request, source, destination, amount, reference, journal):
        self._set_balance(source, source.balance - amount, journal)
        self._set_balance(destination, destination.balance + amount, journal)

        debit = self._append(
            journal,
            account=source,
            customer_id=request.customer_id or source.customer_id,
            amount=-amount,
            type=LedgerTransaction.TYPE_DEBIT,
            category=LedgerTransaction.CATEGORY_TRANSFER,
            description=f"Transfer to {destination.name}",
            status=LedgerTransaction.STATUS_COMPLETED,
            reference=reference,
            transfer_type=request.transfer_type,
            memo=request.memo,
        )
        credit = self._append(
            journal,
            account=destination,
            customer_id=request.customer_id or destination.customer_id,
            amount=amount,
            type=LedgerTransaction.TYPE_CREDIT,
            category=LedgerTransaction.CATEGORY_TRANSFER,
            description=f"Transfer from {source.name}",
            status=LedgerTransaction.STATUS_COMPLETED,
            reference=reference,
            transfer_type=request.transfer_type,
            memo=request.memo,
        )
        self._notify(source, debit)
        self._notify(destination, credit)

        return TransferOutcome(
            reference=reference,
            transfer_type=request.transfer_type,
            amount=amount,
            fee=Decimal("0"),
            status=debit.status,
            new_source_balance=source.balance,
            new_destination_balance=destination.balance,
            records=[debit, credit],
        )

    def _apply_outbound(self, request, source, amount, fee, reference, journal):
        customer_id = request.customer_id or source.customer_id
        description, status = outbound_details(request)
        recipient = {
            name: getattr(request, name)
            for name in RECIPIENT_FIELDS
            if getattr(request, name)
        }

        self._set_balance(source, source.balance - amount, journal)
        debit = self._append(
            journal,
            account=source,
            customer_id=customer_id,
            amount=-amount,
            type=LedgerTransaction.TYPE_DEBIT,
            category=LedgerTransaction.CATEGORY_TRANSFER,
            description=description,
            status=status,
            reference=reference,
            transfer_type=request.transfer_type,
            memo=request.memo,
            meta={"recipient": recipient},
        )
        records = [debit]
        self._notify(source, debit)

        if fee > 0:
            # Applied to the already-debited balance, so the two debits compound
            self._set_balance(source, source.balance - fee, journal)
            fee_record = self._append(
                journal,
                account=source,
                customer_id=customer_id,
                amount=-fee,
                type=LedgerTransaction.TYPE_DEBIT,
                category=LedgerTransaction.CATEGORY_FEES,
                description=fee_description(request.transfer_type),
                status=LedgerTransaction.STATUS_COMPLETED,
                reference=fee_reference(reference),
                transfer_type=request.transfer_type,
                meta={"transfer_reference": reference},
            )
            records.append(fee_record)
            self._notify(source, fee_record)

        return TransferOutcome(
            reference=reference,
            transfer_type=request.transfer_type,
            amount=amount,
            fee=fee if fee > 0 else Decimal("0"),
            status=status,
            new_source_balance=source.balance,
            records=records,
        )

    def _set_balance(self, account, new_balance, journal):
        previous = account.balance
        self.accounts.update_balance(account, new_balance)
        journal.append(("balance", account, previous))

    def _append(self, journal, **fields):
        fields.setdefault("date", timezone.localdate())
        record = self.transactions.create(**fields)
        journal.append(("record", record, None))
        return record

    def _notify(self, account, record):
        transaction_created.send(sender=self.__class__, transaction=record)
        balance_changed.send(sender=self.__class__, account=account, transaction=record)

    def _compensate(self, reference, journal):
        """
        Undo journaled steps newest first. Balances are restored; ledger rows
        stay and get a reversing row.
        """
        remaining = list(journal)
        while remaining:
            kind, target, previous = remaining[-1]
            try:
                if kind == "balance":
                    self.accounts.update_balance(target, previous)
                else:
                    self._reverse(target)
            except Exception as compensation_error:
                logger.exception(
                    "Compensation for transfer %s stopped with %d step(s) still applied",
                    reference,
                    len(remaining),
                )
                raise PartiallyApplied(
                    reference, [self._describe(step) for step in remaining]
                ) from compensation_error
            remaining.pop()
        logger.warning("Transfer %s failed and was compensated", reference)

    def _reverse(self, record):
        return self.transactions.create(
            account=record.account,
            customer_id=record.customer_id,
            amount=-record.amount,
            type=(
                LedgerTransaction.TYPE_CREDIT
                if record.type == LedgerTransaction.TYPE_DEBIT
                else LedgerTransaction.TYPE_DEBIT
            ),
            category=LedgerTransaction.CATEGORY_REVERSAL,
            description=f"Reversal of {record.description}",
            status=LedgerTransaction.STATUS_REVERSED,
            reference=reversal_reference(record.reference),
            transfer_type=record.transfer_type,
            date=timezone.localdate(),
            meta={"reversed_transaction": str(record.uuid)},
        )

    @staticmethod
    def _describe(step):
        kind, target, previous = step
        if kind == "balance":
            return f"balance of {target.account_id} changed from {previous} to {target.balance}"
        return f"ledger row {target.reference} {target.type} {target.amount} on {target.account.account_id}"
