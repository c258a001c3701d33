# dj_transfers/abstract_models.py
"""
Abstract base models for dj-transfers.

These abstract models contain the fields and invariants for accounts and the
append-only transfer ledger. Developers can extend them to add fields.

Usage:
    from dj_transfers.abstract_models import AbstractAccount

    class BankAccount(AbstractAccount):
        branch_code = models.CharField(max_length=12)

        class Meta(AbstractAccount.Meta):
            abstract = False
"""
import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .conf import transfer_settings
from .exceptions import LedgerImmutable
from .managers import AccountManager, LedgerTransactionManager


class AbstractAccount(models.Model):
    """
    A money-holding container owned by a customer.

    ``balance`` and ``version`` are only written by the ledger through an
    account repository. Credit accounts hold the amount owed as a negative
    balance.
    """

    TYPE_CHECKING = "checking"
    TYPE_SAVINGS = "savings"
    TYPE_CREDIT = "credit"
    TYPE_INVESTMENT = "investment"
    TYPE_BUSINESS = "business"

    TYPE_CHOICES = (
        (TYPE_CHECKING, _("Checking")),
        (TYPE_SAVINGS, _("Savings")),
        (TYPE_CREDIT, _("Credit")),
        (TYPE_INVESTMENT, _("Investment")),
        (TYPE_BUSINESS, _("Business")),
    )

    STATUS_ACTIVE = "active"
    STATUS_INACTIVE = "inactive"
    STATUS_SUSPENDED = "suspended"
    STATUS_CLOSED = "closed"

    STATUS_CHOICES = (
        (STATUS_ACTIVE, _("Active")),
        (STATUS_INACTIVE, _("Inactive")),
        (STATUS_SUSPENDED, _("Suspended")),
        (STATUS_CLOSED, _("Closed")),
    )

    # Public identifier used by requests and the API
    uuid = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)

    customer_id = models.CharField(max_length=64, db_index=True)
    name = models.CharField(max_length=255)
    number = models.CharField(max_length=34, blank=True, default="")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_CHECKING)
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE
    )
    currency = models.CharField(
        max_length=3, default=transfer_settings.DEFAULT_CURRENCY
    )

    balance = models.DecimalField(
        max_digits=20,
        decimal_places=transfer_settings.MATH_SCALE,
        default=Decimal("0.00"),
    )

    # Bumped on every balance write; writers must present the version they read
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AccountManager()

    class Meta:
        abstract = True
        verbose_name = _("Account")
        verbose_name_plural = _("Accounts")

    def __str__(self):
        return f"{self.name} ({self.balance})"

    @property
    def account_id(self):
        return str(self.uuid)

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE


class AbstractLedgerTransaction(models.Model):
    """
    One leg of a transfer. Rows are immutable once written.
    """

    TYPE_DEBIT = "debit"
    TYPE_CREDIT = "credit"

    TYPE_CHOICES = (
        (TYPE_DEBIT, _("Debit")),
        (TYPE_CREDIT, _("Credit")),
    )

    CATEGORY_TRANSFER = "Transfer"
    CATEGORY_FEES = "Fees"
    CATEGORY_REVERSAL = "Reversal"

    CATEGORY_CHOICES = (
        (CATEGORY_TRANSFER, _("Transfer")),
        (CATEGORY_FEES, _("Fees")),
        (CATEGORY_REVERSAL, _("Reversal")),
    )

    STATUS_COMPLETED = "completed"
    STATUS_PENDING = "pending"
    STATUS_REVERSED = "reversed"

    STATUS_CHOICES = (
        (STATUS_COMPLETED, _("Completed")),
        (STATUS_PENDING, _("Pending")),
        (STATUS_REVERSED, _("Reversed")),
    )

    # Note: account FK is defined in concrete class to allow custom account model

    uuid = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    reference = models.CharField(max_length=40, db_index=True)
    customer_id = models.CharField(max_length=64, blank=True, default="")

    # Signed: negative for debits, positive for credits
    amount = models.DecimalField(
        max_digits=20, decimal_places=transfer_settings.MATH_SCALE
    )
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    category = models.CharField(
        max_length=20, choices=CATEGORY_CHOICES, default=CATEGORY_TRANSFER
    )
    description = models.CharField(max_length=255, blank=True, default="")
    date = models.DateField(default=timezone.localdate)
    status = models.CharField(
        max_length=20, choices=STATUS_CHOICES, default=STATUS_COMPLETED
    )
    transfer_type = models.CharField(max_length=20, blank=True, default="")
    memo = models.CharField(max_length=255, blank=True, default="")

    meta = models.JSONField(blank=True, null=True, default=dict)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = LedgerTransactionManager()

    class Meta:
        abstract = True
        ordering = ("created_at", "id")

    def __str__(self):
        return f"{self.reference} {self.type} {self.amount}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise LedgerImmutable(
                f"Ledger transaction {self.uuid} has already been recorded."
            )
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise LedgerImmutable(f"Ledger transaction {self.uuid} cannot be deleted.")


class AbstractProcessedTransfer(models.Model):
    """
    Stored outcome of a transfer submitted with an idempotency key.
    """

    idempotency_key = models.CharField(max_length=128, unique=True)
    reference = models.CharField(max_length=40)
    response = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True

    def __str__(self):
        return f"{self.idempotency_key} -> {self.reference}"
