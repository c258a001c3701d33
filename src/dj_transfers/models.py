from django.db import models

from .abstract_models import (
    AbstractAccount,
    AbstractLedgerTransaction,
    AbstractProcessedTransfer,
)
from .conf import transfer_settings


class Account(AbstractAccount):
    """
    Concrete Account model.
    For custom account models, extend AbstractAccount instead.
    """

    class Meta(AbstractAccount.Meta):
        abstract = False
        db_table = f"{transfer_settings.TABLE_PREFIX}account"
        indexes = [
            models.Index(fields=["customer_id", "status"]),
        ]


class LedgerTransaction(AbstractLedgerTransaction):
    """
    Concrete ledger row.
    For custom ledger models, extend AbstractLedgerTransaction instead.
    """

    # The account this leg affects
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="transactions"
    )

    class Meta(AbstractLedgerTransaction.Meta):
        abstract = False
        db_table = f"{transfer_settings.TABLE_PREFIX}transaction"
        indexes = [
            models.Index(fields=["account", "created_at"]),
            models.Index(fields=["category", "status"]),
        ]


class ProcessedTransfer(AbstractProcessedTransfer):
    class Meta(AbstractProcessedTransfer.Meta):
        abstract = False
        db_table = f"{transfer_settings.TABLE_PREFIX}processed_transfer"
