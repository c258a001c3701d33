from django.core.exceptions import ValidationError
from django.db import models


class AccountQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=self.model.STATUS_ACTIVE)

    def for_customer(self, customer_id):
        return self.filter(customer_id=customer_id)


class AccountManager(models.Manager):
    def get_queryset(self):
        return AccountQuerySet(self.model, using=self._db)

    def active(self):
        return self.get_queryset().active()

    def for_customer(self, customer_id):
        return self.get_queryset().for_customer(customer_id)

    def get_account(self, account_id):
        """
        Look up an account by its public identifier.
        Returns None for unknown or malformed identifiers.
        """
        try:
            return self.get_queryset().filter(uuid=account_id).first()
        except (ValueError, ValidationError):
            return None


class LedgerTransactionQuerySet(models.QuerySet):
    def for_reference(self, reference):
        return self.filter(reference=reference)

    def debits(self):
        return self.filter(type=self.model.TYPE_DEBIT)

    def credits(self):
        return self.filter(type=self.model.TYPE_CREDIT)

    def fees(self):
        return self.filter(category=self.model.CATEGORY_FEES)

    def transfers(self):
        return self.filter(category=self.model.CATEGORY_TRANSFER)


class LedgerTransactionManager(models.Manager):
    def get_queryset(self):
        return LedgerTransactionQuerySet(self.model, using=self._db)

    def for_reference(self, reference):
        return self.get_queryset().for_reference(reference)

    def debits(self):
        return self.get_queryset().debits()

    def credits(self):
        return self.get_queryset().credits()

    def fees(self):
        return self.get_queryset().fees()

    def transfers(self):
        return self.get_queryset().transfers()
