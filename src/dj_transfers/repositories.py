"""
Storage collaborators for the transfer engine.

The engine never touches models directly; it talks to an AccountRepository
and a TransactionRepository. The ORM implementations run inside database
transactions and lock rows with SELECT ... FOR UPDATE. The in-memory
implementations serialize per account with thread locks but cannot roll
back, so the ledger compensates instead.
"""

import copy
import threading
from contextlib import contextmanager, nullcontext

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from .exceptions import AccountNotFound, ConcurrentModification
from .models import Account, LedgerTransaction, ProcessedTransfer


class AccountRepository:
    #: True when atomic() rolls back every write made inside it
    transactional = False

    def get(self, account_id):
        raise NotImplementedError

    def lock(self, *account_ids):
        """
        Context manager yielding ``{account_id: account or None}`` while the
        accounts are held exclusively. Accounts are locked in sorted id order.
        """
        raise NotImplementedError

    def update_balance(self, account, new_balance):
        """
        Write ``new_balance`` if the stored version still matches
        ``account.version``; bumps the version on ``account`` in place.
        """
        raise NotImplementedError

    def atomic(self):
        return nullcontext()


class TransactionRepository:
    def create(self, **fields):
        raise NotImplementedError

    def reference_exists(self, reference):
        raise NotImplementedError

    def get_processed(self, idempotency_key):
        raise NotImplementedError

    def save_processed(self, idempotency_key, reference, response):
        """
        Store ``response`` under ``idempotency_key``. If another writer got
        there first, return the stored response instead.
        """
        raise NotImplementedError

    def hold_key(self, idempotency_key):
        """
        Context manager held while a keyed request is looked up and applied.
        Callers with the same key wait for the holder to finish.
        """
        return nullcontext()


class ORMAccountRepository(AccountRepository):
    transactional = True

    def get(self, account_id):
        if not account_id:
            return None
        return Account.objects.get_account(account_id)

    @contextmanager
    def lock(self, *account_ids):
        ordered = sorted({str(account_id) for account_id in account_ids if account_id})
        with transaction.atomic():
            locked = {}
            for account_id in ordered:
                try:
                    locked[account_id] = (
                        Account.objects.select_for_update().filter(uuid=account_id).first()
                    )
                except (ValueError, ValidationError):
                    locked[account_id] = None
            yield locked

    def update_balance(self, account, new_balance):
        updated = Account.objects.filter(pk=account.pk, version=account.version).update(
            balance=new_balance,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if updated != 1:
            raise ConcurrentModification(
                f"Account {account.account_id} changed since version {account.version}."
            )
        account.balance = new_balance
        account.version += 1
        return account

    def atomic(self):
        return transaction.atomic()


class ORMTransactionRepository(TransactionRepository):
    def create(self, **fields):
        return LedgerTransaction.objects.create(**fields)

    def reference_exists(self, reference):
        return LedgerTransaction.objects.for_reference(reference).exists()

    def get_processed(self, idempotency_key):
        record = ProcessedTransfer.objects.filter(idempotency_key=idempotency_key).first()
        return None if record is None else record.response

    def save_processed(self, idempotency_key, reference, response):
        try:
            with transaction.atomic():
                ProcessedTransfer.objects.create(
                    idempotency_key=idempotency_key,
                    reference=reference,
                    response=response,
                )
        except IntegrityError:
            existing = ProcessedTransfer.objects.filter(
                idempotency_key=idempotency_key
            ).first()
            if existing is None:
                raise
            return existing.response
        return response


class InMemoryAccountRepository(AccountRepository):
    """
    Keeps accounts in a dict. Callers always receive copies, so a stale copy
    fails the version check on write.
    """

    def __init__(self, accounts=()):
        self._accounts = {}
        self._locks = {}
        self._registry_lock = threading.Lock()
        for account in accounts:
            self.add(account)

    def add(self, account):
        with self._registry_lock:
            self._accounts[account.account_id] = account
            self._locks.setdefault(account.account_id, threading.Lock())
        return account

    def get(self, account_id):
        stored = self._accounts.get(str(account_id)) if account_id else None
        return None if stored is None else copy.copy(stored)

    def _lock_for(self, account_id):
        with self._registry_lock:
            return self._locks.setdefault(account_id, threading.Lock())

    @contextmanager
    def lock(self, *account_ids):
        ordered = sorted({str(account_id) for account_id in account_ids if account_id})
        held = []
        try:
            for account_id in ordered:
                account_lock = self._lock_for(account_id)
                account_lock.acquire()
                held.append(account_lock)
            yield {account_id: self.get(account_id) for account_id in ordered}
        finally:
            for account_lock in reversed(held):
                account_lock.release()

    def update_balance(self, account, new_balance):
        with self._registry_lock:
            stored = self._accounts.get(account.account_id)
            if stored is None:
                raise AccountNotFound(f"Account {account.account_id} does not exist.")
            if stored.version != account.version:
                raise ConcurrentModification(
                    f"Account {account.account_id} changed since version {account.version}."
                )
            stored.balance = new_balance
            stored.version += 1
            stored.updated_at = timezone.now()
        account.balance = new_balance
        account.version = stored.version
        return account


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self):
        self.records = []
        self._processed = {}
        self._lock = threading.Lock()
        self._key_locks = {}

    def create(self, **fields):
        record = LedgerTransaction(**fields)
        record.created_at = timezone.now()
        with self._lock:
            self.records.append(record)
        return record

    def reference_exists(self, reference):
        return any(record.reference == reference for record in self.records)

    def for_reference(self, reference):
        return [record for record in self.records if record.reference == reference]

    def get_processed(self, idempotency_key):
        entry = self._processed.get(idempotency_key)
        return None if entry is None else entry[1]

    def save_processed(self, idempotency_key, reference, response):
        with self._lock:
            entry = self._processed.setdefault(idempotency_key, (reference, response))
        return entry[1]

    @contextmanager
    def hold_key(self, idempotency_key):
        # One holder per key at a time
        with self._lock:
            key_lock = self._key_locks.setdefault(idempotency_key, threading.Lock())
        with key_lock:
            yield
