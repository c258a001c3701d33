"""
Pytest configuration and fixtures for dj_transfers tests.
"""

import os
import sys
import uuid
from decimal import Decimal

import django
import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))


def pytest_configure():
    """Configure Django settings before running tests."""
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "tests.settings")
    django.setup()


# ============================================================================
# Account Fixtures
# ============================================================================


@pytest.fixture()
def account_factory(db):
    """Factory for creating persisted accounts."""
    from dj_transfers.models import Account

    def create_account(balance=Decimal("1000.00"), name=None, **kwargs):
        if name is None:
            name = f"Account {uuid.uuid4().hex[:6]}"
        kwargs.setdefault("customer_id", "customer-1")
        return Account.objects.create(name=name, balance=Decimal(balance), **kwargs)

    return create_account


@pytest.fixture()
def checking(account_factory):
    """A checking account holding 1000.00."""
    return account_factory(Decimal("1000.00"), name="Everyday Checking")


@pytest.fixture()
def savings(account_factory):
    """A savings account holding 500.00."""
    from dj_transfers.models import Account

    return account_factory(
        Decimal("500.00"), name="High Yield Savings", type=Account.TYPE_SAVINGS
    )


@pytest.fixture()
def engine(db):
    """Engine backed by the ORM repositories."""
    from dj_transfers.engine import TransferEngine

    return TransferEngine()


# ============================================================================
# In-memory Fixtures
# ============================================================================


@pytest.fixture()
def memory_account_factory():
    """Factory for unsaved accounts used with the in-memory repositories."""
    from dj_transfers.models import Account

    def create_account(balance=Decimal("1000.00"), name=None, **kwargs):
        if name is None:
            name = f"Account {uuid.uuid4().hex[:6]}"
        kwargs.setdefault("customer_id", "customer-1")
        return Account(name=name, balance=Decimal(balance), **kwargs)

    return create_account


@pytest.fixture()
def memory_store():
    """Empty in-memory account and transaction repositories."""
    from dj_transfers.repositories import (
        InMemoryAccountRepository,
        InMemoryTransactionRepository,
    )

    return InMemoryAccountRepository(), InMemoryTransactionRepository()


@pytest.fixture()
def memory_engine(memory_store):
    from dj_transfers.engine import TransferEngine

    accounts, transactions = memory_store
    return TransferEngine(accounts=accounts, transactions=transactions)


# ============================================================================
# Request Fixtures
# ============================================================================


@pytest.fixture()
def request_factory():
    """Factory for transfer requests."""
    from dj_transfers.requests import TransferRequest

    def create_request(source, amount="100.00", transfer_type="internal", **kwargs):
        destination = kwargs.pop("destination", None)
        if destination is not None:
            kwargs["to_account_id"] = destination.account_id
        return TransferRequest(
            from_account_id=source.account_id,
            amount=amount,
            transfer_type=transfer_type,
            **kwargs,
        )

    return create_request


@pytest.fixture()
def wire_details():
    return {
        "recipient_name": "Jane Doe",
        "recipient_bank": "First National",
        "routing_number": "021000021",
        "account_number": "123456789",
    }


# ============================================================================
# Signal Testing Fixtures
# ============================================================================


@pytest.fixture()
def signal_receiver():
    """Helper fixture for testing signals."""

    class SignalReceiver:
        def __init__(self):
            self.calls = []
            self.last_sender = None
            self.last_kwargs = None

        def __call__(self, sender, **kwargs):
            self.calls.append((sender, kwargs))
            self.last_sender = sender
            self.last_kwargs = kwargs

        @property
        def call_count(self):
            return len(self.calls)

        @property
        def was_called(self):
            return len(self.calls) > 0

    return SignalReceiver()
