"""
Unit tests for TransferEngine.
"""

import logging
import re
from decimal import Decimal

import pytest

from dj_transfers.engine import TransferEngine, TransferReceipt
from dj_transfers.exceptions import (
    GENERIC_FAILURE_MESSAGE,
    ConcurrentModification,
    InsufficientFunds,
    InvalidAmount,
    MissingRecipientDetails,
    SameAccount,
    TransferFailed,
)
from dj_transfers.models import LedgerTransaction, ProcessedTransfer
from dj_transfers.repositories import ORMAccountRepository, ORMTransactionRepository


class TestComputeFee:
    @pytest.mark.parametrize(
        ("transfer_type", "fee"),
        [
            ("internal", Decimal("0.00")),
            ("external", Decimal("3.00")),
            ("wire", Decimal("25.00")),
            ("international", Decimal("45.00")),
            ("mobile", Decimal("0.00")),
            ("carrier-pigeon", Decimal("0")),
        ],
    )
    def test_schedule(self, memory_engine, transfer_type, fee):
        assert memory_engine.compute_fee(transfer_type) == fee


@pytest.mark.django_db()
class TestExecuteTransfer:
    def test_internal_transfer(self, engine, checking, savings, request_factory):
        receipt = engine.execute_transfer(request_factory(checking, "200.00", destination=savings))

        assert re.match(r"^TXN\d{9}$", receipt.reference)
        assert receipt.amount == Decimal("200.00")
        assert receipt.fee == Decimal("0")
        assert receipt.total == Decimal("200.00")
        assert receipt.status == LedgerTransaction.STATUS_COMPLETED
        assert receipt.processing_time == "Instant"
        assert receipt.new_source_balance == Decimal("800.00")
        assert receipt.new_destination_balance == Decimal("700.00")
        assert not receipt.idempotent_replay

    def test_wire_transfer(self, engine, checking, request_factory, wire_details):
        receipt = engine.execute_transfer(
            request_factory(checking, "100.00", transfer_type="wire", **wire_details)
        )

        checking.refresh_from_db()
        assert checking.balance == Decimal("875.00")
        assert receipt.fee == Decimal("25.00")
        assert receipt.total == Decimal("125.00")
        assert receipt.processing_time == "Same day"
        assert receipt.new_destination_balance is None
        assert LedgerTransaction.objects.filter(account=checking).count() == 2

    def test_validation_failure_writes_nothing(self, engine, account_factory, savings, request_factory):
        source = account_factory(Decimal("50.00"))

        with pytest.raises(InsufficientFunds) as excinfo:
            engine.execute_transfer(request_factory(source, "100.00", destination=savings))

        assert excinfo.value.message == "Insufficient funds in selected account"
        source.refresh_from_db()
        assert source.balance == Decimal("50.00")
        assert LedgerTransaction.objects.count() == 0

    def test_same_account_rejected(self, engine, checking, request_factory):
        with pytest.raises(SameAccount):
            engine.execute_transfer(request_factory(checking, "10.00", destination=checking))

    def test_external_requires_recipient(self, engine, checking, request_factory):
        with pytest.raises(MissingRecipientDetails):
            engine.execute_transfer(
                request_factory(checking, "10.00", transfer_type="external", recipient_name="Jo")
            )

    def test_invalid_amount(self, engine, checking, savings, request_factory):
        with pytest.raises(InvalidAmount):
            engine.execute_transfer(request_factory(checking, "-5", destination=savings))

    def test_repeated_request_applies_twice(self, engine, checking, savings, request_factory):
        """Without an idempotency key every submission is a new transfer."""
        request = request_factory(checking, "100.00", destination=savings)

        first = engine.execute_transfer(request)
        second = engine.execute_transfer(request)

        assert first.reference != second.reference
        checking.refresh_from_db()
        assert checking.balance == Decimal("800.00")

    def test_idempotency_key_replays(self, engine, checking, savings, request_factory):
        request = request_factory(
            checking, "100.00", destination=savings, idempotency_key="order-42"
        )

        first = engine.execute_transfer(request)
        second = engine.execute_transfer(request)

        assert second.idempotent_replay
        assert second.reference == first.reference
        assert second.new_source_balance == first.new_source_balance
        checking.refresh_from_db()
        assert checking.balance == Decimal("900.00")
        assert ProcessedTransfer.objects.get(idempotency_key="order-42").reference == first.reference

    def test_collaborator_failure_is_generic(self, engine, checking, savings, request_factory, monkeypatch, caplog):
        def broken_create(self, **fields):
            raise RuntimeError("disk full")

        monkeypatch.setattr(ORMTransactionRepository, "create", broken_create)

        with caplog.at_level(logging.ERROR, logger="dj_transfers.engine"):
            with pytest.raises(TransferFailed) as excinfo:
                engine.execute_transfer(request_factory(checking, "100.00", destination=savings))

        assert excinfo.value.message == GENERIC_FAILURE_MESSAGE
        assert "disk full" not in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert any("failed" in record.getMessage() for record in caplog.records)
        checking.refresh_from_db()
        assert checking.balance == Decimal("1000.00")

    def test_concurrent_modification_is_chained(self, engine, checking, savings, request_factory, monkeypatch):
        def stale_update(self, account, new_balance):
            raise ConcurrentModification("stale")

        monkeypatch.setattr(ORMAccountRepository, "update_balance", stale_update)

        with pytest.raises(TransferFailed) as excinfo:
            engine.execute_transfer(request_factory(checking, "100.00", destination=savings))

        assert isinstance(excinfo.value.__cause__, ConcurrentModification)


class TestInMemoryEngine:
    def test_internal_transfer(self, memory_store, memory_engine, memory_account_factory, request_factory):
        accounts, transactions = memory_store
        source = accounts.add(memory_account_factory(Decimal("1000.00")))
        destination = accounts.add(memory_account_factory(Decimal("500.00")))

        receipt = memory_engine.execute_transfer(
            request_factory(source, "200.00", destination=destination)
        )

        assert receipt.new_source_balance == Decimal("800.00")
        assert accounts.get(destination.account_id).balance == Decimal("700.00")
        assert len(transactions.for_reference(receipt.reference)) == 2

    def test_idempotency_key_replays(self, memory_store, memory_engine, memory_account_factory, request_factory):
        accounts, transactions = memory_store
        source = accounts.add(memory_account_factory(Decimal("1000.00")))
        destination = accounts.add(memory_account_factory(Decimal("500.00")))
        request = request_factory(
            source, "100.00", destination=destination, idempotency_key="order-7"
        )

        first = memory_engine.execute_transfer(request)
        second = memory_engine.execute_transfer(request)

        assert not first.idempotent_replay
        assert second.idempotent_replay
        assert second.reference == first.reference
        assert accounts.get(source.account_id).balance == Decimal("900.00")
        assert len(transactions.records) == 2

    def test_failed_keyed_request_can_be_retried(self, memory_store, memory_engine, memory_account_factory, request_factory):
        accounts, _ = memory_store
        source = accounts.add(memory_account_factory(Decimal("50.00")))
        destination = accounts.add(memory_account_factory(Decimal("0.00")))
        request = request_factory(
            source, "100.00", destination=destination, idempotency_key="order-8"
        )

        with pytest.raises(InsufficientFunds):
            memory_engine.execute_transfer(request)

        stored = accounts.get(source.account_id)
        accounts.update_balance(stored, Decimal("150.00"))
        receipt = memory_engine.execute_transfer(request)

        assert not receipt.idempotent_replay
        assert accounts.get(source.account_id).balance == Decimal("50.00")

    def test_failure_carries_reference(self, memory_store, memory_engine, memory_account_factory, request_factory, monkeypatch):
        accounts, transactions = memory_store
        source = accounts.add(memory_account_factory(Decimal("1000.00")))
        destination = accounts.add(memory_account_factory(Decimal("500.00")))
        original = transactions.create
        calls = []

        def flaky_create(**fields):
            calls.append(fields)
            if len(calls) == 2:
                raise RuntimeError("ledger store unavailable")
            return original(**fields)

        monkeypatch.setattr(transactions, "create", flaky_create)

        with pytest.raises(TransferFailed) as excinfo:
            memory_engine.execute_transfer(request_factory(source, "200.00", destination=destination))

        assert excinfo.value.reference is not None
        assert excinfo.value.message == GENERIC_FAILURE_MESSAGE
        assert accounts.get(source.account_id).balance == Decimal("1000.00")

    def test_default_repositories_come_from_settings(self, db):
        engine = TransferEngine()

        assert isinstance(engine.accounts, ORMAccountRepository)
        assert isinstance(engine.transactions, ORMTransactionRepository)


class TestTransferReceipt:
    def test_dict_round_trip_with_override(self):
        receipt = TransferReceipt(
            reference="TXN123456789",
            transfer_type="wire",
            amount=Decimal("100.00"),
            fee=Decimal("25.00"),
            total=Decimal("125.00"),
            status="completed",
            processing_time="Same day",
            new_source_balance=Decimal("875.00"),
        )

        data = receipt.to_dict()
        assert data["total"] == "125.00"
        assert data["new_destination_balance"] is None

        restored = TransferReceipt.from_dict(data, idempotent_replay=True)
        assert restored.total == Decimal("125.00")
        assert restored.idempotent_replay
