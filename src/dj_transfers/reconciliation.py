"""
Consistency checks over the transfer ledger.
"""

from collections import defaultdict
from decimal import Decimal

from .conf import transfer_settings
from .fees import TRANSFER_INTERNAL
from .models import LedgerTransaction


def ledger_breaks(queryset=None):
    """
    Return a snapshot of ledger rows that do not form complete transfers.

    - internal references need one debit and one credit summing to zero
    - outbound references need exactly one principal debit
    - fee rows need the principal row they were charged for
    References that were reversed are skipped.
    """
    if queryset is None:
        queryset = LedgerTransaction.objects.all()

    fee_prefix = transfer_settings.FEE_REFERENCE_PREFIX
    reversal_prefix = transfer_settings.REVERSAL_REFERENCE_PREFIX

    principals = defaultdict(list)
    fees = []
    reversed_refs = set()
    for row in queryset.values("reference", "type", "category", "amount", "transfer_type").iterator():
        if row["category"] == LedgerTransaction.CATEGORY_REVERSAL:
            reversed_refs.add(row["reference"][len(reversal_prefix):])
        elif row["category"] == LedgerTransaction.CATEGORY_FEES:
            fees.append(row)
        else:
            principals[row["reference"]].append(row)

    breaks = []
    for reference, rows in principals.items():
        if reference in reversed_refs:
            continue
        debits = [r for r in rows if r["type"] == LedgerTransaction.TYPE_DEBIT]
        credits = [r for r in rows if r["type"] == LedgerTransaction.TYPE_CREDIT]
        if rows[0]["transfer_type"] == TRANSFER_INTERNAL:
            total = sum((r["amount"] for r in rows), Decimal("0"))
            if len(debits) != 1 or len(credits) != 1 or total != 0:
                breaks.append(
                    {
                        "reference": reference,
                        "issue": "unbalanced_internal_transfer",
                        "debits": len(debits),
                        "credits": len(credits),
                        "net": str(total),
                    }
                )
        elif len(debits) != 1 or credits:
            breaks.append(
                {
                    "reference": reference,
                    "issue": "unexpected_outbound_legs",
                    "debits": len(debits),
                    "credits": len(credits),
                }
            )

    for row in fees:
        reference = row["reference"]
        parent = reference[len(fee_prefix):] if reference.startswith(fee_prefix) else ""
        if reference in reversed_refs or parent in reversed_refs:
            continue
        if parent not in principals:
            breaks.append({"reference": reference, "issue": "orphan_fee"})

    return {
        "checked_references": len(principals),
        "checked_fees": len(fees),
        "breaks": breaks,
        "is_consistent": not breaks,
    }
