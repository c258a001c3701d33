from django.dispatch import Signal

# Sent after an account balance is written. kwargs: account, transaction
balance_changed = Signal()

# Sent after a ledger row is appended. kwargs: transaction
transaction_created = Signal()

# Sent after the ledger work for a transfer finishes. kwargs: receipt, request
transfer_completed = Signal()

# Sent when execution fails after validation passed. kwargs: request, error
transfer_failed = Signal()
