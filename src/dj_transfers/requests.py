from dataclasses import asdict, dataclass, fields

from .fees import TRANSFER_INTERNAL

# UI payloads use camelCase; map them onto the dataclass fields
_CAMEL_CASE_KEYS = {
    "fromAccountId": "from_account_id",
    "fromAccount": "from_account_id",
    "toAccountId": "to_account_id",
    "toAccount": "to_account_id",
    "transferType": "transfer_type",
    "recipientName": "recipient_name",
    "recipientBank": "recipient_bank",
    "routingNumber": "routing_number",
    "accountNumber": "account_number",
    "swiftCode": "swift_code",
    "recipientCountry": "recipient_country",
    "recipientAddress": "recipient_address",
    "purposeOfTransfer": "purpose_of_transfer",
    "customerId": "customer_id",
    "idempotencyKey": "idempotency_key",
}


@dataclass
class TransferRequest:
    """
    A proposed transfer as entered by the customer.

    ``amount`` keeps the raw input; the validator parses it.
    """

    from_account_id: str = ""
    amount: object = None
    transfer_type: str = TRANSFER_INTERNAL
    to_account_id: str = ""
    recipient_name: str = ""
    recipient_bank: str = ""
    routing_number: str = ""
    account_number: str = ""
    swift_code: str = ""
    recipient_country: str = ""
    recipient_address: str = ""
    purpose_of_transfer: str = ""
    memo: str = ""
    customer_id: str = ""
    idempotency_key: str = ""

    @classmethod
    def from_dict(cls, data):
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                continue
            if name != "amount" and value is not None:
                value = str(value).strip()
            values[name] = value
        return cls(**values)

    def to_dict(self):
        data = asdict(self)
        data["amount"] = None if self.amount is None else str(self.amount)
        return data

    @property
    def is_internal(self):
        return self.transfer_type == TRANSFER_INTERNAL
