"""
Configuration settings for dj_transfers.

Settings can be overridden in your Django settings.py using the DJ_TRANSFERS dictionary.
"""

from dataclasses import MISSING, dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured

DEFAULT_FEE_SCHEDULE = {
    "internal": Decimal("0.00"),
    "external": Decimal("3.00"),
    "wire": Decimal("25.00"),
    "international": Decimal("45.00"),
    "mobile": Decimal("0.00"),
}


@dataclass
class TransferSettings:
    """Settings container for dj_transfers configuration."""

    # Number of decimal places for balances and fees
    MATH_SCALE: int = 2

    # Default currency code for new accounts
    DEFAULT_CURRENCY: str = "USD"

    # Reference number prefixes
    REFERENCE_PREFIX: str = "TXN"
    FEE_REFERENCE_PREFIX: str = "FEE"
    REVERSAL_REFERENCE_PREFIX: str = "REV"

    # How many times a colliding reference is regenerated before giving up
    REFERENCE_MAX_ATTEMPTS: int = 5

    # Per-type fee overrides, merged over DEFAULT_FEE_SCHEDULE
    FEE_SCHEDULE: dict = field(default_factory=dict)

    TABLE_PREFIX: str = "dj_transfers_"

    # Swappable classes - use dotted path strings
    ENGINE_CLASS: str = "dj_transfers.engine.TransferEngine"
    ACCOUNT_REPOSITORY_CLASS: str = "dj_transfers.repositories.ORMAccountRepository"
    TRANSACTION_REPOSITORY_CLASS: str = (
        "dj_transfers.repositories.ORMTransactionRepository"
    )

    def __init__(self):
        """Initialize settings from Django settings if available."""
        user_settings = getattr(django_settings, "DJ_TRANSFERS", {})

        for key, dataclass_field in self.__class__.__dataclass_fields__.items():
            if key in user_settings:
                setattr(self, key, user_settings[key])
            elif dataclass_field.default_factory is not MISSING:
                setattr(self, key, dataclass_field.default_factory())
            else:
                setattr(self, key, dataclass_field.default)

        self._validate_settings()
        self.FEE_SCHEDULE = self._build_fee_schedule(self.FEE_SCHEDULE)

    def _validate_settings(self):
        """
        Validate user-provided settings and raise ImproperlyConfigured for invalid values.
        """
        if not isinstance(self.MATH_SCALE, int) or not 0 <= self.MATH_SCALE <= 8:
            raise ImproperlyConfigured(
                "DJ_TRANSFERS['MATH_SCALE'] must be an integer between 0 and 8. "
                f"Got: {self.MATH_SCALE}"
            )

        for name in (
            "DEFAULT_CURRENCY",
            "REFERENCE_PREFIX",
            "FEE_REFERENCE_PREFIX",
            "REVERSAL_REFERENCE_PREFIX",
        ):
            value = getattr(self, name)
            if not isinstance(value, str) or len(value) == 0:
                raise ImproperlyConfigured(
                    f"DJ_TRANSFERS['{name}'] must be a non-empty string. Got: {value}"
                )

        if (
            not isinstance(self.REFERENCE_MAX_ATTEMPTS, int)
            or self.REFERENCE_MAX_ATTEMPTS < 1
        ):
            raise ImproperlyConfigured(
                "DJ_TRANSFERS['REFERENCE_MAX_ATTEMPTS'] must be a positive integer. "
                f"Got: {self.REFERENCE_MAX_ATTEMPTS}"
            )

        if not isinstance(self.FEE_SCHEDULE, dict):
            raise ImproperlyConfigured(
                "DJ_TRANSFERS['FEE_SCHEDULE'] must be a dict of transfer type to fee. "
                f"Got: {self.FEE_SCHEDULE}"
            )

        class_paths = [
            ("ENGINE_CLASS", self.ENGINE_CLASS),
            ("ACCOUNT_REPOSITORY_CLASS", self.ACCOUNT_REPOSITORY_CLASS),
            ("TRANSACTION_REPOSITORY_CLASS", self.TRANSACTION_REPOSITORY_CLASS),
        ]

        for name, value in class_paths:
            if not isinstance(value, str) or "." not in value:
                raise ImproperlyConfigured(
                    f"DJ_TRANSFERS['{name}'] must be a valid dotted path string. "
                    f"Got: {value}"
                )

    @staticmethod
    def _build_fee_schedule(overrides):
        schedule = dict(DEFAULT_FEE_SCHEDULE)
        for transfer_type, raw_fee in overrides.items():
            try:
                fee = Decimal(str(raw_fee))
            except (ValueError, InvalidOperation):
                raise ImproperlyConfigured(
                    f"DJ_TRANSFERS['FEE_SCHEDULE']['{transfer_type}'] must be a decimal. "
                    f"Got: {raw_fee}"
                ) from None
            if not fee.is_finite() or fee < 0:
                raise ImproperlyConfigured(
                    f"DJ_TRANSFERS['FEE_SCHEDULE']['{transfer_type}'] must be non-negative. "
                    f"Got: {raw_fee}"
                )
            schedule[transfer_type] = fee
        return schedule

    def __getattr__(self, name: str) -> Any:
        """Fallback for attribute access."""
        raise AttributeError(f"'{type(self).__name__}' has no setting '{name}'")


# Singleton instance for import convenience
transfer_settings = TransferSettings()
