"""
Fee policy for each transfer type.
"""

import logging
from decimal import Decimal

from .conf import transfer_settings

logger = logging.getLogger(__name__)

TRANSFER_INTERNAL = "internal"
TRANSFER_EXTERNAL = "external"
TRANSFER_WIRE = "wire"
TRANSFER_INTERNATIONAL = "international"
TRANSFER_MOBILE = "mobile"

TRANSFER_TYPES = (
    TRANSFER_INTERNAL,
    TRANSFER_EXTERNAL,
    TRANSFER_WIRE,
    TRANSFER_INTERNATIONAL,
    TRANSFER_MOBILE,
)

FEE_DESCRIPTIONS = {
    TRANSFER_WIRE: "Wire Transfer Fee",
    TRANSFER_INTERNATIONAL: "International Wire Transfer Fee",
    TRANSFER_EXTERNAL: "External Transfer Fee",
}

PROCESSING_TIMES = {
    TRANSFER_INTERNAL: "Instant",
    TRANSFER_WIRE: "Same day",
}
DEFAULT_PROCESSING_TIME = "1-3 business days"


def resolve_fee(transfer_type):
    """
    Return the fixed fee charged for ``transfer_type``.

    Unknown types are charged nothing.
    """
    try:
        return transfer_settings.FEE_SCHEDULE[transfer_type]
    except (KeyError, TypeError):
        logger.warning("No fee configured for transfer type %r; charging 0", transfer_type)
        return Decimal("0")


def fee_description(transfer_type):
    return FEE_DESCRIPTIONS.get(transfer_type, "Transfer Fee")


def processing_time(transfer_type):
    return PROCESSING_TIMES.get(transfer_type, DEFAULT_PROCESSING_TIME)
