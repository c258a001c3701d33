import secrets
import time

from .conf import transfer_settings


def make_reference(clock=time.time):
    """
    Build a display reference: prefix, last 6 digits of the millisecond
    clock, 3 zero-padded random digits. Not unique on its own.
    """
    millis = str(int(clock() * 1000))[-6:].rjust(6, "0")
    return f"{transfer_settings.REFERENCE_PREFIX}{millis}{secrets.randbelow(1000):03d}"


def generate_reference(exists, clock=time.time):
    """
    Return a reference for which ``exists(reference)`` is false.

    Raises RuntimeError once REFERENCE_MAX_ATTEMPTS candidates have collided.
    """
    for _ in range(transfer_settings.REFERENCE_MAX_ATTEMPTS):
        reference = make_reference(clock)
        if not exists(reference):
            return reference
    raise RuntimeError("Could not allocate a unique transfer reference.")


def fee_reference(reference):
    return f"{transfer_settings.FEE_REFERENCE_PREFIX}{reference}"


def reversal_reference(reference):
    return f"{transfer_settings.REVERSAL_REFERENCE_PREFIX}{reference}"
