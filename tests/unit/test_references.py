"""
Unit tests for reference generation.
"""

import re

import pytest

from dj_transfers.references import (
    fee_reference,
    generate_reference,
    make_reference,
    reversal_reference,
)

REFERENCE_PATTERN = re.compile(r"^TXN\d{9}$")


def test_reference_format():
    """References should be TXN followed by nine digits."""
    for _ in range(20):
        assert REFERENCE_PATTERN.match(make_reference())


def test_reference_uses_last_six_clock_digits():
    """The middle block should come from the millisecond clock."""
    reference = make_reference(clock=lambda: 1700000123.5)
    assert reference[3:9] == "123500"


def test_short_clock_is_zero_padded():
    reference = make_reference(clock=lambda: 0.5)
    assert reference[3:9] == "000500"


def test_generate_skips_existing_references():
    """Colliding candidates should be regenerated."""
    seen = []

    def exists(reference):
        seen.append(reference)
        return len(seen) < 3

    reference = generate_reference(exists)
    assert len(seen) == 3
    assert reference == seen[-1]


def test_generate_gives_up_after_max_attempts():
    """A ledger where everything collides should fail loudly."""
    with pytest.raises(RuntimeError):
        generate_reference(lambda reference: True)


def test_derived_references():
    assert fee_reference("TXN123456789") == "FEETXN123456789"
    assert reversal_reference("TXN123456789") == "REVTXN123456789"
