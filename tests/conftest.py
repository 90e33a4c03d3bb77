"""
conftest.py - Shared pytest fixtures for rateledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Ledgers (empty, with an interest token registered)
- InterestToken bound to the reference 5e10 per-second rate
- Time helpers converting seconds to ledger datetimes
"""

import pytest
from datetime import datetime, timedelta

from rateledger import (
    Ledger, InterestToken, AccrualConfig,
    RateDirectionPolicy, CheckpointPolicy,
    EPOCH,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

REFERENCE_RATE = 5 * 10 ** 10


def at(seconds: int) -> datetime:
    """Ledger datetime `seconds` after EPOCH."""
    return EPOCH + timedelta(seconds=seconds)


def make_token(
    initial_rate: int = REFERENCE_RATE,
    direction_policy: RateDirectionPolicy = RateDirectionPolicy.DECREASE_ONLY,
    checkpoint_policy: CheckpointPolicy = CheckpointPolicy.ADVANCE_ONLY,
    checkpoint_on_transfer: bool = True,
    name: str = "test",
) -> InterestToken:
    """Fresh ledger at EPOCH with one interest token registered."""
    ledger = Ledger(name, verbose=False)
    config = AccrualConfig(
        initial_rate=initial_rate,
        direction_policy=direction_policy,
        checkpoint_policy=checkpoint_policy,
        checkpoint_on_transfer=checkpoint_on_transfer,
    )
    return InterestToken.create(ledger, "iUSD", "Interest USD", config)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no registrations."""
    return Ledger("test", verbose=False, test_mode=True)


@pytest.fixture
def token():
    """Interest token at 5e10 per second, decrease-only, advance-only checkpoints."""
    return make_token()


@pytest.fixture
def materializing_token():
    """Interest token whose checkpoints issue owed interest as principal."""
    return make_token(checkpoint_policy=CheckpointPolicy.MATERIALIZE)


@pytest.fixture
def increase_only_token():
    """Interest token whose rate guard rejects decreases."""
    return make_token(direction_policy=RateDirectionPolicy.INCREASE_ONLY)
