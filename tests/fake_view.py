"""
fake_view.py - Test Helper for LedgerView

Provides a minimal LedgerView implementation for testing the pure interest
token functions without a full Ledger instance.
"""

from __future__ import annotations
from datetime import datetime
import copy
from typing import Dict, Set, Optional, Any

from rateledger import EPOCH, AccrualConfig, create_interest_token_unit
from rateledger.core import Unit


UnitState = Dict[str, Any]


def token_state(config: Optional[AccrualConfig] = None, **overrides) -> UnitState:
    """State of a freshly created interest token, with overrides applied."""
    state = create_interest_token_unit("iUSD", "Interest USD", config).state
    state.update(overrides)
    return state


class FakeView:
    """
    Minimal LedgerView implementation for testing contract functions.

    Example:
        view = FakeView(
            balances={'alice': {'iUSD': 100}},
            states={'iUSD': token_state(global_rate=5 * 10**10)},
            time=EPOCH + timedelta(seconds=1000),
        )
    """

    def __init__(
        self,
        balances: Dict[str, Dict[str, int]],
        states: Optional[Dict[str, UnitState]] = None,
        time: Optional[datetime] = None,
        units: Optional[Dict[str, Unit]] = None
    ):
        self._balances = balances
        self._states = states or {}
        self._time = time or EPOCH
        self._units = units or {}

    @property
    def current_time(self) -> datetime:
        return self._time

    def get_balance(self, wallet: str, unit: str) -> int:
        return self._balances.get(wallet, {}).get(unit, 0)

    def get_unit_state(self, unit: str) -> UnitState:
        return copy.deepcopy(self._states.get(unit, {}))

    def get_positions(self, unit: str) -> Dict[str, int]:
        return {
            w: b[unit]
            for w, b in self._balances.items()
            if b.get(unit)
        }

    def list_wallets(self) -> Set[str]:
        return set(self._balances.keys())

    def get_unit(self, symbol: str) -> Any:
        return self._units[symbol]
