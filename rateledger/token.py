"""
token.py - Interest Token Boundary

InterestToken wires the pure interest token functions to a Ledger and an
authorization rule. It is the surface outer layers call: each method builds
a PendingTransaction from a read-only view, executes it atomically, and
turns a rejection into an exception.

Execution order for every mutating call:
1. Authorize the caller (mint, burn, set_global_rate)
2. Compute the PendingTransaction (pure; may raise before anything changes)
3. Register wallets for first-time holders
4. Execute; on rejection, unregister those wallets and raise

Subscribers added with on_rate_change() are called after a rate change is
applied, with (old_rate, new_rate). The transaction log remains the
authoritative record; rate_history() reads it back.
"""

from __future__ import annotations
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from .core import (
    LedgerView, PendingTransaction, ExecuteResult, AuthorizationRule,
    ACTION_MINT, ACTION_BURN, ACTION_SET_GLOBAL_RATE,
    LedgerError, InsufficientFunds,
    allow_all, to_timestamp,
)
from .accrual import AccrualConfig, AccrualSnapshot
from .ledger import Ledger
from .units.interest_token import (
    create_interest_token_unit,
    compute_set_global_rate, compute_mint, compute_burn, compute_transfer,
    current_global_rate, holder_rate, last_update, snapshot_of,
    balance_of, growth_factor_of, principal_of, total_principal,
    rate_changes,
)


RateListener = Callable[[int, int], None]


class InterestToken:
    """
    Interest-bearing token operating on a principal Ledger.

    Example:
        ledger = Ledger("main", verbose=False)
        token = InterestToken.create(
            ledger, "iUSD", "Interest USD",
            AccrualConfig(initial_rate=5 * 10**10),
        )
        token.mint("alice", 100)
        ledger.advance_time(EPOCH + timedelta(seconds=1000))
        token.balance_of("alice")
    """

    def __init__(
        self,
        ledger: Ledger,
        symbol: str,
        authorize: AuthorizationRule = allow_all,
    ):
        """
        Bind to an interest token unit already registered on ledger.

        Args:
            ledger: Ledger holding principal and the unit's state
            symbol: Interest token unit symbol
            authorize: Rule consulted before mint, burn and set_global_rate
        """
        ledger.get_unit(symbol)
        self.ledger = ledger
        self.symbol = symbol
        self.authorize = authorize
        self._rate_listeners: List[RateListener] = []

    @classmethod
    def create(
        cls,
        ledger: Ledger,
        symbol: str,
        name: str,
        config: Optional[AccrualConfig] = None,
        authorize: AuthorizationRule = allow_all,
    ) -> InterestToken:
        """Register a new interest token unit on ledger and bind to it."""
        ledger.register_unit(create_interest_token_unit(symbol, name, config))
        return cls(ledger, symbol, authorize)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def current_global_rate(self) -> int:
        return current_global_rate(self.ledger, self.symbol)

    def holder_rate_of(self, holder: str) -> int:
        return holder_rate(self.ledger, self.symbol, holder)

    def last_update_of(self, holder: str) -> int:
        return last_update(self.ledger, self.symbol, holder)

    def principal_of(self, holder: str) -> int:
        return principal_of(self.ledger, self.symbol, holder)

    def total_principal(self) -> int:
        return total_principal(self.ledger, self.symbol)

    def snapshot_of(self, holder: str) -> AccrualSnapshot:
        return snapshot_of(self.ledger, self.symbol, holder)

    def _view_at(self, at: Optional[datetime]) -> Tuple[LedgerView, Optional[datetime]]:
        # Past queries are answered against the ledger as it was then
        if at is not None and at < self.ledger.current_time:
            return self.ledger.clone_at(at), None
        return self.ledger, at

    def growth_factor(self, holder: str, at: Optional[datetime] = None) -> int:
        view, at = self._view_at(at)
        return growth_factor_of(view, self.symbol, holder, at)

    def balance_of(self, holder: str, at: Optional[datetime] = None) -> int:
        """Effective balance of holder at `at` (default: ledger time)."""
        view, at = self._view_at(at)
        return balance_of(view, self.symbol, holder, at)

    def rate_history(self) -> List[Dict[str, int]]:
        return rate_changes(self.ledger.transaction_log, self.symbol)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def on_rate_change(self, listener: RateListener) -> None:
        """Call listener(old_rate, new_rate) after each applied rate change."""
        self._rate_listeners.append(listener)

    def set_global_rate(self, new_rate: int, caller: str = "admin") -> None:
        """
        Raises:
            Unauthorized: If the authorization rule refuses caller
            RateDirectionViolation: If the change breaks the direction policy
        """
        self.authorize(caller, ACTION_SET_GLOBAL_RATE)
        old_rate = self.current_global_rate()
        pending = compute_set_global_rate(self.ledger, self.symbol, new_rate, caller)
        self._execute(pending, [])
        for listener in self._rate_listeners:
            listener(old_rate, new_rate)

    def mint(self, holder: str, amount: int, caller: str = "admin") -> None:
        """
        Checkpoint holder, then issue amount of principal.

        Raises:
            Unauthorized: If the authorization rule refuses caller
            ArithmeticOverflow: If owed interest cannot be computed
        """
        self.authorize(caller, ACTION_MINT)
        pending = compute_mint(self.ledger, self.symbol, holder, amount, caller)
        self._execute(pending, [holder])

    def burn(self, holder: str, amount: int, caller: str = "admin") -> None:
        """
        Checkpoint holder, then redeem amount of principal.

        Raises:
            Unauthorized: If the authorization rule refuses caller
            InsufficientFunds: If holder's principal is too small
        """
        self.authorize(caller, ACTION_BURN)
        pending = compute_burn(self.ledger, self.symbol, holder, amount, caller)
        self._execute(pending, [holder])

    def transfer(self, source: str, dest: str, amount: int) -> None:
        """
        Move principal from source to dest.

        Raises:
            InsufficientFunds: If source's principal is too small
        """
        pending = compute_transfer(self.ledger, self.symbol, source, dest, amount)
        self._execute(pending, [source, dest])

    def _execute(self, pending: PendingTransaction, holders: List[str]) -> None:
        added = []
        for holder in holders:
            if not self.ledger.is_registered(holder):
                added.append(self.ledger.register_wallet(holder))

        result = self.ledger.execute(pending)
        if result == ExecuteResult.APPLIED:
            return

        for holder in added:
            self.ledger.unregister_wallet(holder)
        if result == ExecuteResult.ALREADY_APPLIED:
            raise LedgerError(f"{self.symbol}: transaction {pending.intent_id} was already applied")
        reason = self.ledger.last_rejection
        if reason.startswith("insufficient funds"):
            raise InsufficientFunds(f"{self.symbol}: {reason}")
        raise LedgerError(f"{self.symbol}: transaction rejected: {reason}")

    def __repr__(self) -> str:
        return (
            f"InterestToken({self.symbol}, rate={self.current_global_rate()}, "
            f"t={to_timestamp(self.ledger.current_time)})"
        )
