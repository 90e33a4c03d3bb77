"""
ledger.py - Stateful Principal Ledger

The Ledger class holds raw principal balances and unit definitions. It is the
only module that mutates state. Interest is never stored here; it is
projected on read by the accrual module from the principal kept here and the
registry/clock mappings kept in the interest token's unit state.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access by pure functions
    - Executes transactions atomically (all moves and state changes, or nothing)
    - Maintains wallet balances and unit definitions
    - Tracks logical time, which can only move forward
    - Keeps the audit trail that clone_at() and replay() are built on
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Set, Optional, Tuple
import copy

from .core import (
    Move, Transaction, Unit,
    PendingTransaction,
    ExecuteResult,
    Positions, UnitState, BalanceMap,
    SYSTEM_WALLET, EPOCH,
    LedgerError, UnitNotRegistered, WalletNotRegistered,
    _freeze_state,
)


class Ledger:
    """
    Double-entry ledger of integer principal units with a full audit trail.

    Every unit's balances sum to zero across all wallets: issuance debits
    SYSTEM_WALLET, which is the only wallet allowed below its unit's minimum.

    Thread Safety:
        Not thread-safe. Calls are expected to be serialized by the caller,
        and each call runs to completion or leaves no trace.

    Example:
        ledger = Ledger("main", verbose=False)
        ledger.register_unit(create_interest_token_unit("iUSD", "Interest USD"))
        ledger.register_wallet("alice")
        pending = compute_mint(ledger, "iUSD", "alice", 100)
        ledger.execute(pending)
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting time for the ledger (default: EPOCH)
            verbose: Print registration and execution results (default: True)
            test_mode: Allow set_balance() calls (default: False)
        """
        self.name = name
        self.balances: Dict[str, Dict[str, int]] = {}
        self.units: Dict[str, Unit] = {}
        self.registered_wallets: Set[str] = set()
        self.seen_intent_ids: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self._current_time: datetime = initial_time or EPOCH
        self.verbose = verbose
        self._test_mode = test_mode
        self._next_sequence: int = 0
        # Reason for the most recent REJECTED result, for callers that raise
        self.last_rejection: str = ""
        # unit -> {wallet -> quantity}, non-zero entries only
        self._positions_by_unit: Dict[str, Dict[str, int]] = defaultdict(dict)

        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(int)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Get the raw principal of a unit held by a wallet.

        Raises:
            WalletNotRegistered: If wallet is not registered
            UnitNotRegistered: If unit is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return self.balances[wallet_id].get(unit_symbol, 0)

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """
        Get a deep copy of a unit's internal state.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return copy.deepcopy(self.units[unit_symbol].state)

    def get_positions(self, unit_symbol: str) -> Positions:
        """All non-zero positions for a unit, including SYSTEM_WALLET."""
        return dict(self._positions_by_unit.get(unit_symbol, {}))

    def list_wallets(self) -> Set[str]:
        """List all registered wallet IDs."""
        return self.registered_wallets.copy()

    def get_unit(self, symbol: str) -> Unit:
        """Return the Unit object for a given symbol."""
        if symbol not in self.units:
            raise UnitNotRegistered(f"Unit {symbol} not registered")
        return self.units[symbol]

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        """Get all balances for a wallet."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return dict(self.balances[wallet_id])

    def total_supply(self, unit_symbol: str) -> int:
        """
        Sum of a unit's balances across every wallet, system included.

        Double-entry bookkeeping keeps this at zero; a non-zero result means
        a balance was set outside of a transaction (set_balance in tests).
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return sum(self.balances[w].get(unit_symbol, 0) for w in sorted(self.registered_wallets))

    def is_registered(self, wallet_id: str) -> bool:
        """Check if a wallet is registered."""
        return wallet_id in self.registered_wallets

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the ledger's logical clock.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str) -> str:
        """
        Register a new wallet.

        Raises:
            ValueError: If the id is empty or already registered
        """
        if not wallet_id or not wallet_id.strip():
            raise ValueError("Wallet id cannot be empty")
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(int)
        return wallet_id

    def unregister_wallet(self, wallet_id: str) -> None:
        """
        Remove a wallet that has never held anything.

        Used to roll back wallets registered on behalf of a transaction that
        was then rejected.

        Raises:
            LedgerError: If the wallet is the system wallet or holds a balance
        """
        if wallet_id == SYSTEM_WALLET:
            raise LedgerError("Cannot unregister the system wallet")
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if any(self.balances[wallet_id].values()):
            raise LedgerError(f"Wallet {wallet_id} still holds balances")
        self.registered_wallets.discard(wallet_id)
        del self.balances[wallet_id]

    def register_unit(self, unit: Unit) -> None:
        """
        Register a new unit.

        Raises:
            ValueError: If unit symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    def set_balance(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        """
        Overwrite a wallet's balance directly.

        Bypasses double-entry bookkeeping, so it is only available in test mode.

        Raises:
            LedgerError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() is disabled in production mode. "
                "Use build_transaction() and execute() to modify balances."
            )
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        self.balances[wallet_id][unit_symbol] = int(quantity)
        self._update_position_index(wallet_id, unit_symbol, int(quantity))

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """Format: exec:{ledger_name}:{sequence:012d}:{seconds since EPOCH}"""
        seconds = int((self._current_time - EPOCH).total_seconds())
        return f"exec:{self.name}:{sequence:012d}:{seconds}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction atomically.

        Everything is validated before anything is applied, so a rejected
        transaction leaves balances, unit state and the log untouched.
        A transaction whose intent_id was already applied is skipped.

        Returns:
            ExecuteResult.APPLIED, ALREADY_APPLIED or REJECTED
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids:
            if self.verbose:
                print(f"ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        valid, reason = self._validate_pending(pending)
        if not valid:
            self.last_rejection = reason
            if self.verbose:
                print(f"✗ REJECTED: {reason}")
            return ExecuteResult.REJECTED

        sequence = self._next_sequence
        self._next_sequence += 1

        tx = Transaction(
            moves=pending.moves,
            state_changes=pending.state_changes,
            origin=pending.origin,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=self._generate_exec_id(sequence),
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
        )

        self._execute_moves(tx.moves)
        for sc in tx.state_changes:
            self._apply_state(sc.unit, sc.new_state)

        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)

        if self.verbose:
            print(f"✓ APPLIED: {tx.exec_id} {tx.origin}")
        return ExecuteResult.APPLIED

    def _apply_state(self, unit_symbol: str, state: UnitState) -> None:
        old_unit = self.units[unit_symbol]
        new_state = copy.deepcopy(state if isinstance(state, dict) else {})
        self.units[unit_symbol] = replace(old_unit, _frozen_state=_freeze_state(new_state))

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Validate a pending transaction against all constraints.

        Checks performed:
        1. Timestamp (must not be from the future)
        2. Unit and wallet registration
        3. Stale state: each state change's old_state must match the unit's
           current state, otherwise it was computed against an outdated view
        4. Balance constraints (min/max balance limits)

        Returns:
            (True, "") or (False, reason)
        """
        if pending.timestamp > self._current_time:
            return False, "future timestamp"

        for move in pending.moves:
            if move.unit_symbol not in self.units:
                return False, f"unit not registered: {move.unit_symbol}"
            if not self.is_registered(move.source):
                return False, f"wallet not registered: {move.source}"
            if not self.is_registered(move.dest):
                return False, f"wallet not registered: {move.dest}"

        for sc in pending.state_changes:
            if sc.unit not in self.units:
                return False, f"unit not registered: {sc.unit}"
            if sc.old_state is not None and sc.old_state != self.units[sc.unit].state:
                return False, f"stale state for {sc.unit}"

        net: Dict[Tuple[str, str], int] = defaultdict(int)
        for move in pending.moves:
            net[(move.source, move.unit_symbol)] -= move.quantity
            net[(move.dest, move.unit_symbol)] += move.quantity

        for (wallet, unit_sym), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            unit = self.units[unit_sym]
            proposed = self.balances[wallet][unit_sym] + delta
            if proposed < unit.min_balance:
                return False, f"insufficient funds: {wallet} {unit_sym}: {proposed} < min {unit.min_balance}"
            if unit.max_balance is not None and proposed > unit.max_balance:
                return False, f"{wallet} {unit_sym}: {proposed} > max {unit.max_balance}"

        return True, ""

    def _update_position_index(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        if quantity:
            self._positions_by_unit[unit_symbol][wallet_id] = quantity
        else:
            self._positions_by_unit[unit_symbol].pop(wallet_id, None)

    def _execute_moves(self, moves) -> None:
        for move in moves:
            new_src = self.balances[move.source][move.unit_symbol] - move.quantity
            self.balances[move.source][move.unit_symbol] = new_src
            self._update_position_index(move.source, move.unit_symbol, new_src)

            new_dst = self.balances[move.dest][move.unit_symbol] + move.quantity
            self.balances[move.dest][move.unit_symbol] = new_dst
            self._update_position_index(move.dest, move.unit_symbol, new_dst)

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create a fully independent deep copy of this ledger.

        Two clones fed the same operations reach the same state, which is
        what the determinism tests rely on.
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned._current_time = self._current_time
        cloned.verbose = self.verbose
        cloned._test_mode = self._test_mode
        cloned.units = {
            symbol: replace(unit, _frozen_state=_freeze_state(copy.deepcopy(unit.state)))
            for symbol, unit in self.units.items()
        }
        cloned.registered_wallets = self.registered_wallets.copy()
        cloned.seen_intent_ids = self.seen_intent_ids.copy()
        cloned.transaction_log = list(self.transaction_log)
        cloned._next_sequence = self._next_sequence
        cloned.last_rejection = ""
        cloned.balances = {
            wallet: defaultdict(int, bals) for wallet, bals in self.balances.items()
        }
        cloned._positions_by_unit = defaultdict(dict)
        for unit_symbol, positions in self._positions_by_unit.items():
            cloned._positions_by_unit[unit_symbol] = dict(positions)
        return cloned

    def clone_at(self, target_time: datetime) -> Ledger:
        """
        Reconstruct the ledger as it was at a past time.

        Clones current state, then walks the log backward undoing every
        transaction executed after target_time: moves are reversed and
        each unit's old_state snapshot is restored. Because accrual is
        computed on read, balance_of() against the result projects interest
        exactly as it would have at that time.

        Raises:
            ValueError: If target_time is in the future
        """
        if target_time > self._current_time:
            raise ValueError(f"Target time {target_time} is in the future")

        cloned = self.clone()
        cloned._current_time = target_time
        cloned.transaction_log = [
            tx for tx in self.transaction_log if tx.execution_time <= target_time
        ]
        cloned.seen_intent_ids = {tx.intent_id for tx in cloned.transaction_log}
        cloned._next_sequence = len(cloned.transaction_log)

        for tx in reversed(self.transaction_log):
            if tx.execution_time <= target_time:
                break
            for move in tx.moves:
                if move.unit_symbol not in cloned.units:
                    raise LedgerError(f"Cannot unwind: unit {move.unit_symbol} not found in cloned ledger")
                new_src = cloned.balances[move.source][move.unit_symbol] + move.quantity
                new_dst = cloned.balances[move.dest][move.unit_symbol] - move.quantity
                cloned.balances[move.source][move.unit_symbol] = new_src
                cloned.balances[move.dest][move.unit_symbol] = new_dst
                cloned._update_position_index(move.source, move.unit_symbol, new_src)
                cloned._update_position_index(move.dest, move.unit_symbol, new_dst)
            for sc in tx.state_changes:
                if sc.unit in cloned.units:
                    cloned._apply_state(sc.unit, sc.old_state)

        return cloned

    def replay(self, from_tx: int = 0) -> Ledger:
        """
        Build a new ledger by re-executing the transaction log.

        Units are copied with the state recorded just before the first
        replayed transaction, so replaying from zero starts from each
        unit's registration-time configuration.

        Note: balances set via set_balance() are NOT replayed.

        Raises:
            LedgerError: If a logged transaction is rejected during replay
        """
        new_ledger = Ledger(
            name=f"{self.name}_replayed",
            initial_time=EPOCH,
            verbose=self.verbose,
            test_mode=self._test_mode
        )

        # Earliest old_state per unit among the replayed transactions
        initial_states: Dict[str, UnitState] = {}
        for tx in self.transaction_log[from_tx:]:
            for sc in tx.state_changes:
                if sc.unit not in initial_states and isinstance(sc.old_state, dict):
                    initial_states[sc.unit] = sc.old_state

        for symbol, unit in self.units.items():
            state = initial_states.get(symbol, unit.state)
            new_ledger.units[symbol] = replace(
                unit, _frozen_state=_freeze_state(copy.deepcopy(state))
            )

        for wallet in self.registered_wallets:
            if wallet != SYSTEM_WALLET:
                new_ledger.register_wallet(wallet)

        for tx in self.transaction_log[from_tx:]:
            if tx.execution_time > new_ledger._current_time:
                new_ledger.advance_time(tx.execution_time)

            pending = PendingTransaction(
                moves=tx.moves,
                state_changes=tx.state_changes,
                origin=tx.origin,
                timestamp=tx.timestamp,
            )
            if new_ledger.execute(pending) == ExecuteResult.REJECTED:
                raise LedgerError(f"Replay failed at tx {tx.exec_id}: {new_ledger.last_rejection}")

        return new_ledger
