"""
Core types and pure functions for the interest-bearing ledger.

This module provides the foundational data structures shared by the ledger,
the accrual math and the interest token unit:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: Move, PendingTransaction, Transaction, Unit
3. Exceptions: LedgerError and the accrual error taxonomy
4. Fixed-point constants: SCALE, ONE, MAX_UINT256
5. Authorization rules: pure callables guarding privileged actions

All functions in this module are pure and operate on read-only views.
No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import copy
import hashlib
from typing import (
    Dict, List, Set, Optional, Callable, Any, Protocol,
    Tuple, FrozenSet, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption of principal.
# The system wallet is exempt from balance validation and can go negative;
# minus its balance is the outstanding principal of a unit.
SYSTEM_WALLET = "system"

# Ledger time zero. Accrual timestamps are whole seconds since EPOCH.
EPOCH = datetime(1970, 1, 1)

# Fixed-point precision shared by every rate and growth factor.
# rate * seconds is directly additive to ONE.
SCALE = 10 ** 18
ONE = SCALE

# Upper bound of the unsigned numeric range. Anything above it is an overflow.
MAX_UINT256 = 2 ** 256 - 1

UNIT_TYPE_INTEREST_TOKEN = "INTEREST_TOKEN"

# Transaction event types recorded in TransactionOrigin.event_type
EVENT_MINT = "MINT"
EVENT_BURN = "BURN"
EVENT_TRANSFER = "TRANSFER"
EVENT_RATE_CHANGED = "RATE_CHANGED"

# Privileged actions passed to authorization rules
ACTION_MINT = "mint"
ACTION_BURN = "burn"
ACTION_SET_GLOBAL_RATE = "set_global_rate"


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to raw token units held for a specific unit.
Positions = Dict[str, int]

# Mapping from unit symbol to raw token units held in a single wallet.
BalanceMap = Dict[str, int]

# Internal state for a unit: configuration, registry and clock mappings.
UnitState = Dict[str, Any]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Accrual functions, authorization rules and transfer rules receive a
    LedgerView so they can inspect balances and unit state without the
    ability to modify either. The Ledger class implements this protocol;
    tests use FakeView.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """Return the raw units of a unit held by a wallet (0 if none)."""
        ...

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """Return a copy of the unit's internal state."""
        ...

    def get_positions(self, unit_symbol: str) -> Positions:
        """Return all non-zero positions for a unit across all wallets."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        """Return the Unit object for a given symbol."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was validated and applied to the ledger.
    ALREADY_APPLIED: Intent ID was previously processed (idempotent behavior).
    REJECTED: Transaction failed validation; nothing was applied.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a transaction originated."""
    USER_ACTION = "user_action"
    CONTRACT = "contract"
    ADMIN = "admin"
    SYSTEM = "system"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a debit would take a holder's principal below the unit's minimum."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when operating on a unit that has not been registered with the ledger."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when operating on a wallet that has not been registered with the ledger."""
    pass


class RateDirectionViolation(LedgerError):
    """Raised when a global rate change moves in the direction the policy forbids."""
    pass


class ArithmeticOverflow(LedgerError):
    """Raised when fixed-point arithmetic would leave the unsigned numeric range."""
    pass


class Unauthorized(LedgerError):
    """Raised by authorization rules when a caller may not perform an action."""
    pass


# ============================================================================
# TIME
# ============================================================================

def to_timestamp(moment: datetime) -> int:
    """
    Convert a ledger datetime to whole seconds since EPOCH.

    Sub-second precision is truncated. Times before EPOCH are rejected since
    accrual timestamps are unsigned.
    """
    seconds = int((moment - EPOCH).total_seconds())
    if seconds < 0:
        raise ValueError(f"Time {moment} is before the ledger epoch {EPOCH}")
    return seconds


# ============================================================================
# TRANSACTION ORIGIN / STATE CHANGES
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source
        source_id: Identifier of the specific source (caller, contract name)
        unit_symbol: Symbol of the unit that triggered this (if applicable)
        event_type: Specific event (MINT, BURN, TRANSFER, RATE_CHANGED)
    """
    origin_type: OriginType
    source_id: str
    unit_symbol: Optional[str] = None
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.unit_symbol:
            parts.append(f"unit={self.unit_symbol}")
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


@dataclass(frozen=True, slots=True)
class UnitStateChange:
    """
    Before/after snapshot of a unit's state.

    Keeping both sides lets the ledger replay forward (apply new_state) and
    unwind backward (restore old_state) without recomputing accrual.
    """
    unit: str
    old_state: Any
    new_state: Any

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """Return {field: (old, new)} for every field that differs."""
        old = self.old_state if isinstance(self.old_state, dict) else {}
        new = self.new_state if isinstance(self.new_state, dict) else {}
        return {
            key: (old.get(key), new.get(key))
            for key in set(old) | set(new)
            if old.get(key) != new.get(key)
        }


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of raw token units between two wallets.

    Attributes:
        quantity: Raw units to transfer (positive int).
        unit_symbol: Symbol of the unit being transferred.
        source: Wallet debited.
        dest: Wallet credited.
        contract_id: Identifier of the operation generating this move.
        metadata: Optional additional information about the move.
    """
    quantity: int
    unit_symbol: str
    source: str
    dest: str
    contract_id: str
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _canonicalize(value: Any) -> str:
    """
    Serialize a value deterministically for hashing.

    Dict keys and set members are sorted so insertion order never changes
    the result.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"I:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, Enum):
        return f"E:{value.value}"
    if isinstance(value, datetime):
        return f"T:{value.isoformat()}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(item) for item in value) + "]"
    if isinstance(value, (set, frozenset)):
        return "<" + ",".join(_canonicalize(item) for item in sorted(value, key=str)) + ">"
    return f"R:{value!r}"


def _compute_intent_id(
    moves: Tuple[Move, ...],
    state_changes: Tuple[UnitStateChange, ...],
    origin: TransactionOrigin,
) -> str:
    """
    Content hash of a transaction's intent, used for idempotency.

    Depends only on the moves, state changes and origin, never on
    execution time or ledger identity.
    """
    parts = [f"origin:{origin.origin_type.value}:{origin.source_id}"]
    if origin.unit_symbol:
        parts.append(f"unit:{origin.unit_symbol}")
    if origin.event_type:
        parts.append(f"event:{origin.event_type}")

    ordered = sorted(moves, key=lambda m: (m.quantity, m.unit_symbol, m.source, m.dest, m.contract_id))
    for m in ordered:
        parts.append(f"move:{m.quantity}|{m.unit_symbol}|{m.source}|{m.dest}|{m.contract_id}")

    for sc in sorted(state_changes, key=lambda s: s.unit):
        parts.append(f"state:{sc.unit}|{_canonicalize(sc.old_state)}|{_canonicalize(sc.new_state)}")

    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction before execution: represents INTENT.

    Built by pure compute_* functions from a LedgerView and submitted to
    Ledger.execute(), which applies it atomically or not at all.
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            object.__setattr__(
                self, 'intent_id',
                _compute_intent_id(self.moves, self.state_changes, self.origin)
            )

    def is_empty(self) -> bool:
        """Return True if there are no moves and no state changes."""
        return not self.moves and not self.state_changes

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {len(self.state_changes)} deltas, {self.origin})"


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    state_changes: Optional[List[UnitStateChange]] = None,
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves and state changes.

    State snapshots are deep-copied so later mutation of the caller's dicts
    cannot alter the transaction.

    Example:
        old_state = view.get_unit_state("iUSD")
        new_state = {**old_state, "global_rate": 4 * 10**10}
        changes = [UnitStateChange("iUSD", old_state, new_state)]
        pending = build_transaction(view, [], changes)
    """
    if origin is None:
        origin = TransactionOrigin(origin_type=OriginType.CONTRACT, source_id="contract")

    copied_changes: Tuple[UnitStateChange, ...] = ()
    if state_changes:
        copied_changes = tuple(
            UnitStateChange(
                unit=sc.unit,
                old_state=copy.deepcopy(sc.old_state),
                new_state=copy.deepcopy(sc.new_state),
            )
            for sc in state_changes
        )

    return PendingTransaction(
        moves=tuple(moves),
        state_changes=copied_changes,
        origin=origin,
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of ledger state changes: represents FACT.

    Attributes:
        moves: Value transfers applied
        state_changes: Unit state snapshots applied
        origin: Who/what created this transaction and why
        timestamp: When the PendingTransaction was built
        intent_id: Content hash from the PendingTransaction
        exec_id: Unique execution identifier
        ledger_name: Name of the executing ledger
        execution_time: Ledger time at execution
        sequence_number: Monotonic position within the ledger's log
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves and not self.state_changes:
            raise ValueError("Transaction must have moves or state_changes")
        if self.contract_ids is None:
            object.__setattr__(self, 'contract_ids', frozenset(m.contract_id for m in self.moves))

    def __repr__(self) -> str:
        lines = [
            f"Transaction {self.exec_id} [{self.origin}]",
            f"  intent_id={self.intent_id} seq={self.sequence_number} at={self.execution_time}",
        ]
        for move in self.moves:
            lines.append(f"  {move.quantity} {move.unit_symbol}: {move.source} → {move.dest}")
        for sc in self.state_changes:
            for name, (old_val, new_val) in sorted(sc.changed_fields().items()):
                lines.append(f"  [{sc.unit}] {name}: {old_val!r} → {new_val!r}")
        return "\n".join(lines)


# Authorization rules receive (caller, action) and raise Unauthorized to refuse.
AuthorizationRule = Callable[[str, str], None]


def _freeze_state(state: Optional[UnitState]) -> Tuple[Tuple[str, Any], ...]:
    """Convert a state dict to a sorted tuple of (key, value) pairs."""
    if not state:
        return ()
    return tuple(sorted(state.items()))


def _thaw_state(frozen_state: Tuple[Tuple[str, Any], ...]) -> UnitState:
    """Convert a frozen state back to a dict."""
    return dict(frozen_state)


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a unit (token type) in the ledger.

    Attributes:
        symbol: Short identifier for the unit.
        name: Human-readable name.
        unit_type: Category of the unit.
        min_balance: Minimum raw balance of any non-system wallet.
        max_balance: Maximum raw balance of any wallet (None = unbounded).
        _frozen_state: Internal frozen state representation.
    """
    symbol: str
    name: str
    unit_type: str
    min_balance: int = 0
    max_balance: Optional[int] = None
    _frozen_state: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @property
    def state(self) -> UnitState:
        """The unit's state as a fresh dict."""
        return _thaw_state(self._frozen_state)


# ============================================================================
# AUTHORIZATION RULES
# ============================================================================

def allow_all(caller: str, action: str) -> None:
    """Authorization rule that permits every caller."""
    return None


def owner_only(owner: str) -> AuthorizationRule:
    """
    Build an authorization rule that permits only `owner`.

    Example:
        token = InterestToken(ledger, "iUSD", authorize=owner_only("treasury"))
        token.set_global_rate(4 * 10**10, caller="treasury")   # ok
        token.set_global_rate(3 * 10**10, caller="mallory")    # Unauthorized
    """
    if not owner or not owner.strip():
        raise ValueError("owner cannot be empty")

    def rule(caller: str, action: str) -> None:
        if caller != owner:
            raise Unauthorized(f"{caller} may not {action}; only {owner} may")

    rule.__name__ = f"owner_only_{owner}"
    return rule
