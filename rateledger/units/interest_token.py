"""
interest_token.py - Interest-Bearing Token Unit

This module provides the interest token unit and every operation on it:
1. create_interest_token_unit() - Factory storing config, registry and clock in unit state
2. Principal glue - principal_of(), total_principal(), credit_principal(), debit_principal()
3. Rate registry - current_global_rate(), holder_rate(), compute_set_global_rate()
4. Accrual clock - last_update(), touch()
5. Balance projector - growth_factor_of(), balance_of(), checkpoint()
6. Principal-changing operations - compute_mint(), compute_burn(), compute_transfer()

Principal lives in the ledger as ordinary wallet balances. The unit's state
holds everything else:

    initial_rate     global rate at registration, kept for get_config()
    global_rate      current global rate per second, in scale units
    rate_version     bumped on every successful rate change
    holder_rates     {holder: rate locked at first checkpoint}
    last_updates     {holder: seconds since EPOCH of last checkpoint}
    nonce            bumped on every state-changing operation

Pattern:
    Mint (holder, amount):
        - checkpoint(holder): lock rate on first contact, advance clock,
          optionally issue owed interest
        Move(source="system", dest=holder, unit=symbol, quantity=interest)
        - credit principal
        Move(source="system", dest=holder, unit=symbol, quantity=amount)

All functions take LedgerView (read-only) and return immutable results.
"""

from __future__ import annotations
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitState, UnitStateChange,
    TransactionOrigin, OriginType,
    SYSTEM_WALLET, UNIT_TYPE_INTEREST_TOKEN,
    EVENT_MINT, EVENT_BURN, EVENT_TRANSFER, EVENT_RATE_CHANGED,
    InsufficientFunds, RateDirectionViolation,
    build_transaction, to_timestamp, _freeze_state,
)
from ..accrual import (
    AccrualConfig, AccrualSnapshot, CheckpointPolicy, RateDirectionPolicy,
    is_allowed_transition, growth_factor, effective_balance, owed_interest,
    _require_uint,
)


def create_interest_token_unit(
    symbol: str,
    name: str,
    config: Optional[AccrualConfig] = None,
) -> Unit:
    """
    Create an interest-bearing token unit.

    Args:
        symbol: Unique identifier (e.g., "iUSD")
        name: Human-readable name
        config: Accrual configuration (defaults to AccrualConfig())

    Returns:
        Unit whose holders may not go below zero principal, with state
        holding the config, an empty registry and an empty clock.

    Example:
        unit = create_interest_token_unit(
            "iUSD", "Interest USD",
            AccrualConfig(initial_rate=5 * 10**10),
        )
        ledger.register_unit(unit)
    """
    if not symbol or not symbol.strip():
        raise ValueError("symbol cannot be empty")
    config = config or AccrualConfig()

    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_INTEREST_TOKEN,
        min_balance=0,
        max_balance=None,
        _frozen_state=_freeze_state({
            'initial_rate': config.initial_rate,
            'scale': config.scale,
            'direction_policy': config.direction_policy.value,
            'checkpoint_policy': config.checkpoint_policy.value,
            'checkpoint_on_transfer': config.checkpoint_on_transfer,
            'global_rate': config.initial_rate,
            'rate_version': 0,
            'holder_rates': {},
            'last_updates': {},
            'nonce': 0,
        }),
    )


def get_config(state: UnitState) -> AccrualConfig:
    """Rebuild the AccrualConfig recorded in an interest token's state."""
    return AccrualConfig(
        initial_rate=state['initial_rate'],
        scale=state['scale'],
        direction_policy=RateDirectionPolicy(state['direction_policy']),
        checkpoint_policy=CheckpointPolicy(state['checkpoint_policy']),
        checkpoint_on_transfer=state['checkpoint_on_transfer'],
    )


def _validate_holder(holder: str) -> None:
    if not holder or not holder.strip():
        raise ValueError("holder cannot be empty")
    if holder == SYSTEM_WALLET:
        raise ValueError(f"{SYSTEM_WALLET} cannot hold interest-bearing principal")


def _validate_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"amount must be int, got {type(amount).__name__}")
    if amount <= 0:
        raise ValueError(f"amount must be positive, got {amount}")


def _now(view: LedgerView) -> int:
    return to_timestamp(view.current_time)


# ============================================================================
# PRINCIPAL LEDGER GLUE
# ============================================================================

def principal_of(view: LedgerView, symbol: str, holder: str) -> int:
    """Raw principal held by holder; 0 for wallets the ledger has never seen."""
    if holder not in view.list_wallets():
        return 0
    return view.get_balance(holder, symbol)


def total_principal(view: LedgerView, symbol: str) -> int:
    """Sum of principal across holders, excluding the system wallet."""
    return sum(
        quantity for wallet, quantity in view.get_positions(symbol).items()
        if wallet != SYSTEM_WALLET
    )


def credit_principal(symbol: str, holder: str, amount: int, contract_id: str = "") -> Move:
    """Issue `amount` of principal to holder from the system wallet."""
    return Move(amount, symbol, SYSTEM_WALLET, holder, contract_id or f"credit_{symbol}_{holder}")


def debit_principal(symbol: str, holder: str, amount: int, contract_id: str = "") -> Move:
    """Redeem `amount` of holder's principal back to the system wallet."""
    return Move(amount, symbol, holder, SYSTEM_WALLET, contract_id or f"debit_{symbol}_{holder}")


# ============================================================================
# RATE REGISTRY
# ============================================================================

def current_global_rate(view: LedgerView, symbol: str) -> int:
    return view.get_unit_state(symbol)['global_rate']


def holder_rate(view: LedgerView, symbol: str, holder: str) -> int:
    """Rate locked for holder at first checkpoint (0 if never checkpointed)."""
    return view.get_unit_state(symbol)['holder_rates'].get(holder, 0)


def compute_set_global_rate(
    view: LedgerView,
    symbol: str,
    new_rate: int,
    caller: str = "admin",
) -> PendingTransaction:
    """
    Replace the global rate, subject to the unit's direction policy.

    Only the global rate moves. Rates already locked by holders are
    untouched, so a change only affects holders checkpointed afterwards.

    Args:
        view: Read-only ledger access
        symbol: Interest token symbol
        new_rate: Proposed rate per second, in scale units
        caller: Identity recorded in the transaction origin

    Returns:
        PendingTransaction with a single RATE_CHANGED state change

    Raises:
        ValueError: If new_rate is not a non-negative int
        RateDirectionViolation: If the change moves in the forbidden direction
    """
    _require_uint(new_rate, "new_rate")
    state = view.get_unit_state(symbol)
    policy = RateDirectionPolicy(state['direction_policy'])
    old_rate = state['global_rate']

    if not is_allowed_transition(old_rate, new_rate, policy):
        raise RateDirectionViolation(
            f"{symbol}: global rate may not move from {old_rate} to {new_rate} "
            f"under {policy.value}"
        )

    new_state = {
        **state,
        'global_rate': new_rate,
        'rate_version': state['rate_version'] + 1,
        'nonce': state['nonce'] + 1,
    }
    origin = TransactionOrigin(OriginType.ADMIN, caller, symbol, EVENT_RATE_CHANGED)
    return build_transaction(
        view, [], [UnitStateChange(symbol, state, new_state)], origin
    )


# ============================================================================
# ACCRUAL CLOCK
# ============================================================================

def last_update(view: LedgerView, symbol: str, holder: str) -> int:
    """Seconds since EPOCH of holder's last checkpoint (0 if never)."""
    return view.get_unit_state(symbol)['last_updates'].get(holder, 0)


def touch(state: UnitState, holder: str, now: int) -> UnitState:
    """
    Return a copy of state with holder's last checkpoint set to now.

    Does not check direction; callers pass ledger time, which never runs
    backward.
    """
    return {**state, 'last_updates': {**state['last_updates'], holder: now}}


# ============================================================================
# BALANCE PROJECTOR
# ============================================================================

def _snapshot(view: LedgerView, symbol: str, state: UnitState, holder: str) -> AccrualSnapshot:
    return AccrualSnapshot(
        principal=principal_of(view, symbol, holder),
        holder_rate=state['holder_rates'].get(holder, 0),
        last_update=state['last_updates'].get(holder, 0),
    )


def snapshot_of(view: LedgerView, symbol: str, holder: str) -> AccrualSnapshot:
    """The stored accrual inputs for holder."""
    return _snapshot(view, symbol, view.get_unit_state(symbol), holder)


def growth_factor_of(
    view: LedgerView,
    symbol: str,
    holder: str,
    at: Optional[datetime] = None,
) -> int:
    """Scaled growth factor of holder at `at` (default: ledger time)."""
    state = view.get_unit_state(symbol)
    now = to_timestamp(at) if at is not None else _now(view)
    return growth_factor(
        state['holder_rates'].get(holder, 0),
        state['last_updates'].get(holder, 0),
        now,
        state['scale'],
    )


def balance_of(
    view: LedgerView,
    symbol: str,
    holder: str,
    at: Optional[datetime] = None,
) -> int:
    """
    Effective balance of holder: principal grown by its locked rate.

    Recomputed on every call; nothing is cached because the answer
    depends on the query time.
    """
    state = view.get_unit_state(symbol)
    now = to_timestamp(at) if at is not None else _now(view)
    return effective_balance(_snapshot(view, symbol, state, holder), now, state['scale'])


def checkpoint(
    view: LedgerView,
    symbol: str,
    state: UnitState,
    holder: str,
    now: int,
) -> Tuple[List[Move], UnitState]:
    """
    Checkpoint holder ahead of a principal change.

    1. Compute interest owed since the last checkpoint.
    2. Under MATERIALIZE, issue it to holder as principal. Under
       ADVANCE_ONLY it is forfeited.
    3. Advance holder's clock to now.
    4. On first contact (no locked rate), lock the current global rate.

    `state` is the working state of the operation being built, so several
    checkpoints can be chained in one transaction.

    Returns:
        (moves, new_state): moves is empty unless interest was materialized

    Raises:
        ValueError: If now precedes holder's last checkpoint
        ArithmeticOverflow: If the owed interest cannot be computed
    """
    snapshot = _snapshot(view, symbol, state, holder)
    if now < snapshot.last_update:
        raise ValueError(
            f"{symbol}: checkpoint for {holder} at {now} precedes last update {snapshot.last_update}"
        )

    moves: List[Move] = []
    owed = owed_interest(snapshot, now, state['scale'])
    if owed > 0 and CheckpointPolicy(state['checkpoint_policy']) is CheckpointPolicy.MATERIALIZE:
        moves.append(credit_principal(symbol, holder, owed, f"interest_{symbol}_{holder}"))

    new_state = touch(state, holder, now)
    if snapshot.holder_rate == 0 and state['global_rate'] > 0:
        new_state = {
            **new_state,
            'holder_rates': {**new_state['holder_rates'], holder: state['global_rate']},
        }
    return moves, new_state


def compute_mint(
    view: LedgerView,
    symbol: str,
    holder: str,
    amount: int,
    caller: str = "admin",
) -> PendingTransaction:
    """
    Issue new principal to holder, checkpointing first.

    Returns:
        PendingTransaction containing:
        - Interest move (MATERIALIZE policy, if any interest is owed)
        - Principal credit from the system wallet
        - State change with holder's clock advanced and rate locked

    Example:
        pending = compute_mint(ledger, "iUSD", "alice", 100)
        ledger.execute(pending)
    """
    _validate_holder(holder)
    _validate_amount(amount)
    state = view.get_unit_state(symbol)

    moves, new_state = checkpoint(view, symbol, state, holder, _now(view))
    moves.append(credit_principal(symbol, holder, amount, f"mint_{symbol}_{holder}"))
    new_state['nonce'] = state['nonce'] + 1

    origin = TransactionOrigin(OriginType.ADMIN, caller, symbol, EVENT_MINT)
    return build_transaction(view, moves, [UnitStateChange(symbol, state, new_state)], origin)


def compute_burn(
    view: LedgerView,
    symbol: str,
    holder: str,
    amount: int,
    caller: str = "admin",
) -> PendingTransaction:
    """
    Redeem holder's principal, checkpointing first.

    Under MATERIALIZE, interest issued by the checkpoint counts toward the
    amount that can be burned.

    Raises:
        InsufficientFunds: If amount exceeds holder's principal after checkpoint
    """
    _validate_holder(holder)
    _validate_amount(amount)
    state = view.get_unit_state(symbol)

    moves, new_state = checkpoint(view, symbol, state, holder, _now(view))
    available = principal_of(view, symbol, holder) + sum(m.quantity for m in moves)
    if amount > available:
        raise InsufficientFunds(
            f"{symbol}: {holder} cannot burn {amount}, principal is {available}"
        )
    moves.append(debit_principal(symbol, holder, amount, f"burn_{symbol}_{holder}"))
    new_state['nonce'] = state['nonce'] + 1

    origin = TransactionOrigin(OriginType.ADMIN, caller, symbol, EVENT_BURN)
    return build_transaction(view, moves, [UnitStateChange(symbol, state, new_state)], origin)


def compute_transfer(
    view: LedgerView,
    symbol: str,
    source: str,
    dest: str,
    amount: int,
) -> PendingTransaction:
    """
    Move principal between holders.

    When the unit's checkpoint_on_transfer flag is set, both parties are
    checkpointed before the move: the destination locks the global rate on
    first contact and both clocks advance. Without it, only principal moves
    and neither holder's accrual inputs change.

    Raises:
        ValueError: If source and dest are the same holder
        InsufficientFunds: If amount exceeds source's principal after checkpoint
    """
    _validate_holder(source)
    _validate_holder(dest)
    _validate_amount(amount)
    if source == dest:
        raise ValueError("source and dest must be different")

    state = view.get_unit_state(symbol)
    moves: List[Move] = []
    new_state = dict(state)
    if state['checkpoint_on_transfer']:
        now = _now(view)
        for party in (source, dest):
            party_moves, new_state = checkpoint(view, symbol, new_state, party, now)
            moves.extend(party_moves)

    source_interest = sum(m.quantity for m in moves if m.dest == source)
    available = principal_of(view, symbol, source) + source_interest
    if amount > available:
        raise InsufficientFunds(
            f"{symbol}: {source} cannot transfer {amount}, principal is {available}"
        )
    moves.append(Move(amount, symbol, source, dest, f"transfer_{symbol}_{source}_{dest}"))
    new_state['nonce'] = state['nonce'] + 1

    origin = TransactionOrigin(OriginType.USER_ACTION, source, symbol, EVENT_TRANSFER)
    return build_transaction(view, moves, [UnitStateChange(symbol, state, new_state)], origin)


def rate_changes(transactions, symbol: str) -> List[Dict[str, int]]:
    """
    Extract rate-change notifications for symbol from a transaction log.

    Returns:
        One dict per change, in log order, with old_rate, new_rate,
        rate_version and the ledger sequence number.
    """
    changes = []
    for tx in transactions:
        if tx.origin.event_type != EVENT_RATE_CHANGED or tx.origin.unit_symbol != symbol:
            continue
        for sc in tx.state_changes:
            if sc.unit == symbol:
                changes.append({
                    'old_rate': sc.old_state['global_rate'],
                    'new_rate': sc.new_state['global_rate'],
                    'rate_version': sc.new_state['rate_version'],
                    'sequence': tx.sequence_number,
                })
    return changes
