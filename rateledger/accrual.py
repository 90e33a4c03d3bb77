"""
accrual.py - Fixed-Point Accrual Math

Stateless functions that project a holder's balance from an explicit
snapshot of (principal, locked rate, last checkpoint) and a query time.
Nothing here reads or writes a ledger, so every rule can be tested in
isolation.

Growth is linear, not compounding:

    growth_factor = ONE + rate * (now - last_update)
    effective     = principal * growth_factor // scale

All values are unsigned integers. Any intermediate result above MAX_UINT256
raises ArithmeticOverflow rather than wrapping or clamping.

The two policy enums record decisions that are not settled by the observed
behavior: which direction the global rate may move, and whether a checkpoint
pays out owed interest before resetting the holder's clock.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from .core import SCALE, MAX_UINT256, ArithmeticOverflow


class RateDirectionPolicy(Enum):
    """
    Direction in which the global rate may move.

    DECREASE_ONLY: new rate must not exceed the current one (stated business rule).
    INCREASE_ONLY: new rate must not fall below the current one (guard as observed).
    """
    DECREASE_ONLY = "decrease_only"
    INCREASE_ONLY = "increase_only"


class CheckpointPolicy(Enum):
    """
    What a checkpoint does with interest owed since the last one.

    ADVANCE_ONLY: advance the clock only; owed interest is forfeited.
    MATERIALIZE: issue owed interest into principal, then advance the clock.
    """
    ADVANCE_ONLY = "advance_only"
    MATERIALIZE = "materialize"


def is_allowed_transition(old: int, new: int, policy: RateDirectionPolicy) -> bool:
    """Return True if moving the global rate from old to new obeys policy."""
    if policy is RateDirectionPolicy.DECREASE_ONLY:
        return new <= old
    if policy is RateDirectionPolicy.INCREASE_ONLY:
        return new >= old
    raise ValueError(f"Unknown rate direction policy: {policy!r}")


@dataclass(frozen=True, slots=True)
class AccrualConfig:
    """
    Configuration for one interest token, passed in explicitly.

    Attributes:
        initial_rate: Global rate at creation, per second, in scale units.
        scale: Fixed-point precision of rates and growth factors.
        direction_policy: Allowed direction of global rate changes.
        checkpoint_policy: Whether checkpoints materialize owed interest.
        checkpoint_on_transfer: Whether transfers checkpoint both parties.
    """
    initial_rate: int = 0
    scale: int = SCALE
    direction_policy: RateDirectionPolicy = RateDirectionPolicy.DECREASE_ONLY
    checkpoint_policy: CheckpointPolicy = CheckpointPolicy.ADVANCE_ONLY
    checkpoint_on_transfer: bool = True

    def __post_init__(self):
        _require_uint(self.initial_rate, "initial_rate")
        _require_uint(self.scale, "scale")
        if self.scale == 0:
            raise ValueError("scale must be positive")
        if not isinstance(self.direction_policy, RateDirectionPolicy):
            raise ValueError(f"direction_policy must be RateDirectionPolicy, got {self.direction_policy!r}")
        if not isinstance(self.checkpoint_policy, CheckpointPolicy):
            raise ValueError(f"checkpoint_policy must be CheckpointPolicy, got {self.checkpoint_policy!r}")


@dataclass(frozen=True, slots=True)
class AccrualSnapshot:
    """
    The three stored inputs of a holder's effective balance.

    A holder that was never checkpointed is AccrualSnapshot(0, 0, 0).
    """
    principal: int
    holder_rate: int
    last_update: int

    def __post_init__(self):
        _require_uint(self.principal, "principal")
        _require_uint(self.holder_rate, "holder_rate")
        _require_uint(self.last_update, "last_update")


def _require_uint(value: int, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if value > MAX_UINT256:
        raise ArithmeticOverflow(f"{name} {value} exceeds the unsigned range")


def _checked(value: int, what: str) -> int:
    """Return value, or raise ArithmeticOverflow if it left the unsigned range."""
    if value > MAX_UINT256:
        raise ArithmeticOverflow(f"{what} overflows: {value} > 2**256 - 1")
    return value


def growth_factor(holder_rate: int, last_update: int, now: int, scale: int = SCALE) -> int:
    """
    Scaled multiplier accrued since last_update.

    Returns exactly `scale` (1.0x) when no time has passed or the holder has
    no locked rate, which covers never-checkpointed holders.

    Raises:
        ValueError: If now is before last_update
        ArithmeticOverflow: If the result exceeds MAX_UINT256
    """
    _require_uint(holder_rate, "holder_rate")
    _require_uint(last_update, "last_update")
    _require_uint(now, "now")
    elapsed = now - last_update
    if elapsed < 0:
        raise ValueError(f"Query time {now} precedes last checkpoint {last_update}")
    if elapsed == 0 or holder_rate == 0:
        return scale
    accrued = _checked(holder_rate * elapsed, "rate * elapsed")
    return _checked(scale + accrued, "growth factor")


def effective_balance(snapshot: AccrualSnapshot, now: int, scale: int = SCALE) -> int:
    """
    Principal grown to `now`, truncated toward zero.

    Raises:
        ArithmeticOverflow: If principal * growth factor exceeds MAX_UINT256
    """
    if snapshot.principal == 0:
        return 0
    factor = growth_factor(snapshot.holder_rate, snapshot.last_update, now, scale)
    return _checked(snapshot.principal * factor, "principal * growth factor") // scale


def owed_interest(snapshot: AccrualSnapshot, now: int, scale: int = SCALE) -> int:
    """Interest accrued since the last checkpoint that is not yet principal."""
    return effective_balance(snapshot, now, scale) - snapshot.principal

