#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Interest-Bearing Balances Step by Step

A walk through the interest token on top of the principal ledger. Each step
builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3: Foundation  - The token unit, first mint, projected balances
  4-5: Rates       - Rate lock-in, the direction guard
  6-7: Checkpoints - Advance-only vs materializing checkpoints, transfers
  8:   Time Travel - Historical balances from clone_at(), replay()

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import timedelta
import sys

from rateledger import (
    Ledger, InterestToken, AccrualConfig,
    CheckpointPolicy, RateDirectionViolation,
    SYSTEM_WALLET, EPOCH, ONE,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    initial_rate: int = 5 * 10 ** 10      # per second, scaled by 10**18
    lowered_rate: int = 4 * 10 ** 10
    raised_rate: int = 6 * 10 ** 10

    alice_mint: int = 10 ** 18
    bob_mint: int = 10 ** 18
    top_up: int = 5 * 10 ** 17

    period: int = 1000                    # seconds between steps


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def at(seconds: int):
    return EPOCH + timedelta(seconds=seconds)


def show_holder(token: InterestToken, holder: str):
    print(f"  {holder:6s} principal={token.principal_of(holder):>24}  "
          f"balance={token.balance_of(holder):>24}  "
          f"rate={token.holder_rate_of(holder):>12}  "
          f"last_update={token.last_update_of(holder)}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_create_token() -> InterestToken:
    """Register an interest token unit on a fresh ledger."""
    step_header(1, "The Interest Token",
        "See where the global rate, holder rates and clocks live.")

    print(">>> ledger = Ledger('tutorial')")
    ledger = Ledger("tutorial", verbose=True)
    print(">>> token = InterestToken.create(ledger, 'iUSD', 'Interest USD', config)")
    token = InterestToken.create(
        ledger, "iUSD", "Interest USD",
        AccrualConfig(initial_rate=CONFIG.initial_rate),
    )

    section_header("Unit State")
    for key, value in sorted(ledger.get_unit_state("iUSD").items()):
        print(f"  {key:24s} {value}")

    print("""
    Principal is an ordinary ledger balance. Everything else (the global
    rate, each holder's locked rate and last checkpoint) lives in the
    unit's state and changes only through logged transactions.
    """)
    return token


def step_02_first_mint(token: InterestToken) -> InterestToken:
    """Mint to alice and inspect what the checkpoint recorded."""
    step_header(2, "First Mint",
        "A mint checkpoints the holder first: clock set, rate locked.")

    print(f">>> token.mint('alice', {CONFIG.alice_mint})")
    token.mint("alice", CONFIG.alice_mint)
    show_holder(token, "alice")
    print(f"\n  system balance: {token.ledger.get_balance(SYSTEM_WALLET, 'iUSD')}")
    return token


def step_03_projection(token: InterestToken) -> InterestToken:
    """Advance time and watch the balance grow without any write."""
    step_header(3, "Computed on Read",
        "Balances grow with time while stored state stays put.")

    log_length = len(token.ledger.transaction_log)
    token.ledger.advance_time(at(CONFIG.period))
    print(f">>> ledger.advance_time(t={CONFIG.period})")
    show_holder(token, "alice")
    print(f"\n  growth factor:   {token.growth_factor('alice')} (ONE = {ONE})")
    print(f"  log entries:     {log_length} -> {len(token.ledger.transaction_log)}")

    section_header("Small Principals Truncate")
    print(f"  100 units at this factor: {100 * token.growth_factor('alice') // ONE}")
    return token


# ============================================================================
# PHASE 2: RATES (Steps 4-5)
# ============================================================================

def step_04_rate_lock_in(token: InterestToken) -> InterestToken:
    step_header(4, "Rate Lock-In",
        "Changing the global rate only affects holders not yet locked.")

    token.on_rate_change(lambda old, new: print(f"  [listener] rate {old} -> {new}"))
    print(f">>> token.set_global_rate({CONFIG.lowered_rate})")
    token.set_global_rate(CONFIG.lowered_rate)
    print(f">>> token.mint('bob', {CONFIG.bob_mint})")
    token.mint("bob", CONFIG.bob_mint)

    show_holder(token, "alice")
    show_holder(token, "bob")
    return token


def step_05_direction_guard(token: InterestToken) -> InterestToken:
    step_header(5, "Direction Guard",
        "The global rate may only move the way the unit's policy allows.")

    print(f">>> token.set_global_rate({CONFIG.raised_rate})")
    try:
        token.set_global_rate(CONFIG.raised_rate)
    except RateDirectionViolation as e:
        print(f"  RateDirectionViolation: {e}")
    print(f"  global rate is still {token.current_global_rate()}")

    section_header("Rate History")
    for change in token.rate_history():
        print(f"  v{change['rate_version']}: {change['old_rate']} -> {change['new_rate']}")
    return token


# ============================================================================
# PHASE 3: CHECKPOINTS (Steps 6-7)
# ============================================================================

def step_06_checkpoint_policies(token: InterestToken) -> InterestToken:
    step_header(6, "What a Checkpoint Does With Owed Interest",
        "ADVANCE_ONLY resets the clock; MATERIALIZE pays the interest first.")

    materializing = InterestToken.create(
        Ledger("materialize", verbose=False), "iUSD", "Interest USD",
        AccrualConfig(
            initial_rate=CONFIG.initial_rate,
            checkpoint_policy=CheckpointPolicy.MATERIALIZE,
        ),
    )
    materializing.mint("alice", CONFIG.alice_mint)
    materializing.ledger.advance_time(at(CONFIG.period))

    token.ledger.advance_time(at(2 * CONFIG.period))
    for label, t in (("advance_only", token), ("materialize", materializing)):
        before = t.balance_of("alice")
        t.mint("alice", CONFIG.top_up)
        print(f"  {label:13s} before={before}  after={t.balance_of('alice')}  "
              f"principal={t.principal_of('alice')}")
    return token


def step_07_transfer(token: InterestToken) -> InterestToken:
    step_header(7, "Transfers",
        "Both parties are checkpointed; a new recipient locks today's rate.")

    token.ledger.advance_time(at(3 * CONFIG.period))
    print(">>> token.transfer('bob', 'carol', 10**17)")
    token.transfer("bob", "carol", 10 ** 17)
    for holder in ("alice", "bob", "carol"):
        show_holder(token, holder)
    return token


# ============================================================================
# PHASE 4: TIME TRAVEL (Step 8)
# ============================================================================

def step_08_history(token: InterestToken) -> InterestToken:
    step_header(8, "Historical Balances",
        "clone_at() rebuilds past principal and clocks; replay() proves determinism.")

    token.ledger.advance_time(at(5 * CONFIG.period))
    for seconds in (0, CONFIG.period, 2 * CONFIG.period, 5 * CONFIG.period):
        print(f"  t={seconds:5d}  alice={token.balance_of('alice', at(seconds))}")

    replayed = token.ledger.replay()
    same = replayed.get_unit_state("iUSD") == token.ledger.get_unit_state("iUSD")
    print(f"\n  replayed unit state matches: {same}")
    return token


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       RATELEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    token = step_01_create_token()
    for step in (
        step_02_first_mint, step_03_projection,
        step_04_rate_lock_in, step_05_direction_guard,
        step_06_checkpoint_policies, step_07_transfer,
        step_08_history,
    ):
        wait_for_enter()
        token = step(token)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See rateledger/accrual.py for the fixed-point math
      - See rateledger/units/interest_token.py for checkpoints
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
