"""
rateledger - Interest-Bearing Balance Ledger

Holders accrue value linearly at a rate locked in at their first
interaction; the single global rate may only move in the direction its
policy allows. Balances are projected on read from stored principal, so
nothing is rewritten as time passes.

Usage:
    from datetime import timedelta
    from rateledger import Ledger, InterestToken, AccrualConfig, EPOCH

    ledger = Ledger("main", verbose=False)
    token = InterestToken.create(
        ledger, "iUSD", "Interest USD",
        AccrualConfig(initial_rate=5 * 10**10),
    )

    token.mint("alice", 100)                 # locks alice at 5e10 per second
    token.set_global_rate(4 * 10**10)        # alice keeps 5e10

    ledger.advance_time(EPOCH + timedelta(days=365))
    token.balance_of("alice")                # principal grown to now
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    Unit,
    UnitStateChange,
    ExecuteResult,
    AuthorizationRule,
    LedgerError,
    InsufficientFunds,
    UnitNotRegistered,
    WalletNotRegistered,
    RateDirectionViolation,
    ArithmeticOverflow,
    Unauthorized,
    allow_all,
    owner_only,
    to_timestamp,
    SYSTEM_WALLET,
    EPOCH,
    SCALE,
    ONE,
    MAX_UINT256,
    UNIT_TYPE_INTEREST_TOKEN,
    EVENT_MINT,
    EVENT_BURN,
    EVENT_TRANSFER,
    EVENT_RATE_CHANGED,
)

# Ledger
from .ledger import Ledger

# Accrual math
from .accrual import (
    RateDirectionPolicy,
    CheckpointPolicy,
    AccrualConfig,
    AccrualSnapshot,
    is_allowed_transition,
    growth_factor,
    effective_balance,
    owed_interest,
)

# Interest token unit
from .units.interest_token import (
    create_interest_token_unit,
    get_config,
    principal_of,
    total_principal,
    credit_principal,
    debit_principal,
    current_global_rate,
    holder_rate,
    compute_set_global_rate,
    last_update,
    touch,
    snapshot_of,
    growth_factor_of,
    balance_of,
    checkpoint,
    compute_mint,
    compute_burn,
    compute_transfer,
    rate_changes,
)

# Boundary
from .token import InterestToken

__version__ = "0.1.0"
