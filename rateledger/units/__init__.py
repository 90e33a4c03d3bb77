"""
Units module - Factory and contract functions for ledger units.

The interest token is the only unit type: principal held in ordinary
wallet balances, with the rate registry and accrual clock in unit state.
"""

from .interest_token import (
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

__all__ = [
    'create_interest_token_unit',
    'get_config',
    'principal_of',
    'total_principal',
    'credit_principal',
    'debit_principal',
    'current_global_rate',
    'holder_rate',
    'compute_set_global_rate',
    'last_update',
    'touch',
    'snapshot_of',
    'growth_factor_of',
    'balance_of',
    'checkpoint',
    'compute_mint',
    'compute_burn',
    'compute_transfer',
    'rate_changes',
]
