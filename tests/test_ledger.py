"""
test_ledger.py - Tests for the principal Ledger

Tests:
- Registration of wallets and units
- Atomic execution, rejection reasons, idempotency
- Stale state detection
- Time management
- clone / clone_at / replay
"""

import pytest

from rateledger import (
    Ledger, Move, ExecuteResult,
    LedgerError, UnitNotRegistered, WalletNotRegistered,
    build_transaction, create_interest_token_unit, compute_mint,
    AccrualConfig, SYSTEM_WALLET, EPOCH,
)
from tests.conftest import at


SYM = "iUSD"
RATE = 5 * 10 ** 10


@pytest.fixture
def ledger():
    ledger = Ledger("test", verbose=False, test_mode=True)
    ledger.register_unit(create_interest_token_unit(SYM, "Interest USD", AccrualConfig(initial_rate=RATE)))
    ledger.register_wallet("alice")
    ledger.register_wallet("bob")
    return ledger


class TestRegistration:

    def test_system_wallet_preregistered(self, empty_ledger):
        assert empty_ledger.is_registered(SYSTEM_WALLET)

    def test_duplicate_wallet_rejected(self, ledger):
        with pytest.raises(ValueError, match="already registered"):
            ledger.register_wallet("alice")

    def test_empty_wallet_rejected(self, ledger):
        with pytest.raises(ValueError):
            ledger.register_wallet("")

    def test_duplicate_unit_rejected(self, ledger):
        with pytest.raises(ValueError, match="already registered"):
            ledger.register_unit(create_interest_token_unit(SYM, "again"))

    def test_unregister_empty_wallet(self, ledger):
        ledger.unregister_wallet("bob")
        assert not ledger.is_registered("bob")

    def test_unregister_funded_wallet_refused(self, ledger):
        ledger.set_balance("alice", SYM, 5)
        with pytest.raises(LedgerError, match="still holds"):
            ledger.unregister_wallet("alice")

    def test_unregister_system_refused(self, ledger):
        with pytest.raises(LedgerError):
            ledger.unregister_wallet(SYSTEM_WALLET)

    def test_unknown_lookups_raise(self, ledger):
        with pytest.raises(WalletNotRegistered):
            ledger.get_balance("nobody", SYM)
        with pytest.raises(UnitNotRegistered):
            ledger.get_balance("alice", "XYZ")
        with pytest.raises(UnitNotRegistered):
            ledger.get_unit_state("XYZ")


class TestExecution:

    def test_issuance_from_system(self, ledger):
        tx = build_transaction(ledger, [Move(100, SYM, SYSTEM_WALLET, "alice", "issue")])
        assert ledger.execute(tx) == ExecuteResult.APPLIED
        assert ledger.get_balance("alice", SYM) == 100
        assert ledger.get_balance(SYSTEM_WALLET, SYM) == -100
        assert ledger.total_supply(SYM) == 0
        assert ledger.get_positions(SYM) == {"alice": 100, SYSTEM_WALLET: -100}

    def test_overdraft_rejected(self, ledger):
        tx = build_transaction(ledger, [Move(1, SYM, "alice", "bob", "pay")])
        assert ledger.execute(tx) == ExecuteResult.REJECTED
        assert ledger.last_rejection.startswith("insufficient funds")
        assert ledger.transaction_log == []

    def test_unregistered_wallet_rejected(self, ledger):
        tx = build_transaction(ledger, [Move(1, SYM, SYSTEM_WALLET, "carol", "issue")])
        assert ledger.execute(tx) == ExecuteResult.REJECTED
        assert "wallet not registered" in ledger.last_rejection

    def test_future_timestamp_rejected(self, ledger):
        ahead = ledger.clone()
        ahead.advance_time(at(10))
        future = build_transaction(ahead, [Move(2, SYM, SYSTEM_WALLET, "alice", "issue")])
        assert ledger.execute(future) == ExecuteResult.REJECTED
        assert ledger.last_rejection == "future timestamp"

    def test_duplicate_intent_already_applied(self, ledger):
        tx = build_transaction(ledger, [Move(100, SYM, SYSTEM_WALLET, "alice", "issue")])
        assert ledger.execute(tx) == ExecuteResult.APPLIED
        assert ledger.execute(tx) == ExecuteResult.ALREADY_APPLIED
        assert ledger.get_balance("alice", SYM) == 100

    def test_stale_state_rejected(self, ledger):
        first = compute_mint(ledger, SYM, "alice", 10)
        stale = compute_mint(ledger, SYM, "bob", 10)
        assert ledger.execute(first) == ExecuteResult.APPLIED
        assert ledger.execute(stale) == ExecuteResult.REJECTED
        assert ledger.last_rejection == f"stale state for {SYM}"
        assert ledger.get_balance("bob", SYM) == 0

    def test_state_change_applied_with_moves(self, ledger):
        pending = compute_mint(ledger, SYM, "alice", 10)
        assert ledger.execute(pending) == ExecuteResult.APPLIED
        state = ledger.get_unit_state(SYM)
        assert state['holder_rates'] == {"alice": RATE}
        assert state['nonce'] == 1

    def test_unit_state_copy_is_independent(self, ledger):
        state = ledger.get_unit_state(SYM)
        state['holder_rates']['alice'] = 1
        assert ledger.get_unit_state(SYM)['holder_rates'] == {}

    def test_log_records_sequence(self, ledger):
        ledger.execute(compute_mint(ledger, SYM, "alice", 10))
        ledger.execute(compute_mint(ledger, SYM, "bob", 10))
        assert [tx.sequence_number for tx in ledger.transaction_log] == [0, 1]
        assert ledger.transaction_log[0].exec_id.startswith("exec:test:000000000000")

    def test_set_balance_requires_test_mode(self):
        ledger = Ledger("prod", verbose=False)
        ledger.register_unit(create_interest_token_unit(SYM, "Interest USD"))
        ledger.register_wallet("alice")
        with pytest.raises(LedgerError, match="production"):
            ledger.set_balance("alice", SYM, 10)


class TestTime:

    def test_default_time_is_epoch(self, ledger):
        assert ledger.current_time == EPOCH

    def test_time_moves_forward(self, ledger):
        ledger.advance_time(at(5))
        assert ledger.current_time == at(5)

    def test_time_cannot_move_backward(self, ledger):
        ledger.advance_time(at(5))
        with pytest.raises(ValueError, match="backwards"):
            ledger.advance_time(at(4))


class TestHistory:

    def _run(self, ledger):
        ledger.execute(compute_mint(ledger, SYM, "alice", 100))
        ledger.advance_time(at(1000))
        ledger.execute(compute_mint(ledger, SYM, "bob", 50))
        ledger.advance_time(at(2000))
        ledger.execute(compute_mint(ledger, SYM, "alice", 25))

    def test_clone_is_independent(self, ledger):
        self._run(ledger)
        cloned = ledger.clone()
        cloned.execute(compute_mint(cloned, SYM, "bob", 1))
        assert cloned.get_balance("bob", SYM) == 51
        assert ledger.get_balance("bob", SYM) == 50

    def test_clone_at_restores_balances_and_state(self, ledger):
        self._run(ledger)
        past = ledger.clone_at(at(1000))
        assert past.get_balance("alice", SYM) == 100
        assert past.get_balance("bob", SYM) == 50
        assert past.get_unit_state(SYM)['last_updates'] == {"alice": 0, "bob": 1000}
        assert len(past.transaction_log) == 2

    def test_clone_at_future_rejected(self, ledger):
        with pytest.raises(ValueError, match="future"):
            ledger.clone_at(at(1))

    def test_replay_reproduces_state(self, ledger):
        self._run(ledger)
        replayed = ledger.replay()
        for wallet in ("alice", "bob", SYSTEM_WALLET):
            assert replayed.get_balance(wallet, SYM) == ledger.get_balance(wallet, SYM)
        assert replayed.get_unit_state(SYM) == ledger.get_unit_state(SYM)
        assert replayed.current_time == ledger.current_time
