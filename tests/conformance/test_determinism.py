"""
Determinism Conformance Tests

INVARIANT: Given identical inputs, the ledger produces identical outputs.

    ∀ operation sequences S:
        token1.process(S) = token2.process(S)

This guarantees:
- Replay produces identical principal, registry and clock state
- Balance projections depend only on stored state and query time
- clone_at() answers historical queries the way the ledger did at the time

Note: replay() only replays logged transactions. Wallets are re-registered
but balances set via set_balance() are not restored.
"""

from datetime import timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from rateledger import (
    InsufficientFunds, RateDirectionViolation,
    CheckpointPolicy, SYSTEM_WALLET,
)
from tests.conftest import at, make_token


HOLDERS = ["alice", "bob", "carol"]


# =============================================================================
# STRATEGIES
# =============================================================================

operation = st.one_of(
    st.tuples(st.just("mint"), st.sampled_from(HOLDERS), st.integers(min_value=1, max_value=10 ** 20)),
    st.tuples(st.just("burn"), st.sampled_from(HOLDERS), st.integers(min_value=1, max_value=10 ** 20)),
    st.tuples(st.just("transfer"), st.sampled_from(HOLDERS), st.integers(min_value=1, max_value=10 ** 20)),
    st.tuples(st.just("rate"), st.just(""), st.integers(min_value=0, max_value=10 ** 11)),
    st.tuples(st.just("wait"), st.just(""), st.integers(min_value=0, max_value=10 ** 5)),
)


def run(token, operations):
    """Apply operations, skipping the ones the token refuses."""
    for kind, holder, value in operations:
        try:
            if kind == "mint":
                token.mint(holder, value)
            elif kind == "burn":
                token.burn(holder, value)
            elif kind == "transfer":
                token.transfer(holder, HOLDERS[(HOLDERS.index(holder) + 1) % len(HOLDERS)], value)
            elif kind == "rate":
                token.set_global_rate(value)
            else:
                token.ledger.advance_time(token.ledger.current_time + timedelta(seconds=value))
        except (InsufficientFunds, RateDirectionViolation):
            pass


def observe(token):
    ledger = token.ledger
    return (
        {h: token.principal_of(h) for h in HOLDERS},
        {h: token.balance_of(h) for h in HOLDERS},
        ledger.get_unit_state(token.symbol),
        ledger.get_balance(SYSTEM_WALLET, token.symbol),
    )


class TestDeterminismProperties:
    """Property-based determinism tests."""

    @given(st.lists(operation, max_size=25), st.sampled_from(list(CheckpointPolicy)))
    @settings(max_examples=40, deadline=None)
    def test_identical_sequences_produce_identical_state(self, operations, policy):
        """
        PROPERTY: Two tokens processing the same operations reach the same state.
        """
        token1 = make_token(checkpoint_policy=policy, name="one")
        token2 = make_token(checkpoint_policy=policy, name="two")
        run(token1, operations)
        run(token2, operations)

        assert observe(token1) == observe(token2)
        assert [tx.intent_id for tx in token1.ledger.transaction_log] == \
               [tx.intent_id for tx in token2.ledger.transaction_log]

    @given(st.lists(operation, max_size=25), st.sampled_from(list(CheckpointPolicy)))
    @settings(max_examples=40, deadline=None)
    def test_replay_reproduces_state(self, operations, policy):
        """
        PROPERTY: replaying the log reproduces every balance and all unit state.
        """
        token = make_token(checkpoint_policy=policy)
        run(token, operations)

        replayed = token.ledger.replay()
        for holder in HOLDERS + [SYSTEM_WALLET]:
            if token.ledger.is_registered(holder):
                assert replayed.get_balance(holder, "iUSD") == token.ledger.get_balance(holder, "iUSD")
        assert replayed.get_unit_state("iUSD") == token.ledger.get_unit_state("iUSD")

    @given(st.lists(operation, min_size=1, max_size=25))
    @settings(max_examples=40, deadline=None)
    def test_clone_at_matches_history(self, operations):
        """
        PROPERTY: clone_at(t) reports the state the ledger had at t.
        """
        token = make_token()
        recorded = {}
        now = 0
        for op in operations:
            run(token, [op])
            if op[0] == "wait":
                now += op[2]
            recorded[now] = token.ledger.get_unit_state("iUSD")

        for seconds, state in recorded.items():
            assert token.ledger.clone_at(at(seconds)).get_unit_state("iUSD") == state


class TestDeterminismExamples:
    """Explicit determinism examples."""

    def test_projection_is_pure(self, token):
        token.mint("alice", 10 ** 18)
        token.ledger.advance_time(at(1000))
        first = token.balance_of("alice")
        log_length = len(token.ledger.transaction_log)
        state = token.ledger.get_unit_state("iUSD")

        assert [token.balance_of("alice") for _ in range(3)] == [first] * 3
        assert len(token.ledger.transaction_log) == log_length
        assert token.ledger.get_unit_state("iUSD") == state

    def test_query_time_only_affects_projection(self, token):
        token.mint("alice", 10 ** 18)
        assert token.balance_of("alice", at(2000)) - token.balance_of("alice", at(1000)) == 5 * 10 ** 13
        assert token.principal_of("alice") == 10 ** 18
