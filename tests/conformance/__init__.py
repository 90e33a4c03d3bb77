"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the interest-bearing ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_growth.py - Growth factor bounds, monotonicity and overflow safety
2. test_rate_policy.py - Global rate direction and per-holder lock-in
3. test_atomicity.py - All-or-nothing operations
4. test_determinism.py - Reproducible state via clone, clone_at and replay
5. test_conservation.py - Balances of the unit always sum to zero

These tests use hypothesis for property-based testing.
"""
