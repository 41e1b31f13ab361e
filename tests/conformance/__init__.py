"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the split ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Every transaction and program nets to zero
2. determinism.py - Same tab in, same settlements out
3. settlement_properties.py - Settlements are positive, between distinct
   users, and reconcile actual balances to fair shares

These tests use hypothesis for property-based testing.
"""
