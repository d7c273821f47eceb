"""
Conformance Test Suite

Normative behavior of the lending pool, organized by invariant:
1. test_atomicity.py - All-or-nothing operations
2. test_conservation.py - Reserve and currency supply bookkeeping
3. test_determinism.py - Reproducible, query-independent outcomes
4. test_accrual.py - Properties of interest accrual
5. test_exponentiation.py - Binary and linear exponentiation agree

These tests use hypothesis for property-based testing.
"""
