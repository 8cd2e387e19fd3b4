"""
tests.property
==============

Hypothesis-driven checks of the ledger invariants (supply conservation,
partition sums, atomic failure).
"""
