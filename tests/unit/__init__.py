"""
tests.unit
==========

Fast, deterministic unit tests for tokenledger. Every test runs against a
fresh in-memory SQLite store (see tests/conftest.py).
"""
