"""Deterministic helpers shared by the test suite."""
