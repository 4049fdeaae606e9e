"""Contract tests for the oracle and LLM provider seams.

These tests verify that every oracle and provider implementation, real or
test double, satisfies its protocol with consistent behavior.
"""
