"""
Test suite for the referral reconciliation engine

Contains:
- tests/unit/          : Unit tests for individual modules and the engine facade
"""
