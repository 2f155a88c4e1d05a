"""
Core domain models, calendar arithmetic, and commission invariants.

This module contains the foundational building blocks that are independent
of external systems (record stores, identity providers, UI).
"""
