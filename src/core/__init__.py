"""
Core domain models, VAT math, and payload contracts.

This module contains the foundational building blocks that are independent
of external systems (record store, messaging transport).
"""
