"""
Test suite for the external offers service

Contains:
- tests/unit/     : Unit tests for individual modules
- tests/fakes.py  : In-memory record store and messaging gateway
"""
