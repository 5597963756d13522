# src/donotghostme/scripts/__init__.py
"""Operational scripts (database bootstrap and migrations)."""
