# src/donotghostme/core/__init__.py
"""Core configuration, errors and hashing primitives."""
