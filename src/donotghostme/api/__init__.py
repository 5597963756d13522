# src/donotghostme/api/__init__.py
"""HTTP API package."""
