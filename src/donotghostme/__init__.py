# src/donotghostme/__init__.py
"""Do Not Ghost Me: anonymous reporting of recruiter ghosting."""

__version__ = "0.1.0"
