"""
Robust mediation analysis utilities package.
Internal utilities - not part of public API.
"""

from . import data, validators

__all__ = [
    "data",
    "validators",
]
