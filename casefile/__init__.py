"""Casefile - deterministic rules engine for detective text adventures"""

__version__ = "0.1.0"
