"""Earnings calculation, pay period lifecycle and wallet settlement."""

__version__ = "0.1.0"
