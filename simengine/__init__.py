"""Backtesting engine for predefined options strategies."""

__version__ = "0.1.0"
