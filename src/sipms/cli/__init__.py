"""SIPMS Command Line Interface.

Available commands:
- funds: List the fund catalog
- simulate: Run an SIP over several periods and print the portfolio
"""

from .main import main

__all__ = ["main"]
