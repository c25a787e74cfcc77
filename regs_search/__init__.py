"""Regs Search - hybrid table-of-contents search over electrical regulations"""

__version__ = "0.3.0"
