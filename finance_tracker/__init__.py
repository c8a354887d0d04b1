"""
Finance Tracker - Source Package

A personal income and expense tracker: one signed-in user, one running
balance, optional receipts attached to each entry.

DESIGN PRINCIPLES:
1. Remote first, then local: memory changes only after a confirmed write
2. Fail early, fail visibly
3. Nothing is deleted without an explicit confirmation
4. Every step must be auditable
5. Storage, uploads and sign-in are swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
