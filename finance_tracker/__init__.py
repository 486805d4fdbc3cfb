"""
Finance Tracker - Ledger Engine Package

Records income and expense transactions against accounts and keeps
every account balance consistent with its ledger.

DESIGN PRINCIPLES:
1. A balance only moves together with the transaction that moved it
2. Money is Decimal from the edge of the system to the database
3. Fail early, fail visibly - typed errors, no silent corrections
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
