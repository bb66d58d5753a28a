"""
Pocket Ledger - Source Package

A personal / small-business finance ledger: wallets, transactions,
transfers, reconciliation and the rollups built on top of them.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Direction lives in the transaction type, amounts are magnitudes
3. Multi-leg operations are built as one batch and written as one
4. Aggregations are pure and take an explicit "now"
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
