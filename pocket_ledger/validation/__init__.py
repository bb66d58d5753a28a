"""Ledger validation package."""

from pocket_ledger.validation.validator import LedgerValidator, find_orphaned_transactions

__all__ = ["LedgerValidator", "find_orphaned_transactions"]
