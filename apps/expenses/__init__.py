"""Shared-expense ledger and settlement for decisions."""
