"""
FinSync — local-first caching and state synchronisation for personal finance records.

Keeps in-memory views of transactions, budgets, categories and goals
consistent across the remote Supabase store, the local SQLite snapshot
store, and the observers of the presentation layer.
"""

__version__ = "0.3.0"
