"""
Form-entry reconciliation for the QSL tracker.
Merges externally submitted confirmations into the dispatched status records,
with a single admission gate for refreshes and one mutation gate for all writes.
"""
