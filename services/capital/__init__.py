"""Capital-source history ledger.

- models.py: ledger entries, derived sources, snapshots, cents/rate guardrails
- reconstruct.py: point-in-time projection of the ledger
- storage.py: load/save contract plus in-memory and JSON file adapters
- store.py: HistoryStore, the single writer of ledger entries
- seed.py: demo capital sources
- cli.py: JSON-printing command line over a configured store
"""
