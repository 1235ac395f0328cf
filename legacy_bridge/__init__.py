"""
Legacy Bridge

A multi-tenant import pipeline for moving records out of legacy accounting
systems into the platform's client, business and transaction records.

Supports:
- Desktop and online bookkeeping software, spreadsheets and CSV exports
- Manually keyed records, other accounting packages and ad-hoc databases
- Curated mapping templates with fuzzy mapping suggestions
- Transformation, validation and quality scoring per record
- Duplicate detection against existing records and within a run
- Batched writes with an append-only import ledger
"""

__version__ = "0.1.0"
