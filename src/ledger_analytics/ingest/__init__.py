"""Ingestion utilities.

Reads the transaction ledger from CSV, validates rows into
`TransactionRecord`, and loads the validated snapshot into MongoDB.
"""
