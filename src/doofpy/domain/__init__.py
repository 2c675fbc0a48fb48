"""Reconciliation core: resolution, matching, analysis, ingestion and the ledger."""
