"""Adapters connecting the reconciliation core to storage and external services."""
