"""Catalog reconciliation engine: transform, reconcile, debounce and guard."""
