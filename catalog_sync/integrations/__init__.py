"""
Integrations layer.
This package contains all code used to communicate with external systems:
- the upstream catalog-and-inventory provider (catalog items, categories, counts)
- the local document store that mirrors that catalog

Key rule:
- The reconciliation core MUST NOT call external APIs directly.
- It talks to integration clients through the contracts in contracts/interfaces.py.
- We use MOCK clients during development and swap to REAL_HTTP clients when credentials exist.

Switching implementations:
- The selection of mock vs real clients happens in ONE place (catalog_sync/sync/factory.py).
"""
