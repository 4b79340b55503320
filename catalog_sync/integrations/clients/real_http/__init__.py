"""
Real HTTP integration clients.

These clients communicate with the live catalog provider over HTTP:
- catalog search (items, categories)
- inventory batch counts
- catalog image lookups

Important:
- Must implement the same interface as the mock clients
- Must return data shaped according to catalog_sync/integrations/contracts/*

Switching:
The selection of mock vs real clients should happen in catalog_sync/api/main.py only.
"""
