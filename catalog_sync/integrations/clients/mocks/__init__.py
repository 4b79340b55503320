"""
Mock integration clients.

These clients return realistic catalog payloads without calling any external API.
They are used when:
- catalog provider credentials are not configured
- we want to exercise reconciliation end-to-end without network access

Important:
- Mock clients must follow the SAME interface as real HTTP clients.
- Mock clients should return data shaped according to catalog_sync/integrations/contracts/*
"""
