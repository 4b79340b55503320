"""HTTP surface: storefront reads, sync triggers and operator endpoints."""
