"""QUE Accounting backend: multi-tenant authorization core and tenant-scoped API."""
