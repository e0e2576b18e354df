"""
Subscription gating for tenant-scoped routes.

- rules: derived subscription state and the read/write gate
"""
