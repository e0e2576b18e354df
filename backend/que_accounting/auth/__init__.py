"""
Authentication package for QUE Accounting.

- token_codec: issue/verify signed bearer tokens
- principal: resolve verified claims to a Principal (stored user or bootstrap admin)
- passwords: bcrypt hashing
- middleware: FastAPI dependencies (require_auth, require_subscription_admin)
"""
