"""
auth — Register / Login logic.

Provides:
  • request validation models
  • bcrypt password hashing
  • session token issuance & verification
  • ``AuthService``, the per-request Register / Login pipeline
"""
