"""
CSP Headers

Per-request CSP nonce, security response headers and nonce injection
for FastAPI/Starlette applications.
"""

__version__ = "1.0.0"
