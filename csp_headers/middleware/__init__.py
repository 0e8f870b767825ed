from csp_headers.middleware.csp_nonce import CSPNonceMiddleware
from csp_headers.middleware.nonce_injection import NonceInjectionMiddleware
from csp_headers.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "CSPNonceMiddleware",
    "NonceInjectionMiddleware",
    "SecurityHeadersMiddleware",
]
