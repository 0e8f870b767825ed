"""
CSP Nonce Middleware
Issues a cryptographically secure nonce for each request.
"""

from starlette.middleware.base import BaseHTTPMiddleware

from csp_headers.services.token_service import issue_token


class CSPNonceMiddleware(BaseHTTPMiddleware):
    """
    Middleware that issues a CSP nonce for each request.

    The nonce is stored in request.state.csp_nonce and is used:
    1. In the CSP header (script-src 'nonce-XXX')
    2. By NonceInjectionMiddleware for <script> tags in HTML responses
    3. In templates (nonce="{{ csp_nonce }}")

    An EntropyError propagates: the request fails rather than being
    served with a predictable nonce.
    """

    async def dispatch(self, request, call_next):
        issue_token(request.state)
        response = await call_next(request)
        return response
